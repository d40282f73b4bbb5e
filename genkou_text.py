"""
Text preparation for genkou yoshi layout
Line-break normalization, tokenization with ellipsis folding, and digit packing
"""

import logging
import re
from typing import List

# Canonical ellipsis token, always emitted as a pair
ELLIPSIS = '…'

# Fixed rule sets shared by the tokenizer and the layout engine
SPACE_TOKENS = frozenset({' ', '\t'})
DIGITS = frozenset('0123456789')
REQUIRE_BLANK_AFTER = frozenset({'?', '!'})
FORBID_TYPED_SPACE_AFTER = frozenset({'.', ',', ':', ';'})
SHAREABLE_PUNCT = frozenset({
    # ASCII trailing punctuation and closers; straight quotes may open, so excluded
    '.', ',', ':', ';', '?', '!', ')', ']', '}',
    # Full-width trailing punctuation and closing brackets
    '。', '、', '，', '．', '：', '；', '？', '！',
    '」', '』', '）', '］', '｝', '〉', '》', '〕', '】', '’', '”',
})
TWO_BOX_TOKENS = frozenset({'—', '–'})
DASH_CONTINUATION = '―'


class GenkouTextProcessor:
    """Splits raw text into paragraphs and box-sized tokens"""

    _line_break_pattern = re.compile(r'\r\n?')

    # Checked longest first
    _ellipsis_spellings = ('...', '……', '…')

    @classmethod
    def normalize_line_breaks(cls, text: str) -> str:
        return cls._line_break_pattern.sub('\n', text)

    @classmethod
    def split_paragraphs(cls, text: str) -> List[str]:
        """
        Split text on line breaks after unifying CRLF and CR.
        Empty input gives a single empty paragraph.
        """
        return cls.normalize_line_breaks(text).split('\n')

    @classmethod
    def tokenize(cls, paragraph: str) -> List[str]:
        """
        Split a paragraph into single-character tokens.

        Every ellipsis spelling ('...', '…' or '……') becomes exactly two
        ELLIPSIS tokens so that it always fills two boxes.
        """
        tokens = []
        i = 0
        length = len(paragraph)
        while i < length:
            for spelling in cls._ellipsis_spellings:
                if paragraph.startswith(spelling, i):
                    tokens.extend((ELLIPSIS, ELLIPSIS))
                    i += len(spelling)
                    break
            else:
                tokens.append(paragraph[i])
                i += 1
        return tokens

    @staticmethod
    def pack_digits(tokens: List[str], digits_per_box: int) -> List[str]:
        """
        Merge runs of digit tokens into groups of at most digits_per_box.
        A trailing short group is kept as is, never padded.
        """
        packed = []
        buffer = ''
        for token in tokens:
            if token in DIGITS:
                buffer += token
                if len(buffer) == digits_per_box:
                    packed.append(buffer)
                    buffer = ''
                continue
            if buffer:
                packed.append(buffer)
                buffer = ''
            packed.append(token)
        if buffer:
            packed.append(buffer)
        return packed

    @classmethod
    def prepare_paragraph(cls, paragraph: str, digits_per_box: int) -> List[str]:
        """Tokenize and digit-pack one paragraph"""
        tokens = cls.pack_digits(cls.tokenize(paragraph), digits_per_box)
        logging.debug(f"Prepared {len(tokens)} tokens from {len(paragraph)} characters")
        return tokens

    @staticmethod
    def is_space(token) -> bool:
        return token in SPACE_TOKENS

    @staticmethod
    def is_shareable(token) -> bool:
        return token in SHAREABLE_PUNCT

    @staticmethod
    def is_two_box(token) -> bool:
        return token in TWO_BOX_TOKENS
