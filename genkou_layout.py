"""
Genkou yoshi layout engine
Fills a fixed-width box grid from text following manuscript paper rules
"""

import logging
from typing import Dict, List, Optional

from genkou_text import (
    DASH_CONTINUATION,
    FORBID_TYPED_SPACE_AFTER,
    REQUIRE_BLANK_AFTER,
    GenkouTextProcessor,
)

DEFAULT_LAYOUT_CONFIG = {
    'width': 20,
    'indent_boxes': 1,
    'count_spaces': True,
    'digits_per_box': 2,
}


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def resolve_layout_config(config: Optional[Dict] = None) -> Dict:
    """
    Merge a partial configuration over the defaults.
    Invalid values fall back to the default with a warning instead of raising.
    """
    resolved = dict(DEFAULT_LAYOUT_CONFIG)
    if config:
        resolved.update({k: v for k, v in config.items() if v is not None})

    for key in ('width', 'digits_per_box'):
        if not _is_positive_int(resolved[key]):
            logging.warning(f"Invalid {key} {resolved[key]!r}, using {DEFAULT_LAYOUT_CONFIG[key]}")
            resolved[key] = DEFAULT_LAYOUT_CONFIG[key]

    indent = resolved['indent_boxes']
    if isinstance(indent, bool) or not isinstance(indent, int) or indent < 0:
        logging.warning(f"Invalid indent_boxes {indent!r}, using {DEFAULT_LAYOUT_CONFIG['indent_boxes']}")
        resolved['indent_boxes'] = DEFAULT_LAYOUT_CONFIG['indent_boxes']

    if not isinstance(resolved['count_spaces'], bool):
        logging.warning(
            f"Invalid count_spaces {resolved['count_spaces']!r}, using {DEFAULT_LAYOUT_CONFIG['count_spaces']}"
        )
        resolved['count_spaces'] = DEFAULT_LAYOUT_CONFIG['count_spaces']
    return resolved


class ManuscriptGrid:
    """Append-only cell sequence with a column cursor"""

    def __init__(self, width: int):
        self.width = width
        self.cells: List[Dict] = []
        self.col = 0
        # Index of the most recent used cell, -1 when none
        self.last_used = -1

    def place(self, text: str, used: bool = True):
        """Append one cell and advance the cursor"""
        if used:
            self.last_used = len(self.cells)
        self.cells.append({'text': text, 'used': used})
        self.col = (self.col + 1) % self.width

    def place_blank(self):
        self.place('', used=True)

    def pad_row(self):
        """Fill the rest of the current row with unused cells"""
        while self.col != 0:
            self.place('', used=False)

    def pad_full_row(self):
        """Emit a whole unused row (cursor must be at a row start)"""
        for _ in range(self.width):
            self.place('', used=False)

    def share_with_last_used(self, text: str) -> bool:
        """Attach text to the most recent used cell instead of a new box"""
        if self.last_used < 0:
            return False
        self.cells[self.last_used]['text'] += text
        return True

    def is_at_row_start(self) -> bool:
        return self.col == 0

    def is_at_row_end(self) -> bool:
        return self.col == self.width - 1


class GenkouLayoutEngine:
    """Lays out paragraphs onto a ManuscriptGrid, one box per token"""

    def __init__(self, config: Optional[Dict] = None):
        self.config = resolve_layout_config(config)
        self.text_processor = GenkouTextProcessor

    def layout(self, text: str) -> Dict:
        """Lay out the whole text and return cells with their metrics"""
        width = self.config['width']
        grid = ManuscriptGrid(width)
        paragraphs = self.text_processor.split_paragraphs(text)
        last = len(paragraphs) - 1

        for i, paragraph in enumerate(paragraphs):
            if grid.cells:
                grid.pad_row()
            start = len(grid.cells)
            self.place_paragraph(grid, paragraph)

            # A paragraph that produced nothing still takes a row
            if len(grid.cells) == start:
                grid.pad_full_row()
            elif i != last:
                grid.pad_row()

        grid.pad_row()

        result = {'cells': grid.cells}
        result.update(calculate_metrics(grid.cells, width))
        logging.debug(
            f"Laid out {len(paragraphs)} paragraph(s) into {result['row_count']} row(s) "
            f"of {width}, {result['used_count']} used"
        )
        return result

    def place_paragraph(self, grid: ManuscriptGrid, paragraph: str):
        """Place one paragraph starting from the grid's current cursor"""
        processor = self.text_processor
        tokens = processor.prepare_paragraph(paragraph, self.config['digits_per_box'])

        if paragraph and self.config['indent_boxes'] > 0:
            for _ in range(self.config['indent_boxes']):
                grid.place_blank()

        i = 0
        count = len(tokens)
        while i < count:
            token = tokens[i]
            next_token = tokens[i + 1] if i + 1 < count else None
            i += 1

            if processor.is_space(token):
                if self.config['count_spaces'] and not grid.is_at_row_start():
                    grid.place_blank()
                continue

            if processor.is_two_box(token):
                if grid.is_at_row_end():
                    grid.pad_row()
                grid.place(token)
                grid.place(DASH_CONTINUATION)
                continue

            if grid.is_at_row_start() and processor.is_shareable(token):
                if grid.share_with_last_used(token):
                    if token in REQUIRE_BLANK_AFTER and next_token is not None:
                        grid.place_blank()
                    continue
                # Nothing to attach to yet: plain placement, no forced blank
                grid.place(token)
                continue

            if token in FORBID_TYPED_SPACE_AFTER and processor.is_space(next_token):
                grid.place(token)
                i += 1
                continue

            grid.place(token)
            if token in REQUIRE_BLANK_AFTER and not processor.is_space(next_token):
                grid.place_blank()


def calculate_metrics(cells: List[Dict], width: int) -> Dict:
    """
    Derive size metrics from a finished cell sequence.

    consumed_count runs through the last used cell, interior padding included;
    sheet_count rounds that up to whole rows.
    """
    used_count = 0
    last_used_index = 0
    for index, cell in enumerate(cells):
        if cell['used']:
            used_count += 1
            last_used_index = index + 1

    consumed_count = last_used_index
    if last_used_index == 0:
        sheet_count = 0
    else:
        sheet_count = -(-consumed_count // width) * width

    return {
        'used_count': used_count,
        'last_used_index': last_used_index,
        'consumed_count': consumed_count,
        'sheet_count': sheet_count,
        'row_count': len(cells) // width,
        'width': width,
    }


def layout_text(text: str, config: Optional[Dict] = None) -> Dict:
    """Lay out text with the given (partial) configuration"""
    return GenkouLayoutEngine(config).layout(text)
