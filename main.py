#!/usr/bin/env python3
"""
Genkō Yōshi Grid - Lay out text on manuscript grid paper
Implements the manuscript box rules (indent, punctuation sharing, digit
grouping, blanks after ? and !) with terminal preview, DOCX and JSON export
"""

import argparse
import json
import logging
import math
import sys
from pathlib import Path
from typing import Dict, List

import chardet
from docx import Document
from docx.shared import Mm
from rich import box
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.table import Table
from rich.text import Text

from genkou_helpers import configure_genkou_cell, configure_genkou_table
from genkou_layout import DEFAULT_LAYOUT_CONFIG, GenkouLayoutEngine
from sizes import (
    MIN_ROWS,
    ManuscriptFormatSelector,
    calculate_display_rows,
    evaluate_goal,
    fit_cells_to_rows,
    parse_budget,
)

logging.basicConfig(level=logging.INFO, format='[%(levelname)s] %(message)s')


class GenkouYoshiDocumentBuilder:
    """Lays out text and exports the resulting manuscript grid"""

    DEFAULT_PAGE_FORMAT = ManuscriptFormatSelector.PAGE_FORMATS[ManuscriptFormatSelector.DEFAULT_FORMAT]

    def __init__(self, font_name='Noto Sans JP', page_format=None, layout_config=None,
                 max_chars=None, min_chars=None, min_rows=MIN_ROWS):
        self.font_name = font_name
        self.page_format = self._complete_page_format(page_format)

        config = dict(layout_config or {})
        if config.get('width') is None:
            config['width'] = self.page_format['grid']['columns']
        self.engine = GenkouLayoutEngine(config)

        self.max_chars = parse_budget(max_chars)
        self.min_chars = parse_budget(min_chars)
        self.min_rows = min_rows

        self.layout = None
        self.display_rows = 0
        self.doc = Document()
        self.setup_page_layout()

    @property
    def width(self):
        return self.engine.config['width']

    @property
    def rows_per_page(self):
        return self.page_format['grid']['rows']

    def _complete_page_format(self, page_format):
        """Fill missing or non-positive page values from the default format"""
        default = self.DEFAULT_PAGE_FORMAT
        fmt = ManuscriptFormatSelector.copy_format(default)
        if not page_format:
            return fmt

        fmt['name'] = page_format.get('name', default['name'])
        for key in ('width', 'height'):
            value = page_format.get(key)
            if isinstance(value, (int, float)) and value > 0:
                fmt[key] = value
        for key in ('columns', 'rows'):
            value = page_format.get('grid', {}).get(key)
            if isinstance(value, int) and value > 0:
                fmt['grid'][key] = value
        for key in default['margins']:
            value = page_format.get('margins', {}).get(key)
            if isinstance(value, (int, float)) and value >= 0:
                fmt['margins'][key] = value
        if fmt['width'] - fmt['margins']['inner'] - fmt['margins']['outer'] <= 0:
            logging.warning(f"Margins of format {fmt['name']!r} leave no text area, using default margins")
            fmt['margins'] = dict(default['margins'])
        fmt['characters_per_page'] = fmt['grid']['columns'] * fmt['grid']['rows']
        return fmt

    def setup_page_layout(self):
        section = self.doc.sections[0]
        section.page_width = Mm(self.page_format['width'])
        section.page_height = Mm(self.page_format['height'])
        margins = self.page_format['margins']
        section.top_margin = Mm(margins['top'])
        section.bottom_margin = Mm(margins['bottom'])
        section.left_margin = Mm(margins['inner'])
        section.right_margin = Mm(margins['outer'])

    def create_genkou_yoshi_document(self, text):
        """Lay out text and work out how many rows to show"""
        try:
            self.layout = self.engine.layout(text)
        except Exception as e:
            logging.critical(f"Failed to lay out text: {e}")
            raise
        self.display_rows = calculate_display_rows(self.layout, self.max_chars, self.min_rows)
        return self.layout

    def _require_layout(self):
        if self.layout is None:
            raise ValueError("No layout yet - call create_genkou_yoshi_document first")
        return self.layout

    def get_statistics(self) -> Dict:
        layout = self._require_layout()
        goal = evaluate_goal(layout, self.min_chars, self.max_chars)
        return {
            'width': layout['width'],
            'used_count': layout['used_count'],
            'consumed_count': layout['consumed_count'],
            'sheet_count': layout['sheet_count'],
            'display_rows': self.display_rows,
            'max_chars': self.max_chars,
            'min_chars': self.min_chars,
            'overflow': goal['overflow'],
            'remaining': goal['remaining'],
            'goal_status': goal['status'],
        }

    def get_display_cells(self) -> List[Dict]:
        layout = self._require_layout()
        return fit_cells_to_rows(layout['cells'], self.width, self.display_rows)

    def is_overflow(self, index: int) -> bool:
        """Whether box index holds used content past the character budget"""
        if not self.max_chars:
            return False
        layout = self._require_layout()
        if not self.max_chars <= index < layout['consumed_count']:
            return False
        return layout['cells'][index]['used']

    def get_pages(self) -> List[List[List[Dict]]]:
        """Display rows grouped into pages of rows_per_page rows"""
        cells = self.get_display_cells()
        width = self.width
        rows = [cells[i:i + width] for i in range(0, len(cells), width)]
        per_page = self.rows_per_page
        return [rows[i:i + per_page] for i in range(0, len(rows), per_page)]

    def export_grid_metadata_json(self, output_path=None):
        """Export the layout result and display sizing as JSON"""
        layout = self._require_layout()
        width = self.width
        cells = layout['cells']
        metadata = self.get_statistics()
        metadata['rows'] = [
            [{'text': cell['text'], 'used': cell['used']} for cell in cells[i:i + width]]
            for i in range(0, len(cells), width)
        ]

        json_str = json.dumps(metadata, ensure_ascii=False, indent=2)
        if output_path:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(json_str)
        return json_str

    def _font_size_points(self, cell_width):
        return max(6, min(14, cell_width.pt * 0.7))

    def generate_docx_content(self, progress_callback=None):
        """
        Build one fixed-layout table per page; boxes past the character
        budget are shaded
        """
        pages = self.get_pages()
        width = self.width

        self.doc = Document()
        self.setup_page_layout()

        margins = self.page_format['margins']
        text_width = self.page_format['width'] - margins['inner'] - margins['outer']
        cell_width = Mm(text_width / width)
        font_size = self._font_size_points(cell_width)

        index = 0
        for page_index, page_rows in enumerate(pages):
            table = self.doc.add_table(rows=len(page_rows), cols=width)
            configure_genkou_table(table, cell_width)
            for row_idx, row in enumerate(page_rows):
                for col_idx, cell in enumerate(row):
                    configure_genkou_cell(
                        table.cell(row_idx, col_idx),
                        cell['text'],
                        font_size,
                        self.font_name,
                        overflow=self.is_overflow(index),
                    )
                    index += 1

            if page_index < len(pages) - 1:
                self.doc.add_page_break()

            if progress_callback:
                progress_callback(page_index + 1, len(pages))

        logging.info(f"Generated {len(pages)} page(s) of {width}×{self.rows_per_page} boxes")
        return self.doc

    def save_docx(self, output_path, progress_callback=None):
        self.generate_docx_content(progress_callback=progress_callback)
        try:
            self.doc.save(output_path)
        except OSError as e:
            logging.error(f"Failed to save DOCX: {e}")
            raise


def render_grid_preview(builder: GenkouYoshiDocumentBuilder) -> Table:
    """Render the display grid as a rich table, one column per box"""
    width = builder.width
    table = Table(show_header=False, box=box.SQUARE, show_lines=True, padding=(0, 0))
    for _ in range(width):
        table.add_column(justify="center", min_width=2)

    cells = builder.get_display_cells()
    for start in range(0, len(cells), width):
        row = []
        for index in range(start, start + width):
            cell = cells[index]
            text = cell['text'] or ' '
            if builder.is_overflow(index):
                row.append(Text(text, style="on red"))
            elif cell['used']:
                row.append(Text(text))
            else:
                row.append(Text(text, style="dim"))
        table.add_row(*row)
    return table


def render_statistics(stats: Dict) -> Table:
    table = Table(title="Manuscript Statistics", box=box.ROUNDED, expand=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Boxes per line", str(stats['width']))
    table.add_row("Used boxes", str(stats['used_count']))
    table.add_row("Consumed boxes", str(stats['consumed_count']))
    table.add_row("Sheet boxes", str(stats['sheet_count']))
    table.add_row("Rows shown", str(stats['display_rows']))
    if stats['max_chars']:
        style = "red" if stats['overflow'] else "green"
        table.add_row("Budget", str(stats['max_chars']))
        table.add_row("Overflow", f"[{style}]{stats['overflow']}[/{style}]")
    if stats['min_chars']:
        table.add_row("Goal minimum", str(stats['min_chars']))
        table.add_row("Remaining", str(stats['remaining']))
    if stats['goal_status']:
        table.add_row("Goal", stats['goal_status'])
    return table


def read_input_text(input_path: Path) -> str:
    """Read a text file, detecting its encoding with chardet"""
    with open(input_path, 'rb') as f:
        raw_data = f.read()
    if not raw_data:
        return ''
    encoding_result = chardet.detect(raw_data)
    detected_encoding = encoding_result['encoding'] if encoding_result['confidence'] > 0.7 else 'utf-8'
    try:
        return raw_data.decode(detected_encoding)
    except (UnicodeDecodeError, LookupError):
        return raw_data.decode('utf-8', errors='ignore')


def build_arg_parser():
    parser = argparse.ArgumentParser(description="Genkou Yoshi manuscript grid layout")
    parser.add_argument("input", nargs="?", help="Input text file, or - for stdin")
    parser.add_argument("-o", "--output", help="Output DOCX file")
    parser.add_argument("--json", help="Export the layout result as JSON to file")
    parser.add_argument("--format", default=None, help="Manuscript format name")
    parser.add_argument("--select-format", action="store_true", help="Choose the format interactively")
    parser.add_argument("--width", type=int, default=None, help="Boxes per line (overrides the format)")
    parser.add_argument("--indent", type=int, default=DEFAULT_LAYOUT_CONFIG['indent_boxes'],
                        help="Indent boxes at the start of each paragraph")
    parser.add_argument("--no-count-spaces", dest="count_spaces", action="store_false",
                        help="Drop typed spaces instead of giving them a box")
    parser.add_argument("--digits-per-box", type=int, default=DEFAULT_LAYOUT_CONFIG['digits_per_box'],
                        help="Digits packed into one box")
    parser.add_argument("--max-chars", default=None, help="Character budget (goal maximum)")
    parser.add_argument("--min-chars", default=None, help="Goal minimum")
    parser.add_argument("--min-rows", type=int, default=MIN_ROWS, help="Minimum rows to show")
    parser.add_argument("--no-preview", dest="preview", action="store_false",
                        help="Do not print the grid preview")
    return parser


def main(argv=None, console=None):
    """Main entry point"""
    args = build_arg_parser().parse_args(argv)
    console = console or Console()

    console.print("[bold yellow]Genkou Yoshi Grid[/bold yellow]")
    console.print("[green]Manuscript paper layout with box-level typesetting rules[/green]")
    console.print()

    if not args.input:
        console.print("[bold red]No input file specified.[/bold red]")
        sys.exit(1)

    if args.input == '-':
        text = sys.stdin.read()
    else:
        input_path = Path(args.input)
        if not input_path.exists():
            console.print(f"[bold red]Error: Input file '{input_path}' not found.[/bold red]")
            sys.exit(1)
        try:
            text = read_input_text(input_path)
        except OSError as e:
            console.print(f"[bold red]Error reading file: {e}[/bold red]")
            sys.exit(1)

    if not text.rstrip('\r\n'):
        console.print("[bold red]Error: Input file is empty.[/bold red]")
        sys.exit(1)

    if args.select_format or (args.format or '').lower() == 'custom':
        page_format = ManuscriptFormatSelector(console=console).select_format()
    else:
        page_format = ManuscriptFormatSelector.get_format(args.format or ManuscriptFormatSelector.DEFAULT_FORMAT)
        if page_format is None:
            console.print(f"[bold red]Error: Unknown format '{args.format}'.[/bold red]")
            sys.exit(1)

    layout_config = {
        'width': args.width,
        'indent_boxes': args.indent,
        'count_spaces': args.count_spaces,
        'digits_per_box': args.digits_per_box,
    }
    builder = GenkouYoshiDocumentBuilder(
        page_format=page_format,
        layout_config=layout_config,
        max_chars=args.max_chars,
        min_chars=args.min_chars,
        min_rows=args.min_rows,
    )
    builder.create_genkou_yoshi_document(text)

    if args.preview:
        console.print(render_grid_preview(builder))
    console.print(render_statistics(builder.get_statistics()))

    if args.output:
        output_path = Path(args.output)
        total_pages = math.ceil(builder.display_rows / builder.rows_per_page)
        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Generating DOCX...", total=total_pages)

            def progress_callback(current_page, total):
                progress.update(task, completed=current_page,
                                description=f"Generating DOCX... Page {current_page}/{total}")

            builder.save_docx(output_path, progress_callback=progress_callback)
        console.print(f"[bold green]✓ DOCX file saved:[/bold green] {output_path}")
        console.print(f"[bold green]✓ Pages generated:[/bold green] {total_pages}")

    if args.json:
        builder.export_grid_metadata_json(args.json)
        console.print(f"[bold green]✓ Metadata JSON saved:[/bold green] {args.json}")


if __name__ == "__main__":
    main()
