"""
Manuscript format presets and display sizing for the genkou yoshi grid
Format selection, display row policy, character budgets and goal ranges
"""
import logging
import math
from typing import Dict, Optional

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table
from rich import box

# Rows always shown, however short the text
MIN_ROWS = 3


class ManuscriptFormatSelector:
    """Format selector with pre-computed manuscript grids and fast lookups"""

    # Line width is 'columns' (boxes per row), page height is 'rows'
    PAGE_FORMATS = {
        'genkou_yoshi_20x20': {
            'name': 'Genkou Yoshi 20×20',
            'width': 257,
            'height': 364,
            'grid': {'columns': 20, 'rows': 20},
            'characters_per_page': 400,
            'margins': {'top': 25, 'bottom': 25, 'inner': 20, 'outer': 20},
            'description': 'Traditional 400-character manuscript sheet',
        },
        'genkou_yoshi_25x20': {
            'name': 'Genkou Yoshi 25×20',
            'width': 257,
            'height': 364,
            'grid': {'columns': 25, 'rows': 20},
            'characters_per_page': 500,
            'margins': {'top': 25, 'bottom': 25, 'inner': 15, 'outer': 15},
            'description': 'Wide 25-box lines for essay practice',
        },
        'genkou_yoshi_10x20': {
            'name': 'Genkou Yoshi 10×20',
            'width': 182,
            'height': 257,
            'grid': {'columns': 10, 'rows': 20},
            'characters_per_page': 200,
            'margins': {'top': 20, 'bottom': 20, 'inner': 20, 'outer': 20},
            'description': 'Half sheet, 200 characters',
        },
        'custom': {
            'name': 'Custom',
            'width': 0,
            'height': 0,
            'grid': {'columns': 0, 'rows': 0},
            'characters_per_page': 0,
            'margins': {'top': 0, 'bottom': 0, 'inner': 0, 'outer': 0},
            'description': 'Custom line width',
        },
    }

    DEFAULT_FORMAT = 'genkou_yoshi_20x20'

    COMMON_FORMATS = [
        PAGE_FORMATS['genkou_yoshi_20x20'],
        PAGE_FORMATS['genkou_yoshi_25x20'],
        PAGE_FORMATS['genkou_yoshi_10x20'],
        PAGE_FORMATS['custom'],
    ]

    _FORMAT_LOOKUP = {name.lower(): fmt for name, fmt in PAGE_FORMATS.items()}

    def __init__(self, console=None):
        self.console = console or Console()

    @classmethod
    def get_format(cls, format_name):
        """Case-insensitive format lookup, None when unknown"""
        fmt = cls._FORMAT_LOOKUP.get(format_name.lower())
        return None if fmt is None else cls.copy_format(fmt)

    @staticmethod
    def copy_format(fmt: Dict) -> Dict:
        copied = dict(fmt)
        copied['grid'] = dict(fmt['grid'])
        copied['margins'] = dict(fmt['margins'])
        return copied

    @classmethod
    def custom_format(cls, columns: int, rows: int = 20) -> Dict:
        """Build a custom format on the standard sheet with the given line width"""
        base = cls.copy_format(cls.PAGE_FORMATS[cls.DEFAULT_FORMAT])
        base['name'] = 'Custom'
        base['grid'] = {'columns': columns, 'rows': rows}
        base['characters_per_page'] = columns * rows
        base['description'] = f'Custom {columns}-box lines'
        return base

    def show_formats(self):
        table = Table(title="Manuscript Formats", box=box.ROUNDED, expand=False)
        table.add_column("#", style="cyan", width=3, justify="right")
        table.add_column("Format", style="green", width=20)
        table.add_column("Grid", style="magenta", width=14, justify="center")
        table.add_column("Description", style="yellow")

        for i, fmt in enumerate(self.COMMON_FORMATS, 1):
            grid_info = ("Custom" if fmt['name'] == 'Custom'
                         else f"{fmt['grid']['columns']}×{fmt['grid']['rows']} ({fmt['characters_per_page']})")
            table.add_row(str(i), fmt['name'], grid_info, fmt['description'])

        self.console.print(table)

    def select_format(self):
        """Interactive format selection"""
        self.show_formats()
        self.console.print("\n[bold cyan]Select a manuscript format:[/bold cyan]")

        valid_choices = [str(i) for i in range(1, len(self.COMMON_FORMATS) + 1)]
        choice = Prompt.ask(
            "Enter selection",
            choices=valid_choices,
            default="1",
            console=self.console
        )
        selected = self.copy_format(self.COMMON_FORMATS[int(choice) - 1])

        if selected['name'] == 'Custom':
            self.console.print("\n[bold cyan]Custom Line Width:[/bold cyan]")
            columns = parse_budget(Prompt.ask("Boxes per line", default="20", console=self.console))
            rows = parse_budget(Prompt.ask("Lines per page", default="20", console=self.console))
            selected = self.custom_format(columns or 20, rows or 20)
            self.console.print(f"\n[bold green]✓ Custom format created:[/bold green] "
                               f"{selected['grid']['columns']}×{selected['grid']['rows']}")
            return selected

        self.console.print(f"\n[bold green]✓ Selected:[/bold green] {selected['name']} "
                           f"({selected['characters_per_page']} characters/page)")
        return selected


def parse_budget(value) -> Optional[int]:
    """
    Read a character budget from user input.
    Absent, non-numeric or non-positive values mean "no budget".
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            value = int(value)
        except ValueError:
            logging.warning(f"Ignoring non-numeric budget {value!r}")
            return None
    if not isinstance(value, int) or value <= 0:
        return None
    return value


def calculate_display_rows(metrics: Dict, max_chars: Optional[int] = None, min_rows: int = MIN_ROWS) -> int:
    """
    Number of grid rows to materialize: the largest of the floor, the rows
    holding content, and the rows needed to reach the character budget.
    """
    width = metrics['width']
    content_rows = math.ceil(metrics['sheet_count'] / width)
    budget_rows = math.ceil(max_chars / width) if max_chars else 0
    return max(min_rows, content_rows, budget_rows)


def calculate_overflow(metrics: Dict, max_chars: Optional[int] = None) -> Optional[int]:
    """Boxes consumed beyond the budget, None without a budget"""
    if not max_chars:
        return None
    return max(0, metrics['consumed_count'] - max_chars)


def evaluate_goal(metrics: Dict, min_chars: Optional[int] = None, max_chars: Optional[int] = None) -> Dict:
    """Where the consumed box count sits relative to a min/max goal range"""
    consumed = metrics['consumed_count']
    status = None
    if min_chars and consumed < min_chars:
        status = 'under'
    elif max_chars and consumed > max_chars:
        status = 'over'
    elif min_chars or max_chars:
        status = 'within'

    return {
        'status': status,
        'remaining': max(0, min_chars - consumed) if min_chars else None,
        'overflow': calculate_overflow(metrics, max_chars),
    }


def fit_cells_to_rows(cells, width: int, rows: int):
    """
    Exactly rows full rows of cells: trailing padding past the last row is
    dropped and missing boxes are added as unused.
    """
    total = rows * width
    fitted = list(cells[:total])
    fitted.extend({'text': '', 'used': False} for _ in range(total - len(fitted)))
    return fitted
