"""
Helper methods for genkou yoshi table configuration
"""

from docx.enum.text import WD_PARAGRAPH_ALIGNMENT
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Pt

OVERFLOW_FILL = 'F4C7C3'
GRID_COLOR = 'C0504D'


def configure_genkou_table(table, cell_width):
    """
    Configure table to look like manuscript paper: fixed layout, thin grid
    """
    tblPr = table._tbl.tblPr

    tblLayout = OxmlElement('w:tblLayout')
    tblLayout.set(qn('w:type'), 'fixed')
    tblPr.append(tblLayout)

    tblBorders = OxmlElement('w:tblBorders')
    for border_name in ['top', 'left', 'bottom', 'right', 'insideH', 'insideV']:
        border = OxmlElement(f'w:{border_name}')
        border.set(qn('w:val'), 'single')
        border.set(qn('w:sz'), '4')
        border.set(qn('w:color'), GRID_COLOR)
        tblBorders.append(border)
    tblPr.append(tblBorders)

    for col in table.columns:
        col.width = cell_width
    for row in table.rows:
        for cell in row.cells:
            cell.width = cell_width


def configure_genkou_cell(cell, text, font_size_points, font_name, overflow=False):
    """
    Configure one grid box: centered text, minimal margins, and a fill for
    boxes past the character budget
    """
    cell.text = ''

    # Schema order: shd, tcMar, vAlign
    tcPr = cell._tc.get_or_add_tcPr()

    if overflow:
        shd = OxmlElement('w:shd')
        shd.set(qn('w:val'), 'clear')
        shd.set(qn('w:color'), 'auto')
        shd.set(qn('w:fill'), OVERFLOW_FILL)
        tcPr.append(shd)

    tcMar = OxmlElement('w:tcMar')
    for margin in ['top', 'left', 'bottom', 'right']:
        mar = OxmlElement(f'w:{margin}')
        mar.set(qn('w:w'), '0')
        mar.set(qn('w:type'), 'dxa')
        tcMar.append(mar)
    tcPr.append(tcMar)

    vAlign = OxmlElement('w:vAlign')
    vAlign.set(qn('w:val'), 'center')
    tcPr.append(vAlign)

    paragraph = cell.paragraphs[0]
    paragraph.alignment = WD_PARAGRAPH_ALIGNMENT.CENTER
    paragraph.paragraph_format.space_before = Pt(0)
    paragraph.paragraph_format.space_after = Pt(0)

    if text:
        # Shared punctuation makes some boxes hold two glyphs; shrink to fit
        size = font_size_points if len(text) == 1 else font_size_points * 0.6
        run = paragraph.add_run(text)
        run.font.name = font_name
        run.font.size = Pt(size)
