# apps/exports/formatters.py
"""
Export formatters: records -> spreadsheet workbook, records -> tabular PDF.

Both are pure functions of the records they receive; callers pass the
already filtered list they show on screen.
"""
import io
import re
from datetime import date, datetime
from xml.sax.saxutils import escape

import openpyxl
from django.conf import settings
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

SPREADSHEET_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
PDF_CONTENT_TYPE = 'application/pdf'

PAGE_MARGIN = 15 * mm
FOOTER_OFFSET = 8 * mm
LANDSCAPE_COLUMN_THRESHOLD = 6


def _segment(key):
    key = str(key)
    return key[:1].upper() + key[1:]


def _scalar(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if value is None:
        return ''
    return value


def _flatten_into(flat, prefix, value):
    if isinstance(value, dict):
        if not value:
            flat[prefix] = ''
        for key, child in value.items():
            _flatten_into(flat, f'{prefix}_{_segment(key)}', child)
    elif isinstance(value, (list, tuple)) and any(isinstance(item, dict) for item in value):
        for index, item in enumerate(value, start=1):
            _flatten_into(flat, f'{prefix}_{index}', item)
    elif isinstance(value, (list, tuple)):
        flat[prefix] = ', '.join(str(_scalar(item)) for item in value)
    else:
        flat[prefix] = _scalar(value)


def flatten_record(record):
    """
    Flatten nested values into single-level columns.

    Top-level keys are kept as they are; nested keys are joined to their
    parent with '_' and every segment is capitalized, so `address.city`
    becomes `Address_City` and the second family member's name becomes
    `FamilyMembers_2_Name`.
    """
    flat = {}
    for key, value in record.items():
        if isinstance(value, dict) or (
            isinstance(value, (list, tuple)) and any(isinstance(item, dict) for item in value)
        ):
            _flatten_into(flat, _segment(key), value)
        elif isinstance(value, (list, tuple)):
            flat[key] = ', '.join(str(_scalar(item)) for item in value)
        else:
            flat[key] = _scalar(value)
    return flat


def collect_columns(rows):
    """Ordered union of the keys of every flattened row"""
    columns = []
    seen = set()
    for row in rows:
        for key in row:
            if key not in seen:
                seen.add(key)
                columns.append(key)
    return columns


def _sheet_title(name):
    title = re.sub(r'[\[\]:*?/\\]', ' ', name or 'Sheet1').strip()
    return title[:31] or 'Sheet1'


def _cell_value(value):
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def to_spreadsheet(records, sheet_name='Sheet1', columns=None):
    """Single worksheet: header row of flattened keys, then one row per record"""
    rows = [flatten_record(record) for record in records]
    header = list(columns) if columns else collect_columns(rows)

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = _sheet_title(sheet_name)

    ws.append(header)
    for cell in ws[1]:
        cell.font = Font(bold=True)
        cell.alignment = Alignment(vertical='center')

    for row in rows:
        ws.append([_cell_value(row.get(column, '')) for column in header])

    for index, column in enumerate(header, start=1):
        longest = max([len(str(column))] + [len(str(row.get(column, ''))) for row in rows])
        ws.column_dimensions[get_column_letter(index)].width = min(max(longest + 2, 10), 60)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def page_label(page, total):
    return f'Page {page} of {total}'


def _paragraph(value, style):
    text = escape(str(value if value is not None else '')).replace('\n', '<br/>')
    return Paragraph(text, style)


def _story(rows, columns, col_widths, title, header_fields, letterhead):
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle('LetterheadTitle', parent=styles['Title'], fontSize=20, spaceAfter=2)
    subtitle_style = ParagraphStyle('LetterheadSubtitle', parent=styles['Normal'], fontSize=12,
                                    alignment=1, spaceAfter=4)
    contact_style = ParagraphStyle('LetterheadContact', parent=styles['Normal'], fontSize=9, alignment=1)
    cell_style = ParagraphStyle('Cell', parent=styles['Normal'], fontSize=8, leading=10)
    header_style = ParagraphStyle('HeaderCell', parent=cell_style, fontName='Helvetica-Bold')

    story = [
        Paragraph(f"<u>{escape(letterhead.get('title', ''))}</u>", title_style),
        Paragraph(escape(letterhead.get('subtitle', '')), subtitle_style),
        Paragraph(escape(letterhead.get('email', '')), contact_style),
        Paragraph(escape(letterhead.get('contact', '')), contact_style),
        Spacer(1, 4 * mm),
    ]

    if header_fields:
        line = '&nbsp;' * 8
        line = line.join(f'<b>{escape(str(label))}:</b> {escape(str(value or "_" * 20))}'
                         for label, value in header_fields.items())
        story.append(Paragraph(line, styles['Normal']))
        story.append(Spacer(1, 3 * mm))

    if title:
        story.append(Paragraph(escape(title), styles['Heading3']))

    if not columns:
        story.append(Paragraph('No records.', styles['Normal']))
        return story

    data = [[_paragraph(column, header_style) for column in columns]]
    for row in rows:
        data.append([_paragraph(row.get(column, ''), cell_style) for column in columns])

    table = Table(data, colWidths=col_widths, repeatRows=1)
    table.setStyle(TableStyle([
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('BACKGROUND', (0, 0), (-1, 0), colors.lightgrey),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ('LEFTPADDING', (0, 0), (-1, -1), 3),
        ('RIGHTPADDING', (0, 0), (-1, -1), 3),
    ]))
    story.append(table)
    return story


def _render(story_factory, pagesize, total_pages):
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=pagesize,
        leftMargin=PAGE_MARGIN,
        rightMargin=PAGE_MARGIN,
        topMargin=PAGE_MARGIN,
        bottomMargin=PAGE_MARGIN,
    )

    def draw_footer(canvas, document):
        canvas.saveState()
        canvas.setFont('Helvetica', 8)
        label = page_label(document.page, total_pages) if total_pages else f'Page {document.page}'
        canvas.drawRightString(pagesize[0] - PAGE_MARGIN, FOOTER_OFFSET, label)
        canvas.restoreState()

    doc.build(story_factory(), onFirstPage=draw_footer, onLaterPages=draw_footer)
    return buffer.getvalue(), doc.page


def to_pdf(records, title=None, header_fields=None, columns=None, col_widths=None, letterhead=None):
    """
    Letterhead, optional header line (e.g. Name/Date), then a paginated grid
    table of the flattened columns. Long text wraps inside its cell; column
    widths are fixed (given in points, or split evenly). Every page carries a
    'Page X of Y' footer.
    """
    rows = [flatten_record(record) for record in records]
    columns = list(columns) if columns else collect_columns(rows)
    letterhead = letterhead if letterhead is not None else settings.EXPORT_LETTERHEAD

    pagesize = A4
    if not col_widths and len(columns) > LANDSCAPE_COLUMN_THRESHOLD:
        pagesize = landscape(A4)
    if columns and not col_widths:
        available = pagesize[0] - 2 * PAGE_MARGIN
        col_widths = [available / len(columns)] * len(columns)

    def story_factory():
        return _story(rows, columns, col_widths, title, header_fields, letterhead)

    # First pass counts the pages, second pass prints "Page X of Y"
    _, total_pages = _render(story_factory, pagesize, None)
    content, _ = _render(story_factory, pagesize, total_pages)
    return content
