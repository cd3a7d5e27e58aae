# apps/exports/tests.py
"""
Exports app tests - record flattening, spreadsheet and PDF output
"""
import io
import re
from datetime import date
from unittest import mock

import openpyxl
from django.test import SimpleTestCase
from reportlab import rl_config
from reportlab.lib.pagesizes import A4

from apps.exports.formatters import (
    PAGE_MARGIN,
    _story,
    collect_columns,
    flatten_record,
    page_label,
    to_pdf,
    to_spreadsheet,
)

LETTERHEAD = {'title': 'Office', 'subtitle': 'Back office', 'email': 'office@example.com', 'contact': '000'}


def page_count(content):
    return len(re.findall(rb'/Type\s*/Page\b', content))


# Default Frame padding on every side
FRAME_PADDING = 6


def expected_page_count(records, letterhead):
    """Lay the table rows out by hand: whole rows per page, header repeated on each page"""
    rows = [flatten_record(record) for record in records]
    columns = collect_columns(rows)
    width = A4[0] - 2 * PAGE_MARGIN
    story = _story(rows, columns, [width / len(columns)] * len(columns), None, None, letterhead)
    frame_width = width - 2 * FRAME_PADDING
    frame_height = A4[1] - 2 * PAGE_MARGIN - 2 * FRAME_PADDING

    *prefix, table = story
    available = frame_height
    for flowable in prefix:
        available -= flowable.wrap(frame_width, available)[1] + flowable.getSpaceAfter()
    table.wrap(frame_width, available)
    header, *heights = table._rowHeights

    pages = 1
    while True:
        used, fitted = header, 0
        for height in heights:
            if used + height > available:
                break
            used += height
            fitted += 1
        if fitted == len(heights):
            return pages
        heights = heights[fitted:]
        pages += 1
        available = frame_height


class FlattenRecordTests(SimpleTestCase):
    """Test nested record flattening"""

    def test_top_level_keys_are_kept(self):
        self.assertEqual(flatten_record({'name': 'Ravi', 'amount': 10.5}), {'name': 'Ravi', 'amount': 10.5})

    def test_nested_dicts(self):
        flat = flatten_record({'address': {'city': 'Mumbai', 'geo': {'pin': '400050'}}})
        self.assertEqual(flat, {'Address_City': 'Mumbai', 'Address_Geo_Pin': '400050'})

    def test_lists_of_dicts_are_numbered(self):
        flat = flatten_record({'familyMembers': [{'name': 'Meera'}, {'name': 'Dev'}]})
        self.assertEqual(flat, {'FamilyMembers_1_Name': 'Meera', 'FamilyMembers_2_Name': 'Dev'})

    def test_scalar_lists_are_joined(self):
        self.assertEqual(flatten_record({'tags': ['a', 'b']}), {'tags': 'a, b'})

    def test_dates_and_none(self):
        flat = flatten_record({'dob': date(1980, 4, 12), 'email': None})
        self.assertEqual(flat, {'dob': '1980-04-12', 'email': ''})

    def test_collect_columns_keeps_first_seen_order(self):
        rows = [{'a': 1, 'b': 2}, {'c': 3, 'a': 4}]
        self.assertEqual(collect_columns(rows), ['a', 'b', 'c'])


class SpreadsheetTests(SimpleTestCase):
    """Test workbook output"""

    def load(self, content):
        return openpyxl.load_workbook(io.BytesIO(content)).active

    def test_one_row_per_record(self):
        records = [
            {'name': 'Ravi', 'address': {'city': 'Mumbai'}},
            {'name': 'Anil', 'address': {'city': 'Pune'}, 'email': 'anil@example.com'},
        ]
        sheet = self.load(to_spreadsheet(records, sheet_name='Clients'))

        self.assertEqual(sheet.title, 'Clients')
        self.assertEqual([cell.value for cell in sheet[1]], ['name', 'Address_City', 'email'])
        self.assertEqual(sheet.max_row, 3)
        self.assertEqual(sheet.cell(row=3, column=3).value, 'anil@example.com')
        self.assertIn(sheet.cell(row=2, column=3).value, ('', None))

    def test_explicit_columns(self):
        sheet = self.load(to_spreadsheet([{'a': 1, 'b': 2}], columns=['b']))
        self.assertEqual([cell.value for cell in sheet[1]], ['b'])
        self.assertEqual(sheet.cell(row=2, column=1).value, 2)

    def test_sheet_title_is_sanitized(self):
        sheet = self.load(to_spreadsheet([], sheet_name='Location & Area / Master: all entries here'))
        self.assertNotIn('/', sheet.title)
        self.assertLessEqual(len(sheet.title), 31)


class PDFTests(SimpleTestCase):
    """Test paginated PDF output"""

    def test_page_label(self):
        self.assertEqual(page_label(2, 5), 'Page 2 of 5')

    def test_single_page(self):
        content = to_pdf([{'name': 'Ravi'}], title='Clients', letterhead=LETTERHEAD)
        self.assertTrue(content.startswith(b'%PDF'))
        self.assertEqual(page_count(content), 1)

    def test_long_lists_paginate(self):
        records = [{'name': f'Client {index}', 'remark': 'Long remark ' * 20} for index in range(150)]
        content = to_pdf(records, title='Clients', header_fields={'Name': 'Desk', 'Date': ''},
                         letterhead=LETTERHEAD)
        self.assertGreater(page_count(content), 1)

    def test_page_count_and_footer(self):
        records = [{'name': f'Client {index}', 'city': 'Mumbai'} for index in range(150)]
        with mock.patch.object(rl_config, 'pageCompression', 0):
            content = to_pdf(records, letterhead=LETTERHEAD)

        total = expected_page_count(records, LETTERHEAD)
        self.assertGreater(total, 1)
        self.assertEqual(page_count(content), total)
        for page in range(1, total + 1):
            self.assertIn(f'(Page {page} of {total})'.encode(), content)
        self.assertNotIn(f'(Page {total + 1} of'.encode(), content)

    def test_empty_export(self):
        content = to_pdf([], title='Nothing', letterhead=LETTERHEAD)
        self.assertEqual(page_count(content), 1)

    def test_wide_tables(self):
        record = {f'column{index}': index for index in range(10)}
        content = to_pdf([record], letterhead=LETTERHEAD)
        self.assertTrue(content.startswith(b'%PDF'))
