"""Tests for buyerleads.services.exporter — filtered CSV export."""
import csv
import io
import re
from datetime import date

from buyerleads.config import EXPORT_COLUMNS
from buyerleads.services.buyers import create_buyer, update_buyer
from buyerleads.services.exporter import export_csv, export_filename, iter_export_csv
from buyerleads.services.validation import parse_filters


def _read(text):
    return list(csv.DictReader(io.StringIO(text)))


class TestExportCsv:
    """export_csv() writes every matching buyer, newest update first."""

    def test_header_only_when_empty(self):
        text = export_csv(parse_filters({}))
        assert text == ','.join(EXPORT_COLUMNS) + '\n'

    def test_city_filter(self, alice, valid_buyer):
        create_buyer(valid_buyer, alice)
        create_buyer({**valid_buyer, 'fullName': 'Simran Kaur', 'city': 'Chandigarh'}, alice)
        rows = _read(export_csv(parse_filters({'city': 'Mohali'})))
        assert [r['fullName'] for r in rows] == ['Rahul Verma']

    def test_cell_formats(self, alice, valid_buyer):
        create_buyer({**valid_buyer, 'email': None, 'notes': 'Wants parking, lift'}, alice)
        row = _read(export_csv(parse_filters({})))[0]
        assert list(row) == list(EXPORT_COLUMNS)
        assert row['email'] == ''
        assert row['tags'] == 'family,urgent'
        assert row['notes'] == 'Wants parking, lift'
        assert row['budgetMin'] == '5000000'
        assert re.fullmatch(r'\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{6}Z', row['createdAt'])

    def test_ignores_page(self, alice, valid_buyer):
        for i in range(12):
            create_buyer({**valid_buyer, 'fullName': f'Buyer {i:02d}'}, alice)
        assert len(_read(export_csv(parse_filters({'page': '2'})))) == 12

    def test_ordered_by_last_update(self, alice, valid_buyer):
        first = create_buyer({**valid_buyer, 'fullName': 'First Buyer'}, alice)
        create_buyer({**valid_buyer, 'fullName': 'Second Buyer'}, alice)
        update_buyer(first['id'], {'status': 'Visited'}, first['updatedAt'], alice)
        rows = _read(export_csv(parse_filters({})))
        assert [r['fullName'] for r in rows] == ['First Buyer', 'Second Buyer']
        assert rows[0]['status'] == 'Visited'

    def test_streams_header_first(self, alice, valid_buyer):
        create_buyer(valid_buyer, alice)
        chunks = iter_export_csv(parse_filters({}))
        assert next(chunks) == ','.join(EXPORT_COLUMNS) + '\n'
        assert next(chunks).startswith('Rahul Verma,')


class TestExportFilename:

    def test_dated(self):
        assert export_filename(date(2025, 3, 9)) == 'buyers_export_2025-03-09.csv'
