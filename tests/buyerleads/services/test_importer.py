"""Tests for buyerleads.services.importer — CSV parsing and batch import."""
import pytest
from unittest.mock import patch
from sqlalchemy.exc import OperationalError

from buyerleads.errors import BatchSizeError, StorageError, ValidationError
from buyerleads.models.buyer import Buyer
from buyerleads.models.buyer_history import BuyerHistory
from buyerleads.services.importer import import_batch, import_csv, parse_csv


HEADER = ('fullName,email,phone,city,propertyType,bhk,purpose,budgetMin,budgetMax,'
          'timeline,source,notes,tags,status')


def _csv_line(name, phone='9876543210', city='Mohali', property_type='Plot', bhk='',
              budget_min='', budget_max='', tags='', status=''):
    return (f'{name},,{phone},{city},{property_type},{bhk},Buy,{budget_min},{budget_max},'
            f'0-3m,Website,,"{tags}",{status}')


def _row(name, **overrides):
    row = {
        'fullName': name, 'email': '', 'phone': '9876543210', 'city': 'Mohali',
        'propertyType': 'Plot', 'bhk': '', 'purpose': 'Buy', 'budgetMin': '', 'budgetMax': '',
        'timeline': '0-3m', 'source': 'Website', 'notes': '', 'tags': '', 'status': '',
    }
    row.update(overrides)
    return row


# ---------------------------------------------------------------------------
# parse_csv
# ---------------------------------------------------------------------------

class TestParseCsv:
    """parse_csv() turns CSV text into header-keyed row dicts."""

    def test_rows_keyed_by_header(self):
        rows = parse_csv('\n'.join([HEADER, _csv_line('Asha Rao', tags='vip,nri')]))
        assert len(rows) == 1
        assert rows[0]['fullName'] == 'Asha Rao'
        assert rows[0]['tags'] == 'vip,nri'

    def test_strips_bom_and_header_whitespace(self):
        text = '\ufeff fullName , phone\nAsha Rao,9876543210\n'
        assert parse_csv(text) == [{'fullName': 'Asha Rao', 'phone': '9876543210'}]

    def test_short_rows_padded(self):
        rows = parse_csv('fullName,phone,city\nAsha Rao\n')
        assert rows == [{'fullName': 'Asha Rao', 'phone': '', 'city': ''}]

    def test_surplus_cells_dropped(self):
        rows = parse_csv('fullName\nAsha Rao,extra,cells\n')
        assert rows == [{'fullName': 'Asha Rao'}]

    def test_empty_text(self):
        with pytest.raises(ValidationError):
            parse_csv('')


# ---------------------------------------------------------------------------
# import_batch
# ---------------------------------------------------------------------------

class TestImportBatch:
    """import_batch() validates per row and commits the valid subset atomically."""

    def test_partial_success(self, alice, db_session):
        rows = [_row(f'Buyer {i}') for i in range(5)]
        rows[2]['phone'] = '12345'
        result = import_batch(rows, alice)
        assert result.accepted == 4
        assert len(result.ids) == 4
        assert [r.row for r in result.rejected] == [4]
        assert result.rejected[0].errors == ['phone: Phone must be 10-15 digits']
        assert db_session.query(Buyer).count() == 4

    def test_result_dict(self, alice):
        rows = [_row('Asha Rao'), _row('X')]
        result = import_batch(rows, alice).to_dict()
        assert result == {
            'accepted': 1,
            'rejected': [{'row': 3, 'errors': ['fullName: Name must be at least 2 characters']}],
            'ids': result['ids'],
            'total': 2,
        }
        assert len(result['ids']) == 1

    def test_imported_history_and_owner(self, alice, db_session):
        result = import_batch([_row('Asha Rao', ownerId='user-bob')], alice)
        buyer = db_session.get(Buyer, result.ids[0])
        assert buyer.owner_id == alice.id
        history = db_session.query(BuyerHistory).filter_by(buyer_id=buyer.id).all()
        assert [h.diff['action'] for h in history] == ['imported']

    def test_all_rows_rejected(self, alice, db_session):
        result = import_batch([_row('A'), _row('B')], alice)
        assert result.accepted == 0
        assert [r.row for r in result.rejected] == [2, 3]
        assert db_session.query(Buyer).count() == 0

    def test_too_many_rows(self, alice, db_session):
        with pytest.raises(BatchSizeError) as exc_info:
            import_batch([_row(f'Buyer {i}') for i in range(201)], alice)
        assert exc_info.value.message == 'Maximum 200 rows allowed'
        assert db_session.query(Buyer).count() == 0

    def test_exactly_200_rows(self, alice):
        assert import_batch([_row(f'Buyer {i}') for i in range(200)], alice).accepted == 200

    def test_empty_batch(self, alice):
        with pytest.raises(BatchSizeError):
            import_batch([], alice)

    def test_non_mapping_row_rejected(self, alice):
        result = import_batch([_row('Asha Rao'), 'garbage'], alice)
        assert result.accepted == 1
        assert result.rejected[0].row == 3
        assert result.rejected[0].errors == ['row: Invalid row format']

    def test_out_of_range_budget_rejected_per_row(self, alice, db_session):
        rows = [_row('Buyer 1'), _row('Buyer 2', budgetMax=str(10**20)), _row('Buyer 3')]
        result = import_batch(rows, alice)
        assert result.accepted == 2
        assert [r.row for r in result.rejected] == [3]
        assert result.rejected[0].errors == ['budgetMax: Budget must be at most 2147483647']
        assert db_session.query(Buyer).count() == 2

    def test_storage_failure_rolls_back_everything(self, alice, db_session):
        calls = []

        def _fail_on_second(session, values, acting_user, action):
            calls.append(values)
            if len(calls) == 2:
                raise OperationalError('INSERT', {}, Exception('disk full'))
            from buyerleads.services.buyers import insert_buyer
            return insert_buyer(session, values, acting_user, action)

        with patch('buyerleads.services.importer.insert_buyer', side_effect=_fail_on_second):
            with pytest.raises(StorageError):
                import_batch([_row('Buyer 1'), _row('Buyer 2'), _row('Buyer 3')], alice)
        assert db_session.query(Buyer).count() == 0


class TestImportCsv:
    """import_csv() counts the header as line 1."""

    def test_row_numbers(self, alice):
        text = '\n'.join([
            HEADER,
            _csv_line('Asha Rao'),
            _csv_line('Bad City', city='Delhi'),
            _csv_line('Villa Buyer', property_type='Villa'),
            _csv_line('Budget Buyer', budget_min='900', budget_max='100'),
            _csv_line('Tagged Buyer', tags='vip, nri', status='Qualified'),
        ])
        result = import_csv(text, alice)
        assert result.accepted == 2
        assert [r.row for r in result.rejected] == [3, 4, 5]
        assert result.rejected[1].errors == ['bhk: BHK is required for Apartment and Villa property types']

    def test_tags_split(self, alice, db_session):
        result = import_csv('\n'.join([HEADER, _csv_line('Asha Rao', tags='vip, nri')]), alice)
        assert db_session.get(Buyer, result.ids[0]).tags == ['nri', 'vip']
