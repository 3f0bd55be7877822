"""
Batch CSV import — per-row validation, partial success, all-or-nothing commit.

Every row is validated on its own with the row-import profile. Rejected rows
are reported with their user-facing row number; the valid subset is written
in one transaction (user upsert + buyers + "imported" history entries), so
either all valid rows land or none do.
"""
import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence

from buyerleads.config import IMPORT_MAX_ROWS, BUYER_FIELDS
from buyerleads.database import transaction
from buyerleads.errors import BatchSizeError, FieldError, ValidationError
from buyerleads.services.buyers import insert_buyer
from buyerleads.services.users import ActingUser, ensure_user
from buyerleads.services.validation import validate_import_row

logger = logging.getLogger('services.importer')

# The header occupies line 1, so the first data row is line 2
FIRST_DATA_ROW = 2


@dataclass
class RowError:
    row: int
    errors: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {'row': self.row, 'errors': self.errors}


@dataclass
class ImportResult:
    """Outcome of one batch. Rejections are expected, not a failure."""
    accepted: int = 0
    rejected: List[RowError] = field(default_factory=list)
    ids: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.accepted + len(self.rejected)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'accepted': self.accepted,
            'rejected': [r.to_dict() for r in self.rejected],
            'ids': self.ids,
            'total': self.total,
        }


def parse_csv(text: str) -> List[Dict[str, str]]:
    """
    Parse CSV text into row dicts keyed by header name.

    A leading BOM is ignored and header names are stripped. Blank lines are
    skipped by the csv module. Raises ValidationError when there is no header.
    """
    if text.startswith('\ufeff'):
        text = text[1:]
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ValidationError([FieldError('file', 'CSV file has no header row')])

    reader.fieldnames = [(name or '').strip() for name in reader.fieldnames]
    missing = [name for name in BUYER_FIELDS if name not in reader.fieldnames]
    if missing:
        logger.info("CSV header is missing columns: %s", ', '.join(missing))

    rows = []
    for row in reader:
        # Surplus cells land under the None key; they belong to no column
        row.pop(None, None)
        rows.append({k: (v if v is not None else '') for k, v in row.items()})
    return rows


def check_batch_size(rows: Sequence[Any]):
    if len(rows) == 0:
        raise BatchSizeError('No rows to import')
    if len(rows) > IMPORT_MAX_ROWS:
        raise BatchSizeError(f'Maximum {IMPORT_MAX_ROWS} rows allowed')


def import_batch(
    rows: Sequence[Mapping[str, Any]],
    acting_user: ActingUser,
    first_row_number: int = FIRST_DATA_ROW,
) -> ImportResult:
    """
    Validate each row independently, then insert the valid ones atomically.

    Raises BatchSizeError before looking at any row when the batch is empty or
    larger than IMPORT_MAX_ROWS. Ownership is always the importing user; any
    owner column in the input is ignored.
    """
    check_batch_size(rows)

    result = ImportResult()
    valid_rows = []
    for index, row in enumerate(rows):
        try:
            valid_rows.append(validate_import_row(row))
        except ValidationError as e:
            result.rejected.append(RowError(
                row=index + first_row_number,
                errors=[str(err) for err in e.errors],
            ))

    if valid_rows:
        with transaction() as session:
            ensure_user(session, acting_user)
            for values in valid_rows:
                buyer = insert_buyer(session, values, acting_user, action='imported')
                result.ids.append(buyer.id)
        result.accepted = len(valid_rows)

    logger.info("Import by %s: %d accepted, %d rejected",
                acting_user.id, result.accepted, len(result.rejected))
    return result


def import_csv(text: str, acting_user: ActingUser) -> ImportResult:
    """Parse CSV text and import it; row numbers count the header as line 1."""
    return import_batch(parse_csv(text), acting_user, first_row_number=FIRST_DATA_ROW)
