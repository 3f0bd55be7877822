"""
CSV export — every buyer matching the listing filters, no page limit.
"""
import csv
import io
import logging
from datetime import date
from typing import Iterator

from buyerleads.config import EXPORT_COLUMNS
from buyerleads.database import transaction
from buyerleads.services.filters import ordered_query
from buyerleads.services.validation import BuyerFilters

logger = logging.getLogger('services.exporter')

# Rows fetched per round trip while streaming
EXPORT_BATCH_SIZE = 500


def export_filename(today=None) -> str:
    return f'buyers_export_{(today or date.today()).isoformat()}.csv'


def _csv_row(record):
    row = {}
    for column in EXPORT_COLUMNS:
        value = record.get(column)
        if column == 'tags':
            value = ','.join(value or [])
        row[column] = '' if value is None else value
    return row


def iter_export_csv(filters: BuyerFilters) -> Iterator[str]:
    """
    Yield the CSV document in chunks: the header line, then one line per buyer,
    most recently updated first. The page field of filters is ignored.
    """
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS, lineterminator='\n')

    def _drain():
        chunk = buffer.getvalue()
        buffer.seek(0)
        buffer.truncate(0)
        return chunk

    writer.writeheader()
    yield _drain()

    count = 0
    with transaction() as session:
        for buyer in ordered_query(session, filters).yield_per(EXPORT_BATCH_SIZE):
            writer.writerow(_csv_row(buyer.to_dict()))
            count += 1
            yield _drain()

    logger.info("Exported %d buyers", count)


def export_csv(filters: BuyerFilters) -> str:
    """The whole export as one string."""
    return ''.join(iter_export_csv(filters))
