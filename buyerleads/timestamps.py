"""
Timestamp helpers — one canonical UTC representation for storage, comparison
and serialization.

SQLite hands back naive datetimes even for DateTime(timezone=True) columns, so
everything read from storage goes through as_utc() before it is compared.
"""
from datetime import datetime, timedelta, timezone


def now_utc():
    return datetime.now(timezone.utc)


def as_utc(value):
    """Attach UTC to naive datetimes, convert aware ones. None passes through."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value):
    """ISO-8601 in UTC with microseconds and a Z suffix, e.g. 2025-01-02T03:04:05.000006Z."""
    if value is None:
        return None
    return as_utc(value).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


def parse_timestamp(value):
    """
    Parse an ISO-8601 string (or pass a datetime through) into an aware UTC datetime.

    Raises ValueError for anything unparseable.
    """
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError('timestamp must be a non-empty ISO-8601 string')
    text = value.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    return as_utc(datetime.fromisoformat(text))


def next_timestamp(previous=None):
    """Current time, nudged forward so it is strictly later than previous."""
    current = now_utc()
    previous = as_utc(previous)
    if previous is not None and current <= previous:
        current = previous + timedelta(microseconds=1)
    return current
