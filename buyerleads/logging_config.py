"""
Structured logging configuration.

Called once from create_app(). Supports text (human-readable) and JSON formats
via LOG_FORMAT env var. LOG_LEVEL defaults to INFO.

Every record is tagged with the acting user and the request line when it is
emitted inside a request, so a mutation can be traced back to who made it.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context, request


class RequestContextFilter(logging.Filter):
    """Attach user_id and request ('METHOD /path') to each record; '-' outside requests."""

    def filter(self, record):
        user_id = '-'
        request_line = '-'
        if has_request_context():
            user = g.get('user')
            if user is not None:
                user_id = user.id
            request_line = f'{request.method} {request.path}'
        record.user_id = user_id
        record.request_line = request_line
        return True


class JSONFormatter(logging.Formatter):
    """Single-line JSON log formatter for production log aggregators."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        user_id = getattr(record, 'user_id', '-')
        if user_id != '-':
            entry['user_id'] = user_id
        request_line = getattr(record, 'request_line', '-')
        if request_line != '-':
            entry['request'] = request_line
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry)


# Third-party loggers that are noisy at INFO
_NOISY_LOGGERS = [
    'sqlalchemy.engine',
    'alembic',
    'werkzeug',
    'urllib3',
]

TEXT_FORMAT = '[%(asctime)s] %(levelname)s %(name)s [user=%(user_id)s] — %(message)s'


def configure_logging(app=None):
    """
    Set up root logger with format/level from env vars.

    Environment variables:
        LOG_LEVEL  — Python log level name (default: INFO)
        LOG_FORMAT — "text" (default) or "json"
    """
    level_name = os.getenv('LOG_LEVEL', 'INFO').upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.INFO

    log_format = os.getenv('LOG_FORMAT', 'text').lower()

    root = logging.getLogger()
    root.setLevel(level)

    # Remove any existing handlers to avoid duplicates on re-init
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(RequestContextFilter())

    if log_format == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))

    root.addHandler(handler)

    # Quiet noisy third-party loggers
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        app.logger.setLevel(level)
