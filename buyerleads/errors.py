"""
Error taxonomy shared by the services and the HTTP layer.

Every error carries a human-readable message and the HTTP status the routes
answer with. Services raise them; routes never build error payloads by hand.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class FieldError:
    """One violation found while validating a field (or a cross-field rule)."""
    field: str
    message: str

    def __str__(self):
        return f'{self.field}: {self.message}'

    def to_dict(self) -> Dict[str, str]:
        return {'field': self.field, 'message': self.message}


class BuyerError(Exception):
    """Base class for every failure surfaced to callers."""
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict:
        return {'error': self.message}


class ValidationError(BuyerError):
    """Input failed validation. Always carries the full list of violations."""
    status_code = 400

    def __init__(self, errors: List[FieldError], message: str = 'Validation failed'):
        self.errors = list(errors)
        super().__init__(message)

    def __str__(self):
        return '; '.join(str(e) for e in self.errors) or self.message

    def to_dict(self) -> Dict:
        return {'error': self.message, 'fields': [e.to_dict() for e in self.errors]}


class NotFoundError(BuyerError):
    status_code = 404

    def __init__(self, message: str = 'Buyer not found'):
        super().__init__(message)


class ForbiddenError(BuyerError):
    status_code = 403

    def __init__(self, message: str = 'You can only modify your own buyers'):
        super().__init__(message)


class ConflictError(BuyerError):
    """Optimistic-concurrency mismatch. The caller must re-fetch and retry."""
    status_code = 409

    def __init__(self, message: str = 'This record has been modified by another user. '
                                      'Please refresh and try again.'):
        super().__init__(message)


class RateLimitError(BuyerError):
    status_code = 429

    def __init__(self, retry_after: Optional[float]):
        self.retry_after = retry_after
        seconds = int(retry_after + 0.999) if retry_after else 0
        super().__init__(f'Rate limit exceeded. Try again in {seconds} seconds')

    def to_dict(self) -> Dict:
        return {'error': self.message, 'retry_after': self.retry_after}


class BatchSizeError(BuyerError):
    """Whole-batch rejection: the row count is outside the accepted range."""
    status_code = 400


class StorageError(BuyerError):
    """Storage/transport failure. The message shown to callers stays opaque."""
    status_code = 500

    def __init__(self, message: str = 'Internal storage error'):
        super().__init__(message)
