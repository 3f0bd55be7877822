"""
Buyer mutation pipeline + reads.

Every mutation runs validate → authorize → concurrency-check → write →
history-append inside a single session and a single commit; any failure rolls
the whole operation back. Storage failures surface as StorageError
(see buyerleads.database.transaction).
"""
import logging
import math
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import func, update

from buyerleads.config import PAGE_SIZE, HISTORY_PREVIEW_LIMIT
from buyerleads.database import transaction
from buyerleads.errors import (
    ConflictError, FieldError, ForbiddenError, NotFoundError, ValidationError,
)
from buyerleads.models.buyer import Buyer, FIELD_COLUMNS
from buyerleads.models.buyer_history import BuyerHistory
from buyerleads.models.user import User  # noqa: F401  (mapper registry for Buyer.owner)
from buyerleads.services.diff import compute_diff
from buyerleads.services.filters import filter_conditions, ordered_query
from buyerleads.services.users import ActingUser, ensure_user
from buyerleads.services.validation import (
    BuyerFilters, validate_create, validate_merged, validate_update,
)
from buyerleads.timestamps import as_utc, next_timestamp, now_utc, parse_timestamp

logger = logging.getLogger('services.buyers')


def _storage_value(field: str, value: Any) -> Any:
    if field == 'tags':
        return sorted(value or [])
    return value


def _authorize(buyer: Buyer, acting_user: ActingUser):
    if buyer.owner_id != acting_user.id:
        logger.warning("User %s denied write on buyer %s (owner %s)",
                       acting_user.id, buyer.id, buyer.owner_id)
        raise ForbiddenError()


def _load(session, buyer_id: str) -> Buyer:
    buyer = session.get(Buyer, buyer_id)
    if buyer is None:
        raise NotFoundError()
    return buyer


def insert_buyer(session, values: Mapping[str, Any], acting_user: ActingUser, action: str) -> Buyer:
    """
    Insert one validated buyer owned by acting_user and append its
    {"action": ..., "data": <record>} history entry. Does not commit.
    """
    now = now_utc()
    buyer = Buyer(
        owner_id=acting_user.id,
        created_at=now,
        updated_at=now,
        **{FIELD_COLUMNS[field]: _storage_value(field, value) for field, value in values.items()},
    )
    session.add(buyer)
    session.flush()

    session.add(BuyerHistory(
        buyer_id=buyer.id,
        changed_by=acting_user.id,
        changed_at=now,
        diff={'action': action, 'data': buyer.to_dict()},
    ))
    session.flush()
    return buyer


# ── Mutations ────────────────────────────────────────────────────────────────

def create_buyer(data: Mapping[str, Any], acting_user: ActingUser) -> Dict[str, Any]:
    """Validate (full-create profile), upsert the user, insert, record "created"."""
    values = validate_create(data)

    with transaction() as session:
        ensure_user(session, acting_user)
        buyer = insert_buyer(session, values, acting_user, action='created')
        record = buyer.to_dict()

    logger.info("Buyer %s created by %s", record['id'], acting_user.id)
    return record


def _observed_timestamp(expected_updated_at):
    if expected_updated_at is None or expected_updated_at == '':
        raise ValidationError([FieldError('updatedAt', 'updatedAt is required')])
    try:
        return parse_timestamp(expected_updated_at)
    except (TypeError, ValueError):
        raise ValidationError([FieldError('updatedAt', 'Invalid timestamp')]) from None


def update_buyer(
    buyer_id: str,
    data: Mapping[str, Any],
    expected_updated_at,
    acting_user: ActingUser,
) -> Dict[str, Any]:
    """
    Apply a partial update guarded by optimistic concurrency.

    expected_updated_at is the updatedAt the caller last saw. The comparison is
    repeated by the UPDATE itself (WHERE updated_at = <stored value>) inside
    the same transaction, so a concurrent writer between read and write still
    yields ConflictError instead of a lost update.

    A no-op update (empty diff) still bumps updatedAt but records no history.
    """
    with transaction() as session:
        buyer = _load(session, buyer_id)
        _authorize(buyer, acting_user)

        observed = _observed_timestamp(expected_updated_at)
        stored_updated_at = buyer.updated_at
        if as_utc(stored_updated_at) != observed:
            logger.info("Conflict on buyer %s: caller saw %s, stored %s",
                        buyer_id, observed.isoformat(), as_utc(stored_updated_at).isoformat())
            raise ConflictError()

        changes = validate_update(data)
        current = buyer.field_values()
        validate_merged(current, changes)

        diff = compute_diff(current, changes)
        bumped = next_timestamp(stored_updated_at)

        values = {FIELD_COLUMNS[field]: _storage_value(field, value) for field, value in changes.items()}
        values['updated_at'] = bumped
        result = session.execute(
            update(Buyer)
            .where(Buyer.id == buyer_id, Buyer.updated_at == stored_updated_at)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError()

        if diff:
            session.add(BuyerHistory(
                buyer_id=buyer_id,
                changed_by=acting_user.id,
                changed_at=bumped,
                diff=dict(diff),
            ))
        session.flush()
        session.refresh(buyer)
        record = buyer.to_dict()

    if diff:
        logger.info("Buyer %s updated by %s: %s", buyer_id, acting_user.id, ', '.join(diff))
    else:
        logger.info("Buyer %s saved by %s with no field changes", buyer_id, acting_user.id)
    return record


def delete_buyer(buyer_id: str, acting_user: ActingUser) -> None:
    """Owner-only hard delete; history rows go with it."""
    with transaction() as session:
        buyer = _load(session, buyer_id)
        _authorize(buyer, acting_user)
        session.delete(buyer)

    logger.info("Buyer %s deleted by %s", buyer_id, acting_user.id)


# ── Reads ────────────────────────────────────────────────────────────────────

def _history_query(session, buyer_id: str):
    return (
        session.query(BuyerHistory)
        .filter(BuyerHistory.buyer_id == buyer_id)
        .order_by(BuyerHistory.changed_at.desc(), BuyerHistory.id.desc())
    )


def get_buyer(
    buyer_id: str,
    acting_user: ActingUser,
    history_limit: Optional[int] = HISTORY_PREVIEW_LIMIT,
) -> Dict[str, Any]:
    """Buyer detail: record, owner, newest history entries, and isOwner."""
    with transaction() as session:
        buyer = _load(session, buyer_id)
        query = _history_query(session, buyer_id)
        if history_limit is not None:
            query = query.limit(history_limit)
        return {
            'buyer': buyer.to_dict(),
            'owner': buyer.owner.to_summary() if buyer.owner else None,
            'history': [h.to_dict() for h in query.all()],
            'isOwner': buyer.owner_id == acting_user.id,
        }


def get_history(buyer_id: str):
    """Every history entry of a buyer, newest first."""
    with transaction() as session:
        _load(session, buyer_id)
        return [h.to_dict() for h in _history_query(session, buyer_id).all()]


def list_buyers(filters: BuyerFilters) -> Dict[str, Any]:
    """One page of filtered buyers (PAGE_SIZE per page) plus totals."""
    with transaction() as session:
        total = (
            session.query(func.count(Buyer.id))
            .filter(*filter_conditions(filters))
            .scalar()
        ) or 0
        offset = (filters.page - 1) * PAGE_SIZE
        buyers = ordered_query(session, filters).offset(offset).limit(PAGE_SIZE).all()
        return {
            'buyers': [
                {**b.to_dict(), 'owner': b.owner.to_summary() if b.owner else None}
                for b in buyers
            ],
            'totalCount': total,
            'totalPages': math.ceil(total / PAGE_SIZE),
            'page': filters.page,
        }
