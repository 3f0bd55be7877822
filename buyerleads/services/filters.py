"""
Filter predicate shared by listing and export.

Enum fields match exactly; search is a case-insensitive substring match over
name, email and phone. All conditions are AND-combined.
"""
from typing import List

from sqlalchemy import or_

from buyerleads.models.buyer import Buyer
from buyerleads.services.validation import BuyerFilters


def _like_pattern(term: str) -> str:
    escaped = term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f'%{escaped}%'


def filter_conditions(filters: BuyerFilters) -> List:
    """SQLAlchemy WHERE clauses for the given filters (empty list = everything)."""
    conditions = []

    if filters.city:
        conditions.append(Buyer.city == filters.city)
    if filters.propertyType:
        conditions.append(Buyer.property_type == filters.propertyType)
    if filters.status:
        conditions.append(Buyer.status == filters.status)
    if filters.timeline:
        conditions.append(Buyer.timeline == filters.timeline)

    if filters.search:
        pattern = _like_pattern(filters.search)
        conditions.append(or_(
            Buyer.full_name.ilike(pattern, escape='\\'),
            Buyer.email.ilike(pattern, escape='\\'),
            Buyer.phone.ilike(pattern, escape='\\'),
        ))

    return conditions


def ordered_query(session, filters: BuyerFilters):
    """Filtered buyers, most recently updated first."""
    return (
        session.query(Buyer)
        .filter(*filter_conditions(filters))
        .order_by(Buyer.updated_at.desc(), Buyer.id)
    )
