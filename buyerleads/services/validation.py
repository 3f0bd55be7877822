"""
Buyer validation — one set of field rules, three profiles.

Validation runs in two stages:

  1. Typed parsing. Every field has a single pydantic Annotated type, shared by
     all profiles, and is parsed on its own TypeAdapter so that every violation
     is collected instead of stopping at the first one.
  2. Cross-field rules. A pure function over the typed values (budget ordering,
     BHK requirement). A rule only runs when all the fields it references are
     concretely present and parsed cleanly.

Profiles:
  - validate_create()      full record, defaults applied
  - validate_update()      only the supplied fields
  - validate_import_row()  raw CSV text, coerced before the create rules run

Field names are the external camelCase names used by the API and the CSV
columns. Successful calls return a dict of typed values; failures raise
ValidationError with the ordered list of FieldErrors.
"""
import re
from typing import Annotated, Any, Dict, FrozenSet, Iterable, List, Literal, Mapping, Optional, Tuple

from pydantic import (
    AfterValidator, BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, StrictInt, StrictStr, TypeAdapter,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import PydanticCustomError

from buyerleads.config import (
    BUYER_FIELDS, BHK_REQUIRED_FOR, CITIES, PROPERTY_TYPES, BHK_OPTIONS, PURPOSES, TIMELINES, SOURCES,
    STATUSES, DEFAULT_STATUS,
)
from buyerleads.errors import FieldError, ValidationError


PHONE_RE = re.compile(r'[0-9]{10,15}')

# Budgets are stored in a 32-bit INTEGER column
BUDGET_MAX = 2**31 - 1

REQUIRED_FIELDS = ('fullName', 'phone', 'city', 'propertyType', 'purpose', 'timeline', 'source')
OPTIONAL_FIELDS = tuple(f for f in BUYER_FIELDS if f not in REQUIRED_FIELDS)
NON_CLEARABLE_FIELDS = REQUIRED_FIELDS + ('status',)

# Cross-field error path → fields the rule reads
RULE_FIELDS = {
    'budgetMax': ('budgetMin', 'budgetMax'),
    'bhk': ('propertyType', 'bhk'),
}

_ENUM_LABELS = {
    'city': 'city',
    'propertyType': 'property type',
    'bhk': 'BHK',
    'purpose': 'purpose',
    'timeline': 'timeline',
    'source': 'source',
    'status': 'status',
}


# ── Field rules ──────────────────────────────────────────────────────────────

def _check_full_name(value: str) -> str:
    value = value.strip()
    if len(value) < 2:
        raise PydanticCustomError('name_too_short', 'Name must be at least 2 characters')
    if len(value) > 80:
        raise PydanticCustomError('name_too_long', 'Name must be less than 80 characters')
    return value


def _check_phone(value: str) -> str:
    if not PHONE_RE.fullmatch(value):
        raise PydanticCustomError('phone_format', 'Phone must be 10-15 digits')
    return value


def _check_budget(value: int) -> int:
    if value <= 0:
        raise PydanticCustomError('budget_positive', 'Budget must be positive')
    if value > BUDGET_MAX:
        raise PydanticCustomError('budget_too_large', 'Budget must be at most {limit}', {'limit': BUDGET_MAX})
    return value


def _check_notes(value: str) -> str:
    if len(value) > 1000:
        raise PydanticCustomError('notes_too_long', 'Notes must be less than 1000 characters')
    return value


def _normalize_tags(value: Any) -> Any:
    """
    Strip each tag and drop blank ones. Non-string tags and non-list input
    are passed through for pydantic to reject.
    """
    if not isinstance(value, (list, tuple, set, frozenset)):
        return value
    tags = []
    for tag in value:
        if isinstance(tag, str):
            tag = tag.strip()
            if not tag:
                continue
        tags.append(tag)
    return tags


FullName = Annotated[StrictStr, AfterValidator(_check_full_name)]
Email = EmailStr
Phone = Annotated[StrictStr, AfterValidator(_check_phone)]
Budget = Annotated[StrictInt, AfterValidator(_check_budget)]
Notes = Annotated[StrictStr, AfterValidator(_check_notes)]
Tags = Annotated[FrozenSet[StrictStr], BeforeValidator(_normalize_tags)]

City = Literal['Chandigarh', 'Mohali', 'Zirakpur', 'Panchkula', 'Other']
PropertyType = Literal['Apartment', 'Villa', 'Plot', 'Office', 'Retail']
Bhk = Literal['1', '2', '3', '4', 'Studio']
Purpose = Literal['Buy', 'Rent']
Timeline = Literal['0-3m', '3-6m', '>6m', 'Exploring']
Source = Literal['Website', 'Referral', 'Walk-in', 'Call', 'Other']
Status = Literal['New', 'Qualified', 'Contacted', 'Visited', 'Negotiation', 'Converted', 'Dropped']

FIELD_ADAPTERS: Dict[str, TypeAdapter] = {
    'fullName': TypeAdapter(FullName),
    'email': TypeAdapter(Email),
    'phone': TypeAdapter(Phone),
    'city': TypeAdapter(City),
    'propertyType': TypeAdapter(PropertyType),
    'bhk': TypeAdapter(Bhk),
    'purpose': TypeAdapter(Purpose),
    'budgetMin': TypeAdapter(Budget),
    'budgetMax': TypeAdapter(Budget),
    'timeline': TypeAdapter(Timeline),
    'source': TypeAdapter(Source),
    'notes': TypeAdapter(Notes),
    'tags': TypeAdapter(Tags),
    'status': TypeAdapter(Status),
}

ENUM_DOMAINS = {
    'city': CITIES,
    'propertyType': PROPERTY_TYPES,
    'bhk': BHK_OPTIONS,
    'purpose': PURPOSES,
    'timeline': TIMELINES,
    'source': SOURCES,
    'status': STATUSES,
}


def _message_for(field: str, error: Dict[str, Any]) -> str:
    """Turn one pydantic error dict into the message shown to users."""
    if field in ENUM_DOMAINS and error['type'] == 'literal_error':
        return f"Invalid {_ENUM_LABELS[field]}: must be one of {', '.join(ENUM_DOMAINS[field])}"
    if field == 'email':
        return 'Invalid email address'
    if field in ('budgetMin', 'budgetMax') and error['type'].startswith('int_'):
        return 'Budget must be a whole number'
    return error['msg']


def _parse_field(field: str, value: Any) -> Tuple[Any, List[FieldError]]:
    try:
        return FIELD_ADAPTERS[field].validate_python(value), []
    except PydanticValidationError as e:
        first = e.errors()[0]
        return None, [FieldError(field, _message_for(field, first))]


# ── Stage 1: typed parsing ───────────────────────────────────────────────────

def parse_fields(
    data: Mapping[str, Any],
    fields: Iterable[str],
    required: Iterable[str] = (),
) -> Tuple[Dict[str, Any], List[FieldError]]:
    """
    Parse the given fields of data independently.

    A field missing from data is skipped unless it is required. None is kept
    as None for optional fields (an explicit clear) and is an error for
    required ones.

    Returns (typed values, errors) with errors in field order.
    """
    required = set(required)
    values: Dict[str, Any] = {}
    errors: List[FieldError] = []

    for field in fields:
        if field not in data:
            if field in required:
                errors.append(FieldError(field, 'Field required'))
            continue
        raw = data[field]
        if raw is None:
            if field in required:
                errors.append(FieldError(field, 'Field required'))
            else:
                values[field] = None
            continue
        value, field_errors = _parse_field(field, raw)
        if field_errors:
            errors.extend(field_errors)
        else:
            values[field] = value

    return values, errors


# ── Stage 2: cross-field rules ───────────────────────────────────────────────

def check_cross_field(values: Mapping[str, Any]) -> List[FieldError]:
    """
    Pure cross-field checks over typed values.

    Each rule fires only when the fields it references are all keys of values;
    callers decide what "present" means by what they pass in.
    """
    errors: List[FieldError] = []

    if 'budgetMin' in values and 'budgetMax' in values:
        budget_min, budget_max = values['budgetMin'], values['budgetMax']
        if budget_min is not None and budget_max is not None and budget_max < budget_min:
            errors.append(FieldError(
                'budgetMax', 'Budget max must be greater than or equal to budget min',
            ))

    if 'propertyType' in values and 'bhk' in values:
        if values['propertyType'] in BHK_REQUIRED_FOR and not values['bhk']:
            errors.append(FieldError('bhk', 'BHK is required for Apartment and Villa property types'))

    return errors


def _cross_field_inputs(values: Mapping[str, Any], failed: Iterable[str]) -> Dict[str, Any]:
    """Values eligible for cross-field rules: drop anything that failed parsing."""
    failed = set(failed)
    return {k: v for k, v in values.items() if k not in failed}


def _blank_to_missing(data: Mapping[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """Empty strings in optional fields mean "not provided"."""
    out = dict(data)
    for field in fields:
        value = out.get(field)
        if isinstance(value, str) and not value.strip():
            out.pop(field)
    return out


# ── Profiles ─────────────────────────────────────────────────────────────────

def validate_create(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Full-create profile. Returns every field (absent optionals as None, status defaulted)."""
    if not isinstance(data, Mapping):
        raise ValidationError([FieldError('body', 'Expected an object')])

    data = _blank_to_missing(data, OPTIONAL_FIELDS)
    values, errors = parse_fields(data, BUYER_FIELDS, required=REQUIRED_FIELDS)

    for field in OPTIONAL_FIELDS:
        values.setdefault(field, None)
    if values.get('status') is None and not any(e.field == 'status' for e in errors):
        values['status'] = DEFAULT_STATUS
    if values.get('tags') is None:
        values['tags'] = frozenset()

    failed = {e.field for e in errors}
    errors.extend(check_cross_field(_cross_field_inputs(values, failed)))

    if errors:
        raise ValidationError(_ordered(errors))
    return {field: values[field] for field in BUYER_FIELDS}


def validate_update(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Partial-update profile. Only supplied fields are parsed and returned.

    Empty strings in optional fields are treated as not supplied; an explicit
    None clears an optional field and is rejected for a required one.
    """
    if not isinstance(data, Mapping):
        raise ValidationError([FieldError('body', 'Expected an object')])

    data = _blank_to_missing(data, OPTIONAL_FIELDS)
    supplied = [f for f in BUYER_FIELDS if f in data]
    values, errors = parse_fields(data, supplied)

    for field in supplied:
        if field in NON_CLEARABLE_FIELDS and data[field] is None:
            errors.append(FieldError(field, 'Field cannot be cleared'))
    if values.get('tags', frozenset()) is None:
        values['tags'] = frozenset()

    failed = {e.field for e in errors}
    errors.extend(check_cross_field(_cross_field_inputs(
        {k: v for k, v in values.items() if v is not None}, failed,
    )))

    if errors:
        raise ValidationError(_ordered(errors))
    return values


def validate_merged(current: Mapping[str, Any], changes: Mapping[str, Any]) -> None:
    """
    Re-run the cross-field rules on the stored record overlaid by an update.

    Only rules that read a field the update touches are reported, so an edit
    never fails on a rule it has nothing to do with.
    """
    merged = {**current, **changes}
    errors = [
        e for e in check_cross_field(merged)
        if any(f in changes for f in RULE_FIELDS.get(e.field, ()))
    ]
    if errors:
        raise ValidationError(errors)


def coerce_import_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Text → typed-input coercion for CSV rows.

    Cells are stripped, empty cells dropped, budgets parsed as integers, tags
    split on commas. Anything that cannot be coerced is passed through so the
    field rules report it.
    """
    out: Dict[str, Any] = {}
    for field in BUYER_FIELDS:
        raw = row.get(field)
        if raw is None:
            continue
        if not isinstance(raw, str):
            out[field] = raw
            continue
        text = raw.strip()
        if not text:
            continue
        if field in ('budgetMin', 'budgetMax'):
            out[field] = int(text) if re.fullmatch(r'[+-]?\d+', text) else text
        elif field == 'tags':
            out[field] = [t.strip() for t in text.split(',') if t.strip()]
        else:
            out[field] = text
    return out


def validate_import_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Row-import profile: coerce raw text, then apply the full-create rules."""
    if not isinstance(row, Mapping):
        raise ValidationError([FieldError('row', 'Invalid row format')])
    return validate_create(coerce_import_row(row))


def _ordered(errors: List[FieldError]) -> List[FieldError]:
    """Stable sort by field declaration order; cross-field errors keep their slot."""
    rank = {f: i for i, f in enumerate(BUYER_FIELDS)}
    return sorted(errors, key=lambda e: rank.get(e.field, len(rank)))


# ── Listing / export filters ─────────────────────────────────────────────────

class BuyerFilters(BaseModel):
    """Filter predicate shared by listing and export, plus the listing page."""
    model_config = ConfigDict(extra='ignore')

    city: Optional[City] = None
    propertyType: Optional[PropertyType] = None
    status: Optional[Status] = None
    timeline: Optional[Timeline] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)

    @field_validator('search')
    @classmethod
    def _strip_search(cls, value):
        if value is None:
            return None
        value = value.strip()
        return value or None


def parse_filters(args: Mapping[str, Any]) -> BuyerFilters:
    """Build BuyerFilters from query args; empty values count as absent."""
    cleaned = {k: v for k, v in dict(args).items() if not (isinstance(v, str) and not v.strip())}
    try:
        return BuyerFilters.model_validate(cleaned)
    except PydanticValidationError as e:
        errors = []
        for err in e.errors():
            field = str(err['loc'][0]) if err['loc'] else 'filters'
            if field in ENUM_DOMAINS and err['type'] == 'literal_error':
                errors.append(FieldError(field, _message_for(field, err)))
            else:
                errors.append(FieldError(field, err['msg']))
        raise ValidationError(errors, message='Invalid filters')
