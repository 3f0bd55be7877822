"""
Centralized configuration — env vars, limits, enumerated domains.

LOG_LEVEL and LOG_FORMAT are read by logging_config.configure_logging().
"""
import os


# ── Redis ─────────────────────────────────────────────────────────────────────
REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

# ── PostgreSQL ────────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///local.db')

# ── Auth (identity forwarded by the upstream provider) ───────────────────────
AUTH_USER_ID_HEADER = os.getenv('AUTH_USER_ID_HEADER', 'X-User-Id')
AUTH_USER_EMAIL_HEADER = os.getenv('AUTH_USER_EMAIL_HEADER', 'X-User-Email')
AUTH_USER_NAME_HEADER = os.getenv('AUTH_USER_NAME_HEADER', 'X-User-Name')

# ── Rate limiting (fixed window per acting user) ─────────────────────────────
RATE_LIMIT_MAX_REQUESTS = int(os.getenv('RATE_LIMIT_MAX_REQUESTS', '10'))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv('RATE_LIMIT_WINDOW_SECONDS', '60'))

# ── Listing / import / export ────────────────────────────────────────────────
PAGE_SIZE = 10
HISTORY_PREVIEW_LIMIT = 5
IMPORT_MAX_ROWS = 200

# ── Enumerated domains ───────────────────────────────────────────────────────
CITIES = ('Chandigarh', 'Mohali', 'Zirakpur', 'Panchkula', 'Other')
PROPERTY_TYPES = ('Apartment', 'Villa', 'Plot', 'Office', 'Retail')
BHK_OPTIONS = ('1', '2', '3', '4', 'Studio')
PURPOSES = ('Buy', 'Rent')
TIMELINES = ('0-3m', '3-6m', '>6m', 'Exploring')
SOURCES = ('Website', 'Referral', 'Walk-in', 'Call', 'Other')
STATUSES = ('New', 'Qualified', 'Contacted', 'Visited', 'Negotiation', 'Converted', 'Dropped')

DEFAULT_STATUS = 'New'

# Property types that need a bedroom-count category
BHK_REQUIRED_FOR = ('Apartment', 'Villa')

# ── Field order (API, CSV columns, error ordering) ───────────────────────────
BUYER_FIELDS = (
    'fullName',
    'email',
    'phone',
    'city',
    'propertyType',
    'bhk',
    'purpose',
    'budgetMin',
    'budgetMax',
    'timeline',
    'source',
    'notes',
    'tags',
    'status',
)

EXPORT_COLUMNS = (
    'fullName',
    'email',
    'phone',
    'city',
    'propertyType',
    'bhk',
    'purpose',
    'budgetMin',
    'budgetMax',
    'timeline',
    'source',
    'status',
    'notes',
    'tags',
    'createdAt',
    'updatedAt',
)
