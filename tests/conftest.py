"""Shared test fixtures."""
import pytest
from unittest.mock import patch
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from buyerleads.database import Base
from buyerleads.services.users import ActingUser


class FakeRedis:
    """Minimal in-memory Redis fake: counters with TTLs, no real clock."""

    def __init__(self):
        self.store = {}
        self.ttls = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value):
        self.store[key] = value

    def incr(self, key):
        val = int(self.store.get(key, 0)) + 1
        self.store[key] = str(val)
        return val

    def expire(self, key, seconds):
        if key not in self.store:
            return False
        self.ttls[key] = int(seconds)
        return True

    def ttl(self, key):
        if key not in self.store:
            return -2
        return self.ttls.get(key, -1)

    def delete(self, *keys):
        for k in keys:
            self.store.pop(k, None)
            self.ttls.pop(k, None)

    def expire_now(self, key):
        """Simulate the window running out."""
        self.delete(key)


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created, one connection shared by all sessions."""
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    import buyerleads.models.user
    import buyerleads.models.buyer
    import buyerleads.models.buyer_history
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    """Session for assertions. Each service call commits through its own session."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(session_factory):
    """
    Route get_session() calls inside transaction() to the test engine.

    Every call gets a fresh session so commit/rollback/close behave as in
    production.
    """
    with patch('buyerleads.database.get_session', side_effect=lambda: session_factory()):
        yield session_factory


@pytest.fixture
def fake_redis():
    """In-memory Redis fake with dict-backed storage."""
    return FakeRedis()


@pytest.fixture
def alice():
    return ActingUser(id='user-alice', email='alice@example.com', full_name='Alice Sharma')


@pytest.fixture
def bob():
    return ActingUser(id='user-bob', email='bob@example.com')


@pytest.fixture
def valid_buyer():
    """A complete, valid create payload."""
    return {
        'fullName': 'Rahul Verma',
        'email': 'rahul@example.com',
        'phone': '9876543210',
        'city': 'Mohali',
        'propertyType': 'Apartment',
        'bhk': '2',
        'purpose': 'Buy',
        'budgetMin': 5000000,
        'budgetMax': 7500000,
        'timeline': '0-3m',
        'source': 'Website',
        'notes': 'Prefers a corner unit',
        'tags': ['family', 'urgent'],
    }


@pytest.fixture
def app(fake_redis):
    """Flask test app with the rate limiter backed by FakeRedis."""
    from buyerleads import create_app
    app = create_app(redis_client=fake_redis)
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def headers_for():
    """Identity headers the auth hook expects for a given ActingUser."""
    def _headers(user):
        headers = {'X-User-Id': user.id, 'X-User-Email': user.email}
        if user.full_name:
            headers['X-User-Name'] = user.full_name
        return headers
    return _headers
