"""
Database engine, session factory and the transaction scope every service uses.

Defaults to SQLite for local dev, Postgres in production. Services never
commit by hand: each operation runs inside one transaction() block.
"""
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from buyerleads.config import DATABASE_URL
from buyerleads.errors import BuyerError, StorageError

logger = logging.getLogger('database')


class Base(DeclarativeBase):
    pass


# Heroku-style URLs use postgres:// but SQLAlchemy 2.x requires postgresql://
url = DATABASE_URL.replace('postgres://', 'postgresql://', 1)

# SQLite needs different engine kwargs than Postgres
if url.startswith('sqlite'):
    engine = create_engine(url, connect_args={'check_same_thread': False})
else:
    engine = create_engine(url, pool_pre_ping=True, pool_size=5, max_overflow=10)

# Records are serialized after commit, so loaded attributes must stay usable
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)

# Failures raised while talking to the database. Drivers raise OverflowError
# for integers outside the column range before SQLAlchemy can wrap it.
STORAGE_ERRORS = (SQLAlchemyError, OverflowError)


def get_session():
    """Return a new DB session."""
    return SessionLocal()


@contextmanager
def transaction():
    """
    One session, one commit. Domain errors roll back and propagate as-is;
    storage failures roll back and become an opaque StorageError.
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except BuyerError:
        session.rollback()
        raise
    except STORAGE_ERRORS as e:
        session.rollback()
        logger.error("Storage failure, transaction rolled back: %s", e, exc_info=True)
        raise StorageError() from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
