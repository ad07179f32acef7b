"""
Database Configuration Module

This module handles the database configuration and connection setup for the purchase order engine.
It uses SQLAlchemy for ORM (Object-Relational Mapping) with PostgreSQL as the database.

The module includes:
- Database connection setup
- Session management
- Base model class definition
- The unit of work every lifecycle operation commits through
"""

from contextlib import contextmanager
import logging
import os

from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from exceptions import ConflictError, PurchaseOrderError, StorageError

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger("database")

# Database connection settings
# These settings can be configured via environment variables
POSTGRES_USER = os.getenv("POSTGRES_USER", "postgres")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
POSTGRES_SERVER = os.getenv("POSTGRES_SERVER", "localhost")
POSTGRES_PORT = os.getenv("POSTGRES_PORT", "5432")
POSTGRES_DB = os.getenv("POSTGRES_DB", "purchase_orders_db")

# DATABASE_URL wins over the individual POSTGRES_* settings (tests point it at SQLite)
SQLALCHEMY_DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+psycopg2://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_SERVER}:{POSTGRES_PORT}/{POSTGRES_DB}",
)

# Upper bound on how long a unit of work waits for a row lock
LOCK_TIMEOUT_MS = int(os.getenv("LOCK_TIMEOUT_MS", "5000"))


def build_engine(url: str = SQLALCHEMY_DATABASE_URL):
    """Create an engine with the lock timeout applied at the driver level where needed."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": LOCK_TIMEOUT_MS / 1000},
        )
    return create_engine(url, pool_pre_ping=True)


# Create SQLAlchemy engine
# The engine is the entry point to the SQLAlchemy ORM
engine = build_engine()

# Create SessionLocal class
# SessionLocal is a factory for creating new Session objects
# autocommit=False means we need to explicitly commit transactions
# autoflush=False means we need to explicitly flush changes to the database
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create Base class
# Base is the declarative base class that our ORM models will inherit from
Base = declarative_base()


def _set_lock_timeout(db: Session):
    bind = db.get_bind()
    if bind.dialect.name == "postgresql":
        # SET does not accept bound parameters
        db.execute(text(f"SET LOCAL lock_timeout = '{int(LOCK_TIMEOUT_MS)}ms'"))


@contextmanager
def unit_of_work(db: Session):
    """
    Run a block of reads and writes as one transaction.

    Commits when the block exits cleanly and rolls back on any error, so a
    failed operation never leaves partial writes behind. SQLAlchemy errors are
    translated into the engine's typed errors:

    - IntegrityError / StaleDataError -> ConflictError (caller retries)
    - any other SQLAlchemyError       -> StorageError

    Args:
        db: The request-scoped session.

    Yields:
        Session: the same session, inside the transaction.
    """
    try:
        _set_lock_timeout(db)
        yield db
        db.commit()
    except PurchaseOrderError:
        db.rollback()
        raise
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"Concurrent modification detected: {e}")
        raise ConflictError("The purchase order was modified concurrently; retry the operation") from e
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity violation: {e.orig}")
        raise ConflictError("The change conflicts with existing data; retry the operation") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Transaction failed")
        raise StorageError(f"Transaction failed: {e.__class__.__name__}") from e
    except Exception:
        db.rollback()
        raise


# Dependency to get database session
def get_db():
    """
    Dependency function that provides a database session.

    This function creates a new database session for each request and ensures
    that the session is properly closed after the request is completed.

    Yields:
        Session: A SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
