"""
Database connection, session management and the transaction boundary
"""
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from sqlalchemy import create_engine, event, pool
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from retail_ledger.config import settings
from retail_ledger.exceptions import PersistenceError, RetailLedgerError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_engine(url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    PostgreSQL gets the pooled production setup with a statement timeout.
    SQLite (local runs and tests) gets a single shared connection and real
    SAVEPOINT support, which pysqlite disables by default.
    """
    if url.startswith("sqlite"):
        eng = create_engine(
            url,
            poolclass=pool.StaticPool,
            connect_args={"check_same_thread": False},
            echo=echo,
        )

        @event.listens_for(eng, "connect")
        def _sqlite_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(eng, "begin")
        def _sqlite_begin(conn):
            conn.exec_driver_sql("BEGIN")

        return eng

    return create_engine(
        url,
        poolclass=pool.QueuePool,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=3600,  # Recycle connections after 1 hour
        connect_args={
            "connect_timeout": 10,
            "options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}",
        },
        echo=echo,
    )


engine = build_engine(settings.database_connection_string, echo=settings.DEBUG)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


def get_db():
    """
    Dependency for FastAPI to get database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Unit-of-work boundary: commit when the block finishes, roll back on any error.

    Driver errors are wrapped in PersistenceError; domain errors propagate as raised.
    """
    try:
        yield db
        db.commit()
    except RetailLedgerError:
        db.rollback()
        raise
    except DBAPIError as e:
        db.rollback()
        logger.error("Transaction rolled back after database error: %s", e, exc_info=True)
        raise PersistenceError(str(getattr(e, "orig", e) or e)) from e
    except Exception:
        db.rollback()
        raise


def run_in_transaction(db: Session, fn: Callable[[Session], T]) -> T:
    """Run fn(db) inside transaction() and return its result."""
    with transaction(db):
        return fn(db)
