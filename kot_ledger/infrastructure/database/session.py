"""Database session management and the transaction primitive"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from kot_ledger.config import settings
from kot_ledger.domain.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)


def build_engine(database_url: str):
    """Embedded SQLite needs cross-thread access; server databases get a pool"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    """Dependency injection for database sessions"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    Run a unit of work as one transaction.

    Commits on success; on any exception everything is rolled back.
    Store-level errors are re-raised as PersistenceFailure, domain errors
    propagate unchanged.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Transaction rolled back: {e}")
        raise PersistenceFailure(f"Could not commit transaction: {e.__class__.__name__}") from e
    except Exception:
        db.rollback()
        raise
