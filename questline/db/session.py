"""Database engine, session factory and transaction helper."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from questline.core.config import settings
from questline.core.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)

engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    echo=settings.debug,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency for FastAPI to get DB session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Run a block as one all-or-nothing unit.

    Commits when the block finishes, rolls back on any exception. Driver and ORM errors are
    re-raised as ``PersistenceFailure`` so callers only ever see typed failures.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("transaction_failed")
        raise PersistenceFailure(f"Database error: {exc.__class__.__name__}") from exc
    except BaseException:
        db.rollback()
        raise
