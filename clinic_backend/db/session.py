"""Database engine, session factory, dependency injection and transactions."""

import logging
from contextlib import contextmanager
from typing import Generator, Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.orm.exc import StaleDataError

from clinic_backend.core.config import settings
from clinic_backend.core.exceptions import ResourceConflictError

logger = logging.getLogger("clinic_backend")


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 20,
        "max_overflow": 40,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that provides a DB session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit on success; roll back on any error and re-raise.

    Stale versioned rows and integrity violations surface as
    ``ResourceConflictError`` so callers see a typed failure.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        logger.warning("Concurrent update rejected: %s", exc)
        raise ResourceConflictError(
            "The record was modified by another request; reload and retry"
        ) from exc
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Integrity violation: %s", exc.orig)
        raise ResourceConflictError("The change conflicts with an existing record") from exc
    except Exception:
        db.rollback()
        raise
