"""SQLAlchemy engine and sessions.

``get_db`` is the per-request FastAPI dependency. Celery tasks and scripts
use ``get_db_session``, which commits on success and rolls back on error.
"""

from contextlib import contextmanager
from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from .config import settings
from .models.base import Base

DATABASE_URL = settings.DATABASE_URL

POOL_SIZE = 5
MAX_OVERFLOW = 10


def _engine_options(url: str) -> Dict[str, Any]:
    # SQLite (tests, local runs) has no connection pool to size
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": POOL_SIZE, "max_overflow": MAX_OVERFLOW}


engine = create_engine(DATABASE_URL, **_engine_options(DATABASE_URL))

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Usage:
        with get_db_session() as db:
            run_extraction_job(db, job_id, blob_store, llm_factory)
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create missing tables for every model."""
    from . import models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(bind=engine)
