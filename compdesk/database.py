"""Database configuration for the compensation analytics service."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

DEFAULT_SQLITE_PATH = Path("data/compdesk.db")
DEFAULT_SQLITE_PATH.parent.mkdir(parents=True, exist_ok=True)

DATABASE_URL = os.getenv("COMPDESK_DATABASE_URL", f"sqlite:///{DEFAULT_SQLITE_PATH}")
QUERY_TIMEOUT_SECONDS = int(os.getenv("COMPDESK_QUERY_TIMEOUT", "10"))


def _connect_args(url: str) -> dict:
    """Driver arguments that bound how long a single query may wait."""
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": QUERY_TIMEOUT_SECONDS}
    if url.startswith("postgresql"):
        return {
            "connect_timeout": QUERY_TIMEOUT_SECONDS,
            "options": f"-c statement_timeout={QUERY_TIMEOUT_SECONDS * 1000}",
        }
    return {}


def _create_engine(url: str):
    """Create a SQLAlchemy engine for the given URL."""
    return create_engine(url, connect_args=_connect_args(url), pool_pre_ping=True, future=True)


# Verify the configured database on startup. In development an unreachable
# database falls back to the local SQLite file; elsewhere startup fails.
try:
    engine = _create_engine(DATABASE_URL)
    with engine.connect() as _conn:  # type: ignore[var-annotated]
        pass
except Exception as e:  # pragma: no cover - environment dependent
    env = os.getenv("ENVIRONMENT", "development").lower()
    logger.warning("Could not connect to database at %r: %s", DATABASE_URL, e)
    if env == "development":
        fallback = f"sqlite:///{DEFAULT_SQLITE_PATH}"
        logger.warning("Falling back to SQLite for local development at %s", fallback)
        DATABASE_URL = fallback
        engine = _create_engine(DATABASE_URL)
    else:
        raise

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

Base = declarative_base()


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a database session."""

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def init_db() -> None:
    """Ensure database tables exist."""

    from compdesk import models  # noqa: F401  (import ensures model metadata is registered)

    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.info("Database schema ready at %s", engine.url.render_as_string(hide_password=True))
