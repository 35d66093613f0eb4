"""Database configuration used across the application."""

import os
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

# A value **must** be provided via ``DATABASE_URL`` so deployments never rely
# on an implicit default.
RAW_DATABASE_URL = os.getenv("DATABASE_URL")

if not RAW_DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is required")


def _engine_kwargs(url: URL) -> dict:
    if url.get_backend_name() == "sqlite":
        # Sessions are opened in one threadpool worker and used in another.
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


def make_engine(url: str | URL) -> Engine:
    """Return an Engine configured for the backend named in ``url``."""

    parsed = make_url(url) if isinstance(url, str) else url
    return create_engine(parsed, **_engine_kwargs(parsed))


DATABASE_URL = make_url(RAW_DATABASE_URL)
engine = make_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
)

# Base class for all ORM models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Provide a database session for a single request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
