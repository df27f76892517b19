"""Database configuration and session management."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from clinic_api.config import Settings, get_settings


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


logger = logging.getLogger(__name__)


def generate_id() -> str:
    """Return a new primary key value for UUID string columns."""

    return str(uuid.uuid4())


def build_engine(settings: Settings) -> Engine:
    """Create the SQLAlchemy engine for ``settings.database_url``."""

    connect_args: dict[str, object] = {}
    if settings.database_url.startswith("sqlite"):
        # Sessions are opened from worker threads and the websocket loop.
        connect_args["check_same_thread"] = False
    return create_engine(
        settings.database_url, pool_pre_ping=True, connect_args=connect_args
    )


settings = get_settings()
engine = build_engine(settings)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def initialize_database() -> None:
    """Ensure all ORM models have corresponding database tables."""

    from clinic_api.infrastructure import models  # noqa: F401  # ensure models are imported

    Base.metadata.create_all(bind=engine, checkfirst=True)
    logger.debug("Database schema verified for %s", engine.url.render_as_string())


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and close it afterwards."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


__all__ = [
    "Base",
    "SessionLocal",
    "build_engine",
    "engine",
    "generate_id",
    "get_db",
    "initialize_database",
]
