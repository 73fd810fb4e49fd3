"""
Database initialization and session management.
"""

import logging
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from app.core.config import get_engine_url, get_settings
from app.infrastructure.database import models

logger = logging.getLogger(__name__)


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        return create_engine(url, echo=False, connect_args={"check_same_thread": False})
    return create_engine(url, echo=False)


def build_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


engine = build_engine(get_engine_url(get_settings()))

SessionLocal = build_session_factory(engine)


def init_db(bind: Engine | None = None) -> None:
    """Initialize database - create all tables."""
    bind = bind or engine
    if bind.url.get_backend_name() == "sqlite" and bind.url.database not in (None, "", ":memory:"):
        Path(bind.url.database).parent.mkdir(parents=True, exist_ok=True)

    SQLModel.metadata.create_all(bind=bind)
    logger.info("Database ready: %d tables", len(SQLModel.metadata.tables))


__all__ = [
    "SessionLocal",
    "build_engine",
    "build_session_factory",
    "engine",
    "init_db",
    "models",
]


if __name__ == "__main__":
    init_db()
    print("Database initialized successfully!")
