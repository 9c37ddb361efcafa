# extract_builder/core/database.py
"""Database handle with an explicit lifecycle for the config store and the membership warehouse."""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from extract_builder.core.config import Settings

logger = logging.getLogger(__name__)

# Base class for all config-store models (extracts, catalog, logs)
Base = declarative_base()


def build_engine(url: str, pool_size: int = 4, pool_timeout: int = 30) -> Engine:
    """Create an engine, applying pool settings only where the driver supports them."""
    if url.startswith("sqlite"):
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_size=pool_size,
        max_overflow=0,
        pool_timeout=pool_timeout,
        pool_pre_ping=True,
    )


class Database:
    """Owns both engines and their session factories.

    Constructed once at process start (see ``create_app``), stored on
    ``app.state.database`` and disposed on shutdown. Tests construct their own
    instance around in-memory engines.
    """

    def __init__(self, engine: Engine, membership_engine: Optional[Engine] = None):
        self.engine = engine
        self.membership_engine = membership_engine or engine
        self.SessionLocal = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False, expire_on_commit=False
        )
        self.MembershipSessionLocal = sessionmaker(
            bind=self.membership_engine, autocommit=False, autoflush=False
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        engine = build_engine(settings.database_url, settings.db_pool_size, settings.db_pool_timeout)
        if settings.membership_database_url == settings.database_url:
            return cls(engine)
        membership_engine = build_engine(
            settings.membership_database_url, settings.db_pool_size, settings.db_pool_timeout
        )
        return cls(engine, membership_engine)

    def init(self) -> None:
        """Create config-store tables."""
        # Make sure all models are registered with Base before create_all
        from extract_builder.catalog import models as catalog_models  # noqa: F401
        from extract_builder.extracts import models as extract_models  # noqa: F401
        from extract_builder.logging import models as log_models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Config store tables ready")

    def shutdown(self) -> None:
        """Release every pooled connection of both engines."""
        self.engine.dispose()
        if self.membership_engine is not self.engine:
            self.membership_engine.dispose()
        logger.info("Database engines disposed")

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Scoped config-store session, always closed on exit."""
        session = self.SessionLocal()
        try:
            yield session
        finally:
            session.close()

    def ping(self) -> bool:
        """Check that the config store answers a trivial query."""
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True


# ===== SESSION GENERATORS =====


def get_database(request: Request) -> Database:
    """Get the process database handle from the application state."""
    return request.app.state.database


def get_db(request: Request) -> Iterator[Session]:
    """Get config database session."""
    db = get_database(request).SessionLocal()
    try:
        yield db
    finally:
        db.close()
