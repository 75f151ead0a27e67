"""Lazily created async engine and session factory, one per process."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings

logger = logging.getLogger(__name__)

_async_engine: AsyncEngine | None = None
_async_sessionmaker: async_sessionmaker | None = None


def _engine_options(url: str) -> dict[str, Any]:
    """
    Engine keyword arguments for the given async URL.

    SQLite (used for local runs and tests) does not take pool sizing or
    server settings; PostgreSQL gets a bounded pool and UTC sessions.
    """
    if url.startswith("sqlite"):
        return {"echo": False}

    return {
        "pool_size": 20,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 3600,  # Recycle connections after 1 hour
        "pool_pre_ping": True,  # Verify connections before use
        "echo": False,
        "connect_args": {
            "server_settings": {"timezone": "UTC"},
            "timeout": 30,
        },
    }


def create_fresh_async_engine(url: str | None = None) -> AsyncEngine:
    """Uncached engine; the CLI owns and disposes it."""
    url = url or settings.async_url
    if not url:
        raise RuntimeError("DATABASE_URL_APP is required")

    return create_async_engine(url, **_engine_options(url))


def get_async_engine() -> AsyncEngine:
    global _async_engine

    if _async_engine is not None:
        return _async_engine

    _async_engine = create_fresh_async_engine()
    logger.debug("Created async engine for %s", _async_engine.url.drivername)
    return _async_engine


def get_async_sessionmaker() -> async_sessionmaker[AsyncSession]:
    global _async_sessionmaker
    if _async_sessionmaker is not None:
        return _async_sessionmaker

    engine = get_async_engine()
    _async_sessionmaker = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    return _async_sessionmaker

