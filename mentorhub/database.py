"""
PostgreSQL access for the email job store.

One async engine (asyncpg) serves the service; APScheduler and Alembic run
synchronously and take the psycopg2 form of the same DATABASE_URL.
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

ASYNC_SCHEME = "postgresql+asyncpg://"
SYNC_SCHEME = "postgresql://"

ENGINE_OPTIONS = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 30,
    "pool_recycle": 1800,
    "pool_pre_ping": True,
}

_engine: AsyncEngine | None = None


def _raw_url() -> str:
    return os.environ.get("DATABASE_URL", "")


def is_configured() -> bool:
    return bool(_raw_url())


def get_sync_database_url() -> str:
    """
    DATABASE_URL in its psycopg2 form.

    Raises:
        ValueError: If DATABASE_URL is unset or not a PostgreSQL URL
    """
    url = _raw_url()
    if url.startswith(ASYNC_SCHEME):
        return SYNC_SCHEME + url[len(ASYNC_SCHEME):]
    if url.startswith(SYNC_SCHEME):
        return url
    raise ValueError("DATABASE_URL must be set to a postgresql:// URL")


def get_async_database_url() -> str:
    """DATABASE_URL in its asyncpg form."""
    return ASYNC_SCHEME + get_sync_database_url()[len(SYNC_SCHEME):]


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            get_async_database_url(),
            echo=os.environ.get("SQL_ECHO", "").lower() == "true",
            **ENGINE_OPTIONS,
        )
    return _engine


@asynccontextmanager
async def get_connection() -> AsyncGenerator[AsyncConnection, None]:
    """Pooled connection for reads; nothing is committed."""
    async with get_engine().connect() as conn:
        yield conn


@asynccontextmanager
async def get_transaction() -> AsyncGenerator[AsyncConnection, None]:
    """Connection inside a transaction, committed when the block exits cleanly."""
    async with get_engine().begin() as conn:
        yield conn


async def close_engine() -> None:
    """Dispose of the pool on shutdown."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
