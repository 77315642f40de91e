"""Async SQLAlchemy engine/session helpers."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from pathlib import Path

from fastapi import Request
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from scribe.db_events import attach_sqlite_listeners

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base class for ORM models."""


def _ensure_sqlite_directory(url: URL) -> None:
    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


class Database:
    """Owns the engine and session factory for one application instance.

    Built once by the application factory and stored on ``app.state``;
    request handlers reach it through :func:`get_async_session`.
    """

    def __init__(self, url: str, *, echo: bool = False, **engine_kwargs) -> None:
        self.url = url
        self.engine: AsyncEngine = create_async_engine(
            url, echo=echo, pool_pre_ping=True, **engine_kwargs
        )
        if self.engine.dialect.name == "sqlite":
            _ensure_sqlite_directory(self.engine.url)
            attach_sqlite_listeners(self.engine.sync_engine)
        self.session_factory = async_sessionmaker(
            bind=self.engine, expire_on_commit=False, autoflush=False
        )

    async def create_all(self) -> None:
        """Create any missing tables (development and tests; prod uses Alembic)."""
        # Models must be imported so their tables are registered on the metadata.
        from scribe.models import post, reaction, user  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured", extra={"url": self.engine.url.render_as_string()})

    async def dispose(self) -> None:
        await self.engine.dispose()


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session bound to the application's database."""
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        yield session
