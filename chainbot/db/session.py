"""Database session management for async SQLAlchemy."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from chainbot.models import Base


class DatabaseManager:
    """Manages async database connections and sessions.

    Only the polling cursor lives in the database, so the pool is kept small:
    the Poller is the sole writer and writes once per fetched batch.
    """

    def __init__(self, database_url: str, *, echo: bool = False):
        self._database_url = database_url
        self._echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._logger = logging.getLogger(__name__)

    async def connect(self) -> None:
        """Initialize the engine, create missing tables and verify the connection."""
        if self._engine is not None:
            return

        engine_kwargs: dict = {"echo": self._echo, "pool_pre_ping": True}
        if not self._database_url.startswith("sqlite"):
            engine_kwargs.update(pool_size=2, max_overflow=2)

        self._engine = create_async_engine(self._database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self._engine,
            expire_on_commit=False,
            class_=AsyncSession,
        )

        async with self._engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.run_sync(Base.metadata.create_all)

        self._logger.info("Connected to cursor database")

    async def disconnect(self) -> None:
        """Close the database engine and cleanup resources."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            self._logger.info("Disconnected from cursor database")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Get a transactional database session.

        Auto-commits on success, rolls back on error.
        """
        if self._session_factory is None:
            await self.connect()

        if self._session_factory is None:
            raise RuntimeError("Failed to initialize database session factory")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
