"""Database lifecycle: an explicitly constructed engine + session factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from lgu_auth.db.base import Base

logger = logging.getLogger(__name__)


class Database:
    """Owns the async engine. Call connect() before use and disconnect() on shutdown."""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: AsyncEngine | None = None
        self._session_maker: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    @property
    def session_maker(self) -> async_sessionmaker[AsyncSession]:
        if self._session_maker is None:
            raise RuntimeError("Database is not connected")
        return self._session_maker

    async def connect(self, create_tables: bool = True) -> None:
        if self._engine is not None:
            return
        self._engine = create_async_engine(self.url, echo=self.echo)
        self._session_maker = async_sessionmaker(self._engine, class_=AsyncSession, expire_on_commit=False)
        if create_tables:
            # Register all models on Base.metadata
            import lgu_auth.models  # noqa: F401

            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        logger.info("Database connected (%s)", self._engine.url.render_as_string(hide_password=True))

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_maker = None
        logger.info("Database disconnected")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session that commits on success and rolls back on any exception."""
        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


def get_database(request: Request) -> Database:
    return request.app.state.db


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with get_database(request).session() as session:
        yield session
