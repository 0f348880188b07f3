"""Async database manager for Authsome (single-DB)."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from authsome.common.config import AuthsomeSettings, get_settings
from authsome.common.exceptions import InternalError
from authsome.common.models import Base

# Import all model modules so Base.metadata is complete for create_all().
import authsome.tenants.models  # noqa: F401
import authsome.sessions.models  # noqa: F401
import authsome.otp.models  # noqa: F401

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages a single async database engine."""

    def __init__(self, settings: AuthsomeSettings | None = None):
        self._settings = settings or get_settings()
        self.engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    async def init(self) -> None:
        url = self._settings.db_url
        self.engine = create_async_engine(url, echo=False)
        self._session_factory = async_sessionmaker(
            self.engine, expire_on_commit=False
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Unit of work: commit on success, roll back on any exception."""
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager not initialized; call init() first")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    @asynccontextmanager
    async def unit_of_work(self) -> AsyncGenerator[AsyncSession, None]:
        """Like ``get_session`` but storage failures surface as ``InternalError``."""
        try:
            async with self.get_session() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.exception("Database operation failed")
            raise InternalError("Storage unavailable") from exc

    async def create_all(self) -> None:
        if self.engine is None:
            raise RuntimeError("DatabaseManager not initialized; call init() first")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self._session_factory = None
