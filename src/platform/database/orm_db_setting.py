"""
SQLAlchemy async engine and session management

Database owns one event-loop-aware engine. Repositories receive
`Database.session` as their session factory so tests can substitute it.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


class Base(DeclarativeBase):
    pass


class AsyncEngineManager:
    """
    Keeps the engine bound to the running event loop.

    A pooled asyncpg connection belongs to the loop that opened it, so a new
    loop (test runner, portal thread) gets a fresh engine.
    """

    def __init__(self, database_url: Optional[str] = None) -> None:
        self._database_url = database_url
        self._engine: Optional[AsyncEngine] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    def get_engine(self) -> AsyncEngine:
        try:
            current_loop: Optional[asyncio.AbstractEventLoop] = asyncio.get_running_loop()
        except RuntimeError:
            current_loop = None

        if self._engine is None or (current_loop is not None and self._loop is not current_loop):
            if self._engine is not None:
                Logger.base.warning('🔄 [DB] Event loop changed, recreating engine')
            self._engine = self._create_engine()
            self._session_maker = None
            self._loop = current_loop
            Logger.base.info(f'🔗 [DB] Engine created for loop {id(current_loop)}')

        return self._engine

    def get_session_maker(self) -> async_sessionmaker[AsyncSession]:
        engine = self.get_engine()
        if self._session_maker is None:
            self._session_maker = async_sessionmaker(
                engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_maker

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_maker = None
            self._loop = None

    def _create_engine(self) -> AsyncEngine:
        return create_async_engine(
            self._database_url or settings.DATABASE_URL_ASYNC,
            echo=False,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_POOL_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=settings.DB_POOL_PRE_PING,
        )


class Database:
    """Session provider injected into the durable-store repositories"""

    def __init__(self, database_url: Optional[str] = None) -> None:
        self._engine_manager = AsyncEngineManager(database_url)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine_manager.get_engine()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session; the context manager rolls back on exception"""
        session_maker = self._engine_manager.get_session_maker()
        async with session_maker() as session:
            yield session

    async def create_tables(self) -> None:
        """Create tables for local runs; production schema is managed externally"""
        async with self._engine_manager.get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    async def close(self) -> None:
        await self._engine_manager.dispose()
        Logger.base.info('🔌 [DB] Engine disposed')
