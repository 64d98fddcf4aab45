"""Database connection and session management."""
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

logger = logging.getLogger(__name__)


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _is_memory_sqlite(database_url: str) -> bool:
    return _is_sqlite(database_url) and (
        database_url.endswith("://") or ":memory:" in database_url
    )


class Database:
    """Owns the engine and session factory for one application instance.

    Built once at startup and reached through ``app.state``; the store can be
    pointed at any SQLAlchemy async URL without touching the callers.
    """

    def __init__(
        self,
        database_url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
    ):
        self.database_url = database_url

        engine_kwargs: Dict[str, Any] = {"echo": echo}
        if _is_memory_sqlite(database_url):
            # 内存库必须共享同一个连接，否则每个连接都是空库
            engine_kwargs["poolclass"] = StaticPool
        elif not _is_sqlite(database_url):
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,
            )

        self.engine = create_async_engine(database_url, **engine_kwargs)
        self._session_maker = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_tables(self) -> None:
        """Create all tables in the database."""
        # Import models to register them with SQLModel
        from . import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("database tables ready url=%s", self.engine.url.render_as_string(hide_password=True))

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Context manager for getting a database session."""
        async with self._session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Close database connection pool."""
        await self.engine.dispose()
