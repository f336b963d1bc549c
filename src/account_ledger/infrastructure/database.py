from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from account_ledger.config import settings


logger = structlog.get_logger()


class Database:
    def __init__(
        self,
        database_url: str | None = None,
        pool_size: int | None = None,
        max_overflow: int | None = None,
        echo: bool | None = None,
    ) -> None:
        self.engine = create_async_engine(
            database_url or settings.database_url,
            echo=settings.database_echo if echo is None else echo,
            pool_pre_ping=True,
            pool_size=pool_size or settings.database_pool_size,
            max_overflow=max_overflow or settings.database_max_overflow,
        )
        # Aggregates are rebuilt from rows on every load, so nothing relies on
        # ORM identity tracking or autoflush.
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("database_closed")
