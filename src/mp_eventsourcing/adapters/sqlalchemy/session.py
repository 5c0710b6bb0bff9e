"""SQLAlchemy adapter – SqlAlchemySessionFactory (owns the async engine)."""
from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool


class SqlAlchemySessionFactory:
    """Creates async SQLAlchemy sessions from an engine URL.

    The engine is the storage connection's lifecycle boundary: acquire it at
    process start and call :meth:`dispose` at shutdown.
    """

    def __init__(self, database_url: str, **engine_kwargs: Any) -> None:
        self._engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self._engine, class_=AsyncSession, expire_on_commit=False
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def shares_connection(self) -> bool:
        """True when every session reuses one DBAPI connection (``StaticPool``).

        SQLAlchemy picks ``StaticPool`` for an aiosqlite ``:memory:`` URL so
        that all sessions see the same database.
        """
        return isinstance(self._engine.pool, StaticPool)

    def __call__(self) -> AsyncSession:
        return self._session_factory()

    async def dispose(self) -> None:
        await self._engine.dispose()


__all__ = ["SqlAlchemySessionFactory"]
