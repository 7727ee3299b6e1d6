"""Pooled async Postgres engine shared by the document and product stores."""

from __future__ import annotations

from loguru import logger
from pgvector.asyncpg import register_vector
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from bents_assistant.config import Settings


class Database:
    """Owns the connection pool; stores acquire a connection per query."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._engine: AsyncEngine | None = None

    def connect(self) -> None:
        """Create the engine. No connection is opened until the first query."""
        s = self.settings
        self._engine = create_async_engine(
            s.async_database_url,
            pool_size=s.db_pool_size,
            max_overflow=0,
            pool_timeout=s.db_pool_timeout_seconds,
            pool_recycle=s.db_pool_recycle_seconds,
            pool_pre_ping=True,
            connect_args={"timeout": s.db_pool_timeout_seconds},
        )

        @event.listens_for(self._engine.sync_engine, "connect")
        def _register_vector(dbapi_connection, _connection_record):
            dbapi_connection.run_async(register_vector)

        logger.info("Database engine created | pool_size={}", s.db_pool_size)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Not connected")
        return self._engine
