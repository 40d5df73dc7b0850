"""Local scrobble store backed by SQLAlchemy (SQLite via aiosqlite).

Hey future me - this is the dev/test twin of the D1 store. Same SQL dialect
(SQLite), same `?` placeholders, same IQueryExecutor port. Statements go
through exec_driver_sql() so the SQL text reaches the driver untouched - the
aggregation queries are written for SQLite/D1 and must stay portable to it.
"""

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from scrobblestats.config import StoreSettings
from scrobblestats.domain.exceptions import StoreQueryError
from scrobblestats.domain.ports import IQueryExecutor, Row

logger = logging.getLogger(__name__)


class Database(IQueryExecutor):
    """SQLAlchemy-backed query executor."""

    def __init__(self, url: str, echo: bool = False, timeout_seconds: float = 30.0) -> None:
        """
        Initialize database engine.

        Args:
            url: SQLAlchemy async URL, e.g. sqlite+aiosqlite:///listens.db
            echo: Log every statement (debugging only)
            timeout_seconds: How long SQLite waits for a write lock
        """
        self.url = url
        engine_kwargs: dict[str, Any] = {"echo": echo}
        if "sqlite" in url:
            engine_kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": timeout_seconds,
            }

        self._engine: AsyncEngine = create_async_engine(url, **engine_kwargs)

        if "sqlite" in url:
            self._enable_sqlite_foreign_keys()

    @classmethod
    def from_settings(cls, settings: StoreSettings) -> "Database":
        """Build from StoreSettings (requires database_url)."""
        if not settings.database_url:
            raise ValueError("StoreSettings.database_url is not set")
        return cls(settings.database_url, timeout_seconds=settings.timeout_seconds)

    def _enable_sqlite_foreign_keys(self) -> None:
        """SQLite has foreign keys off by default; D1 has them on. Match D1."""

        @event.listens_for(self._engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_conn: Any, _connection_record: Any) -> None:
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        """Run one statement in its own transaction and return mapped rows."""
        try:
            async with self._engine.begin() as conn:
                result = await conn.exec_driver_sql(sql, tuple(params))
                if not result.returns_rows:
                    return []
                return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as e:
            logger.debug(f"Query failed: {sql}", exc_info=True)
            raise StoreQueryError(f"Database query failed: {e}", sql=sql) from e

    async def close(self) -> None:
        """Close database connection."""
        await self._engine.dispose()
