"""Schema bootstrap through the query port.

Works for both stores: the DDL is compiled once with the SQLite dialect
(D1 is SQLite) and executed statement by statement.
"""

import logging

from sqlalchemy.dialects import sqlite
from sqlalchemy.schema import CreateIndex, CreateTable

from scrobblestats.domain.ports import IQueryExecutor
from scrobblestats.infrastructure.persistence.models import SYNC_METADATA_ID, Base

logger = logging.getLogger(__name__)


def schema_statements() -> list[str]:
    """Return CREATE TABLE / CREATE INDEX statements, dependency ordered."""
    dialect = sqlite.dialect()
    statements: list[str] = []
    for table in Base.metadata.sorted_tables:
        statements.append(
            str(CreateTable(table, if_not_exists=True).compile(dialect=dialect)).strip()
        )
        for index in sorted(table.indexes, key=lambda idx: idx.name or ""):
            statements.append(
                str(CreateIndex(index, if_not_exists=True).compile(dialect=dialect)).strip()
            )
    return statements


async def init_schema(executor: IQueryExecutor, now: int) -> None:
    """
    Create all tables and indexes if absent and seed the sync_metadata row.

    Safe to run repeatedly.

    Args:
        executor: Store to initialize
        now: Current unix seconds for the seed row's updated_at
    """
    for statement in schema_statements():
        await executor.execute(statement)
    await executor.execute(
        "INSERT INTO sync_metadata (id, status, total_synced_count, updated_at) "
        "VALUES (?, 'idle', 0, ?) ON CONFLICT(id) DO NOTHING",
        [SYNC_METADATA_ID, now],
    )
    logger.info("Schema ready (artists, tracks, scrobbles, sync_metadata)")
