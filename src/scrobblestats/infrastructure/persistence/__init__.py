"""Persistence: schema, query executors and repositories."""

from scrobblestats.config import StoreSettings
from scrobblestats.domain.ports import IQueryExecutor
from scrobblestats.infrastructure.persistence.d1_client import D1QueryExecutor
from scrobblestats.infrastructure.persistence.database import Database
from scrobblestats.infrastructure.persistence.repositories import (
    ArtistRepository,
    ScrobbleRepository,
    SyncMetadataRepository,
    TrackRepository,
)
from scrobblestats.infrastructure.persistence.schema import init_schema, schema_statements


def create_query_executor(settings: StoreSettings) -> IQueryExecutor:
    """Pick the local database when DATABASE_URL is set, D1 otherwise."""
    if settings.uses_local_database:
        return Database.from_settings(settings)
    return D1QueryExecutor(settings)


__all__ = [
    "ArtistRepository",
    "D1QueryExecutor",
    "Database",
    "ScrobbleRepository",
    "SyncMetadataRepository",
    "TrackRepository",
    "create_query_executor",
    "init_schema",
    "schema_statements",
]
