"""Application services."""

from scrobblestats.application.services.csv_import_service import CsvImportService, ImportResult
from scrobblestats.application.services.entity_deduplicator import (
    DeduplicationResult,
    EntityDeduplicator,
)
from scrobblestats.application.services.listening_stats_service import (
    ListeningStats,
    ListeningStatsService,
)
from scrobblestats.application.services.now_playing_service import (
    FALLBACK_SUMMARIES,
    NowPlayingService,
)
from scrobblestats.application.services.scrobble_sync_orchestrator import (
    ScrobbleSyncOrchestrator,
    SyncResult,
)
from scrobblestats.application.services.sql_dump_service import build_sql_dump, sql_literal
from scrobblestats.application.services.sync_status import SyncStatusTracker

__all__ = [
    "FALLBACK_SUMMARIES",
    "CsvImportService",
    "DeduplicationResult",
    "EntityDeduplicator",
    "ImportResult",
    "ListeningStats",
    "ListeningStatsService",
    "NowPlayingService",
    "ScrobbleSyncOrchestrator",
    "SyncResult",
    "SyncStatusTracker",
    "build_sql_dump",
    "sql_literal",
]
