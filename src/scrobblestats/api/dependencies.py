"""Dependency injection for API endpoints."""

from fastapi import Request

from scrobblestats.application.services import (
    ListeningStatsService,
    NowPlayingService,
    SyncStatusTracker,
)
from scrobblestats.config import Settings, get_settings
from scrobblestats.domain.ports import IQueryExecutor, IScrobbleSource


def get_app_settings(request: Request) -> Settings:
    """Settings the app was started with."""
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_settings()


def get_query_executor(request: Request) -> IQueryExecutor | None:
    """Store executor from app state, None when the store is not configured."""
    return getattr(request.app.state, "executor", None)


def get_scrobble_source(request: Request) -> IScrobbleSource | None:
    return getattr(request.app.state, "scrobble_source", None)


# Hey future me - these return None instead of raising so the routers can answer
# with the fixed {"error": ...} payloads the frontend already understands.
def get_listening_stats_service(request: Request) -> ListeningStatsService | None:
    executor = get_query_executor(request)
    if executor is None:
        return None
    return ListeningStatsService(executor, get_app_settings(request).stats)


def get_sync_status_tracker(request: Request) -> SyncStatusTracker | None:
    executor = get_query_executor(request)
    if executor is None:
        return None
    return SyncStatusTracker(executor, get_app_settings(request).sync.stale_after_seconds)


def get_now_playing_service(request: Request) -> NowPlayingService | None:
    source = get_scrobble_source(request)
    return NowPlayingService(source) if source is not None else None
