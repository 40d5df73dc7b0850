"""Listening statistics and sync status endpoints."""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from scrobblestats.api.dependencies import (
    get_app_settings,
    get_listening_stats_service,
    get_sync_status_tracker,
)
from scrobblestats.application.services import ListeningStatsService, SyncStatusTracker
from scrobblestats.config import Settings

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_CONFIGURED = {"error": "Database not configured"}


@router.get("/listening-stats")
async def get_listening_stats(
    days: int | None = Query(default=None, ge=1, le=3650, description="Window in days"),
    service: ListeningStatsService | None = Depends(get_listening_stats_service),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse:
    """Full statistics payload for the charts page.

    Responds 500 with a fixed error body instead of partial data when the
    store is missing or any query fails.
    """
    if service is None:
        return JSONResponse(NOT_CONFIGURED, status_code=500)

    try:
        stats = await service.get_listening_stats(days)
    except Exception as e:
        logger.error(f"Store query error: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to fetch stats"}, status_code=500)

    return JSONResponse(
        stats.to_dict(),
        headers={"Cache-Control": f"public, max-age={settings.stats.cache_max_age}"},
    )


@router.get("/sync-status")
async def get_sync_status(
    tracker: SyncStatusTracker | None = Depends(get_sync_status_tracker),
) -> JSONResponse:
    """The singleton sync_metadata row."""
    if tracker is None:
        return JSONResponse(NOT_CONFIGURED, status_code=500)

    try:
        meta = await tracker.current()
    except Exception as e:
        logger.error(f"Could not read sync status: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to fetch sync status"}, status_code=500)

    return JSONResponse(meta.to_dict(), headers={"Cache-Control": "no-cache"})
