"""Now playing lines for the site header."""

from fastapi import APIRouter, Depends, Query

from scrobblestats.api.dependencies import get_now_playing_service
from scrobblestats.application.services import FALLBACK_SUMMARIES, NowPlayingService

router = APIRouter()


@router.get("/now-playing")
async def get_now_playing(
    limit: int = Query(default=3, ge=1, le=50),
    service: NowPlayingService | None = Depends(get_now_playing_service),
) -> dict[str, list[str]]:
    """Up to `limit` lines; the fixed fallback when Last.fm is unavailable."""
    if service is None:
        return {"items": list(FALLBACK_SUMMARIES)}
    return {"items": await service.get_summaries(limit)}
