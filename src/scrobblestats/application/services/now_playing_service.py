"""Short "what's spinning" lines for the site header."""

import logging

from scrobblestats.domain.ports import IScrobbleSource

logger = logging.getLogger(__name__)

FALLBACK_SUMMARIES = ["spinning records", "new music finds"]


class NowPlayingService:
    """Turns the newest source events into one-line summaries."""

    def __init__(self, source: IScrobbleSource) -> None:
        self._source = source

    async def get_summaries(self, limit: int = 3) -> list[str]:
        """
        Return up to `limit` lines like "now playing: Air - La Femme d'Argent".

        Hey future me - this feeds a decorative widget. Any source failure
        returns the fixed fallback instead of an error, including a malformed
        page that breaks parsing.
        """
        try:
            page = await self._source.get_recent_tracks(page=1, limit=limit)
        except Exception as e:
            logger.warning(f"Could not fetch recent tracks, using fallback: {e}")
            return list(FALLBACK_SUMMARIES)

        lines = [
            f"{'now playing' if event.is_live else 'recently played'}: "
            f"{event.artist_name} - {event.name}"
            for event in page.events[:limit]
            if event.artist_name and event.name
        ]
        return lines or list(FALLBACK_SUMMARIES)
