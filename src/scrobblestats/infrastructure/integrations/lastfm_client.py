"""Last.fm HTTP client implementation."""

import logging
from typing import Any, cast

import httpx

from scrobblestats.config import LastfmSettings
from scrobblestats.domain.dtos import RecentTrackEvent, RecentTracksPage
from scrobblestats.domain.exceptions import ExternalServiceError, LastfmApiError
from scrobblestats.domain.ports import IScrobbleSource

logger = logging.getLogger(__name__)


def _text(value: Any) -> str | None:
    """Last.fm wraps names as {"#text": ..., "mbid": ...}; empty strings mean absent."""
    if isinstance(value, dict):
        value = value.get("#text") or value.get("name")
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_recent_track(track: dict[str, Any]) -> RecentTrackEvent:
    """
    Convert one `recenttracks.track[]` entry into a RecentTrackEvent.

    Lenient on purpose: a missing name or artist becomes "" and the sync
    counts that event as an error instead of failing the whole page.
    """
    artist = track.get("artist") or {}
    attr = track.get("@attr") or {}
    date = track.get("date") or {}
    return RecentTrackEvent(
        name=_text(track.get("name")) or "",
        artist_name=_text(artist) or "",
        timestamp_token=_text(date.get("uts")) if isinstance(date, dict) else None,
        album=_text(track.get("album")),
        external_id=_text(track.get("mbid")),
        artist_external_id=_text(artist.get("mbid")) if isinstance(artist, dict) else None,
        is_live=str(attr.get("nowplaying", "")).lower() == "true",
    )


def parse_recent_tracks_page(data: dict[str, Any]) -> RecentTracksPage:
    """Convert a `user.getRecentTracks` response body into a RecentTracksPage."""
    recent = data.get("recenttracks") or {}
    tracks = recent.get("track") or []
    # Hey future me - Last.fm returns a bare object instead of a list when there is
    # exactly one track on the page. Classic XML-to-JSON artefact.
    if isinstance(tracks, dict):
        tracks = [tracks]
    attr = recent.get("@attr") or {}
    return RecentTracksPage(
        events=[parse_recent_track(track) for track in tracks],
        page=_int(attr.get("page"), 1),
        total_pages=_int(attr.get("totalPages")),
        total_events=_int(attr.get("total")),
    )


class LastfmClient(IScrobbleSource):
    """HTTP client for the Last.fm scrobble history of one user."""

    def __init__(self, settings: LastfmSettings) -> None:
        """
        Initialize Last.fm client.

        Args:
            settings: Last.fm configuration settings
        """
        self.settings = settings
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.api_url,
                timeout=self.settings.timeout_seconds,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _make_request(self, method: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        Make a request to Last.fm API.

        Args:
            method: API method name
            params: Request parameters

        Returns:
            Response data

        Raises:
            LastfmApiError: If Last.fm answers with an error document
            ExternalServiceError: On transport errors or non-success status
        """
        client = await self._get_client()

        request_params = {
            "method": method,
            "api_key": self.settings.api_key,
            "format": "json",
            **params,
        }

        try:
            response = await client.get("", params=request_params)
        except httpx.HTTPError as e:
            raise ExternalServiceError("Last.fm", str(e) or type(e).__name__) from e

        try:
            data = response.json()
        except ValueError:
            data = None

        # Last.fm reports API errors as {"error": 6, "message": "User not found"},
        # sometimes with HTTP 200, sometimes with 4xx.
        if isinstance(data, dict) and "error" in data:
            raise LastfmApiError(
                str(data.get("message") or "Unknown error"),
                error_code=_int(data.get("error"), 0) or None,
                status_code=response.status_code,
            )
        if response.is_error:
            raise ExternalServiceError(
                "Last.fm", response.reason_phrase or "error", status_code=response.status_code
            )
        if not isinstance(data, dict):
            raise ExternalServiceError(
                "Last.fm", "response is not a JSON object", status_code=response.status_code
            )

        return cast(dict[str, Any], data)

    async def get_recent_tracks(self, page: int = 1, limit: int = 200) -> RecentTracksPage:
        """
        Get one page of the user's recent tracks, newest first.

        Args:
            page: 1-based page number
            limit: Tracks per page (Last.fm caps this at 200)

        Returns:
            Deserialized page
        """
        data = await self._make_request(
            "user.getrecenttracks",
            {"user": self.settings.username, "limit": limit, "page": page},
        )
        return parse_recent_tracks_page(data)

    async def __aenter__(self) -> "LastfmClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
