"""Data Transfer Objects crossing the source → application boundary.

Hey future me - CSV rows and Last.fm pages both end up as these plain
dataclasses BEFORE any timestamp normalization or store lookups happen.
Keep them dumb: raw strings in, no validation beyond "is it there".
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ScrobbleRow:
    """One parsed CSV row. `timestamp` is still the raw token."""

    artist: str
    track: str
    timestamp: str
    album: str | None = None


@dataclass(frozen=True)
class RecentTrackEvent:
    """One event from the paginated scrobble source (newest first).

    timestamp_token is None for the live "now playing" entry, which the
    source reports without a date.
    """

    name: str
    artist_name: str
    timestamp_token: str | None
    album: str | None = None
    external_id: str | None = None
    artist_external_id: str | None = None
    is_live: bool = False


@dataclass
class RecentTracksPage:
    """One page of the scrobble source."""

    events: list[RecentTrackEvent] = field(default_factory=list)
    page: int = 1
    total_pages: int = 0
    total_events: int = 0


__all__ = ["RecentTrackEvent", "RecentTracksPage", "ScrobbleRow"]
