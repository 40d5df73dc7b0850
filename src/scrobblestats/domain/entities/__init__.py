"""Domain entities."""

from dataclasses import dataclass
from enum import Enum


class SyncStatus(str, Enum):
    """Lifecycle of the singleton sync_metadata row."""

    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Artist:
    """An artist as stored. `name` keeps the first-seen casing."""

    id: int
    name: str
    external_id: str | None = None


@dataclass
class Track:
    """A track, unique per (artist_id, name_key(name))."""

    id: int
    name: str
    artist_id: int
    album: str | None = None
    external_id: str | None = None


@dataclass
class Scrobble:
    """One play event. Immutable once stored.

    artist_id is denormalized from the track so aggregations skip a join;
    it must always equal the owning track's artist_id.
    """

    track_id: int
    artist_id: int
    played_at: int
    source_timestamp: int | None = None
    is_live: bool = False
    id: int | None = None


@dataclass
class SyncMetadata:
    """The one and only sync bookkeeping row."""

    status: SyncStatus = SyncStatus.IDLE
    last_successful_sync: int | None = None
    total_synced_count: int = 0
    last_error: str | None = None
    updated_at: int | None = None

    @property
    def is_running(self) -> bool:
        """True while a run holds the in_progress status."""
        return self.status == SyncStatus.IN_PROGRESS

    def is_stale(self, now: int, stale_after_seconds: int) -> bool:
        """An in_progress row nobody touched for too long is a crashed run."""
        if self.updated_at is None:
            return True
        return now - self.updated_at >= stale_after_seconds

    def to_dict(self) -> dict[str, object]:
        """Convert to a JSON-friendly dict."""
        return {
            "status": self.status.value,
            "last_successful_sync": self.last_successful_sync,
            "total_synced_count": self.total_synced_count,
            "last_error": self.last_error,
            "updated_at": self.updated_at,
        }


__all__ = ["Artist", "Scrobble", "SyncMetadata", "SyncStatus", "Track"]
