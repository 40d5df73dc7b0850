"""Repositories over the IQueryExecutor port.

Hey future me - every write here is "find-or-create" or "insert, ignore on
conflict". There are NO locks and NO multi-statement transactions (D1 can't do
them over HTTP), so correctness comes from the UNIQUE constraints in models.py:

    SELECT existing -> INSERT ... ON CONFLICT DO NOTHING RETURNING -> SELECT again

The second SELECT covers the race where someone else inserted between our
SELECT and our INSERT (RETURNING gives nothing for an ignored row).
"""

import logging
from collections.abc import Mapping
from typing import Any

from scrobblestats.domain.entities import Artist, Scrobble, SyncMetadata, SyncStatus, Track
from scrobblestats.domain.exceptions import StoreQueryError
from scrobblestats.domain.ports import IQueryExecutor
from scrobblestats.domain.value_objects.names import name_key
from scrobblestats.infrastructure.persistence.models import SYNC_METADATA_ID

logger = logging.getLogger(__name__)


def _artist_from_row(row: Mapping[str, Any]) -> Artist:
    return Artist(id=int(row["id"]), name=row["name"], external_id=row.get("external_id"))


def _track_from_row(row: Mapping[str, Any]) -> Track:
    return Track(
        id=int(row["id"]),
        name=row["name"],
        artist_id=int(row["artist_id"]),
        album=row.get("album"),
        external_id=row.get("external_id"),
    )


class ArtistRepository:
    """Artists keyed by name_key(name)."""

    def __init__(self, executor: IQueryExecutor) -> None:
        self._executor = executor

    async def get_by_name(self, name: str) -> Artist | None:
        """Look up an artist by its folded name."""
        rows = await self._executor.execute(
            "SELECT id, name, external_id FROM artists WHERE name_key = ?", [name_key(name)]
        )
        return _artist_from_row(rows[0]) if rows else None

    async def get_or_create(
        self, name: str, external_id: str | None = None
    ) -> tuple[Artist, bool]:
        """
        Find an artist by name or create it.

        An existing artist without external id gets the incoming one attached;
        its display name is never touched.

        Args:
            name: Artist name as seen in the source
            external_id: Optional foreign-service id (e.g. MusicBrainz)

        Returns:
            Tuple of (artist, was_created)
        """
        existing = await self.get_by_name(name)
        if existing is not None:
            if external_id and not existing.external_id:
                await self._executor.execute(
                    "UPDATE artists SET external_id = ? WHERE id = ? AND external_id IS NULL",
                    [external_id, existing.id],
                )
                existing.external_id = external_id
            return existing, False

        rows = await self._executor.execute(
            "INSERT INTO artists (name, name_key, external_id) VALUES (?, ?, ?) "
            "ON CONFLICT DO NOTHING RETURNING id, name, external_id",
            [name, name_key(name), external_id],
        )
        if rows:
            return _artist_from_row(rows[0]), True

        existing = await self.get_by_name(name)
        if existing is None:
            raise StoreQueryError(f"Artist {name!r} was neither found nor created")
        return existing, False

    async def count(self) -> int:
        """Number of stored artists."""
        rows = await self._executor.execute("SELECT COUNT(*) AS total FROM artists")
        return int(rows[0]["total"]) if rows else 0


class TrackRepository:
    """Tracks keyed by (artist_id, name_key(name))."""

    def __init__(self, executor: IQueryExecutor) -> None:
        self._executor = executor

    async def get_by_name(self, artist_id: int, name: str) -> Track | None:
        """Look up a track of one artist."""
        rows = await self._executor.execute(
            "SELECT id, name, artist_id, album, external_id FROM tracks "
            "WHERE artist_id = ? AND name_key = ?",
            [artist_id, name_key(name)],
        )
        return _track_from_row(rows[0]) if rows else None

    async def get_or_create(
        self,
        artist_id: int,
        name: str,
        album: str | None = None,
        external_id: str | None = None,
    ) -> tuple[Track, bool]:
        """
        Find a track or create it.

        Missing album / external id on an existing track are backfilled.
        Scrobbles already stored are not touched.

        Args:
            artist_id: Owning artist
            name: Track name as seen in the source
            album: Optional album title
            external_id: Optional foreign-service id

        Returns:
            Tuple of (track, was_created)
        """
        existing = await self.get_by_name(artist_id, name)
        if existing is not None:
            await self._backfill(existing, album, external_id)
            return existing, False

        rows = await self._executor.execute(
            "INSERT INTO tracks (name, name_key, artist_id, album, external_id) "
            "VALUES (?, ?, ?, ?, ?) "
            "ON CONFLICT DO NOTHING RETURNING id, name, artist_id, album, external_id",
            [name, name_key(name), artist_id, album, external_id],
        )
        if rows:
            return _track_from_row(rows[0]), True

        existing = await self.get_by_name(artist_id, name)
        if existing is None:
            raise StoreQueryError(f"Track {name!r} was neither found nor created")
        return existing, False

    async def _backfill(
        self, track: Track, album: str | None, external_id: str | None
    ) -> None:
        if album and not track.album:
            await self._executor.execute(
                "UPDATE tracks SET album = ? WHERE id = ? AND album IS NULL", [album, track.id]
            )
            track.album = album
        if external_id and not track.external_id:
            await self._executor.execute(
                "UPDATE tracks SET external_id = ? WHERE id = ? AND external_id IS NULL",
                [external_id, track.id],
            )
            track.external_id = external_id

    async def count(self) -> int:
        """Number of stored tracks."""
        rows = await self._executor.execute("SELECT COUNT(*) AS total FROM tracks")
        return int(rows[0]["total"]) if rows else 0


class ScrobbleRepository:
    """Append-only play events."""

    def __init__(self, executor: IQueryExecutor) -> None:
        self._executor = executor

    async def add(self, scrobble: Scrobble) -> bool:
        """
        Insert a scrobble unless (track_id, played_at) already exists.

        Returns:
            True if a new row was written, False for a duplicate (no error)
        """
        rows = await self._executor.execute(
            "INSERT INTO scrobbles (track_id, artist_id, played_at, source_timestamp, is_live) "
            "VALUES (?, ?, ?, ?, ?) ON CONFLICT DO NOTHING RETURNING id",
            [
                scrobble.track_id,
                scrobble.artist_id,
                scrobble.played_at,
                scrobble.source_timestamp,
                1 if scrobble.is_live else 0,
            ],
        )
        if rows:
            scrobble.id = int(rows[0]["id"])
            return True
        return False

    async def get_high_water_mark(self) -> int | None:
        """
        Newest stored played_at, ignoring live (now playing) rows.

        Hey future me - a now-playing row is stamped with the wall clock at
        sync time, which is LATER than the real scrobble Last.fm reports once
        the song ends. Counting it would make the next incremental sync stop
        right before that real scrobble.
        """
        rows = await self._executor.execute(
            "SELECT MAX(played_at) AS last_timestamp FROM scrobbles WHERE is_live = 0"
        )
        if not rows or rows[0]["last_timestamp"] is None:
            return None
        return int(rows[0]["last_timestamp"])

    async def count(self) -> int:
        """Number of stored scrobbles."""
        rows = await self._executor.execute("SELECT COUNT(*) AS total FROM scrobbles")
        return int(rows[0]["total"]) if rows else 0


class SyncMetadataRepository:
    """Get/set access to the singleton sync_metadata row."""

    def __init__(self, executor: IQueryExecutor) -> None:
        self._executor = executor

    async def ensure(self, now: int) -> None:
        """Create the singleton row if it is missing."""
        await self._executor.execute(
            "INSERT INTO sync_metadata (id, status, total_synced_count, updated_at) "
            "VALUES (?, ?, 0, ?) ON CONFLICT(id) DO NOTHING",
            [SYNC_METADATA_ID, SyncStatus.IDLE.value, now],
        )

    async def get(self) -> SyncMetadata:
        """Read the row; a missing row reads as a fresh idle state."""
        rows = await self._executor.execute(
            "SELECT status, last_successful_sync, total_synced_count, last_error, updated_at "
            "FROM sync_metadata WHERE id = ?",
            [SYNC_METADATA_ID],
        )
        if not rows:
            return SyncMetadata()
        row = rows[0]
        return SyncMetadata(
            status=SyncStatus(row["status"]),
            last_successful_sync=row.get("last_successful_sync"),
            total_synced_count=int(row.get("total_synced_count") or 0),
            last_error=row.get("last_error"),
            updated_at=row.get("updated_at"),
        )

    async def mark_in_progress(self, now: int) -> None:
        """idle/completed/failed -> in_progress."""
        await self.ensure(now)
        await self._executor.execute(
            "UPDATE sync_metadata SET status = ?, updated_at = ? WHERE id = ?",
            [SyncStatus.IN_PROGRESS.value, now, SYNC_METADATA_ID],
        )

    async def mark_completed(self, now: int, processed: int) -> None:
        """in_progress -> completed, advancing the clock and the running total."""
        await self._executor.execute(
            "UPDATE sync_metadata SET status = ?, last_successful_sync = ?, "
            "total_synced_count = total_synced_count + ?, last_error = NULL, updated_at = ? "
            "WHERE id = ?",
            [SyncStatus.COMPLETED.value, now, processed, now, SYNC_METADATA_ID],
        )

    async def mark_failed(self, now: int, error_message: str) -> None:
        """in_progress -> failed, keeping the error for whoever looks next."""
        await self._executor.execute(
            "UPDATE sync_metadata SET status = ?, last_error = ?, updated_at = ? WHERE id = ?",
            [SyncStatus.FAILED.value, error_message, now, SYNC_METADATA_ID],
        )
