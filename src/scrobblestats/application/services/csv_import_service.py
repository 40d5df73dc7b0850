"""CSV import into the scrobble store.

Hey future me - the import is the same three steps as the offline export,
only against the live store:

1. parse + normalize the whole file in memory (column detection errors abort
   BEFORE we touch the status row)
2. fold rows through EntityDeduplicator so each distinct artist/track hits the
   store's find-or-create exactly once (a 50k-row export usually has ~5k tracks)
3. insert every scrobble with ignore-on-conflict, so re-importing the same
   file is a no-op
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from scrobblestats.application.services.entity_deduplicator import EntityDeduplicator
from scrobblestats.application.services.sync_status import SyncStatusTracker
from scrobblestats.config import ImportSettings
from scrobblestats.domain.dtos import ScrobbleRow
from scrobblestats.domain.entities import Scrobble
from scrobblestats.domain.ports import IQueryExecutor
from scrobblestats.domain.value_objects import ScrobbleCsvParser, normalize_timestamp
from scrobblestats.infrastructure.observability import set_run_id
from scrobblestats.infrastructure.persistence.repositories import (
    ArtistRepository,
    ScrobbleRepository,
    TrackRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Outcome of one CSV import."""

    rows: int = 0
    processed: int = 0
    inserted: int = 0
    errors: int = 0
    artists: int = 0
    tracks: int = 0

    @property
    def duplicates(self) -> int:
        return self.processed - self.inserted

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": self.rows,
            "processed": self.processed,
            "inserted": self.inserted,
            "duplicates": self.duplicates,
            "errors": self.errors,
            "artists": self.artists,
            "tracks": self.tracks,
        }


class CsvImportService:
    """Imports scrobble CSV exports through the IQueryExecutor port."""

    def __init__(
        self,
        executor: IQueryExecutor,
        settings: ImportSettings,
        stale_after_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._clock = clock
        self._artists = ArtistRepository(executor)
        self._tracks = TrackRepository(executor)
        self._scrobbles = ScrobbleRepository(executor)
        self._status = SyncStatusTracker(executor, stale_after_seconds, clock)

    def parse_file(self, path: Path | str) -> list[ScrobbleRow]:
        """
        Parse a CSV file with the configured delimiter.

        Raises:
            MissingColumnError: If artist, track or timestamp cannot be detected
        """
        parser = ScrobbleCsvParser(
            delimiter=self._settings.delimiter,
            loose=self._settings.loose_timestamp_detection,
        )
        return parser.parse_file(path)

    async def import_file(self, path: Path | str, force: bool = False) -> ImportResult:
        """Parse then import one file."""
        rows = self.parse_file(path)
        logger.info(f"Parsed {len(rows)} rows from {path}")
        return await self.import_rows(rows, force=force)

    async def import_rows(self, rows: list[ScrobbleRow], force: bool = False) -> ImportResult:
        """
        Import parsed rows.

        Args:
            rows: Parsed CSV rows (timestamps still raw)
            force: Start even if another run seems to be in progress

        Returns:
            Counters of the run

        Raises:
            SyncAlreadyRunningError: If another run holds the status row
            StoreQueryError: If a run-level store query fails (status -> failed)
        """
        run_id = set_run_id()
        await self._status.start(force=force)
        result = ImportResult(rows=len(rows))
        logger.info(f"Import {run_id} started with {len(rows)} rows")

        try:
            await self._import(rows, result)
            await self._status.complete(result.processed)
        except BaseException as e:
            logger.error(f"Import {run_id} failed after {result.processed} rows: {e}", exc_info=True)
            await self._status.fail(e)
            raise

        logger.info(
            f"Import {run_id} completed: {result.processed} processed "
            f"({result.inserted} new), {result.errors} errors"
        )
        return result

    async def _import(self, rows: list[ScrobbleRow], result: ImportResult) -> None:
        dedup = EntityDeduplicator.deduplicate(rows)
        result.artists = len(dedup.artists)
        result.tracks = len(dedup.tracks)

        # Batch-local id -> store id. A failed find-or-create leaves the key out,
        # and every row pointing at it is counted as an error below.
        artist_ids: dict[int, int] = {}
        for artist in dedup.artists:
            try:
                stored, _ = await self._artists.get_or_create(artist.name)
                artist_ids[artist.id] = stored.id
            except Exception as e:
                logger.error(f"Failed to store artist {artist.name!r}: {e}")

        track_ids: dict[int, int] = {}
        for track in dedup.tracks:
            store_artist_id = artist_ids.get(track.artist_id)
            if store_artist_id is None:
                continue
            try:
                stored_track, _ = await self._tracks.get_or_create(
                    store_artist_id, track.name, album=track.album
                )
                track_ids[track.id] = stored_track.id
            except Exception as e:
                logger.error(f"Failed to store track {track.name!r}: {e}")

        every = max(1, self._settings.progress_every)
        for index, (row, (artist_id, track_id)) in enumerate(
            zip(rows, dedup.assignments, strict=True), start=1
        ):
            try:
                store_artist_id = artist_ids.get(artist_id)
                store_track_id = track_ids.get(track_id)
                if store_artist_id is None or store_track_id is None:
                    raise LookupError("artist or track could not be stored")
                played_at = normalize_timestamp(row.timestamp, clock=self._clock)
                inserted = await self._scrobbles.add(
                    Scrobble(
                        track_id=store_track_id,
                        artist_id=store_artist_id,
                        played_at=played_at,
                        source_timestamp=played_at,
                    )
                )
            except Exception as e:
                result.errors += 1
                logger.error(f"Failed to import row {index} ({row.artist!r} - {row.track!r}): {e}")
                continue

            result.processed += 1
            if inserted:
                result.inserted += 1
            if index % every == 0:
                logger.info(f"Processed {index}/{len(rows)} rows")
