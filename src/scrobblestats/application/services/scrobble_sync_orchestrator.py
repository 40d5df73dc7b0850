"""Incremental scrobble sync from a paginated source into the store.

Hey future me - the source returns events NEWEST FIRST, page 1 first. That is
what makes the resume logic work: the first event at or before the stored
high-water mark means everything after it (on this page and all later pages)
is already in the store, so we stop right there.

Flow per run:
    start (status -> in_progress) -> high-water mark -> page 1..N -> complete
                                                    \\-> any unhandled error -> failed, re-raise

Pages are fetched strictly one after another with a small delay in between.
Do NOT gather() them - ordering is the resume correctness, and Last.fm
rate-limits anyway.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from scrobblestats.application.services.sync_status import SyncStatusTracker
from scrobblestats.config import SyncSettings
from scrobblestats.domain.dtos import RecentTrackEvent
from scrobblestats.domain.entities import Scrobble
from scrobblestats.domain.ports import IQueryExecutor, IScrobbleSource
from scrobblestats.domain.value_objects import current_unix_seconds, normalize_timestamp
from scrobblestats.infrastructure.observability import set_run_id
from scrobblestats.infrastructure.persistence.repositories import (
    ArtistRepository,
    ScrobbleRepository,
    TrackRepository,
)

logger = logging.getLogger(__name__)

STOP_RESUME_BOUNDARY = "resume_boundary"
STOP_LAST_PAGE = "last_page"
STOP_EMPTY_PAGE = "empty_page"
STOP_MAX_PAGES = "max_pages"


@dataclass
class SyncResult:
    """Outcome of one sync run."""

    processed: int = 0
    inserted: int = 0
    errors: int = 0
    pages_fetched: int = 0
    stop_reason: str = ""
    high_water_mark: int | None = None

    @property
    def duplicates(self) -> int:
        """Processed events whose scrobble already existed."""
        return self.processed - self.inserted

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "inserted": self.inserted,
            "duplicates": self.duplicates,
            "errors": self.errors,
            "pages_fetched": self.pages_fetched,
            "stop_reason": self.stop_reason,
            "high_water_mark": self.high_water_mark,
        }


def _source_timestamp(event: RecentTrackEvent, played_at: int) -> int:
    """Raw source value when it is numeric, else the normalized one."""
    token = (event.timestamp_token or "").strip()
    try:
        return int(token)
    except ValueError:
        return played_at


class ScrobbleSyncOrchestrator:
    """Merges new play events from an IScrobbleSource into the store."""

    def __init__(
        self,
        source: IScrobbleSource,
        executor: IQueryExecutor,
        settings: SyncSettings,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            source: Paginated play-event source (Last.fm client in production)
            executor: Store query executor
            settings: Page budget, page size, delay and resume defaults
            clock: Wall clock (injectable for tests)
            sleep: Inter-page pause (injectable for tests)
        """
        self._source = source
        self._settings = settings
        self._clock = clock
        self._sleep = sleep
        self._artists = ArtistRepository(executor)
        self._tracks = TrackRepository(executor)
        self._scrobbles = ScrobbleRepository(executor)
        self._status = SyncStatusTracker(executor, settings.stale_after_seconds, clock)

    async def sync(
        self,
        max_pages: int | None = None,
        incremental: bool | None = None,
        force: bool = False,
    ) -> SyncResult:
        """
        Run one sync.

        Args:
            max_pages: Page budget for this run (default from settings)
            incremental: Stop at the high-water mark (default from settings)
            force: Start even if another run seems to be in progress

        Returns:
            Counters and the reason the run stopped

        Raises:
            SyncAlreadyRunningError: If another run holds the status row
            ExternalServiceError: If a page cannot be fetched (status -> failed)
            StoreQueryError: If a run-level store query fails (status -> failed)
        """
        page_budget = max_pages if max_pages is not None else self._settings.max_pages
        if incremental is None:
            incremental = self._settings.incremental

        run_id = set_run_id()
        await self._status.start(force=force)
        result = SyncResult()
        logger.info(
            f"Sync {run_id} started (max_pages={page_budget}, incremental={incremental})"
        )

        try:
            result.high_water_mark = await self._scrobbles.get_high_water_mark()
            if result.high_water_mark is None:
                logger.info("Store has no scrobbles yet, running a full initial sync")
            boundary = result.high_water_mark if incremental else None
            await self._run_pages(result, boundary, page_budget)
            await self._status.complete(result.processed)
        except BaseException as e:
            # Includes CancelledError: Ctrl-C under asyncio.run() cancels the task,
            # and the row must not sit in_progress until it goes stale.
            logger.error(f"Sync {run_id} failed after {result.processed} events: {e}", exc_info=True)
            await self._status.fail(e)
            raise

        logger.info(
            f"Sync {run_id} completed: {result.processed} processed "
            f"({result.inserted} new), {result.errors} errors, "
            f"{result.pages_fetched} pages, stopped on {result.stop_reason}"
        )
        return result

    async def _run_pages(self, result: SyncResult, boundary: int | None, page_budget: int) -> None:
        page = 1
        while True:
            if page > page_budget:
                result.stop_reason = STOP_MAX_PAGES
                return

            data = await self._source.get_recent_tracks(page=page, limit=self._settings.page_size)
            result.pages_fetched += 1
            logger.debug(
                f"Page {page}/{data.total_pages}: {len(data.events)} events "
                f"({data.total_events} total)"
            )

            if not data.events:
                result.stop_reason = STOP_EMPTY_PAGE
                return

            if await self._process_page(result, data.events, boundary):
                result.stop_reason = STOP_RESUME_BOUNDARY
                return
            if page >= data.total_pages:
                result.stop_reason = STOP_LAST_PAGE
                return
            if page >= page_budget:
                result.stop_reason = STOP_MAX_PAGES
                return

            await self._sleep(self._settings.page_delay_seconds)
            page += 1

    async def _process_page(
        self, result: SyncResult, events: list[RecentTrackEvent], boundary: int | None
    ) -> bool:
        """Process events in page order. Returns True when the resume boundary was hit."""
        for event in events:
            try:
                played_at = self._played_at(event)
                if boundary is not None and played_at <= boundary:
                    logger.info(
                        f"Reached already synced scrobble at {played_at} "
                        f"(high-water mark {boundary}), stopping"
                    )
                    return True
                inserted = await self._store_event(event, played_at)
            except Exception as e:
                result.errors += 1
                logger.error(
                    f"Failed to process scrobble {event.artist_name!r} - {event.name!r}: {e}"
                )
                continue

            result.processed += 1
            if inserted:
                result.inserted += 1
        return False

    def _played_at(self, event: RecentTrackEvent) -> int:
        # The now-playing entry has no date yet; it is stamped with the wall clock.
        if event.is_live and not event.timestamp_token:
            return current_unix_seconds(self._clock)
        return normalize_timestamp(event.timestamp_token, clock=self._clock)

    async def _store_event(self, event: RecentTrackEvent, played_at: int) -> bool:
        artist_name = event.artist_name.strip()
        track_name = event.name.strip()
        if not artist_name or not track_name:
            raise ValueError("event has no artist or track name")

        artist, _ = await self._artists.get_or_create(artist_name, event.artist_external_id)
        track, _ = await self._tracks.get_or_create(
            artist.id, track_name, album=event.album, external_id=event.external_id
        )
        return await self._scrobbles.add(
            Scrobble(
                track_id=track.id,
                artist_id=artist.id,
                played_at=played_at,
                source_timestamp=_source_timestamp(event, played_at),
                is_live=event.is_live,
            )
        )
