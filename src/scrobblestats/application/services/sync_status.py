"""SyncMetadata lifecycle shared by the API sync and the CSV import."""

import logging
import time
from collections.abc import Callable

from scrobblestats.domain.entities import SyncMetadata
from scrobblestats.domain.exceptions import SyncAlreadyRunningError
from scrobblestats.domain.ports import IQueryExecutor
from scrobblestats.infrastructure.persistence.repositories import SyncMetadataRepository

logger = logging.getLogger(__name__)


class SyncStatusTracker:
    """Moves the singleton status row idle -> in_progress -> completed/failed.

    Hey future me - there is no real lock. start() refuses to run while another
    run holds in_progress, unless that run has not touched the row for
    stale_after_seconds (it crashed without reaching complete()/fail()).
    """

    def __init__(
        self,
        executor: IQueryExecutor,
        stale_after_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._repo = SyncMetadataRepository(executor)
        self._stale_after = stale_after_seconds
        self._clock = clock

    def now(self) -> int:
        return int(self._clock())

    async def current(self) -> SyncMetadata:
        return await self._repo.get()

    async def start(self, force: bool = False) -> None:
        """
        Claim the status row for a new run.

        Raises:
            SyncAlreadyRunningError: If another live run holds in_progress
        """
        now = self.now()
        if not force:
            meta = await self._repo.get()
            if meta.is_running and not meta.is_stale(now, self._stale_after):
                raise SyncAlreadyRunningError(meta.updated_at)
            if meta.is_running:
                logger.warning(
                    "Taking over stale in_progress status (last update %s)", meta.updated_at
                )
        await self._repo.mark_in_progress(now)

    async def complete(self, processed: int) -> None:
        await self._repo.mark_completed(self.now(), processed)

    async def fail(self, error: BaseException) -> None:
        """
        Record a failed run.

        Best effort: if the status write itself fails we only log it, so the
        caller re-raises the ORIGINAL error instead of the bookkeeping one.
        """
        message = str(error) or type(error).__name__
        try:
            await self._repo.mark_failed(self.now(), message)
        except Exception:
            logger.exception("Could not record failed sync status")
