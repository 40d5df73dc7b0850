"""Test doubles for the scrobble source port."""

from scrobblestats.domain.dtos import RecentTrackEvent, RecentTracksPage
from scrobblestats.domain.exceptions import ExternalServiceError
from scrobblestats.domain.ports import IScrobbleSource


def event(
    artist: str,
    track: str,
    timestamp: int | str | None,
    *,
    album: str | None = None,
    is_live: bool = False,
    external_id: str | None = None,
) -> RecentTrackEvent:
    return RecentTrackEvent(
        name=track,
        artist_name=artist,
        timestamp_token=None if timestamp is None else str(timestamp),
        album=album,
        external_id=external_id,
        is_live=is_live,
    )


class FakeScrobbleSource(IScrobbleSource):
    """Serves pre-built pages, newest first, and records which pages were asked for."""

    def __init__(
        self,
        pages: list[list[RecentTrackEvent]],
        fail_on_page: int | None = None,
        total_pages: int | None = None,
    ) -> None:
        self.pages = pages
        self.fail_on_page = fail_on_page
        self.total_pages = len(pages) if total_pages is None else total_pages
        self.requested: list[tuple[int, int]] = []

    async def get_recent_tracks(self, page: int = 1, limit: int = 200) -> RecentTracksPage:
        self.requested.append((page, limit))
        if page == self.fail_on_page:
            raise ExternalServiceError("Last.fm", "boom", status_code=500)
        events = self.pages[page - 1] if page <= len(self.pages) else []
        return RecentTracksPage(
            events=list(events),
            page=page,
            total_pages=self.total_pages,
            total_events=sum(len(p) for p in self.pages),
        )

    @property
    def requested_pages(self) -> list[int]:
        return [page for page, _ in self.requested]
