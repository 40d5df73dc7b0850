"""Tests for the now playing summaries."""

import re
from unittest.mock import AsyncMock

from pytest_httpx import HTTPXMock
from scrobble_source_fakes import FakeScrobbleSource, event

from scrobblestats.application.services import FALLBACK_SUMMARIES, NowPlayingService
from scrobblestats.config import LastfmSettings
from scrobblestats.domain.exceptions import LastfmApiError
from scrobblestats.infrastructure.integrations import LastfmClient


class TestNowPlayingService:
    """Summary lines and fallback."""

    async def test_live_and_recent_lines(self) -> None:
        source = FakeScrobbleSource(
            [
                [
                    event("Air", "Talisman", None, is_live=True),
                    event("Moby", "Porcelain", 1_600_000_300),
                    event("Boards of Canada", "Roygbiv", 1_600_000_200),
                    event("Daft Punk", "Aerodynamic", 1_600_000_100),
                ]
            ]
        )

        lines = await NowPlayingService(source).get_summaries(limit=3)

        assert lines == [
            "now playing: Air - Talisman",
            "recently played: Moby - Porcelain",
            "recently played: Boards of Canada - Roygbiv",
        ]
        assert source.requested == [(1, 3)]

    async def test_source_error_returns_fallback(self) -> None:
        source = AsyncMock()
        source.get_recent_tracks.side_effect = LastfmApiError("User not found", error_code=6)

        assert await NowPlayingService(source).get_summaries() == FALLBACK_SUMMARIES

    async def test_malformed_page_returns_fallback(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            url=re.compile(r"https://lastfm\.test/2\.0/.*"), json={"recenttracks": ["unexpected"]}
        )
        settings = LastfmSettings(
            api_key="test-key", username="tester", api_url="https://lastfm.test/2.0/"
        )

        async with LastfmClient(settings) as client:
            lines = await NowPlayingService(client).get_summaries()

        assert lines == FALLBACK_SUMMARIES

    async def test_empty_history_returns_fallback(self) -> None:
        lines = await NowPlayingService(FakeScrobbleSource([[]])).get_summaries()
        assert lines == ["spinning records", "new music finds"]
