"""Listening Stats Service - the statistics payload behind the charts page.

Hey future me - every number on the stats page comes from HERE, never from a
router running its own SQL. All queries are read-only and independent of each
other, so get_listening_stats() fires them all at once with asyncio.gather()
(D1 over HTTP is ~50-100ms per query; 14 sequential round-trips would be slow).

Calendar bucketing (day, hour, weekday, decade) is UTC, done by SQLite's
strftime on played_at. Histograms are zero-filled so the frontend always gets
24 hours, 7 weekdays and 7 decades.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from scrobblestats.config import StatsSettings
from scrobblestats.domain.ports import IQueryExecutor, Row

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60

DECADES = ("Pre-1970s", "1970s", "1980s", "1990s", "2000s", "2010s", "2020s")

_DECADE_CASE = """
    CASE
        WHEN CAST(strftime('%Y', played_at, 'unixepoch') AS INTEGER) >= 2020 THEN '2020s'
        WHEN CAST(strftime('%Y', played_at, 'unixepoch') AS INTEGER) >= 2010 THEN '2010s'
        WHEN CAST(strftime('%Y', played_at, 'unixepoch') AS INTEGER) >= 2000 THEN '2000s'
        WHEN CAST(strftime('%Y', played_at, 'unixepoch') AS INTEGER) >= 1990 THEN '1990s'
        WHEN CAST(strftime('%Y', played_at, 'unixepoch') AS INTEGER) >= 1980 THEN '1980s'
        WHEN CAST(strftime('%Y', played_at, 'unixepoch') AS INTEGER) >= 1970 THEN '1970s'
        ELSE 'Pre-1970s'
    END
"""


@dataclass
class ArtistPlays:
    name: str
    play_count: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "play_count": self.play_count}


@dataclass
class TrackPlays:
    name: str
    artist_name: str
    play_count: int

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "artist_name": self.artist_name, "play_count": self.play_count}


@dataclass
class RecentScrobble:
    track_name: str
    artist_name: str
    played_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "track_name": self.track_name,
            "artist_name": self.artist_name,
            "played_at": self.played_at,
        }


@dataclass
class ArtistDiversity:
    """Plays of the top-N artists vs. everybody else (all time)."""

    top10_plays: int = 0
    other_plays: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"top10_plays": self.top10_plays, "other_plays": self.other_plays}


@dataclass
class WindowStats:
    """Numbers for the trailing window (30 days by default)."""

    total_scrobbles: int = 0
    unique_tracks: int = 0
    unique_artists: int = 0
    top_artists: list[ArtistPlays] = field(default_factory=list)
    top_tracks: list[TrackPlays] = field(default_factory=list)
    recent_scrobbles: list[RecentScrobble] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalScrobbles": self.total_scrobbles,
            "uniqueTracks": self.unique_tracks,
            "uniqueArtists": self.unique_artists,
            "topArtists": [a.to_dict() for a in self.top_artists],
            "topTracks": [t.to_dict() for t in self.top_tracks],
            "recentScrobbles": [s.to_dict() for s in self.recent_scrobbles],
        }


@dataclass
class AllTimeStats:
    total_scrobbles: int = 0
    top_artist: ArtistPlays | None = None
    oldest_scrobble: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalScrobbles": self.total_scrobbles,
            "topArtist": self.top_artist.to_dict() if self.top_artist else None,
            "oldestScrobble": self.oldest_scrobble,
        }


@dataclass
class ChartStats:
    listening_by_day: list[dict[str, Any]] = field(default_factory=list)
    listening_by_hour: list[dict[str, int]] = field(default_factory=list)
    listening_by_day_of_week: list[dict[str, int]] = field(default_factory=list)
    artist_diversity: ArtistDiversity = field(default_factory=ArtistDiversity)
    listening_by_decade: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "listeningByDay": self.listening_by_day,
            "listeningByHour": self.listening_by_hour,
            "listeningByDayOfWeek": self.listening_by_day_of_week,
            "artistDiversity": self.artist_diversity.to_dict(),
            "listeningByDecade": self.listening_by_decade,
        }


@dataclass
class ListeningStats:
    """The full payload. to_dict() is the JSON the frontend expects."""

    last_30_days: WindowStats
    all_time: AllTimeStats
    charts: ChartStats

    def to_dict(self) -> dict[str, Any]:
        return {
            "last30Days": self.last_30_days.to_dict(),
            "allTime": self.all_time.to_dict(),
            "charts": self.charts.to_dict(),
        }


def _int(row: Row | None, key: str) -> int:
    if row is None or row.get(key) is None:
        return 0
    return int(row[key])


def _zero_filled(rows: Sequence[Row], key: str, bins: Sequence[Any]) -> list[dict[str, Any]]:
    counts = {row[key]: int(row["count"]) for row in rows}
    return [{key: b, "count": counts.get(b, 0)} for b in bins]


class ListeningStatsService:
    """Read-only aggregations over the scrobble store."""

    def __init__(
        self,
        executor: IQueryExecutor,
        settings: StatsSettings,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize stats service.

        Args:
            executor: Store query executor
            settings: Window sizes and list limits
            clock: Wall clock used to compute window cutoffs
        """
        self._executor = executor
        self._settings = settings
        self._clock = clock

    def cutoff(self, days: int) -> int:
        """Unix seconds of `now - days`."""
        return int(self._clock()) - days * SECONDS_PER_DAY

    async def _one(self, sql: str, params: Sequence[Any] = ()) -> Row | None:
        rows = await self._executor.execute(sql, params)
        return rows[0] if rows else None

    # =========================================================================
    # WINDOWED
    # =========================================================================

    async def count_scrobbles(self, since: int | None = None) -> int:
        """Total plays, optionally only those at or after `since`."""
        if since is None:
            row = await self._one("SELECT COUNT(*) AS total FROM scrobbles")
        else:
            row = await self._one(
                "SELECT COUNT(*) AS total FROM scrobbles WHERE played_at >= ?", [since]
            )
        return _int(row, "total")

    async def count_unique_tracks(self, since: int) -> int:
        row = await self._one(
            "SELECT COUNT(DISTINCT track_id) AS count FROM scrobbles WHERE played_at >= ?",
            [since],
        )
        return _int(row, "count")

    async def count_unique_artists(self, since: int) -> int:
        row = await self._one(
            "SELECT COUNT(DISTINCT artist_id) AS count FROM scrobbles WHERE played_at >= ?",
            [since],
        )
        return _int(row, "count")

    async def get_top_artists(self, since: int | None = None, limit: int = 10) -> list[ArtistPlays]:
        """Most played artists, play count descending, ties by artist id."""
        where = "WHERE s.played_at >= ?" if since is not None else ""
        params: list[Any] = [since] if since is not None else []
        rows = await self._executor.execute(
            f"""
            SELECT a.name AS name, COUNT(*) AS play_count
            FROM scrobbles s
            JOIN artists a ON s.artist_id = a.id
            {where}
            GROUP BY a.id, a.name
            ORDER BY play_count DESC, a.id ASC
            LIMIT ?
            """,
            [*params, limit],
        )
        return [ArtistPlays(name=r["name"], play_count=int(r["play_count"])) for r in rows]

    async def get_top_tracks(self, since: int, limit: int = 10) -> list[TrackPlays]:
        """Most played tracks in the window, annotated with the artist name."""
        rows = await self._executor.execute(
            """
            SELECT t.name AS name, a.name AS artist_name, COUNT(*) AS play_count
            FROM scrobbles s
            JOIN tracks t ON s.track_id = t.id
            JOIN artists a ON t.artist_id = a.id
            WHERE s.played_at >= ?
            GROUP BY t.id, t.name, a.name
            ORDER BY play_count DESC, t.id ASC
            LIMIT ?
            """,
            [since, limit],
        )
        return [
            TrackPlays(
                name=r["name"], artist_name=r["artist_name"], play_count=int(r["play_count"])
            )
            for r in rows
        ]

    async def get_recent_scrobbles(self, limit: int = 20) -> list[RecentScrobble]:
        """Newest plays, not restricted to any window."""
        rows = await self._executor.execute(
            """
            SELECT t.name AS track_name, a.name AS artist_name, s.played_at AS played_at
            FROM scrobbles s
            JOIN tracks t ON s.track_id = t.id
            JOIN artists a ON s.artist_id = a.id
            ORDER BY s.played_at DESC, s.id DESC
            LIMIT ?
            """,
            [limit],
        )
        return [
            RecentScrobble(
                track_name=r["track_name"],
                artist_name=r["artist_name"],
                played_at=int(r["played_at"]),
            )
            for r in rows
        ]

    # =========================================================================
    # ALL TIME
    # =========================================================================

    async def get_top_artist(self) -> ArtistPlays | None:
        """All-time most played artist, or None on an empty store."""
        top = await self.get_top_artists(limit=1)
        return top[0] if top else None

    async def get_oldest_scrobble(self) -> int | None:
        row = await self._one("SELECT MIN(played_at) AS oldest FROM scrobbles")
        if row is None or row.get("oldest") is None:
            return None
        return int(row["oldest"])

    # =========================================================================
    # CHARTS
    # =========================================================================

    async def get_listening_by_day(self, since: int) -> list[dict[str, Any]]:
        """Plays per UTC calendar date since `since`, ascending. Days without plays are absent."""
        rows = await self._executor.execute(
            """
            SELECT date(played_at, 'unixepoch') AS date, COUNT(*) AS count
            FROM scrobbles
            WHERE played_at >= ?
            GROUP BY date
            ORDER BY date ASC
            """,
            [since],
        )
        return [{"date": r["date"], "count": int(r["count"])} for r in rows]

    async def get_listening_by_hour(self) -> list[dict[str, int]]:
        rows = await self._executor.execute(
            """
            SELECT CAST(strftime('%H', played_at, 'unixepoch') AS INTEGER) AS hour,
                   COUNT(*) AS count
            FROM scrobbles
            GROUP BY hour
            """
        )
        return _zero_filled(rows, "hour", range(24))

    async def get_listening_by_day_of_week(self) -> list[dict[str, int]]:
        """0 = Sunday .. 6 = Saturday."""
        rows = await self._executor.execute(
            """
            SELECT CAST(strftime('%w', played_at, 'unixepoch') AS INTEGER) AS day,
                   COUNT(*) AS count
            FROM scrobbles
            GROUP BY day
            """
        )
        return _zero_filled(rows, "day", range(7))

    async def get_artist_diversity(self, top: int = 10) -> ArtistDiversity:
        """
        Split all-time plays into the top-N artists and the rest.

        The two numbers always add up to the all-time total.
        """
        row = await self._one(
            """
            SELECT
                COALESCE(SUM(CASE WHEN rn <= ? THEN play_count ELSE 0 END), 0) AS top10_plays,
                COALESCE(SUM(CASE WHEN rn > ? THEN play_count ELSE 0 END), 0) AS other_plays
            FROM (
                SELECT COUNT(*) AS play_count,
                       ROW_NUMBER() OVER (ORDER BY COUNT(*) DESC, artist_id ASC) AS rn
                FROM scrobbles
                GROUP BY artist_id
            )
            """,
            [top, top],
        )
        return ArtistDiversity(
            top10_plays=_int(row, "top10_plays"), other_plays=_int(row, "other_plays")
        )

    async def get_listening_by_decade(self) -> list[dict[str, Any]]:
        """Plays bucketed by the decade of played_at, chronological."""
        rows = await self._executor.execute(
            f"SELECT {_DECADE_CASE} AS decade, COUNT(*) AS count FROM scrobbles GROUP BY decade"
        )
        return _zero_filled(rows, "decade", DECADES)

    # =========================================================================
    # PAYLOAD
    # =========================================================================

    async def get_listening_stats(self, days: int | None = None) -> ListeningStats:
        """
        Build the full statistics payload.

        Args:
            days: Window for the "last30Days" group (default from settings)

        Returns:
            ListeningStats; call .to_dict() for the JSON shape

        Raises:
            StoreQueryError: If any query fails (no partial payloads)
        """
        window = days if days is not None else self._settings.window_days
        since = self.cutoff(window)
        daily_since = self.cutoff(self._settings.daily_window_days)
        top = self._settings.top_limit

        (
            total,
            unique_tracks,
            unique_artists,
            top_artists,
            top_tracks,
            recent,
            all_time_total,
            top_artist,
            oldest,
            by_day,
            by_hour,
            by_weekday,
            diversity,
            by_decade,
        ) = await asyncio.gather(
            self.count_scrobbles(since),
            self.count_unique_tracks(since),
            self.count_unique_artists(since),
            self.get_top_artists(since, limit=top),
            self.get_top_tracks(since, limit=top),
            self.get_recent_scrobbles(limit=self._settings.recent_limit),
            self.count_scrobbles(),
            self.get_top_artist(),
            self.get_oldest_scrobble(),
            self.get_listening_by_day(daily_since),
            self.get_listening_by_hour(),
            self.get_listening_by_day_of_week(),
            self.get_artist_diversity(top),
            self.get_listening_by_decade(),
        )

        logger.debug(f"Computed listening stats for a {window}-day window ({all_time_total} plays)")
        return ListeningStats(
            last_30_days=WindowStats(
                total_scrobbles=total,
                unique_tracks=unique_tracks,
                unique_artists=unique_artists,
                top_artists=top_artists,
                top_tracks=top_tracks,
                recent_scrobbles=recent,
            ),
            all_time=AllTimeStats(
                total_scrobbles=all_time_total, top_artist=top_artist, oldest_scrobble=oldest
            ),
            charts=ChartStats(
                listening_by_day=by_day,
                listening_by_hour=by_hour,
                listening_by_day_of_week=by_weekday,
                artist_diversity=diversity,
                listening_by_decade=by_decade,
            ),
        )
