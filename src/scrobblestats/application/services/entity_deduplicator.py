"""Entity Deduplicator Service.

Hey future me - this is the IN-MEMORY half of deduplication. It folds one
batch of rows into artists and tracks with run-local ids:

    "Daft Punk" / "daft punk"       -> one artist, casing of the first row
    "Björk" / "BJÖRK"               -> same, the fold is name_key() (casefold)
    ("Daft Punk", "One More Time")  -> one track per (artist, name) pair

Ids are assigned 1, 2, 3... in first-seen order so regenerating an export from
the same file gives the same script. Cross-run stability is NOT this class's
job - the store's find-or-create (repositories.py) handles that.

Usage:
    dedup = EntityDeduplicator()
    for row in rows:
        artist_id, track_id = dedup.add(row.artist, row.track, row.album)
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from scrobblestats.domain.dtos import ScrobbleRow
from scrobblestats.domain.value_objects.names import name_key

logger = logging.getLogger(__name__)


@dataclass
class DedupedArtist:
    """Artist as first seen in the batch."""

    id: int
    name: str


@dataclass
class DedupedTrack:
    """Track as first seen in the batch. album is backfilled by later rows."""

    id: int
    name: str
    artist_id: int
    album: str | None = None


@dataclass
class DeduplicationResult:
    """Distinct entities plus, per input row, the (artist_id, track_id) pair."""

    artists: list[DedupedArtist] = field(default_factory=list)
    tracks: list[DedupedTrack] = field(default_factory=list)
    assignments: list[tuple[int, int]] = field(default_factory=list)


class EntityDeduplicator:
    """Assigns stable, case-insensitive ids to artists and tracks of one batch."""

    def __init__(self) -> None:
        self._artists: dict[str, DedupedArtist] = {}
        self._tracks: dict[tuple[str, str], DedupedTrack] = {}

    @property
    def artists(self) -> list[DedupedArtist]:
        """Distinct artists in id order."""
        return list(self._artists.values())

    @property
    def tracks(self) -> list[DedupedTrack]:
        """Distinct tracks in id order."""
        return list(self._tracks.values())

    def artist_id(self, name: str) -> int:
        """Id for an artist name, creating it on first sight."""
        key = name_key(name)
        artist = self._artists.get(key)
        if artist is None:
            artist = DedupedArtist(id=len(self._artists) + 1, name=name)
            self._artists[key] = artist
        return artist.id

    def add(self, artist: str, track: str, album: str | None = None) -> tuple[int, int]:
        """
        Fold one row into the batch.

        Args:
            artist: Artist display name
            track: Track display name
            album: Optional album, kept only if the track has none yet

        Returns:
            (artist_id, track_id)
        """
        artist_id = self.artist_id(artist)
        key = (name_key(artist), name_key(track))
        existing = self._tracks.get(key)
        if existing is None:
            existing = DedupedTrack(
                id=len(self._tracks) + 1, name=track, artist_id=artist_id, album=album
            )
            self._tracks[key] = existing
        elif album and not existing.album:
            existing.album = album
        return artist_id, existing.id

    @classmethod
    def deduplicate(cls, rows: Iterable[ScrobbleRow]) -> DeduplicationResult:
        """Run a whole row sequence through a fresh deduplicator."""
        dedup = cls()
        assignments = [dedup.add(row.artist, row.track, row.album) for row in rows]
        logger.debug(
            "Deduplicated %d rows into %d artists and %d tracks",
            len(assignments),
            len(dedup._artists),
            len(dedup._tracks),
        )
        return DeduplicationResult(
            artists=dedup.artists, tracks=dedup.tracks, assignments=assignments
        )
