"""CSV parsing for scrobble history exports.

Hey future me - this turns "whatever CSV the user exported" into ScrobbleRow
objects. We never know the column names up front, so the header row is scanned
for role keywords:

    artist    : "artist"
    track     : "track", "song", "name"
    album     : "album"                       (optional)
    timestamp : "uts", "utc_time", "*time*"   (+ "*date*", "*played*" when loose)

Each role is resolved in two passes, exact header match first and substring
match second, leftmost header wins inside a pass. A header claimed by one role
is never reused by a later one - otherwise "Artist Name" would be picked up as
the TRACK column because it contains "name".

Usage:
    parser = ScrobbleCsvParser(delimiter=",")
    rows = parser.parse(Path("scrobbles.csv").read_text(encoding="utf-8"))
"""

import csv
import io
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from scrobblestats.domain.dtos import ScrobbleRow
from scrobblestats.domain.exceptions import MissingColumnError

logger = logging.getLogger(__name__)

_QUOTES = "\"'"

ARTIST_KEYWORDS = ("artist",)
TRACK_KEYWORDS = ("track", "song", "name")
ALBUM_KEYWORDS = ("album",)
TIMESTAMP_EXACT_KEYWORDS = ("uts", "utc_time")
TIMESTAMP_SUBSTRING_KEYWORDS = ("time",)
TIMESTAMP_LOOSE_KEYWORDS = ("date", "played")


@dataclass(frozen=True)
class ColumnMapping:
    """Resolved column index per role."""

    artist: int
    track: int
    timestamp: int
    album: int | None = None


def clean_field(value: str) -> str:
    """Trim whitespace and one layer of surrounding quotes."""
    text = value.strip()
    if text[:1] in _QUOTES:
        text = text[1:]
    if text[-1:] in _QUOTES:
        text = text[:-1]
    return text.strip()


def split_delimited_line(line: str, delimiter: str = ",") -> list[str]:
    """
    Split one delimited line, keeping delimiters inside double quotes as data.

    Args:
        line: Raw line without trailing newline
        delimiter: Single-character field separator

    Returns:
        Cleaned field values
    """
    fields = next(csv.reader([line], delimiter=delimiter, quotechar='"'), [])
    return [clean_field(value) for value in fields]


def _find_header(
    headers: list[str],
    exact: tuple[str, ...],
    substrings: tuple[str, ...],
    claimed: set[int],
) -> int | None:
    for index, header in enumerate(headers):
        if index not in claimed and header in exact:
            return index
    for index, header in enumerate(headers):
        if index not in claimed and any(keyword in header for keyword in substrings):
            return index
    return None


def detect_columns(headers: list[str], loose: bool = True) -> ColumnMapping:
    """
    Resolve the artist/track/album/timestamp columns from a header row.

    Args:
        headers: Header cells as they appear in the file
        loose: Also accept "date"/"played" headers for the timestamp role

    Returns:
        ColumnMapping with the chosen indexes

    Raises:
        MissingColumnError: If artist, track or timestamp cannot be resolved
    """
    normalized = [clean_field(header).lower() for header in headers]
    claimed: set[int] = set()

    def claim(index: int | None) -> int | None:
        if index is not None:
            claimed.add(index)
        return index

    artist = claim(_find_header(normalized, ARTIST_KEYWORDS, ARTIST_KEYWORDS, claimed))
    track = claim(_find_header(normalized, TRACK_KEYWORDS, TRACK_KEYWORDS, claimed))
    album = claim(_find_header(normalized, ALBUM_KEYWORDS, ALBUM_KEYWORDS, claimed))
    timestamp_substrings = TIMESTAMP_SUBSTRING_KEYWORDS
    if loose:
        timestamp_substrings += TIMESTAMP_LOOSE_KEYWORDS
    timestamp = claim(
        _find_header(normalized, TIMESTAMP_EXACT_KEYWORDS, timestamp_substrings, claimed)
    )

    missing = [
        role
        for role, index in (("artist", artist), ("track", track), ("timestamp", timestamp))
        if index is None
    ]
    if artist is None or track is None or timestamp is None:
        raise MissingColumnError(normalized, missing)

    logger.debug(
        f"Column indexes - artist: {artist}, track: {track}, "
        f"album: {album}, timestamp: {timestamp}"
    )
    return ColumnMapping(artist=artist, track=track, timestamp=timestamp, album=album)


class ScrobbleCsvParser:
    """Parses a scrobble CSV export into ScrobbleRow objects."""

    def __init__(self, delimiter: str = ",", loose: bool = True) -> None:
        """
        Initialize parser.

        Args:
            delimiter: Single-character field separator
            loose: Use the looser timestamp header detection
        """
        if len(delimiter) != 1:
            raise ValueError("delimiter must be a single character")
        self.delimiter = delimiter
        self.loose = loose

    def iter_rows(self, text: str) -> Iterator[ScrobbleRow]:
        """
        Yield rows in file order, skipping rows without artist or track.

        Raises:
            MissingColumnError: If the header lacks a required role
        """
        reader = csv.reader(
            io.StringIO(text.lstrip("\ufeff")), delimiter=self.delimiter, quotechar='"'
        )
        header = next((line for line in reader if line), None)
        if header is None:
            raise MissingColumnError([], ["artist", "track", "timestamp"])
        columns = detect_columns(header, loose=self.loose)

        for line in reader:
            if not line:
                continue
            values = [clean_field(value) for value in line]

            def cell(index: int | None) -> str:
                if index is None or index >= len(values):
                    return ""
                return values[index]

            artist = cell(columns.artist)
            track = cell(columns.track)
            if not artist or not track:
                continue
            yield ScrobbleRow(
                artist=artist,
                track=track,
                timestamp=cell(columns.timestamp),
                album=cell(columns.album) or None,
            )

    def parse(self, text: str) -> list[ScrobbleRow]:
        """Parse the whole text into a list of rows."""
        return list(self.iter_rows(text))

    def parse_file(self, path: Path | str) -> list[ScrobbleRow]:
        """Read a UTF-8 file and parse it."""
        return self.parse(Path(path).read_text(encoding="utf-8"))


def parse_scrobble_csv(text: str, delimiter: str = ",", loose: bool = True) -> list[ScrobbleRow]:
    """Convenience wrapper around ScrobbleCsvParser.parse()."""
    return ScrobbleCsvParser(delimiter=delimiter, loose=loose).parse(text)
