"""Tests for scrobble CSV parsing and column detection."""

from pathlib import Path

import pytest

from scrobblestats.domain.dtos import ScrobbleRow
from scrobblestats.domain.exceptions import MissingColumnError
from scrobblestats.domain.value_objects import (
    ScrobbleCsvParser,
    detect_columns,
    normalize_timestamp,
    parse_scrobble_csv,
    split_delimited_line,
)


class TestSplitDelimitedLine:
    """Quote-aware splitting."""

    def test_delimiter_inside_quotes_is_data(self) -> None:
        line = '"Crosby, Stills & Nash","Suite: Judy Blue Eyes",1136073600'
        assert split_delimited_line(line) == [
            "Crosby, Stills & Nash",
            "Suite: Judy Blue Eyes",
            "1136073600",
        ]

    def test_fields_are_trimmed(self) -> None:
        assert split_delimited_line("  Air ,  Talisman  ,x") == ["Air", "Talisman", "x"]

    def test_single_quotes_are_stripped(self) -> None:
        assert split_delimited_line("'Air','Talisman'") == ["Air", "Talisman"]

    def test_custom_delimiter(self) -> None:
        assert split_delimited_line("Air;Talisman;1", delimiter=";") == ["Air", "Talisman", "1"]


class TestDetectColumns:
    """Header role detection."""

    def test_lastfm_export_header(self) -> None:
        headers = [
            "uts", "utc_time", "artist", "artist_mbid", "album", "album_mbid", "track", "track_mbid",
        ]
        mapping = detect_columns(headers)
        assert (mapping.artist, mapping.track, mapping.album, mapping.timestamp) == (2, 6, 4, 0)

    def test_substring_headers(self) -> None:
        mapping = detect_columns(["Artist Name", "Song", "Date Played"])
        assert (mapping.artist, mapping.track, mapping.timestamp) == (0, 1, 2)
        assert mapping.album is None

    def test_name_column_is_not_stolen_by_artist_name(self) -> None:
        mapping = detect_columns(["Artist Name", "Track Name", "Album Name", "Time"])
        assert (mapping.artist, mapping.track, mapping.album, mapping.timestamp) == (0, 1, 2, 3)

    def test_time_substring(self) -> None:
        mapping = detect_columns(["artist", "track", "played_time"], loose=False)
        assert mapping.timestamp == 2

    def test_strict_mode_rejects_date_only_headers(self) -> None:
        with pytest.raises(MissingColumnError) as exc_info:
            detect_columns(["Artist", "Song", "Date Played"], loose=False)
        assert exc_info.value.missing_roles == ["timestamp"]

    def test_missing_columns_error_lists_headers(self) -> None:
        with pytest.raises(MissingColumnError) as exc_info:
            detect_columns(["foo", "bar"])
        error = exc_info.value
        assert error.headers == ["foo", "bar"]
        assert error.missing_roles == ["artist", "track", "timestamp"]
        assert "Found headers: foo, bar" in error.message

    def test_leftmost_match_wins(self) -> None:
        mapping = detect_columns(["artist", "song", "track", "uts"])
        assert mapping.track == 1


class TestScrobbleCsvParser:
    """Row parsing."""

    def test_duplicate_rows_are_all_yielded(self) -> None:
        text = (
            "artist,track,album,uts\n"
            "Boards of Canada,Roygbiv,Music Has the Right to Children,1136073600\n"
            "Boards of Canada,Roygbiv,Music Has the Right to Children,1136073600\n"
        )
        rows = parse_scrobble_csv(text)
        assert rows == [
            ScrobbleRow(
                artist="Boards of Canada",
                track="Roygbiv",
                timestamp="1136073600",
                album="Music Has the Right to Children",
            )
        ] * 2

    def test_substring_header_row_and_iso_timestamp(self) -> None:
        rows = parse_scrobble_csv(
            "Artist Name,Song,Date Played\nAir,La Femme d'Argent,2024-01-15T10:30:00Z\n"
        )
        assert len(rows) == 1
        assert rows[0].artist == "Air"
        assert rows[0].track == "La Femme d'Argent"
        assert rows[0].album is None
        assert normalize_timestamp(rows[0].timestamp) == 1_705_314_600

    def test_rows_without_artist_or_track_are_skipped(self) -> None:
        text = "artist,track,uts\n,Orphan,1600000000\nAir,  ,1600000000\nAir,Talisman,1600000000\n"
        rows = parse_scrobble_csv(text)
        assert [(r.artist, r.track) for r in rows] == [("Air", "Talisman")]

    def test_short_rows_and_blank_lines(self) -> None:
        text = "artist,track,album,uts\n\nAir,Talisman\n"
        rows = parse_scrobble_csv(text)
        assert rows == [ScrobbleRow(artist="Air", track="Talisman", timestamp="", album=None)]

    def test_quoted_fields_with_commas(self) -> None:
        text = 'artist,track,uts\n"Crosby, Stills & Nash","Helplessly Hoping",1600000000\n'
        rows = parse_scrobble_csv(text)
        assert rows[0].artist == "Crosby, Stills & Nash"

    def test_byte_order_mark_is_ignored(self) -> None:
        rows = parse_scrobble_csv("\ufeffartist,track,uts\nAir,Talisman,1600000000\n")
        assert rows[0].artist == "Air"

    def test_empty_text_raises(self) -> None:
        with pytest.raises(MissingColumnError):
            parse_scrobble_csv("")

    def test_tab_delimiter(self) -> None:
        rows = ScrobbleCsvParser(delimiter="\t").parse("artist\ttrack\tuts\nAir\tTalisman\t1\n")
        assert rows[0].track == "Talisman"

    def test_invalid_delimiter(self) -> None:
        with pytest.raises(ValueError):
            ScrobbleCsvParser(delimiter=",,")

    def test_parse_file(self, tmp_path: Path) -> None:
        path = tmp_path / "scrobbles.csv"
        path.write_text("artist,track,uts\nAir,Talisman,1600000000\n", encoding="utf-8")
        assert len(ScrobbleCsvParser().parse_file(path)) == 1
