"""Value objects and pure parsing helpers."""

from scrobblestats.domain.value_objects.names import name_key
from scrobblestats.domain.value_objects.scrobble_csv import (
    ColumnMapping,
    ScrobbleCsvParser,
    detect_columns,
    parse_scrobble_csv,
    split_delimited_line,
)
from scrobblestats.domain.value_objects.timestamps import (
    current_unix_seconds,
    normalize_timestamp,
    parse_calendar_date,
)

__all__ = [
    "ColumnMapping",
    "ScrobbleCsvParser",
    "current_unix_seconds",
    "detect_columns",
    "name_key",
    "normalize_timestamp",
    "parse_calendar_date",
    "parse_scrobble_csv",
    "split_delimited_line",
]
