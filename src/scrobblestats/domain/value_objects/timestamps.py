"""Timestamp normalization for scrobble sources.

Hey future me - every played_at in the store is whole unix SECONDS. Sources
hand us anything: Last.fm `uts` seconds, millisecond exports from other
scrobblers, ISO strings, "31 Dec 2023, 23:59" from the Last.fm CSV export.

Order matters (first match wins):
1. integer in (1_000_000_000, 2_000_000_000)   -> already seconds (2001..2033)
2. integer > 10_000_000_000                     -> milliseconds, floor-divide by 1000
3. integer in [2_000_000_000, 10_000_000_000]   -> seconds, but logged as suspicious
4. anything else                                 -> calendar date parsing (UTC if naive)
5. nothing worked                                -> wall clock NOW + warning

Step 5 is lossy on purpose: one garbage cell must not block a 100k-row import.
"""

import logging
import math
import re
import time
from collections.abc import Callable
from datetime import UTC, datetime

logger = logging.getLogger(__name__)

MIN_PLAUSIBLE_SECONDS = 1_000_000_000
MAX_PLAUSIBLE_SECONDS = 2_000_000_000
MILLISECONDS_THRESHOLD = 10_000_000_000

_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")

# Formats seen in real exports that datetime.fromisoformat() does not cover.
_CALENDAR_FORMATS = (
    "%d %b %Y, %H:%M",  # Last.fm export utc_time: "31 Dec 2023, 23:59"
    "%d %b %Y %H:%M",
    "%d %B %Y, %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%Y-%m",
    "%Y",
)


def current_unix_seconds(clock: Callable[[], float] = time.time) -> int:
    """Return the current wall-clock time in whole unix seconds."""
    return int(clock())


def parse_calendar_date(token: str) -> datetime | None:
    """
    Parse a calendar date/time string into an aware datetime.

    Naive values are interpreted as UTC.

    Args:
        token: ISO-8601 string or one of the known export formats

    Returns:
        Aware datetime, or None if no format matched
    """
    text = token.strip()
    if not text:
        return None

    iso_text = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    parsed: datetime | None
    try:
        parsed = datetime.fromisoformat(iso_text)
    except ValueError:
        parsed = None

    if parsed is None:
        for fmt in _CALENDAR_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def normalize_timestamp(
    token: str | int | None,
    clock: Callable[[], float] = time.time,
) -> int:
    """
    Convert an arbitrary timestamp token into unix seconds.

    Args:
        token: Raw value from a CSV cell or API payload
        clock: Wall-clock source for the fallback (injectable for tests)

    Returns:
        Unix seconds as int (never milliseconds, never fractional)
    """
    text = "" if token is None else str(token).strip()

    if _INTEGER_PATTERN.match(text):
        value = int(text)
        if MIN_PLAUSIBLE_SECONDS < value < MAX_PLAUSIBLE_SECONDS:
            return value
        if value > MILLISECONDS_THRESHOLD:
            return value // 1000
        if value >= MAX_PLAUSIBLE_SECONDS:
            logger.warning(
                f"Timestamp {value} is beyond 2033 but too small for milliseconds; "
                "keeping it as unix seconds"
            )
            return value
        # Small integers (e.g. a bare year "2024") get a chance as calendar dates

    parsed = parse_calendar_date(text)
    if parsed is not None:
        return math.floor(parsed.timestamp())

    fallback = current_unix_seconds(clock)
    logger.warning(f"Could not parse timestamp: {text!r}, using current time {fallback}")
    return fallback
