"""Offline SQL dump of a CSV export, for bulk loading into the hosted store.

Hey future me - one INSERT per row over the D1 HTTP API takes hours for a big
export; `wrangler d1 execute --file dump.sql` takes seconds. The dump uses
explicit ids in first-seen order, so it is only meant for an EMPTY store
(artists/tracks would collide otherwise). Scrobbles use INSERT OR IGNORE so
duplicate rows inside the file collapse the same way the live import does.
"""

import logging
import time
from collections.abc import Callable, Iterator
from datetime import UTC, datetime

from scrobblestats.application.services.entity_deduplicator import EntityDeduplicator
from scrobblestats.domain.dtos import ScrobbleRow
from scrobblestats.domain.entities import SyncStatus
from scrobblestats.domain.value_objects import name_key, normalize_timestamp
from scrobblestats.infrastructure.persistence.models import SYNC_METADATA_ID
from scrobblestats.infrastructure.persistence.schema import schema_statements

logger = logging.getLogger(__name__)


def sql_literal(value: str | int | None) -> str:
    """Render a SQL literal; strings get single quotes doubled."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    return "'" + value.replace("'", "''") + "'"


def build_sql_dump(
    rows: list[ScrobbleRow],
    generated_at: int | None = None,
    include_schema: bool = False,
    clock: Callable[[], float] = time.time,
) -> Iterator[str]:
    """
    Yield the dump line by line.

    Args:
        rows: Parsed CSV rows
        generated_at: Unix seconds stamped into the header and sync_metadata
        include_schema: Prepend CREATE TABLE IF NOT EXISTS statements
        clock: Wall clock for unparseable timestamps and the default stamp

    Yields:
        SQL lines without trailing newline
    """
    stamp = int(clock()) if generated_at is None else generated_at
    dedup = EntityDeduplicator.deduplicate(rows)

    yield "-- Auto-generated SQL import from CSV"
    yield f"-- Total records: {len(rows)}"
    yield f"-- Generated at: {datetime.fromtimestamp(stamp, UTC).isoformat()}"
    yield ""

    if include_schema:
        yield "-- Schema"
        for statement in schema_statements():
            yield statement.replace("\n", " ").replace("\t", " ") + ";"
        yield ""

    yield "-- Insert artists"
    for artist in dedup.artists:
        yield (
            f"INSERT INTO artists (id, name, name_key) VALUES "
            f"({artist.id}, {sql_literal(artist.name)}, {sql_literal(name_key(artist.name))});"
        )
    yield ""

    yield "-- Insert tracks"
    for track in dedup.tracks:
        yield (
            f"INSERT INTO tracks (id, name, name_key, artist_id, album) VALUES "
            f"({track.id}, {sql_literal(track.name)}, {sql_literal(name_key(track.name))}, "
            f"{track.artist_id}, {sql_literal(track.album)});"
        )
    yield ""

    yield "-- Insert scrobbles"
    for scrobble_id, (row, (artist_id, track_id)) in enumerate(
        zip(rows, dedup.assignments, strict=True), start=1
    ):
        played_at = normalize_timestamp(row.timestamp, clock=clock)
        yield (
            "INSERT OR IGNORE INTO scrobbles "
            "(id, track_id, artist_id, played_at, source_timestamp, is_live) VALUES "
            f"({scrobble_id}, {track_id}, {artist_id}, {played_at}, {played_at}, 0);"
        )
    yield ""

    yield "-- Update sync metadata"
    yield (
        "INSERT INTO sync_metadata (id, status, last_successful_sync, total_synced_count, "
        f"updated_at) VALUES ({SYNC_METADATA_ID}, {sql_literal(SyncStatus.COMPLETED.value)}, "
        f"{stamp}, {len(rows)}, {stamp}) ON CONFLICT(id) DO UPDATE SET "
        "status = excluded.status, last_successful_sync = excluded.last_successful_sync, "
        "total_synced_count = excluded.total_synced_count, last_error = NULL, "
        "updated_at = excluded.updated_at;"
    )

    logger.info(
        f"Generated SQL with {len(dedup.artists)} artists, {len(dedup.tracks)} tracks, "
        f"{len(rows)} scrobbles"
    )
