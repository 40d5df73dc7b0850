"""SQLAlchemy table definitions for the scrobble store.

Hey future me - these models are the SINGLE source of truth for the schema,
but nothing here uses the ORM session! All reads and writes go through the
IQueryExecutor port with plain SQL, because the hosted store (Cloudflare D1)
only speaks "POST a SQL string". We compile the DDL from these models with the
SQLite dialect and send it through the same port (see schema.py).

Uniqueness rules that make every write idempotent:
- artists.name_key                        -> "Daft Punk" == "daft punk" == "DAFT PUNK"
- tracks(artist_id, name_key)
- scrobbles(track_id, played_at)          -> duplicate play = silent no-op

name_key is name_key(name) (str.casefold), written by the repositories and the
SQL dump. Do NOT go back to COLLATE NOCASE: it only folds ASCII letters.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

SYNC_METADATA_ID = 1

_NOW = text("(CAST(strftime('%s','now') AS INTEGER))")


class Base(DeclarativeBase):
    pass


class ArtistModel(Base):
    """Artists, unique by folded name."""

    __tablename__ = "artists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    name_key: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    external_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[int] = mapped_column(Integer, server_default=_NOW)


class TrackModel(Base):
    """Tracks, unique per artist by folded name."""

    __tablename__ = "tracks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    name_key: Mapped[str] = mapped_column(String, nullable=False)
    artist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("artists.id"), nullable=False
    )
    album: Mapped[str | None] = mapped_column(String, nullable=True)
    external_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[int] = mapped_column(Integer, server_default=_NOW)

    __table_args__ = (
        UniqueConstraint("artist_id", "name_key", name="uq_tracks_artist_name_key"),
        Index("idx_tracks_artist_id", "artist_id"),
    )


class ScrobbleModel(Base):
    """Play events. played_at is always whole unix seconds."""

    __tablename__ = "scrobbles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    track_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tracks.id"), nullable=False
    )
    artist_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("artists.id"), nullable=False
    )
    played_at: Mapped[int] = mapped_column(Integer, nullable=False)
    source_timestamp: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_live: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("0")
    )
    created_at: Mapped[int] = mapped_column(Integer, server_default=_NOW)

    __table_args__ = (
        UniqueConstraint("track_id", "played_at", name="uq_scrobbles_track_played_at"),
        Index("idx_scrobbles_played_at", "played_at"),
        Index("idx_scrobbles_artist_id", "artist_id"),
        Index("idx_scrobbles_track_id", "track_id"),
    )


class SyncMetadataModel(Base):
    """Singleton bookkeeping row, always id = SYNC_METADATA_ID."""

    __tablename__ = "sync_metadata"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, server_default=text("'idle'")
    )
    last_successful_sync: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_synced_count: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint(f"id = {SYNC_METADATA_ID}", name="ck_sync_metadata_singleton"),
        CheckConstraint(
            "status IN ('idle', 'in_progress', 'completed', 'failed')",
            name="ck_sync_metadata_status",
        ),
    )
