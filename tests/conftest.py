"""Shared fixtures: a real temporary SQLite store behind the IQueryExecutor port."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from scrobblestats.config import LastfmSettings, Settings, StoreSettings, SyncSettings
from scrobblestats.infrastructure.persistence import Database, init_schema

# 2023-11-14 22:13:20 UTC, a Tuesday
FIXED_NOW = 1_700_000_000


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """URL of a fresh SQLite file per test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'scrobbles.db'}"


@pytest.fixture
async def executor(database_url: str) -> AsyncGenerator[Database, None]:
    """Initialized local store."""
    db = Database(database_url)
    await init_schema(db, FIXED_NOW)
    yield db
    await db.close()


@pytest.fixture
def settings(database_url: str) -> Settings:
    """Settings pointing at the temporary store and a fake Last.fm host."""
    return Settings(
        store=StoreSettings(database_url=database_url),
        lastfm=LastfmSettings(
            api_key="test-key",
            username="tester",
            api_url="https://lastfm.test/2.0/",
        ),
        sync=SyncSettings(page_delay_seconds=0),
    )
