"""Tests for importing CSV exports into the store."""

import asyncio
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from scrobblestats.application.services import CsvImportService
from scrobblestats.config import ImportSettings
from scrobblestats.domain.dtos import ScrobbleRow
from scrobblestats.domain.entities import Scrobble, SyncStatus
from scrobblestats.domain.exceptions import (
    MissingColumnError,
    StoreQueryError,
    SyncAlreadyRunningError,
)
from scrobblestats.infrastructure.persistence import Database, SyncMetadataRepository

NOW = 1_700_000_000

BOARDS_OF_CANADA_CSV = (
    "artist,track,album,uts\n"
    "Boards of Canada,Roygbiv,Music Has the Right to Children,1136073600\n"
    "Boards of Canada,Roygbiv,Music Has the Right to Children,1136073600\n"
)


@pytest.fixture
def service(executor: Database) -> CsvImportService:
    return CsvImportService(executor, ImportSettings(progress_every=1), clock=lambda: float(NOW))


def write_csv(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "export.csv"
    path.write_text(text, encoding="utf-8")
    return path


async def count(executor: Database, table: str) -> int:
    rows = await executor.execute(f"SELECT COUNT(*) AS total FROM {table}")
    return int(rows[0]["total"])


class TestCsvImport:
    """End-to-end import through a real SQLite store."""

    async def test_duplicate_rows_collapse_to_one_scrobble(
        self, service: CsvImportService, executor: Database, tmp_path: Path
    ) -> None:
        result = await service.import_file(write_csv(tmp_path, BOARDS_OF_CANADA_CSV))

        assert result.rows == 2
        assert result.artists == 1
        assert result.tracks == 1
        assert result.processed == 2
        assert result.inserted == 1
        assert result.errors == 0
        assert await count(executor, "artists") == 1
        assert await count(executor, "tracks") == 1
        assert await count(executor, "scrobbles") == 1
        rows = await executor.execute("SELECT played_at, source_timestamp, is_live FROM scrobbles")
        assert dict(rows[0]) == {
            "played_at": 1_136_073_600,
            "source_timestamp": 1_136_073_600,
            "is_live": 0,
        }

    async def test_reimport_is_a_no_op(
        self, service: CsvImportService, executor: Database, tmp_path: Path
    ) -> None:
        path = write_csv(tmp_path, BOARDS_OF_CANADA_CSV)
        await service.import_file(path)
        second = await service.import_file(path)

        assert second.inserted == 0
        assert await count(executor, "scrobbles") == 1

    async def test_store_casing_wins_across_runs(
        self, service: CsvImportService, executor: Database
    ) -> None:
        await service.import_rows([ScrobbleRow("Daft Punk", "One More Time", "1600000000")])
        await service.import_rows([ScrobbleRow("DAFT PUNK", "one more time", "1600000100")])

        artists = await executor.execute("SELECT name FROM artists")
        tracks = await executor.execute("SELECT name FROM tracks")
        assert [r["name"] for r in artists] == ["Daft Punk"]
        assert [r["name"] for r in tracks] == ["One More Time"]
        assert await count(executor, "scrobbles") == 2

    async def test_non_ascii_casing_folds_across_runs(
        self, service: CsvImportService, executor: Database
    ) -> None:
        await service.import_rows([ScrobbleRow("Björk", "Jóga", "1600000000")])
        result = await service.import_rows([ScrobbleRow("BJÖRK", "JÓGA", "1600000100")])

        artists = await executor.execute("SELECT name FROM artists")
        assert [r["name"] for r in artists] == ["Björk"]
        assert await count(executor, "tracks") == 1
        assert result.inserted == 1

    async def test_album_backfilled_on_existing_track(
        self, service: CsvImportService, executor: Database
    ) -> None:
        await service.import_rows([ScrobbleRow("Air", "Talisman", "1600000000")])
        await service.import_rows([ScrobbleRow("Air", "Talisman", "1600000100", "Moon Safari")])

        rows = await executor.execute("SELECT album FROM tracks")
        assert rows[0]["album"] == "Moon Safari"

    async def test_status_lifecycle(
        self, service: CsvImportService, executor: Database, tmp_path: Path
    ) -> None:
        await service.import_file(write_csv(tmp_path, BOARDS_OF_CANADA_CSV))

        meta = await SyncMetadataRepository(executor).get()
        assert meta.status == SyncStatus.COMPLETED
        assert meta.total_synced_count == 2
        assert meta.last_successful_sync == NOW

    async def test_missing_columns_abort_before_status_change(
        self, service: CsvImportService, executor: Database, tmp_path: Path
    ) -> None:
        path = write_csv(tmp_path, "who,what\nAir,Talisman\n")

        with pytest.raises(MissingColumnError):
            await service.import_file(path)

        assert (await SyncMetadataRepository(executor).get()).status == SyncStatus.IDLE
        assert await count(executor, "artists") == 0

    async def test_refuses_while_sync_running(
        self, service: CsvImportService, executor: Database
    ) -> None:
        await SyncMetadataRepository(executor).mark_in_progress(NOW)

        with pytest.raises(SyncAlreadyRunningError):
            await service.import_rows([ScrobbleRow("Air", "Talisman", "1600000000")])

    async def test_cancelled_import_marks_failed(
        self, service: CsvImportService, executor: Database, mocker: MockerFixture
    ) -> None:
        mocker.patch.object(service, "_import", side_effect=asyncio.CancelledError)

        with pytest.raises(asyncio.CancelledError):
            await service.import_rows([ScrobbleRow("Air", "Talisman", "1600000000")])

        meta = await SyncMetadataRepository(executor).get()
        assert meta.status == SyncStatus.FAILED
        assert meta.last_error == "CancelledError"

    async def test_custom_delimiter(self, executor: Database, tmp_path: Path) -> None:
        service = CsvImportService(executor, ImportSettings(delimiter=";"))
        path = write_csv(tmp_path, "artist;track;uts\nAir;Talisman;1600000000\n")

        result = await service.import_file(path)

        assert result.inserted == 1

    async def test_row_failure_is_counted(
        self, service: CsvImportService, executor: Database, mocker: MockerFixture
    ) -> None:
        original_add = service._scrobbles.add
        calls = {"n": 0}

        async def flaky_add(scrobble: Scrobble) -> bool:
            calls["n"] += 1
            if calls["n"] == 1:
                raise StoreQueryError("transient")
            return await original_add(scrobble)

        mocker.patch.object(service._scrobbles, "add", side_effect=flaky_add)

        result = await service.import_rows(
            [
                ScrobbleRow("Air", "Talisman", "1600000000"),
                ScrobbleRow("Air", "Talisman", "1600000100"),
            ]
        )

        assert result.errors == 1
        assert result.processed == 1
        assert await count(executor, "scrobbles") == 1
        assert (await SyncMetadataRepository(executor).get()).status == SyncStatus.COMPLETED
