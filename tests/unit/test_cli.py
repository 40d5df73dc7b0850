"""Tests for the command-line entry point."""

import json
import re
from pathlib import Path

import pytest
from pytest_httpx import HTTPXMock
from pytest_mock import MockerFixture

from scrobblestats.cli import build_parser, main
from scrobblestats.config import LastfmSettings, Settings, StoreSettings

CSV_TEXT = (
    "artist,track,album,uts\n"
    "Boards of Canada,Roygbiv,Music Has the Right to Children,1136073600\n"
    "Boards of Canada,Roygbiv,Music Has the Right to Children,1136073600\n"
    "Air,La Femme d'Argent,Moon Safari,1136077200\n"
)


@pytest.fixture(autouse=True)
def quiet_logging(mocker: MockerFixture) -> None:
    """Keep main() from replacing pytest's log handlers."""
    mocker.patch("scrobblestats.cli.configure_logging")


@pytest.fixture
def csv_path(tmp_path: Path) -> Path:
    path = tmp_path / "export.csv"
    path.write_text(CSV_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def unconfigured() -> Settings:
    return Settings(
        store=StoreSettings(account_id=None, database_id=None, api_token=None, database_url=None),
        lastfm=LastfmSettings(api_key=None, username=None),
    )


class TestParser:
    def test_sync_flags(self) -> None:
        args = build_parser().parse_args(["sync", "--max-pages", "3", "--full", "--force"])
        assert (args.command, args.max_pages, args.full, args.force) == ("sync", 3, True, True)

    @pytest.mark.parametrize("command", ["import-csv", "export-sql"])
    def test_delimiter_must_be_one_character(
        self, command: str, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args([command, "export.csv", "--delimiter", ";;"])

        assert exc_info.value.code == 2
        assert "single character" in capsys.readouterr().err

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestConfigurationCheck:
    """Missing env vars are reported before any I/O."""

    def test_store_commands_list_missing_names(
        self, unconfigured: Settings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["stats"], unconfigured) == 1

        err = capsys.readouterr().err
        assert "  - CLOUDFLARE_ACCOUNT_ID" in err
        assert "  - D1_DATABASE_ID" in err
        assert "  - CLOUDFLARE_API_TOKEN" in err

    def test_sync_needs_lastfm_too(
        self, unconfigured: Settings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["sync"], unconfigured) == 1
        assert "  - LASTFM_USERNAME" in capsys.readouterr().err

    def test_export_needs_nothing(
        self, unconfigured: Settings, csv_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["export-sql", str(csv_path)], unconfigured) == 0
        assert "-- Total records: 3" in capsys.readouterr().out


class TestStoreCommands:
    """Commands against a local SQLite store."""

    def test_import_then_stats_and_status(
        self, settings: Settings, csv_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["init-db"], settings) == 0
        assert main(["import-csv", str(csv_path)], settings) == 0

        out = capsys.readouterr().out
        assert "New scrobbles:     2" in out
        assert "Errors:            0" in out

        assert main(["stats", "--days", "36500"], settings) == 0
        stats = json.loads(capsys.readouterr().out)
        assert stats["allTime"]["totalScrobbles"] == 2
        assert stats["allTime"]["oldestScrobble"] == 1136073600

        assert main(["status"], settings) == 0
        status = json.loads(capsys.readouterr().out)
        assert status["status"] == "completed"
        assert status["total_synced_count"] == 3

    def test_reimport_adds_nothing(
        self, settings: Settings, csv_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["init-db"], settings)
        main(["import-csv", str(csv_path)], settings)
        capsys.readouterr()

        assert main(["import-csv", str(csv_path)], settings) == 0
        assert "New scrobbles:     0" in capsys.readouterr().out

    def test_missing_file(
        self, settings: Settings, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["import-csv", str(tmp_path / "nope.csv")], settings) == 2
        assert "ERROR: input file not found" in capsys.readouterr().err

    def test_missing_columns(
        self, settings: Settings, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "bad.csv"
        path.write_text("foo,bar\n1,2\n", encoding="utf-8")
        main(["init-db"], settings)

        assert main(["import-csv", str(path)], settings) == 1
        assert "Could not detect required columns" in capsys.readouterr().err


    def test_store_answering_non_json_is_an_error(
        self, httpx_mock: HTTPXMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        httpx_mock.add_response(
            url=re.compile(r"https://d1\.test/.*"), text="<html>502 Bad Gateway</html>"
        )
        settings = Settings(
            store=StoreSettings(
                account_id="acct-1",
                database_id="db-1",
                api_token="token",
                api_base_url="https://d1.test/client/v4",
                database_url=None,
            ),
        )

        assert main(["status"], settings) == 1
        assert "ERROR: D1 query failed: response is not JSON" in capsys.readouterr().err

class TestExportSql:
    def test_writes_file(self, csv_path: Path, tmp_path: Path, settings: Settings) -> None:
        output = tmp_path / "dump.sql"

        assert main(["export-sql", str(csv_path), "-o", str(output), "--with-schema"], settings) == 0

        text = output.read_text(encoding="utf-8")
        assert "CREATE TABLE" in text
        assert (
            "INSERT INTO artists (id, name, name_key) VALUES "
            "(1, 'Boards of Canada', 'boards of canada');"
        ) in text
        assert "'La Femme d''Argent'" in text


class TestSync:
    def test_sync_from_lastfm(
        self,
        settings: Settings,
        httpx_mock: HTTPXMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        httpx_mock.add_response(
            url=re.compile(r"https://lastfm\.test/2\.0/.*"),
            json={
                "recenttracks": {
                    "track": [
                        {"artist": {"#text": "Air"}, "name": "Talisman", "date": {"uts": "1700000000"}},
                        {"artist": {"#text": "Air"}, "name": "Talisman", "date": {"uts": "1699990000"}},
                    ],
                    "@attr": {"page": "1", "totalPages": "1", "total": "2"},
                }
            },
        )
        main(["init-db"], settings)

        assert main(["sync"], settings) == 0

        out = capsys.readouterr().out
        assert "New scrobbles:  2" in out
        assert "Stopped on:     last_page" in out
