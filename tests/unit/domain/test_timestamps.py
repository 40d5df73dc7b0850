"""Tests for timestamp normalization."""

import logging

import pytest

from scrobblestats.domain.value_objects import normalize_timestamp, parse_calendar_date

NOW = 1_700_000_000


def clock() -> float:
    return NOW + 0.75


class TestNormalizeTimestampIntegers:
    """Integer tokens."""

    @pytest.mark.parametrize("token", ["1000000001", "1136073600", "1999999999"])
    def test_plausible_seconds_returned_unchanged(self, token: str) -> None:
        assert normalize_timestamp(token, clock=clock) == int(token)

    def test_int_input_accepted(self) -> None:
        assert normalize_timestamp(1_600_000_000, clock=clock) == 1_600_000_000

    def test_whitespace_is_ignored(self) -> None:
        assert normalize_timestamp("  1600000000 \n", clock=clock) == 1_600_000_000

    @pytest.mark.parametrize(
        ("token", "expected"),
        [
            ("1136073600000", 1_136_073_600),
            ("1136073600999", 1_136_073_600),
            ("10000000001", 10_000_000),
        ],
    )
    def test_milliseconds_are_floor_divided(self, token: str, expected: int) -> None:
        assert normalize_timestamp(token, clock=clock) == expected

    def test_ambiguous_range_kept_as_seconds_with_warning(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING):
            assert normalize_timestamp("5000000000", clock=clock) == 5_000_000_000
        assert "5000000000" in caplog.text

    def test_exact_upper_bounds_are_not_plausible_seconds(self) -> None:
        # 2_000_000_000 and 10_000_000_000 sit outside rules 1 and 2
        assert normalize_timestamp("2000000000", clock=clock) == 2_000_000_000
        assert normalize_timestamp("10000000000", clock=clock) == 10_000_000_000

    def test_bare_year_goes_to_calendar_parsing(self) -> None:
        # 2024-01-01T00:00:00Z
        assert normalize_timestamp("2024", clock=clock) == 1_704_067_200


class TestNormalizeTimestampCalendar:
    """Calendar date tokens."""

    @pytest.mark.parametrize(
        ("token", "expected"),
        [
            ("2024-01-15T10:30:00Z", 1_705_314_600),
            ("2024-01-15T10:30:00+00:00", 1_705_314_600),
            ("2024-01-15T12:30:00+02:00", 1_705_314_600),
            ("2024-01-15T10:30:00.999Z", 1_705_314_600),
            ("2024-01-15 10:30:00", 1_705_314_600),
            ("15 Jan 2024, 10:30", 1_705_314_600),
            ("01/15/2024", 1_705_276_800),
        ],
    )
    def test_calendar_formats(self, token: str, expected: int) -> None:
        assert normalize_timestamp(token, clock=clock) == expected

    def test_naive_dates_are_utc(self) -> None:
        parsed = parse_calendar_date("2006-01-01T00:00:00")
        assert parsed is not None
        assert parsed.utcoffset() is not None
        assert int(parsed.timestamp()) == 1_136_073_600

    def test_unparseable_returns_none(self) -> None:
        assert parse_calendar_date("not a date") is None
        assert parse_calendar_date("   ") is None


class TestNormalizeTimestampFallback:
    """Garbage tokens fall back to the wall clock."""

    @pytest.mark.parametrize("token", ["garbage", "", None, "-5", "12:61"])
    def test_fallback_to_now(self, token: str | None) -> None:
        assert normalize_timestamp(token, clock=clock) == NOW

    def test_fallback_logs_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            normalize_timestamp("yesterday-ish", clock=clock)
        assert "Could not parse timestamp" in caplog.text
