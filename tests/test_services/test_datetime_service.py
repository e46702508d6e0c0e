"""Tests for datetime helpers."""

from datetime import datetime, timezone

import pytest

from mountsync.services.datetime_service import format_iso, now_utc, parse_systemd_timestamp

NEW_YEAR = datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestParseSystemdTimestamp:
    def test_unix_seconds(self) -> None:
        assert parse_systemd_timestamp("@1767225600") == NEW_YEAR

    def test_unix_fractional_seconds(self) -> None:
        result = parse_systemd_timestamp("@1767225600.5")
        assert result is not None
        assert result.microsecond == 500000

    def test_microseconds(self) -> None:
        assert parse_systemd_timestamp("1767225600000000") == NEW_YEAR

    def test_human_readable(self) -> None:
        result = parse_systemd_timestamp("Thu 2026-01-01 00:00:00 UTC")
        assert result == NEW_YEAR

    def test_iso(self) -> None:
        result = parse_systemd_timestamp("2026-02-02T22:21:29+00:00")
        assert result is not None
        assert (result.year, result.month, result.day, result.hour) == (2026, 2, 2, 22)

    @pytest.mark.parametrize("value", ["", "  ", "n/a", "0", "not a timestamp"])
    def test_never(self, value: str) -> None:
        assert parse_systemd_timestamp(value) is None

    def test_result_is_aware(self) -> None:
        result = parse_systemd_timestamp("2026-01-01 12:00:00")
        assert result is not None
        assert result.tzinfo is not None
        assert result.utcoffset().total_seconds() == 0


class TestFormatting:
    def test_now_utc(self) -> None:
        result = now_utc()
        assert result.tzinfo is not None

    def test_format_iso_aware(self) -> None:
        assert format_iso(NEW_YEAR) == "2026-01-01T00:00:00+00:00"

    def test_format_iso_naive_assumed_utc(self) -> None:
        assert format_iso(datetime(2026, 1, 1)) == "2026-01-01T00:00:00+00:00"
