"""Tests for fail-soft field parsing."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from solar_monitor.telemetry.parsing import field_at, parse_local_timestamp, parse_numeric_or_default
from solar_monitor.timezone_utils import resolve_timezone


class TestParseNumeric:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("12.30", 12.3),
            (" 40 ", 40.0),
            ("-1.20", -1.2),
            ("1e3", 1000.0),
            (7, 7.0),
            (2.5, 2.5),
        ],
    )
    def test_numeric_values(self, raw, expected) -> None:
        assert parse_numeric_or_default(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", ["", "   ", "MPPT", "12,5", None, "nan", "inf", float("nan"), [], {}, True])
    def test_invalid_values_default_to_zero(self, raw) -> None:
        assert parse_numeric_or_default(raw) == 0.0

    def test_custom_default(self) -> None:
        assert parse_numeric_or_default("bad", default=-1.0) == -1.0


class TestFieldAt:
    def test_in_range(self) -> None:
        assert field_at(["a", "b"], 1) == "b"

    def test_out_of_range(self) -> None:
        assert field_at(["a"], 3) is None
        assert field_at(["a"], -1) is None


class TestParseLocalTimestamp:
    def test_date_and_time(self) -> None:
        assert parse_local_timestamp("2025-01-01", "12:00:00", timezone.utc) == 1735732800000

    def test_time_without_seconds(self) -> None:
        assert parse_local_timestamp("2025-01-01", "12:00", timezone.utc) == 1735732800000

    @pytest.mark.parametrize(
        ("date_str", "time_str"),
        [
            ("", "12:00:00"),
            ("2025-01-01", ""),
            ("01/01/2025", "12:00:00"),
            ("2025-13-01", "12:00:00"),
            ("2025-01-01", "25:00:00"),
            (None, "12:00:00"),
            ("2025-01-01", 1200),
        ],
    )
    def test_unparsable_returns_none(self, date_str, time_str) -> None:
        assert parse_local_timestamp(date_str, time_str, timezone.utc) is None


class TestResolveTimezone:
    def test_empty_means_host_local(self) -> None:
        assert resolve_timezone("") is None

    def test_unknown_means_host_local(self) -> None:
        assert resolve_timezone("Nowhere/Special") is None

    def test_iana_name(self) -> None:
        assert resolve_timezone("Europe/Berlin") == ZoneInfo("Europe/Berlin")

    def test_naive_parse_matches_host_clock(self) -> None:
        expected = int(datetime(2025, 1, 1, 12, 0).timestamp() * 1000)
        assert parse_local_timestamp("2025-01-01", "12:00:00", None) == expected
