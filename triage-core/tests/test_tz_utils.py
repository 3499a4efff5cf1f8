"""
Test timestamp parsing and formatting helpers.
"""
import pytest
from datetime import datetime, timedelta, timezone
from triage_core.utils.tz import (
    days_between,
    ensure_aware,
    format_days,
    format_hours,
    hours_between,
    parse_timestamp,
    resolve_zone,
    round_half_up,
    to_utc,
)


def test_ensure_aware_with_naive_datetime():
    """Naive datetimes are localized to the given zone."""
    naive_dt = datetime(2024, 1, 15, 10, 30, 0)

    aware_dt = ensure_aware(naive_dt, "Europe/Moscow")

    assert aware_dt.tzinfo is not None
    assert aware_dt.hour == 10
    assert aware_dt.utcoffset() == timedelta(hours=3)


def test_ensure_aware_with_already_aware_datetime():
    """Aware datetimes are returned unchanged."""
    utc_dt = datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)

    assert ensure_aware(utc_dt, "America/Sao_Paulo") == utc_dt


def test_ensure_aware_with_unknown_zone_falls_back_to_utc():
    """Unknown zone names localize to UTC."""
    aware_dt = ensure_aware(datetime(2024, 1, 15, 10, 30), "Mars/Olympus_Mons")
    assert aware_dt.utcoffset() == timedelta(0)


def test_ensure_aware_with_none_raises():
    with pytest.raises(ValueError, match="Cannot ensure timezone awareness for None"):
        ensure_aware(None)


def test_to_utc_with_naive_raises():
    with pytest.raises(ValueError, match="Cannot convert naive datetime"):
        to_utc(datetime(2024, 1, 15, 10, 30))


class TestParseTimestamp:
    """Test lenient ISO-8601 parsing."""

    def test_zulu_suffix(self):
        assert parse_timestamp("2024-01-15T10:00:00Z") == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)

    def test_offset_is_converted_to_utc(self):
        parsed = parse_timestamp("2024-01-15T12:00:00+02:00")
        assert parsed == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_naive_string_is_utc(self):
        assert parse_timestamp("2024-01-15T10:00:00") == datetime(2024, 1, 15, 10, tzinfo=timezone.utc)

    def test_datetime_passthrough(self):
        value = datetime(2024, 1, 15, 10, tzinfo=timezone.utc)
        assert parse_timestamp(value) == value

    @pytest.mark.parametrize("value", [None, "", "   ", "not a date", 12345, ["2024-01-15"]])
    def test_invalid_returns_none(self, value):
        assert parse_timestamp(value) is None


class TestArithmetic:
    """Test differences, rounding and labels."""

    def test_hours_and_days_between_are_signed(self):
        earlier = datetime(2024, 1, 15, 10, tzinfo=timezone.utc)
        later = earlier + timedelta(hours=36)

        assert hours_between(later, earlier) == 36
        assert hours_between(earlier, later) == -36
        assert days_between(later, earlier) == 1.5

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2
        assert round_half_up(-0.5) == 0

    def test_format_hours(self):
        assert format_hours(0.5) == "<1h"
        assert format_hours(5.4) == "5h"
        assert format_hours(-5.4) == "5h"
        assert format_hours(30) == "1d"
        assert format_hours(36) == "2d"

    def test_format_days(self):
        assert format_days(0.2) == "<1d"
        assert format_days(3.5) == "4d"

    def test_resolve_zone(self):
        assert resolve_zone("Europe/Paris") is not None
        assert resolve_zone("Nowhere/Special") is None
        assert resolve_zone(None) is None
