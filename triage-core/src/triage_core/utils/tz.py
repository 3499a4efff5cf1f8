"""
Timestamp utilities shared by the scorers, the rule engine and the conflict detector.

All instants are handled as timezone-aware UTC datetimes. Entity snapshots carry
timestamps as ISO-8601 strings (or datetimes); anything that does not parse is
reported as ``None`` so the caller can omit the dependent signal.
"""
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from typing import Any, Optional
import math
import structlog

logger = structlog.get_logger()

HOUR_SECONDS = 3600.0
DAY_SECONDS = 86400.0


def ensure_aware(dt: datetime, default_tz: str = "UTC") -> datetime:
    """
    Ensure datetime is timezone-aware.

    Naive datetimes are localized to ``default_tz``; aware datetimes are
    returned as-is.

    Raises:
        ValueError: If datetime is None
    """
    if dt is None:
        raise ValueError("Cannot ensure timezone awareness for None datetime")

    if dt.tzinfo is not None:
        return dt

    return dt.replace(tzinfo=resolve_zone(default_tz) or timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert datetime to UTC timezone.

    Raises:
        ValueError: If datetime is naive (no timezone info)
    """
    if dt is None:
        raise ValueError("Cannot convert None datetime to UTC")

    if dt.tzinfo is None:
        raise ValueError(
            f"Cannot convert naive datetime to UTC: {dt}. "
            "Use ensure_aware() first to localize to a timezone."
        )

    return dt.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 string or datetime into an aware UTC datetime.

    Returns None for missing or unparsable input instead of raising.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return to_utc(ensure_aware(value))

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparsable timestamp", value=text)
        return None

    return to_utc(ensure_aware(parsed))


def resolve_zone(name: Optional[str]) -> Optional[ZoneInfo]:
    """Return the ZoneInfo for an IANA name, or None when unknown."""
    if not name or not isinstance(name, str):
        return None
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        return None


def hours_between(later: datetime, earlier: datetime) -> float:
    """Signed number of hours from ``earlier`` to ``later``."""
    return (later - earlier).total_seconds() / HOUR_SECONDS


def reference_time(now: Any) -> datetime:
    """
    Normalize the caller-supplied evaluation instant to aware UTC.

    Naive datetimes are read as UTC, strings as ISO-8601.

    Raises:
        ValueError: If ``now`` is missing or unparsable
    """
    moment = parse_timestamp(now)
    if moment is None:
        raise ValueError("now must be a datetime or ISO-8601 timestamp")
    return moment


def days_between(later: datetime, earlier: datetime) -> float:
    """Signed number of days from ``earlier`` to ``later``."""
    return (later - earlier).total_seconds() / DAY_SECONDS


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def format_hours(diff_hours: float) -> str:
    """Compact age label: ``<1h``, ``5h``, ``3d``."""
    absolute = abs(diff_hours)
    if absolute < 1:
        return "<1h"
    if absolute < 24:
        return f"{round_half_up(absolute)}h"
    return f"{round_half_up(absolute / 24)}d"


def format_days(diff_days: float) -> str:
    """Compact day label: ``<1d`` or ``4d``."""
    absolute = abs(diff_days)
    if absolute < 1:
        return "<1d"
    return f"{round_half_up(absolute)}d"
