"""Pairwise conflict detection over time-bound timeline items."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

import structlog

from triage_core.conflicts.models import (
    LANE_OVERLAP,
    SEVERITY_ERROR,
    SEVERITY_WARNING,
    TERRITORY_BUFFER,
    TIMEZONE_JUMP,
    TRAVEL_TIME,
    Conflict,
    conflict_id,
)
from triage_core.conflicts.travel import DEFAULT_TRAVEL_HOURS, estimate_travel_hours, locations_differ
from triage_core.schemas import TimelineItemRecord, coerce_record
from triage_core.utils.tz import hours_between, parse_timestamp, resolve_zone

logger = structlog.get_logger()

DEFAULT_BUFFER_HOURS = 4.0
DEFAULT_TIMEZONE_JUMP_HOURS = 6.0


@dataclass(frozen=True)
class ScheduledItem:
    """Timeline item with a resolved ``[start, end)`` interval."""

    item: TimelineItemRecord
    start: datetime
    end: datetime

    @property
    def id(self) -> str:
        return self.item.id

    @property
    def title(self) -> str:
        return self.item.title or self.item.id


def _same(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return a.strip().casefold() == b.strip().casefold()


def schedule_items(
    items: Iterable,
    fallback_duration_hours: Optional[float] = None,
) -> List[ScheduledItem]:
    """
    Resolve intervals for items with a parsable start.

    A missing or non-positive end becomes ``start + fallback_duration_hours``
    when configured, otherwise the item is treated as a point in time.
    """
    scheduled = []
    for raw in items:
        item = coerce_record(TimelineItemRecord, raw)
        start = parse_timestamp(item.starts_at)
        if start is None:
            continue
        end = parse_timestamp(item.ends_at)
        if end is None or end <= start:
            if fallback_duration_hours and fallback_duration_hours > 0:
                end = start + timedelta(hours=fallback_duration_hours)
            else:
                end = start
        scheduled.append(ScheduledItem(item=item, start=start, end=end))

    scheduled.sort(key=lambda entry: (entry.start, entry.id))
    return scheduled


def _utc_offset(zone_name: Optional[str], moment: datetime) -> Optional[timedelta]:
    zone = resolve_zone(zone_name)
    if zone is None:
        return None
    return moment.astimezone(zone).utcoffset()


def timezones_differ(first: ScheduledItem, second: ScheduledItem) -> bool:
    """Compare UTC offsets at each item's start; fall back to zone names."""
    tz_a, tz_b = first.item.timezone, second.item.timezone
    if not tz_a or not tz_b:
        return False
    offset_a = _utc_offset(tz_a, first.start)
    offset_b = _utc_offset(tz_b, second.start)
    if offset_a is not None and offset_b is not None:
        return offset_a != offset_b
    return not _same(tz_a, tz_b)


def _overlaps(a: ScheduledItem, b: ScheduledItem) -> bool:
    if a.start == b.start:
        return True
    return a.start < b.end and b.start < a.end


def _format_hours(value: float) -> str:
    return f"{max(0.0, value):.1f}".rstrip("0").rstrip(".")


def detect_conflicts(
    items: Sequence,
    buffer_hours: float = DEFAULT_BUFFER_HOURS,
    *,
    timezone_jump_hours: float = DEFAULT_TIMEZONE_JUMP_HOURS,
    fallback_duration_hours: Optional[float] = None,
    default_travel_hours: float = DEFAULT_TRAVEL_HOURS,
    travel_checks: bool = True,
) -> List[Conflict]:
    """
    Find lane overlaps, territory buffer violations, insufficient travel time and
    timezone jumps between every pair of scheduled items.

    ``travel_checks=False`` restricts detection to lane and territory checks.
    Conflict ids depend only on the item pair and the kind, so repeated passes
    over the same items produce the same ids.
    """
    buffer_hours = max(float(buffer_hours or 0), 0.0)
    scheduled = schedule_items(items, fallback_duration_hours)
    conflicts: List[Conflict] = []
    seen = set()

    def emit(first: ScheduledItem, second: ScheduledItem, kind: str, severity: str, message: str, **metadata):
        key = conflict_id(first.id, second.id, kind)
        if key in seen:
            return
        seen.add(key)
        conflicts.append(
            Conflict(
                id=key,
                kind=kind,
                severity=severity,
                message=message,
                item_ids=(first.id, second.id),
                metadata=metadata,
            )
        )

    for index, first in enumerate(scheduled):
        for second in scheduled[index + 1:]:
            if first.id == second.id:
                continue

            if _same(first.item.lane, second.item.lane) and _overlaps(first, second):
                emit(
                    first,
                    second,
                    LANE_OVERLAP,
                    SEVERITY_WARNING,
                    f"{first.title} overlaps with {second.title} in the {first.item.lane} lane",
                )

            if _same(first.item.territory, second.item.territory):
                if abs(hours_between(second.start, first.start)) < buffer_hours:
                    emit(
                        first,
                        second,
                        TERRITORY_BUFFER,
                        SEVERITY_ERROR,
                        f"{first.title} and {second.title} are both in {first.item.territory} "
                        f"without the {_format_hours(buffer_hours)}h buffer",
                    )

            if not travel_checks:
                continue

            gap_hours = hours_between(second.start, first.end)

            if locations_differ(first.item.city, first.item.territory, second.item.city, second.item.territory):
                required = estimate_travel_hours(
                    first.item.city,
                    first.item.territory,
                    second.item.city,
                    second.item.territory,
                    default_hours=default_travel_hours,
                )
                if gap_hours < required:
                    origin = first.item.city or first.item.territory
                    destination = second.item.city or second.item.territory
                    emit(
                        first,
                        second,
                        TRAVEL_TIME,
                        SEVERITY_ERROR,
                        f"{second.title} starts {_format_hours(gap_hours)}h after {first.title}; "
                        f"travel from {origin} to {destination} needs about {_format_hours(required)}h",
                        required_hours=required,
                        available_hours=round(max(0.0, gap_hours), 1),
                    )

            if gap_hours < timezone_jump_hours and timezones_differ(first, second):
                emit(
                    first,
                    second,
                    TIMEZONE_JUMP,
                    SEVERITY_WARNING,
                    f"{second.title} ({second.item.timezone}) follows {first.title} "
                    f"({first.item.timezone}) within {_format_hours(timezone_jump_hours)}h",
                )

    logger.debug("Conflict detection completed", items=len(scheduled), conflicts=len(conflicts))
    return conflicts


def build_conflict_index(conflicts: Iterable[Conflict]) -> Dict[str, List[Conflict]]:
    """Map each item id to the conflicts it takes part in."""
    index: Dict[str, List[Conflict]] = {}
    for conflict in conflicts:
        for item_id in conflict.item_ids:
            index.setdefault(item_id, []).append(conflict)
    return index


__all__ = [
    "DEFAULT_BUFFER_HOURS",
    "DEFAULT_TIMEZONE_JUMP_HOURS",
    "ScheduledItem",
    "build_conflict_index",
    "detect_conflicts",
    "schedule_items",
    "timezones_differ",
]
