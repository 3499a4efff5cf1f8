"""Free-slot suggestions around existing timeline items."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from triage_core.conflicts.detector import ScheduledItem, schedule_items
from triage_core.conflicts.models import TimeSlot
from triage_core.conflicts.travel import DEFAULT_TRAVEL_HOURS, estimate_travel_hours, locations_differ
from triage_core.utils.tz import hours_between, parse_timestamp, resolve_zone

NOT_OVERLAPPING_TRAVEL = "not_overlapping_travel"
AVOID_TIMEZONE_JUMPS = "avoid_timezone_jumps"
PREFER_BUSINESS_HOURS = "prefer_business_hours"
SLOT_CONSTRAINTS = (NOT_OVERLAPPING_TRAVEL, AVOID_TIMEZONE_JUMPS, PREFER_BUSINESS_HOURS)

CONFIDENCE_LEVELS = ("high", "medium", "low")
ADJACENT_ITEM_HOURS = 6.0

Interval = Tuple[datetime, datetime]


def _occupied_intervals(
    scheduled: Sequence[ScheduledItem],
    city: Optional[str],
    territory: Optional[str],
    inflate_for_travel: bool,
    default_travel_hours: float,
) -> List[Interval]:
    intervals = []
    for entry in scheduled:
        start, end = entry.start, entry.end
        if inflate_for_travel and locations_differ(entry.item.city, entry.item.territory, city, territory):
            travel = timedelta(
                hours=estimate_travel_hours(
                    entry.item.city,
                    entry.item.territory,
                    city,
                    territory,
                    default_hours=default_travel_hours,
                )
            )
            start, end = start - travel, end + travel
        intervals.append((start, end))
    return intervals


def merge_intervals(intervals: Iterable[Interval]) -> List[Interval]:
    merged: List[Interval] = []
    for start, end in sorted(intervals):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged


def free_gaps(occupied: Sequence[Interval], range_start: datetime, range_end: datetime) -> List[Interval]:
    """Complement of ``occupied`` within ``[range_start, range_end)``."""
    gaps = []
    cursor = range_start
    for start, end in merge_intervals(occupied):
        if end <= range_start or start >= range_end:
            continue
        if start > cursor:
            gaps.append((cursor, min(start, range_end)))
        cursor = max(cursor, end)
    if cursor < range_end:
        gaps.append((cursor, range_end))
    return gaps


def _near_timezone_change(
    slot: Interval,
    scheduled: Sequence[ScheduledItem],
    zone_name: str,
) -> bool:
    target = resolve_zone(zone_name)
    for entry in scheduled:
        if not entry.item.timezone:
            continue
        before = 0 <= hours_between(slot[0], entry.end) < ADJACENT_ITEM_HOURS
        after = 0 <= hours_between(entry.start, slot[1]) < ADJACENT_ITEM_HOURS
        if not (before or after):
            continue
        item_zone = resolve_zone(entry.item.timezone)
        if target is not None and item_zone is not None:
            if entry.start.astimezone(item_zone).utcoffset() != entry.start.astimezone(target).utcoffset():
                return True
        elif entry.item.timezone.strip().casefold() != zone_name.strip().casefold():
            return True
    return False


def _assess(
    slot: Interval,
    scheduled: Sequence[ScheduledItem],
    constraints: Sequence[str],
    business_hours: Tuple[int, int],
    zone_name: str,
) -> Tuple[str, Tuple[str, ...]]:
    zone = resolve_zone(zone_name)
    local_start = slot[0].astimezone(zone) if zone else slot[0]
    local_end = slot[1].astimezone(zone) if zone else slot[1]
    reasons = []

    if local_start.weekday() >= 5:
        reasons.append("Falls on a weekend")

    if PREFER_BUSINESS_HOURS in constraints:
        open_hour, close_hour = business_hours
        opens = local_start.replace(hour=open_hour, minute=0, second=0, microsecond=0)
        closes = opens + timedelta(hours=close_hour - open_hour)
        if local_start < opens or local_end > closes:
            reasons.append("Outside business hours")

    if AVOID_TIMEZONE_JUMPS in constraints and _near_timezone_change(slot, scheduled, zone_name):
        reasons.append("Adjacent to an item in another timezone")

    level = CONFIDENCE_LEVELS[min(len(reasons), len(CONFIDENCE_LEVELS) - 1)]
    return level, tuple(reasons)


def find_available_slots(
    items: Sequence,
    *,
    date_range: Tuple[Any, Any],
    duration_hours: float,
    city: Optional[str] = None,
    territory: Optional[str] = None,
    constraints: Sequence[str] = (),
    max_results: int = 5,
    business_hours: Tuple[int, int] = (9, 18),
    timezone: str = "UTC",
    default_travel_hours: float = DEFAULT_TRAVEL_HOURS,
) -> List[TimeSlot]:
    """
    Propose free windows of ``duration_hours`` inside ``date_range``.

    Each qualifying gap yields a slot at its start, plus a centered slot when
    the gap is at least three times the duration. Results are ordered by
    confidence, then by start.

    Raises:
        ValueError: If the range is unparsable or empty, or the duration is not positive
    """
    range_start = parse_timestamp(date_range[0]) if date_range else None
    range_end = parse_timestamp(date_range[1]) if date_range and len(date_range) > 1 else None
    if range_start is None or range_end is None:
        raise ValueError("date_range must be a pair of ISO-8601 timestamps")
    if range_start >= range_end:
        raise ValueError("date_range start must be before its end")
    if not duration_hours or duration_hours <= 0:
        raise ValueError("duration_hours must be a positive number")

    constraints = tuple(constraints or ())
    duration = timedelta(hours=duration_hours)
    scheduled = schedule_items(items)
    occupied = _occupied_intervals(
        scheduled,
        city,
        territory,
        NOT_OVERLAPPING_TRAVEL in constraints and bool(city or territory),
        default_travel_hours,
    )

    candidates: List[Interval] = []
    for gap_start, gap_end in free_gaps(occupied, range_start, range_end):
        length = gap_end - gap_start
        if length < duration:
            continue
        candidates.append((gap_start, gap_start + duration))
        if length >= duration * 3:
            centered = gap_start + (length - duration) / 2
            candidates.append((centered, centered + duration))

    slots = []
    for candidate in candidates:
        confidence, reasons = _assess(candidate, scheduled, constraints, business_hours, timezone)
        slots.append(TimeSlot(start=candidate[0], end=candidate[1], confidence=confidence, reasons=reasons))

    slots.sort(key=lambda slot: (CONFIDENCE_LEVELS.index(slot.confidence), slot.start))
    return slots[: max(0, int(max_results))]


__all__ = [
    "AVOID_TIMEZONE_JUMPS",
    "NOT_OVERLAPPING_TRAVEL",
    "PREFER_BUSINESS_HOURS",
    "SLOT_CONSTRAINTS",
    "find_available_slots",
    "free_gaps",
    "merge_intervals",
]
