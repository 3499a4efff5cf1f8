"""
Timeline conflict detection, travel estimates and slot suggestions.
"""
from .detector import build_conflict_index, detect_conflicts, schedule_items
from .models import Conflict, TimeSlot, conflict_id
from .slots import find_available_slots
from .travel import estimate_travel_hours, resolve_region

__all__ = [
    "Conflict",
    "TimeSlot",
    "build_conflict_index",
    "conflict_id",
    "detect_conflicts",
    "estimate_travel_hours",
    "find_available_slots",
    "resolve_region",
    "schedule_items",
]
