"""
Test conflict detection, travel estimates and slot suggestions.
"""
import pytest
from datetime import datetime, timezone
from triage_core.conflicts import (
    build_conflict_index,
    detect_conflicts,
    estimate_travel_hours,
    find_available_slots,
    resolve_region,
)

DAY = "2024-03-11"  # Monday


def at(clock, day=DAY):
    return f"{day}T{clock}:00Z"


def item(item_id, start, end=None, **extra):
    data = {"id": item_id, "title": item_id.upper(), "startsAt": at(start)}
    if end:
        data["endsAt"] = at(end)
    data.update(extra)
    return data


class TestDetectConflicts:
    """Test pairwise conflict detection."""

    def test_lane_overlap(self):
        conflicts = detect_conflicts([
            item("a", "10:00", "11:00", lane="Live"),
            item("b", "10:30", "11:30", lane="live"),
        ])

        assert len(conflicts) == 1
        assert conflicts[0].kind == "lane_overlap"
        assert conflicts[0].severity == "warning"
        assert conflicts[0].id == "a:b:lane_overlap"

    def test_back_to_back_is_not_an_overlap(self):
        conflicts = detect_conflicts([
            item("a", "10:00", "11:00", lane="Live"),
            item("b", "11:00", "12:00", lane="Live"),
        ])
        assert conflicts == []

    def test_ids_are_pair_symmetric_and_deterministic(self):
        first = item("b", "10:00", "11:00", lane="Live")
        second = item("a", "10:30", "11:30", lane="Live")

        forward = {conflict.id for conflict in detect_conflicts([first, second])}
        backward = {conflict.id for conflict in detect_conflicts([second, first])}

        assert forward == backward == {"a:b:lane_overlap"}
        assert forward == {conflict.id for conflict in detect_conflicts([first, second])}

    def test_territory_buffer(self):
        close = detect_conflicts([
            item("a", "10:00", "11:00", territory="IE"),
            item("b", "12:00", "13:00", territory="ie"),
        ])
        apart = detect_conflicts([
            item("a", "10:00", "11:00", territory="IE"),
            item("b", "15:00", "16:00", territory="IE"),
        ])

        assert [(c.kind, c.severity) for c in close] == [("territory_buffer", "error")]
        assert "4h buffer" in close[0].message
        assert apart == []

    def test_custom_buffer(self):
        conflicts = detect_conflicts([
            item("a", "10:00", "11:00", territory="IE"),
            item("b", "12:00", "13:00", territory="IE"),
        ], buffer_hours=1.5)
        assert conflicts == []

    def test_travel_time(self):
        conflicts = detect_conflicts([
            item("a", "10:00", "12:00", city="London"),
            item("b", "15:00", "17:00", city="New York"),
        ])

        assert len(conflicts) == 1
        conflict = conflicts[0]
        assert conflict.kind == "travel_time"
        assert conflict.severity == "error"
        assert conflict.metadata == {"required_hours": 14.0, "available_hours": 3.0}
        assert "travel from London to New York needs about 14h" in conflict.message

    def test_enough_travel_time(self):
        conflicts = detect_conflicts([
            item("a", "08:00", "09:00", city="London"),
            item("b", "16:00", "17:00", city="Paris"),
        ])
        assert conflicts == []

    def test_timezone_jump(self):
        conflicts = detect_conflicts([
            item("a", "10:00", "11:00", timezone="Europe/London"),
            item("b", "12:00", "13:00", timezone="America/New_York"),
        ])
        assert [(c.kind, c.severity) for c in conflicts] == [("timezone_jump", "warning")]

    def test_same_offset_is_not_a_jump(self):
        conflicts = detect_conflicts([
            item("a", "10:00", "11:00", timezone="Europe/Paris"),
            item("b", "12:00", "13:00", timezone="Europe/Berlin"),
        ])
        assert conflicts == []

    def test_lighter_mode_skips_travel_checks(self):
        items = [
            item("a", "10:00", "12:00", city="London", lane="Live", timezone="Europe/London"),
            item("b", "11:00", "17:00", city="New York", lane="Live", timezone="America/New_York"),
        ]
        full = {c.kind for c in detect_conflicts(items)}
        light = {c.kind for c in detect_conflicts(items, travel_checks=False)}

        assert full == {"lane_overlap", "travel_time", "timezone_jump"}
        assert light == {"lane_overlap"}

    def test_undated_items_are_skipped(self):
        conflicts = detect_conflicts([
            {"id": "a", "lane": "Live"},
            item("b", "10:00", "11:00", lane="Live"),
            {"id": "c", "lane": "Live", "startsAt": "not a date"},
        ])
        assert conflicts == []

    def test_fallback_duration(self):
        items = [item("a", "10:00", lane="Live"), item("b", "10:30", lane="Live")]

        assert detect_conflicts(items) == []
        assert len(detect_conflicts(items, fallback_duration_hours=1)) == 1

    def test_conflict_index(self):
        conflicts = detect_conflicts([
            item("a", "10:00", "11:00", lane="Live"),
            item("b", "10:30", "11:30", lane="Live"),
            item("c", "10:45", "11:15", lane="Live"),
        ])
        index = build_conflict_index(conflicts)

        assert len(conflicts) == 3
        assert len(index["a"]) == 2
        assert {c.id for c in index["c"]} == {"a:c:lane_overlap", "b:c:lane_overlap"}

    def test_to_dict(self):
        conflict = detect_conflicts([
            item("a", "10:00", "11:00", lane="Live"),
            item("b", "10:30", "11:30", lane="Live"),
        ])[0]
        assert conflict.to_dict() == {
            "id": "a:b:lane_overlap",
            "kind": "lane_overlap",
            "severity": "warning",
            "message": "A overlaps with B in the Live lane",
            "item_ids": ["a", "b"],
        }


class TestTravel:
    """Test travel estimates."""

    def test_estimates(self):
        assert estimate_travel_hours("Dublin", None, " dublin ", None) == 1.0
        assert estimate_travel_hours("London", None, "Paris", None) == 5.0
        assert estimate_travel_hours("London", None, "Tokyo", None) == 14.0
        assert estimate_travel_hours("Sydney", None, "Toronto", None) == 16.0
        assert estimate_travel_hours(None, "IE", None, "US") == 14.0
        assert estimate_travel_hours("Atlantis", None, "Paris", None, default_hours=9) == 9.0

    def test_resolve_region(self):
        assert resolve_region(territory="ie") == "europe"
        assert resolve_region(city="Mexico  City") == "latin_america"
        assert resolve_region(city="Nowhere", territory="JP") == "asia"
        assert resolve_region() is None


class TestSlots:
    """Test free slot suggestions."""

    def test_gaps_around_items(self):
        slots = find_available_slots(
            [item("a", "11:00", "13:00")],
            date_range=(at("09:00"), at("18:00")),
            duration_hours=1,
        )
        starts = [slot.start.strftime("%H:%M") for slot in slots]

        assert starts == ["09:00", "13:00", "15:00"]
        assert all(slot.confidence == "high" for slot in slots)

    def test_business_hours_lower_confidence(self):
        slots = find_available_slots(
            [],
            date_range=(at("06:00"), at("20:00")),
            duration_hours=1,
            constraints=["prefer_business_hours"],
        )

        assert [slot.start.strftime("%H:%M") for slot in slots] == ["12:30", "06:00"]
        assert slots[1].confidence == "medium"
        assert slots[1].reasons == ("Outside business hours",)

    def test_weekend(self):
        slots = find_available_slots([], date_range=(at("09:00", "2024-03-16"), at("11:00", "2024-03-16")), duration_hours=1)
        assert slots[0].reasons == ("Falls on a weekend",)
        assert slots[0].confidence == "medium"

    def test_travel_buffers(self):
        items = [item("a", "11:00", "13:00", city="London")]
        day = (at("00:00"), at("00:00", "2024-03-12"))

        plain = find_available_slots(items, date_range=day, duration_hours=1)
        travel = find_available_slots(
            items, date_range=day, duration_hours=1, city="Paris", constraints=["not_overlapping_travel"]
        )
        blocked_start = datetime(2024, 3, 11, 6, tzinfo=timezone.utc)
        blocked_end = datetime(2024, 3, 11, 18, tzinfo=timezone.utc)

        assert any(blocked_start <= slot.start < blocked_end for slot in plain)
        assert travel
        assert all(slot.end <= blocked_start or slot.start >= blocked_end for slot in travel)

    def test_timezone_jump_constraint(self):
        slots = find_available_slots(
            [item("a", "08:00", "09:00", timezone="America/New_York")],
            date_range=(at("09:00"), at("10:00")),
            duration_hours=1,
            constraints=["avoid_timezone_jumps"],
        )
        assert slots[0].reasons == ("Adjacent to an item in another timezone",)

    def test_max_results(self):
        slots = find_available_slots([], date_range=(at("00:00"), at("23:00")), duration_hours=1, max_results=1)
        assert len(slots) == 1

    def test_to_dict(self):
        slot = find_available_slots([], date_range=(at("09:00"), at("10:00")), duration_hours=1)[0]
        assert slot.to_dict() == {
            "start": "2024-03-11T09:00:00+00:00",
            "end": "2024-03-11T10:00:00+00:00",
            "confidence": "high",
            "reasons": [],
        }

    @pytest.mark.parametrize("date_range,duration", [
        ((at("10:00"), at("09:00")), 1),
        (("soon", at("09:00")), 1),
        ((at("09:00"), at("10:00")), 0),
    ])
    def test_invalid_arguments(self, date_range, duration):
        with pytest.raises(ValueError):
            find_available_slots([], date_range=date_range, duration_hours=duration)
