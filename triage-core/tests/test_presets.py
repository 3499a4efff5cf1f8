"""
Test scoring presets and scheduled activation.
"""
import pytest
from datetime import datetime, timezone
from triage_core.scoring import (
    DEFAULT_SCORING_CONFIG,
    UnknownPresetError,
    apply_preset,
    apply_scheduled_preset,
    get_preset,
    list_presets,
    normalize,
    resolve_scheduled_preset,
)

MONDAY_9AM = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


def scheduled(entries, tz="UTC"):
    return normalize({"scheduling": {"timezone": tz, "entries": entries}})


class TestPresets:
    """Test preset lookup and application."""

    def test_list_presets(self):
        slugs = [preset.slug for preset in list_presets()]
        assert slugs == ["balanced", "touring", "release_week", "finance_close", "inbox_zero"]

    def test_get_preset_is_case_insensitive(self):
        assert get_preset(" TOURING ").slug == "touring"
        assert get_preset("nope") is None
        assert get_preset(None) is None

    def test_apply_preset_merges_over_base(self):
        config = apply_preset("inbox_zero")
        assert config.email.unread_bonus == 26
        assert config.email.triage_state_adjustments["unassigned"] == 20
        assert config.email.triage_state_adjustments["snoozed"] == -24
        assert DEFAULT_SCORING_CONFIG.email.unread_bonus == 18

    def test_balanced_is_default(self):
        assert apply_preset("balanced") == DEFAULT_SCORING_CONFIG

    def test_unknown_preset_raises(self):
        with pytest.raises(UnknownPresetError, match="Unknown scoring preset 'nope'"):
            apply_preset("nope")

    def test_preset_to_dict_omits_overrides(self):
        data = get_preset("touring").to_dict()
        assert data["slug"] == "touring"
        assert "overrides" not in data


class TestScheduling:
    """Test day/time windows."""

    def test_active_window(self):
        config = scheduled([{"id": "am", "preset_slug": "inbox_zero", "days_of_week": [1, 2, 3, 4, 5],
                             "start_time": "08:00", "end_time": "12:00"}])
        assert resolve_scheduled_preset(config, MONDAY_9AM).id == "am"

    def test_outside_hours(self):
        config = scheduled([{"id": "am", "preset_slug": "inbox_zero", "start_time": "08:00", "end_time": "12:00"}])
        assert resolve_scheduled_preset(config, MONDAY_9AM.replace(hour=12)) is None

    def test_wrong_weekday(self):
        config = scheduled([{"id": "weekend", "preset_slug": "inbox_zero", "days_of_week": [0, 6]}])
        assert resolve_scheduled_preset(config, MONDAY_9AM) is None
        assert resolve_scheduled_preset(config, datetime(2024, 1, 14, 9, tzinfo=timezone.utc)).id == "weekend"

    def test_window_wrapping_midnight(self):
        config = scheduled([{"id": "night", "preset_slug": "inbox_zero", "start_time": "22:00", "end_time": "02:00"}])
        assert resolve_scheduled_preset(config, MONDAY_9AM.replace(hour=1)).id == "night"
        assert resolve_scheduled_preset(config, MONDAY_9AM.replace(hour=23)).id == "night"
        assert resolve_scheduled_preset(config, MONDAY_9AM) is None

    def test_malformed_clock_never_matches(self):
        config = scheduled([{"id": "bad", "preset_slug": "inbox_zero", "start_time": "8am"}])
        assert resolve_scheduled_preset(config, MONDAY_9AM) is None

    def test_schedule_timezone(self):
        config = scheduled([{"id": "am", "preset_slug": "inbox_zero", "start_time": "08:00", "end_time": "09:00"}],
                           tz="America/New_York")
        assert resolve_scheduled_preset(config, datetime(2024, 1, 15, 13, 30, tzinfo=timezone.utc)).id == "am"
        assert resolve_scheduled_preset(config, MONDAY_9AM) is None

    def test_apply_scheduled_preset(self):
        config = scheduled([{"id": "am", "preset_slug": "inbox_zero"}])
        applied = apply_scheduled_preset(config, MONDAY_9AM)

        assert applied.email.unread_bonus == 26
        assert applied.scheduling.entries[0].id == "am"

    def test_auto_apply_disabled(self):
        config = scheduled([{"id": "am", "preset_slug": "inbox_zero", "auto_apply": False}])
        assert apply_scheduled_preset(config, MONDAY_9AM) is config

    def test_scheduled_unknown_preset_raises(self):
        config = scheduled([{"id": "am", "preset_slug": "missing"}])
        with pytest.raises(UnknownPresetError):
            apply_scheduled_preset(config, MONDAY_9AM)
