"""
Named scoring presets and day/time scheduled activation.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import structlog

from ..utils.tz import ensure_aware, resolve_zone
from .defaults import DEFAULT_SCORING_CONFIG
from .models import ScheduleEntry, ScoringConfig
from .sanitize import normalize

logger = structlog.get_logger()

MINUTES_PER_DAY = 24 * 60


class UnknownPresetError(ValueError):
    """Raised when a preset slug does not name a known preset."""

    def __init__(self, slug: str, known: Tuple[str, ...]):
        self.slug = slug
        self.known = known
        super().__init__(f"Unknown scoring preset '{slug}'. Known presets: {', '.join(known)}")


@dataclass(frozen=True)
class ScoringPreset:
    slug: str
    name: str
    description: str
    recommended_scenarios: Tuple[str, ...] = ()
    adjustments: Tuple[str, ...] = ()
    overrides: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slug": self.slug,
            "name": self.name,
            "description": self.description,
            "recommended_scenarios": list(self.recommended_scenarios),
            "adjustments": list(self.adjustments),
        }


_PRESETS: Tuple[ScoringPreset, ...] = (
    ScoringPreset(
        slug="balanced",
        name="Balanced",
        description="Default weighting across contracts, money, logistics and promo.",
        recommended_scenarios=("Day-to-day management", "Mixed project load"),
        adjustments=("Uses the default configuration unchanged",),
        overrides={},
    ),
    ScoringPreset(
        slug="touring",
        name="Touring",
        description="Puts travel, advancing and day sheets first while shows are on the road.",
        recommended_scenarios=("Active tour legs", "Festival runs"),
        adjustments=(
            "Logistics categories weighted up",
            "Upcoming dates score higher and decay slower",
            "Reschedule and cancellation mail treated as critical",
        ),
        overrides={
            "time": {"upcoming_base_score": 55, "upcoming_decay_per_day": 3},
            "email": {
                "category_weights": {
                    "LOGISTICS/Itinerary_DaySheet": 92,
                    "LOGISTICS/Travel": 96,
                    "LOGISTICS/Accommodation": 86,
                    "LOGISTICS/Ground_Transport": 84,
                    "LOGISTICS/Technical_Advance": 90,
                    "BOOKING/Reschedule_or_Cancel": 100,
                    "PROMO/Promos_Submission": 40,
                },
            },
            "timeline": {"conflict_penalties": {"error": 35, "warning": 20}},
        },
    ),
    ScoringPreset(
        slug="release_week",
        name="Release week",
        description="Favours promo requests, deliverables and assets around a release.",
        recommended_scenarios=("Single or album release", "Press campaigns"),
        adjustments=(
            "Promo and asset categories weighted up",
            "Unread mail gets a larger bonus",
        ),
        overrides={
            "email": {
                "category_weights": {
                    "PROMO/Promo_Time_Request": 90,
                    "PROMO/Press_Feature": 78,
                    "PROMO/Radio_Playlist": 74,
                    "PROMO/Deliverables": 88,
                    "ASSETS/Artwork": 72,
                    "ASSETS/Audio": 82,
                    "ASSETS/Video": 76,
                },
                "unread_bonus": 24,
            },
        },
    ),
    ScoringPreset(
        slug="finance_close",
        name="Finance close",
        description="Surfaces settlements, invoices and approvals during month-end close.",
        recommended_scenarios=("Month-end close", "Tour settlement"),
        adjustments=(
            "Finance categories weighted up",
            "Pending approvals carry a larger bonus",
            "Overdue items are penalized faster",
        ),
        overrides={
            "time": {"overdue_penalty_per_day": 9},
            "email": {
                "category_weights": {
                    "FINANCE/Settlement": 98,
                    "FINANCE/Invoice": 94,
                    "FINANCE/Payment_Remittance": 86,
                    "FINANCE/Expenses_Receipts": 78,
                    "FINANCE/Royalties_Publishing": 74,
                },
                "cross_label_rules": [{"prefix": "approval/", "weight": 32}],
            },
        },
    ),
    ScoringPreset(
        slug="inbox_zero",
        name="Inbox zero",
        description="Pushes idle and unacknowledged mail up so the inbox drains.",
        recommended_scenarios=("Catching up after time off",),
        adjustments=(
            "Idle mail accrues score faster",
            "Unassigned mail gets a larger triage bonus",
            "Acknowledged mail is demoted less",
        ),
        overrides={
            "email": {
                "unread_bonus": 26,
                "triage_state_adjustments": {"unassigned": 20, "acknowledged": -4},
                "idle_age": {
                    "short_window_multiplier": 7,
                    "medium_window_multiplier": 3,
                    "long_window_max_bonus": 40,
                },
            },
        },
    ),
)

_PRESETS_BY_SLUG = {preset.slug: preset for preset in _PRESETS}


def list_presets() -> List[ScoringPreset]:
    return list(_PRESETS)


def get_preset(slug: Optional[str]) -> Optional[ScoringPreset]:
    """Case-insensitive preset lookup; None when unknown."""
    if not isinstance(slug, str):
        return None
    return _PRESETS_BY_SLUG.get(slug.strip().lower())


def apply_preset(slug: str, base: Optional[ScoringConfig] = None) -> ScoringConfig:
    """
    Equivalent to ``normalize(preset.overrides, base)``.

    Raises:
        UnknownPresetError: If ``slug`` does not name a preset
    """
    preset = get_preset(slug)
    if preset is None:
        raise UnknownPresetError(str(slug), tuple(_PRESETS_BY_SLUG))
    return normalize(preset.overrides, base if base is not None else DEFAULT_SCORING_CONFIG)


def _parse_clock(value: Optional[str]) -> Optional[int]:
    """``HH:MM`` to minutes after midnight; None when malformed."""
    if not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    if len(parts) != 2 or not all(part.isdigit() for part in parts):
        return None
    hours, minutes = int(parts[0]), int(parts[1])
    if hours > 24 or minutes > 59 or (hours == 24 and minutes):
        return None
    return hours * 60 + minutes


def _entry_is_active(entry: ScheduleEntry, weekday: int, minute: int) -> bool:
    if entry.days_of_week and weekday not in entry.days_of_week:
        return False

    start = _parse_clock(entry.start_time)
    if start is None:
        return False
    end = _parse_clock(entry.end_time) if entry.end_time else MINUTES_PER_DAY
    if end is None:
        return False

    if end > start:
        return start <= minute < end
    # Window wraps past midnight
    return minute >= start or minute < end


def resolve_scheduled_preset(config: ScoringConfig, now: datetime) -> Optional[ScheduleEntry]:
    """First schedule entry active at ``now`` in the scheduling timezone."""
    zone = resolve_zone(config.scheduling.timezone)
    local = ensure_aware(now)
    if zone is not None:
        local = local.astimezone(zone)

    # Sunday is day 0
    weekday = (local.weekday() + 1) % 7
    minute = local.hour * 60 + local.minute

    for entry in config.scheduling.entries:
        if _entry_is_active(entry, weekday, minute):
            return entry
    return None


def apply_scheduled_preset(config: ScoringConfig, now: datetime) -> ScoringConfig:
    """
    Apply the active scheduled preset when it is marked ``auto_apply``.

    Raises:
        UnknownPresetError: If the active entry names an unknown preset
    """
    entry = resolve_scheduled_preset(config, now)
    if entry is None or not entry.auto_apply:
        return config

    logger.debug("Applying scheduled preset", entry_id=entry.id, preset=entry.preset_slug)
    return apply_preset(entry.preset_slug, config)
