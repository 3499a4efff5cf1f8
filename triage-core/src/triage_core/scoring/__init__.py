"""
Scoring configuration: models, frozen defaults, sanitizer and presets.
"""
from .defaults import DEFAULT_SCORING_CONFIG
from .models import (
    ActionRule,
    AdvancedBoost,
    BoostCriteria,
    CrossLabelRule,
    ScheduleEntry,
    ScoringConfig,
)
from .presets import (
    ScoringPreset,
    UnknownPresetError,
    apply_preset,
    apply_scheduled_preset,
    get_preset,
    list_presets,
    resolve_scheduled_preset,
)
from .sanitize import canonical_json, clone, get_scoring_config, is_equal, normalize

__all__ = [
    "DEFAULT_SCORING_CONFIG",
    "ActionRule",
    "AdvancedBoost",
    "BoostCriteria",
    "CrossLabelRule",
    "ScheduleEntry",
    "ScoringConfig",
    "ScoringPreset",
    "UnknownPresetError",
    "apply_preset",
    "apply_scheduled_preset",
    "get_preset",
    "list_presets",
    "resolve_scheduled_preset",
    "canonical_json",
    "clone",
    "get_scoring_config",
    "is_equal",
    "normalize",
]
