"""
Scoring configuration value objects.

Every numeric tunable declares its valid range through ``Field(ge=..., le=...)``.
The sanitizer in ``triage_core.scoring.sanitize`` reads these bounds, so the
declaration here is the single source of truth for what a valid config is.
Integer-typed tunables are rounded by the sanitizer.

Models are frozen; list-valued sections are tuples and maps are read-only
proxies that dump back to plain dicts. Build new configs with ``normalize()``
instead of mutating an existing one.
"""
from types import MappingProxyType
from typing import Annotated, Any, Dict, Literal, Mapping, Optional, Tuple

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer


class FrozenModel(BaseModel):
    """Base for immutable config sections."""
    model_config = ConfigDict(frozen=True, extra="ignore", validate_default=True)


CategoryWeight = Annotated[int, Field(ge=0, le=100)]
TriageAdjustment = Annotated[int, Field(ge=-200, le=200)]
StatusBoost = Annotated[int, Field(ge=-100, le=200)]
ConflictPenalty = Annotated[int, Field(ge=0, le=200)]
ThreadWeight = Annotated[float, Field(ge=0.0, le=10.0)]


def _read_only(value: Dict[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(value)


def _plain_dict(value: Mapping[str, Any]) -> Dict[str, Any]:
    return dict(value)


_READ_ONLY = AfterValidator(_read_only)
_AS_DICT = PlainSerializer(_plain_dict)

CategoryWeights = Annotated[Dict[str, CategoryWeight], _READ_ONLY, _AS_DICT]
TriageAdjustments = Annotated[Dict[str, TriageAdjustment], _READ_ONLY, _AS_DICT]
StatusBoosts = Annotated[Dict[str, StatusBoost], _READ_ONLY, _AS_DICT]
ConflictPenalties = Annotated[Dict[str, ConflictPenalty], _READ_ONLY, _AS_DICT]
ThreadWeights = Annotated[Dict[str, ThreadWeight], _READ_ONLY, _AS_DICT]
Payload = Annotated[Dict[str, Any], _READ_ONLY, _AS_DICT]

TRIAGE_STATES = ("unassigned", "acknowledged", "snoozed", "resolved")
THREAD_COMPONENTS = ("recency", "heat", "urgency", "impact", "outstanding")
ACTION_TYPES = ("playbook", "create_lead", "open_url", "custom")


class TimeDecayConfig(FrozenModel):
    """Due-date proximity and overdue curves shared by tasks and timeline items."""
    upcoming_base_score: int = Field(default=45, ge=0, le=200, description="Value when the date is now")
    upcoming_decay_per_day: int = Field(default=4, ge=0, le=50, description="Value lost per day of lead time")
    overdue_base_penalty: int = Field(default=25, ge=0, le=200, description="Flat penalty once overdue")
    overdue_penalty_per_day: int = Field(default=6, ge=0, le=100, description="Penalty per day overdue")
    overdue_max_penalty: int = Field(default=60, ge=0, le=400, description="Cap on the overdue penalty")


class IdleAgeConfig(FrozenModel):
    """Three-window idle age curve for inbound messages."""
    short_window_hours: int = Field(default=4, ge=0, le=72)
    short_window_multiplier: float = Field(default=5.0, ge=0.0, le=50.0)
    medium_window_start_hours: int = Field(default=4, ge=0, le=72)
    medium_window_end_hours: int = Field(default=24, ge=1, le=168)
    medium_window_base: int = Field(default=16, ge=0, le=200)
    medium_window_multiplier: float = Field(default=2.2, ge=0.0, le=50.0)
    long_window_start_hours: int = Field(default=24, ge=0, le=720)
    long_window_base: int = Field(default=40, ge=0, le=400)
    long_window_multiplier: float = Field(default=1.5, ge=0.0, le=50.0)
    long_window_max_bonus: int = Field(default=28, ge=0, le=400)


class CrossLabelRule(FrozenModel):
    """Bonus applied once when any label starts with ``prefix``."""
    prefix: str
    weight: int = Field(default=0, ge=-200, le=200)
    description: str = ""
    case_insensitive: bool = True


class BoostCriteria(FrozenModel):
    """All declared (non-empty) criteria must hold for a boost to fire."""
    senders: Tuple[str, ...] = ()
    domains: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    labels: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = ()
    has_attachment: Optional[bool] = None
    min_priority: Optional[int] = Field(default=None, ge=0, le=1000)


class AdvancedBoost(FrozenModel):
    id: str
    label: str = "Boost"
    description: Optional[str] = None
    weight: int = Field(default=0, ge=-200, le=200)
    criteria: BoostCriteria = Field(default_factory=BoostCriteria)
    explanation: Optional[str] = None


class ActionRule(FrozenModel):
    """Quick action offered on a message once its filters and score threshold hold."""
    id: str
    label: str = "Action"
    description: Optional[str] = None
    action_type: Literal["playbook", "create_lead", "open_url", "custom"] = "playbook"
    categories: Tuple[str, ...] = ()
    triage_states: Tuple[str, ...] = ()
    min_priority: int = Field(default=0, ge=0, le=1000)
    icon: Optional[str] = None
    color: Optional[str] = None
    payload: Optional[Payload] = None


class ExplainabilityConfig(FrozenModel):
    """Controls the human-readable rationale, never the component list."""
    show_breakdown: bool = True
    include_zero_components: bool = False
    max_rationale_items: int = Field(default=12, ge=1, le=50)


class MessageScoringConfig(FrozenModel):
    category_weights: CategoryWeights = Field(default_factory=dict)
    default_category_weight: int = Field(default=40, ge=0, le=100)
    model_priority_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    unread_bonus: int = Field(default=18, ge=-100, le=200)
    snooze_age_reduction: float = Field(default=0.65, ge=0.0, le=1.0)
    triage_state_adjustments: TriageAdjustments = Field(default_factory=dict)
    cross_label_rules: Tuple[CrossLabelRule, ...] = ()
    idle_age: IdleAgeConfig = Field(default_factory=IdleAgeConfig)
    advanced_boosts: Tuple[AdvancedBoost, ...] = ()
    action_rules: Tuple[ActionRule, ...] = ()
    explainability: ExplainabilityConfig = Field(default_factory=ExplainabilityConfig)


class TaskScoringConfig(FrozenModel):
    no_due_date_value: int = Field(default=10, ge=0, le=100)
    manual_priority_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    status_boosts: StatusBoosts = Field(default_factory=dict)


class DependencyPenalties(FrozenModel):
    finish_to_start: int = Field(default=10, ge=0, le=200)
    other: int = Field(default=6, ge=0, le=200)


class TimelineScoringConfig(FrozenModel):
    undated_value: int = Field(default=6, ge=0, le=100)
    manual_priority_weight: float = Field(default=0.25, ge=0.0, le=1.0)
    conflict_penalties: ConflictPenalties = Field(default_factory=dict)
    dependency_penalties: DependencyPenalties = Field(default_factory=DependencyPenalties)


class HealthConfig(FrozenModel):
    """Capped-penalty project health formula."""
    base_score: int = Field(default=100, ge=0, le=200)
    min_score: int = Field(default=5, ge=0, le=200)
    max_score: int = Field(default=100, ge=0, le=200)
    open_task_penalty_per_item: int = Field(default=4, ge=0, le=100)
    open_task_penalty_cap: int = Field(default=45, ge=0, le=400)
    conflict_penalty_per_item: int = Field(default=7, ge=0, le=100)
    conflict_penalty_cap: int = Field(default=30, ge=0, le=400)
    linked_email_penalty_per_item: int = Field(default=2, ge=0, le=100)
    linked_email_penalty_cap: int = Field(default=20, ge=0, le=400)


class ThreadHeatConfig(FrozenModel):
    activity_window_days: int = Field(default=7, ge=1, le=90)
    high_activity_threshold: int = Field(default=6, ge=1, le=500)
    unread_contribution: float = Field(default=5.0, ge=0.0, le=100.0)


class ThreadUrgencyConfig(FrozenModel):
    immediate_deadline_hours: float = Field(default=24.0, ge=0.0, le=720.0)
    soon_deadline_hours: float = Field(default=72.0, ge=0.0, le=720.0)
    upcoming_week_hours: float = Field(default=168.0, ge=0.0, le=2160.0)
    urgent_keyword_bonus: float = Field(default=20.0, ge=0.0, le=100.0)
    expected_reply_overdue_hours: float = Field(default=6.0, ge=0.0, le=720.0)


class ThreadImpactConfig(FrozenModel):
    attachment_value: float = Field(default=35.0, ge=0.0, le=100.0)
    max_attachment_score: float = Field(default=90.0, ge=0.0, le=100.0)
    project_priority_multiplier: float = Field(default=0.6, ge=0.0, le=1.0)


class ThreadOutstandingConfig(FrozenModel):
    base_question_value: float = Field(default=25.0, ge=0.0, le=100.0)
    overdue_bonus: float = Field(default=15.0, ge=0.0, le=100.0)
    expected_reply_grace_hours: float = Field(default=12.0, ge=0.0, le=720.0)
    max_score: float = Field(default=100.0, ge=0.0, le=100.0)


class ThreadScoringConfig(FrozenModel):
    """Multi-signal conversation thread scoring; weights are normalized before use."""
    weights: ThreadWeights = Field(default_factory=dict)
    recency_half_life_hours: float = Field(default=24.0, ge=1.0, le=720.0)
    heat: ThreadHeatConfig = Field(default_factory=ThreadHeatConfig)
    urgency: ThreadUrgencyConfig = Field(default_factory=ThreadUrgencyConfig)
    impact: ThreadImpactConfig = Field(default_factory=ThreadImpactConfig)
    outstanding: ThreadOutstandingConfig = Field(default_factory=ThreadOutstandingConfig)


class ScheduleEntry(FrozenModel):
    """Activates a preset on given weekdays (0=Sunday) between ``start_time`` and ``end_time``."""
    id: str
    label: str = "Scheduled preset"
    preset_slug: str = ""
    days_of_week: Tuple[Annotated[int, Field(ge=0, le=6)], ...] = ()
    start_time: str = "08:00"
    end_time: Optional[str] = None
    auto_apply: bool = True


class SchedulingConfig(FrozenModel):
    timezone: str = "UTC"
    entries: Tuple[ScheduleEntry, ...] = ()


class ScoringConfig(FrozenModel):
    """Root of the versionable scoring configuration."""
    version: int = Field(default=2, ge=1, le=1000)
    time: TimeDecayConfig = Field(default_factory=TimeDecayConfig)
    email: MessageScoringConfig = Field(default_factory=MessageScoringConfig)
    tasks: TaskScoringConfig = Field(default_factory=TaskScoringConfig)
    timeline: TimelineScoringConfig = Field(default_factory=TimelineScoringConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    threads: ThreadScoringConfig = Field(default_factory=ThreadScoringConfig)
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible representation."""
        return self.model_dump(mode="json")
