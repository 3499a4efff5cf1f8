"""Multi-signal conversation thread scoring."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from triage_core.rank.models import ScoreComponent, ScoredEntity, build_rationale
from triage_core.schemas import ThreadSignals, coerce_record
from triage_core.scoring.defaults import DEFAULT_SCORING_CONFIG
from triage_core.scoring.models import THREAD_COMPONENTS, ScoringConfig, ThreadScoringConfig
from triage_core.utils.tz import hours_between, parse_timestamp, reference_time, round_half_up


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    if value != value:
        return low
    return max(low, min(high, value))


@dataclass(frozen=True)
class ThreadComponentScore:
    """One normalized (0-100) sub-score with its normalized weight."""

    id: str
    label: str
    value: float
    weight: float = 0.0
    weighted_value: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "value": self.value,
            "weight": self.weight,
            "weighted_value": self.weighted_value,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class ThreadScoreBreakdown:
    """Detailed breakdown for explainability."""

    score: float
    components: Tuple[ThreadComponentScore, ...]

    @property
    def total(self) -> int:
        return round_half_up(self.score)

    def component(self, component_id: str) -> Optional[ThreadComponentScore]:
        for component in self.components:
            if component.id == component_id:
                return component
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "components": [c.to_dict() for c in self.components]}


def normalize_weights(weights: Mapping[str, float]) -> Dict[str, float]:
    """Scale weights to sum to 1; uniform when they sum to zero or less."""
    values = {key: max(0.0, float(weights.get(key, 0.0))) for key in THREAD_COMPONENTS}
    total = sum(values.values())
    if total <= 0:
        uniform = 1.0 / len(THREAD_COMPONENTS)
        return {key: uniform for key in THREAD_COMPONENTS}
    return {key: value / total for key, value in values.items()}


def _recency(signals: ThreadSignals, now: datetime, config: ThreadScoringConfig) -> ThreadComponentScore:
    last = parse_timestamp(signals.last_message_at)
    if last is None:
        return ThreadComponentScore("recency", "Recency", 0.0, metadata={"reason": "missing_last_message"})

    hours_since = hours_between(now, last)
    if hours_since <= 0:
        return ThreadComponentScore("recency", "Recency", 100.0, metadata={"hours_since_last_message": hours_since})

    half_life = max(config.recency_half_life_hours, 1.0)
    value = _clamp(0.5 ** (hours_since / half_life) * 100)
    return ThreadComponentScore(
        "recency",
        "Recency",
        value,
        metadata={"hours_since_last_message": hours_since, "half_life_hours": half_life},
    )


def _heat(signals: ThreadSignals, config: ThreadScoringConfig) -> ThreadComponentScore:
    if signals.recent_message_count is not None:
        recent = signals.recent_message_count
    else:
        recent = signals.message_count or 0
    unread = signals.unread_count or 0
    threshold = max(config.heat.high_activity_threshold, 1)

    base = _clamp(recent / threshold * 100)
    unread_part = _clamp(unread * config.heat.unread_contribution)
    return ThreadComponentScore(
        "heat",
        "Heat",
        _clamp(base + unread_part),
        metadata={"recent_count": recent, "unread": unread, "threshold": threshold},
    )


def _urgency(signals: ThreadSignals, now: datetime, config: ThreadScoringConfig) -> ThreadComponentScore:
    urgency = config.urgency
    value = 0.0
    metadata: Dict[str, Any] = {}

    deadline = parse_timestamp(signals.upcoming_deadline_at)
    if deadline is not None:
        hours_until = hours_between(deadline, now)
        metadata["hours_until_deadline"] = hours_until
        if hours_until <= 0:
            value = 100.0
        elif hours_until <= urgency.immediate_deadline_hours:
            value = 95.0
        elif hours_until <= urgency.soon_deadline_hours:
            value = 80.0
        elif hours_until <= urgency.upcoming_week_hours:
            value = 55.0
        else:
            value = 35.0

    if signals.has_urgent_keyword:
        value = _clamp(value + urgency.urgent_keyword_bonus)
        metadata["has_urgent_keyword"] = True

    expected = parse_timestamp(signals.expected_reply_by)
    if expected is not None:
        hours_until_reply = hours_between(expected, now)
        metadata["hours_until_expected_reply"] = hours_until_reply
        if hours_until_reply <= -urgency.expected_reply_overdue_hours:
            value = max(value, 90.0)
            metadata["expected_reply_status"] = "overdue"
        elif hours_until_reply <= urgency.immediate_deadline_hours:
            value = max(value, 75.0)
            metadata["expected_reply_status"] = "due_soon"

    return ThreadComponentScore("urgency", "Urgency", value, metadata=metadata)


def _impact(signals: ThreadSignals, config: ThreadScoringConfig) -> ThreadComponentScore:
    impact = config.impact
    attachments = signals.attachments_of_interest_count or 0
    attachment_score = _clamp(attachments * impact.attachment_value, 0.0, impact.max_attachment_score)
    project_priority = _clamp(signals.linked_project_priority or 0.0)
    project_part = _clamp(project_priority * impact.project_priority_multiplier)
    unread = _clamp(float(signals.unread_count or 0))

    return ThreadComponentScore(
        "impact",
        "Impact",
        _clamp(attachment_score + project_part + unread),
        metadata={
            "attachments_count": attachments,
            "attachment_score": attachment_score,
            "project_priority": project_priority,
            "project_contribution": project_part,
            "unread": unread,
        },
    )


def _outstanding(signals: ThreadSignals, now: datetime, config: ThreadScoringConfig) -> ThreadComponentScore:
    outstanding = config.outstanding
    questions = max(signals.outstanding_questions or 0, 0)
    overdue = max(signals.overdue_questions or 0, 0)

    value = questions * outstanding.base_question_value
    if overdue > 0:
        value += overdue * outstanding.overdue_bonus

    expected = parse_timestamp(signals.expected_reply_by)
    if expected is not None and hours_between(now, expected) > outstanding.expected_reply_grace_hours:
        value = max(value, 80.0)

    return ThreadComponentScore(
        "outstanding",
        "Outstanding Work",
        _clamp(value, 0.0, outstanding.max_score),
        metadata={"outstanding_count": questions, "overdue_count": overdue},
    )


def score_thread(
    signals: Union[ThreadSignals, dict],
    *,
    config: Optional[ScoringConfig] = None,
    now: datetime,
) -> ThreadScoreBreakdown:
    """Blend five normalized sub-scores with normalized weights into a 0-100 score."""
    signals = coerce_record(ThreadSignals, signals)
    thread_config = (config or DEFAULT_SCORING_CONFIG).threads
    now = reference_time(now)
    weights = normalize_weights(thread_config.weights)

    raw = (
        _recency(signals, now, thread_config),
        _heat(signals, thread_config),
        _urgency(signals, now, thread_config),
        _impact(signals, thread_config),
        _outstanding(signals, now, thread_config),
    )

    components = tuple(
        ThreadComponentScore(
            id=component.id,
            label=component.label,
            value=component.value,
            weight=weights[component.id],
            weighted_value=_clamp(component.value * weights[component.id]),
            metadata=component.metadata,
        )
        for component in raw
    )
    return ThreadScoreBreakdown(
        score=_clamp(sum(component.weighted_value for component in components)),
        components=components,
    )


def score_thread_entity(
    thread_id: str,
    signals: Union[ThreadSignals, dict],
    *,
    title: str = "",
    project_id: Optional[str] = None,
    config: Optional[ScoringConfig] = None,
    now: datetime,
) -> ScoredEntity:
    """Thread score in the common ScoredEntity shape; components carry weighted values."""
    config = config or DEFAULT_SCORING_CONFIG
    breakdown = score_thread(signals, config=config, now=now)
    components = tuple(
        ScoreComponent(component.label, round_half_up(component.weighted_value))
        for component in breakdown.components
    )
    return ScoredEntity(
        id=f"thread:{thread_id}",
        entity_type="thread",
        title=title,
        score=breakdown.total,
        components=components,
        rationale=build_rationale(components, config.email.explainability),
        project_id=project_id,
        ref_table="email_threads",
        ref_id=thread_id,
        extra={"thread_breakdown": breakdown.to_dict()},
    )


__all__ = [
    "ThreadComponentScore",
    "ThreadScoreBreakdown",
    "normalize_weights",
    "score_thread",
    "score_thread_entity",
]
