"""
Project health score and per-project digest metrics.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from pydantic import BaseModel

from triage_core.conflicts.models import Conflict
from triage_core.rank.timeline import is_terminal
from triage_core.schemas import MessageRecord, ProjectMetrics, TaskRecord, TimelineItemRecord
from triage_core.scoring.models import HealthConfig
from triage_core.utils.tz import parse_timestamp, round_half_up

# Keys older project profiles use for externally supplied metrics.
_LEGACY_METRIC_KEYS = {
    "openTaskCount": "open_tasks",
    "upcomingTimelineCount": "upcoming_timeline",
    "linkedEmailCount": "linked_emails",
    "conflictCount": "conflicts",
    "healthScore": "health_score",
    "healthTrend": "trend",
}


def _count(counts: Any, name: str) -> int:
    value = counts.get(name, 0) if isinstance(counts, Mapping) else getattr(counts, name, 0)
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


def compute_project_health(counts: Any, config: Optional[HealthConfig] = None) -> int:
    """
    ``base - min(cap, per_open_task * n) - min(cap, per_conflict * n) - min(cap, per_email * n)``,
    clamped to ``[min_score, max_score]``.

    ``counts`` is a mapping or object with ``open_tasks``, ``conflicts`` and
    ``linked_emails``.
    """
    config = config or HealthConfig()
    score = (
        config.base_score
        - min(config.open_task_penalty_cap, config.open_task_penalty_per_item * _count(counts, "open_tasks"))
        - min(config.conflict_penalty_cap, config.conflict_penalty_per_item * _count(counts, "conflicts"))
        - min(config.linked_email_penalty_cap, config.linked_email_penalty_per_item * _count(counts, "linked_emails"))
    )
    return int(round_half_up(min(config.max_score, max(config.min_score, score))))


def supplied_metrics(raw: Optional[Mapping[str, Any]]) -> dict:
    """Externally supplied metric values, keyed by ``ProjectMetrics`` field name."""
    if not raw:
        return {}
    if isinstance(raw, BaseModel):
        raw = raw.model_dump(exclude_unset=True)
    aliases = {field.alias: name for name, field in ProjectMetrics.model_fields.items() if field.alias}
    supplied = {}
    for key, value in raw.items():
        name = _LEGACY_METRIC_KEYS.get(key) or aliases.get(key, key)
        if value is not None and name in ProjectMetrics.model_fields:
            supplied[name] = value
    return supplied


def _is_upcoming(item: TimelineItemRecord, now: datetime) -> bool:
    moment = parse_timestamp(item.starts_at) or parse_timestamp(item.due_at)
    return moment is not None and moment >= now


def project_metrics(
    *,
    tasks: Sequence[TaskRecord] = (),
    timeline_items: Sequence[TimelineItemRecord] = (),
    emails: Sequence[MessageRecord] = (),
    conflicts: Sequence[Conflict] = (),
    now: datetime,
    supplied: Optional[Mapping[str, Any]] = None,
    config: Optional[HealthConfig] = None,
) -> ProjectMetrics:
    """Counts derived from the snapshot; any externally supplied value wins."""
    reference = parse_timestamp(now)
    computed = {
        "open_tasks": sum(1 for task in tasks if not is_terminal(task.status)),
        "upcoming_timeline": sum(
            1 for item in timeline_items if not is_terminal(item.status) and _is_upcoming(item, reference)
        ),
        "linked_emails": sum(1 for email in emails if email.triage_state != "resolved"),
        "conflicts": len(conflicts),
    }
    overrides = supplied_metrics(supplied)
    merged = {**computed, **overrides}
    if "health_score" not in overrides:
        merged["health_score"] = compute_project_health(merged, config)
    return ProjectMetrics.model_validate(merged)


__all__ = ["compute_project_health", "project_metrics", "supplied_metrics"]
