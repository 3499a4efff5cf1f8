"""Timeline item scoring: dates, manual priority, conflicts and blocking dependencies."""
from __future__ import annotations

from datetime import datetime
from typing import List, Mapping, Optional, Sequence, Union

from triage_core.conflicts.models import Conflict
from triage_core.rank.dates import date_components, manual_priority_component
from triage_core.rank.models import ScoreComponent, ScoredEntity, build_rationale, floor_total, iso_or_none
from triage_core.schemas import TERMINAL_STATUSES, DependencyRecord, TimelineItemRecord, coerce_record
from triage_core.scoring.defaults import DEFAULT_SCORING_CONFIG
from triage_core.scoring.models import ScoringConfig
from triage_core.utils.tz import reference_time

_DATE_FIELDS = (("starts_at", "Starts"), ("ends_at", "Ends"), ("due_at", "Due"))


def is_terminal(status: Optional[str]) -> bool:
    return bool(status) and status.strip().lower() in TERMINAL_STATUSES


def conflict_penalty(severity: str, config: ScoringConfig) -> int:
    penalties = config.timeline.conflict_penalties
    return penalties.get(severity, penalties.get("default", 15))


def timeline_components(
    item: Union[TimelineItemRecord, dict],
    *,
    config: Optional[ScoringConfig] = None,
    now: datetime,
    conflicts: Sequence[Conflict] = (),
    dependencies: Sequence[DependencyRecord] = (),
    items_by_id: Optional[Mapping[str, TimelineItemRecord]] = None,
) -> List[ScoreComponent]:
    """
    Components for one timeline item.

    The first present of ``starts_at``, ``ends_at`` and ``due_at`` drives the
    date component; an unparsable value drops it. Each conflict adds a
    severity-dependent penalty. Each unresolved dependency blocking the item
    adds a penalty, heavier for finish-to-start. A dependency is resolved once
    its source item reaches a terminal status; unknown sources count as
    unresolved.
    """
    item = coerce_record(TimelineItemRecord, item)
    config = config or DEFAULT_SCORING_CONFIG
    now = reference_time(now)
    items_by_id = items_by_id or {}
    components: List[ScoreComponent] = []

    for field_name, prefix in _DATE_FIELDS:
        value = getattr(item, field_name)
        if value is not None and value != "":
            components.extend(date_components(value, now, prefix, config.time))
            break
    else:
        components.append(ScoreComponent("Undated timeline entry", config.timeline.undated_value))

    components.extend(manual_priority_component(item.priority, config.timeline.manual_priority_weight))

    for conflict in conflicts:
        if item.id not in conflict.item_ids:
            continue
        components.append(ScoreComponent(f"Conflict: {conflict.message}", -conflict_penalty(conflict.severity, config)))

    penalties = config.timeline.dependency_penalties
    for raw in dependencies:
        dependency = coerce_record(DependencyRecord, raw)
        if dependency.to_item_id != item.id:
            continue
        blocker = items_by_id.get(dependency.from_item_id)
        if blocker is not None and is_terminal(blocker.status):
            continue
        penalty = penalties.finish_to_start if dependency.is_finish_to_start else penalties.other
        if penalty:
            name = blocker.title if blocker is not None and blocker.title else dependency.from_item_id
            components.append(ScoreComponent(f"Blocked by {name}", -penalty))

    return components


def score_timeline_item(
    item: Union[TimelineItemRecord, dict],
    *,
    config: Optional[ScoringConfig] = None,
    now: datetime,
    conflicts: Sequence[Conflict] = (),
    dependencies: Sequence[DependencyRecord] = (),
    items_by_id: Optional[Mapping[str, TimelineItemRecord]] = None,
) -> ScoredEntity:
    item = coerce_record(TimelineItemRecord, item)
    config = config or DEFAULT_SCORING_CONFIG
    components = timeline_components(
        item,
        config=config,
        now=now,
        conflicts=conflicts,
        dependencies=dependencies,
        items_by_id=items_by_id,
    )

    return ScoredEntity(
        id=f"timeline:{item.id}",
        entity_type="timeline",
        title=item.title,
        score=floor_total(components),
        components=tuple(components),
        rationale=build_rationale(components, config.email.explainability),
        project_id=item.project_id,
        due_at=iso_or_none(item.due_at if item.due_at is not None else item.ends_at),
        starts_at=iso_or_none(item.starts_at),
        ends_at=iso_or_none(item.ends_at),
        status=item.status,
        ref_table="timeline_items",
        ref_id=item.id,
        priority=item.priority,
    )


__all__ = ["conflict_penalty", "is_terminal", "score_timeline_item", "timeline_components"]
