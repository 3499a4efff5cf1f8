"""
Top-actions aggregation for one project.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import structlog

from triage_core.conflicts.detector import detect_conflicts
from triage_core.conflicts.models import Conflict
from triage_core.rank.message import score_message
from triage_core.rank.models import ScoredEntity
from triage_core.rank.task import score_task
from triage_core.rank.timeline import is_terminal, score_timeline_item
from triage_core.schemas import (
    DependencyRecord,
    MessageRecord,
    TaskRecord,
    TimelineItemRecord,
    coerce_record,
)
from triage_core.scoring.defaults import DEFAULT_SCORING_CONFIG
from triage_core.scoring.models import ScoringConfig
from triage_core.utils.tz import reference_time

logger = structlog.get_logger()

DEFAULT_MINIMUM_COUNT = 5
RESOLVED_TRIAGE_STATE = "resolved"


def rank_entities(entities: Iterable[ScoredEntity]) -> List[ScoredEntity]:
    """Highest score first; ties keep their input order."""
    return sorted(entities, key=lambda entity: -entity.score)


def compute_top_actions(
    *,
    tasks: Sequence[Any] = (),
    timeline_items: Sequence[Any] = (),
    dependencies: Sequence[Any] = (),
    emails: Sequence[Any] = (),
    conflicts: Optional[Sequence[Conflict]] = None,
    now: datetime,
    minimum_count: Optional[int] = DEFAULT_MINIMUM_COUNT,
    config: Optional[ScoringConfig] = None,
    project_id: Optional[str] = None,
    conflict_options: Optional[Mapping[str, Any]] = None,
) -> List[ScoredEntity]:
    """
    Score every open task, timeline item and unresolved e-mail and rank them.

    Tasks and timeline items in a terminal status are skipped, as are resolved
    e-mails. When ``conflicts`` is None they are detected from
    ``timeline_items`` using ``conflict_options``. The ranked list is cut to
    ``minimum_count`` entries; ``None`` keeps everything.
    """
    config = config or DEFAULT_SCORING_CONFIG
    now = reference_time(now)
    task_records = [coerce_record(TaskRecord, task) for task in tasks]
    item_records = [coerce_record(TimelineItemRecord, item) for item in timeline_items]
    dependency_records = [coerce_record(DependencyRecord, dependency) for dependency in dependencies]
    email_records = [coerce_record(MessageRecord, email) for email in emails]

    if conflicts is None:
        conflicts = detect_conflicts(item_records, **dict(conflict_options or {}))
    items_by_id: Dict[str, TimelineItemRecord] = {item.id: item for item in item_records}

    entities: List[ScoredEntity] = []
    for task in task_records:
        if is_terminal(task.status):
            continue
        entities.append(score_task(task, config=config, now=now))

    for item in item_records:
        if is_terminal(item.status):
            continue
        entities.append(
            score_timeline_item(
                item,
                config=config,
                now=now,
                conflicts=conflicts,
                dependencies=dependency_records,
                items_by_id=items_by_id,
            )
        )

    for email in email_records:
        if email.triage_state == RESOLVED_TRIAGE_STATE:
            continue
        entities.append(score_message(email, config=config, now=now))

    if project_id is not None:
        entities = [entity if entity.project_id else replace(entity, project_id=project_id) for entity in entities]

    ranked = rank_entities(entities)
    logger.debug(
        "Top actions computed",
        project_id=project_id,
        scored=len(ranked),
        conflicts=len(conflicts),
        minimum_count=minimum_count,
    )
    if minimum_count is None:
        return ranked
    return ranked[: max(0, minimum_count)]


__all__ = ["DEFAULT_MINIMUM_COUNT", "compute_top_actions", "rank_entities"]
