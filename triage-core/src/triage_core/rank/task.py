"""Project task scoring."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Union

from triage_core.rank.dates import date_components, manual_priority_component
from triage_core.rank.models import ScoreComponent, ScoredEntity, build_rationale, floor_total, iso_or_none
from triage_core.schemas import TaskRecord, coerce_record
from triage_core.scoring.defaults import DEFAULT_SCORING_CONFIG
from triage_core.scoring.models import ScoringConfig
from triage_core.utils.tz import reference_time


def task_components(
    task: Union[TaskRecord, dict],
    *,
    config: Optional[ScoringConfig] = None,
    now: datetime,
) -> List[ScoreComponent]:
    task = coerce_record(TaskRecord, task)
    config = config or DEFAULT_SCORING_CONFIG
    now = reference_time(now)
    components: List[ScoreComponent] = []

    if task.due_at is None or task.due_at == "":
        components.append(ScoreComponent("No due date set", config.tasks.no_due_date_value))
    else:
        components.extend(date_components(task.due_at, now, "Due", config.time))

    components.extend(manual_priority_component(task.priority, config.tasks.manual_priority_weight))

    boost = config.tasks.status_boosts.get(task.status, 0)
    if boost != 0:
        components.append(ScoreComponent(f"Status {task.status}", boost))

    return components


def score_task(
    task: Union[TaskRecord, dict],
    *,
    config: Optional[ScoringConfig] = None,
    now: datetime,
) -> ScoredEntity:
    task = coerce_record(TaskRecord, task)
    config = config or DEFAULT_SCORING_CONFIG
    components = task_components(task, config=config, now=now)

    return ScoredEntity(
        id=f"task:{task.id}",
        entity_type="task",
        title=task.title,
        score=floor_total(components),
        components=tuple(components),
        rationale=build_rationale(components, config.email.explainability),
        project_id=task.project_id,
        due_at=iso_or_none(task.due_at),
        status=task.status,
        ref_table="project_tasks",
        ref_id=task.id,
        priority=task.priority,
    )


__all__ = ["score_task", "task_components"]
