"""
Digest payload builder: per-project snapshots plus a global ranked action list.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog

from triage_core.conflicts.detector import detect_conflicts
from triage_core.digest.aggregator import compute_top_actions
from triage_core.digest.health import project_metrics
from triage_core.digest.models import DigestMeta, DigestPayload, DigestProjectSnapshot
from triage_core.schemas import ProjectDigestInput, coerce_record
from triage_core.scoring.defaults import DEFAULT_SCORING_CONFIG
from triage_core.scoring.models import ScoringConfig
from triage_core.utils.tz import reference_time

logger = structlog.get_logger()

DEFAULT_PER_PROJECT_LIMIT = 5
DEFAULT_TOP_ACTION_LIMIT = 12


def build_project_snapshot(
    inputs: Any,
    *,
    now: datetime,
    per_project_limit: int = DEFAULT_PER_PROJECT_LIMIT,
    config: Optional[ScoringConfig] = None,
    conflict_options: Optional[Mapping[str, Any]] = None,
) -> DigestProjectSnapshot:
    inputs = coerce_record(ProjectDigestInput, inputs)
    config = config or DEFAULT_SCORING_CONFIG
    now = reference_time(now)
    project = inputs.project

    conflicts = detect_conflicts(inputs.timeline_items, **dict(conflict_options or {}))
    top_actions = compute_top_actions(
        tasks=inputs.tasks,
        timeline_items=inputs.timeline_items,
        dependencies=inputs.dependencies,
        emails=inputs.emails,
        conflicts=conflicts,
        now=now,
        minimum_count=per_project_limit,
        config=config,
        project_id=project.id,
    )
    metrics = project_metrics(
        tasks=inputs.tasks,
        timeline_items=inputs.timeline_items,
        emails=inputs.emails,
        conflicts=conflicts,
        now=now,
        supplied=inputs.metrics,
        config=config.health,
    )

    return DigestProjectSnapshot(
        project=project,
        metrics=metrics,
        top_actions=[action.to_dict() for action in top_actions],
        approvals=[approval for approval in inputs.approvals if approval.status == "pending"],
        conflicts=[conflict.to_dict() for conflict in conflicts],
    )


def _annotate(action: Dict[str, Any], snapshot: DigestProjectSnapshot) -> Dict[str, Any]:
    return {
        **action,
        "project_name": snapshot.project.name,
        "project_color": snapshot.project.color,
        "project_status": snapshot.project.status,
    }


def build_digest_payload(
    projects: Iterable[Any],
    *,
    now: datetime,
    per_project_limit: int = DEFAULT_PER_PROJECT_LIMIT,
    top_action_limit: int = DEFAULT_TOP_ACTION_LIMIT,
    config: Optional[ScoringConfig] = None,
    conflict_options: Optional[Mapping[str, Any]] = None,
    max_workers: int = 1,
    scoring_preset: Optional[str] = None,
) -> DigestPayload:
    """
    Build the digest for many projects.

    Each project contributes at most ``per_project_limit`` actions; the
    flattened list is re-ranked globally and cut to ``top_action_limit``.
    Snapshots are independent, so ``max_workers > 1`` builds them in a thread
    pool; output order always follows the input order.
    """
    now = reference_time(now)
    config = config or DEFAULT_SCORING_CONFIG
    inputs = [coerce_record(ProjectDigestInput, project) for project in projects]

    logger.info("Building digest", projects=len(inputs), max_workers=max_workers)

    def build(item: ProjectDigestInput) -> DigestProjectSnapshot:
        return build_project_snapshot(
            item,
            now=now,
            per_project_limit=per_project_limit,
            config=config,
            conflict_options=conflict_options,
        )

    if max_workers > 1 and len(inputs) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            snapshots = list(executor.map(build, inputs))
    else:
        snapshots = [build(item) for item in inputs]

    flattened: List[Dict[str, Any]] = [
        _annotate(action, snapshot) for snapshot in snapshots for action in snapshot.top_actions
    ]
    flattened.sort(key=lambda action: -action["score"])
    top_actions = flattened[: max(0, top_action_limit)]

    meta = DigestMeta(
        total_projects=len(snapshots),
        total_pending_approvals=sum(len(snapshot.approvals) for snapshot in snapshots),
        highlighted_projects=len({action["project_id"] for action in top_actions if action.get("project_id")}),
    )

    logger.info(
        "Digest built",
        projects=meta.total_projects,
        top_actions=len(top_actions),
        pending_approvals=meta.total_pending_approvals,
    )

    return DigestPayload(
        generated_at=now.isoformat(),
        top_actions=top_actions,
        projects=snapshots,
        meta=meta,
        scoring_preset=scoring_preset,
    )


__all__ = [
    "DEFAULT_PER_PROJECT_LIMIT",
    "DEFAULT_TOP_ACTION_LIMIT",
    "build_digest_payload",
    "build_project_snapshot",
]
