"""
Digest run orchestration: snapshot in, JSON and Markdown digest out.
"""
import json
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import structlog

from triage_core.assemble.jsonout import JSONAssembler
from triage_core.assemble.markdown import MarkdownAssembler
from triage_core.config import Config
from triage_core.digest.builder import build_digest_payload
from triage_core.digest.models import DigestPayload
from triage_core.observability.logs import log_stage
from triage_core.observability.metrics import MetricsCollector
from triage_core.utils.tz import parse_timestamp

logger = structlog.get_logger()


def load_json(path: Union[str, Path]) -> Any:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def load_snapshot(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read a digest snapshot.

    The file holds either a list of per-project inputs or an object with a
    ``projects`` list and an optional ``now`` timestamp.

    Raises:
        ValueError: If the file has neither shape
    """
    data = load_json(path)
    if isinstance(data, list):
        return {"projects": data}
    if isinstance(data, dict) and isinstance(data.get("projects"), list):
        return data
    raise ValueError(f"Snapshot {path} must be a list of projects or an object with a 'projects' list")


def resolve_now(value: Optional[Union[str, datetime]] = None) -> datetime:
    """Explicit timestamp when given, wall clock otherwise."""
    if value is None or value == "now":
        return datetime.now(timezone.utc)
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValueError(f"Invalid timestamp: {value}")
    return parsed


def run_digest(
    snapshot_path: Union[str, Path],
    out: Union[str, Path],
    now: Optional[Union[str, datetime]] = None,
    *,
    config: Optional[Config] = None,
    metrics: Optional[MetricsCollector] = None,
    write_markdown: bool = True,
) -> DigestPayload:
    """
    Build the digest for a snapshot and write ``digest-YYYY-MM-DD.json`` (and ``.md``).

    ``now`` defaults to the snapshot's own ``now`` field, then to the wall clock.
    """
    trace_id = str(uuid.uuid4())
    config = config or Config()
    metrics = metrics or MetricsCollector()
    started = time.perf_counter()

    logger.info("Starting digest run", trace_id=trace_id, snapshot=str(snapshot_path), output_dir=str(out))

    try:
        log_stage("load", trace_id=trace_id)
        snapshot = load_snapshot(snapshot_path)
        reference = resolve_now(now if now is not None else snapshot.get("now"))
        scoring = config.load_scoring_config(now=reference)

        log_stage("build", trace_id=trace_id, projects=len(snapshot["projects"]))

        payload = build_digest_payload(
            snapshot["projects"],
            now=reference,
            per_project_limit=config.digest.per_project_limit,
            top_action_limit=config.digest.top_action_limit,
            config=scoring,
            conflict_options=config.conflicts.detector_options(),
            max_workers=config.digest.max_workers,
            scoring_preset=config.scoring.preset,
        )
        scored: List[Dict[str, Any]] = [action for project in payload.projects for action in project.top_actions]
        metrics.record_entities_scored(scored)
        metrics.record_conflicts(conflict for project in payload.projects for conflict in project.conflicts)

        log_stage("write", trace_id=trace_id)
        output_dir = Path(out)
        output_dir.mkdir(parents=True, exist_ok=True)
        digest_date = reference.strftime("%Y-%m-%d")
        json_path = output_dir / f"digest-{digest_date}.json"
        JSONAssembler().write_digest(payload, json_path)
        if write_markdown:
            md_path = output_dir / f"digest-{digest_date}.md"
            MarkdownAssembler().write_digest(payload, md_path)

    except Exception as e:
        logger.error("Digest run failed", trace_id=trace_id, error=str(e), exc_info=True)
        metrics.record_run_total("failed")
        raise

    metrics.record_run_total("ok")
    metrics.record_digest_build_time(time.perf_counter() - started)
    logger.info(
        "Digest run completed successfully",
        trace_id=trace_id,
        digest_date=digest_date,
        projects=payload.meta.total_projects,
        top_actions=len(payload.top_actions),
    )
    return payload
