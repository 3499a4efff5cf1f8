import json
import sys
from typing import Any, List, Optional

import typer

from triage_core.config import Config
from triage_core.conflicts import detect_conflicts, find_available_slots
from triage_core.digest import compute_top_actions
from triage_core.observability.logs import setup_logging
from triage_core.rank.message import score_message
from triage_core.rank.task import score_task
from triage_core.rank.timeline import score_timeline_item
from triage_core.rules import RuleSet, suggest_projects
from triage_core.run import load_json, resolve_now, run_digest
from triage_core.schemas import ProjectDigestInput, coerce_record
from triage_core.scoring import canonical_json, list_presets, normalize

app = typer.Typer(add_completion=False)

SCORERS = {
    "email": score_message,
    "task": score_task,
    "timeline": score_timeline_item,
}


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _items(data: Any, key: str) -> List[Any]:
    """Accept a bare list or an object wrapping the list under ``key``."""
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of {key}")
    return data


@app.command()
def digest(
    snapshot: str = typer.Argument(..., help="JSON snapshot with the projects to digest"),
    out: str = typer.Option("./out", "--out", help="Output directory path"),
    now: Optional[str] = typer.Option(None, "--now", help="Reference time (ISO-8601); defaults to the snapshot's or the clock"),
    markdown: bool = typer.Option(True, "--markdown/--no-markdown", help="Also write the Markdown digest"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"),
):
    """Build the daily digest for a project snapshot."""
    try:
        config = Config()
        setup_logging(log_level=log_level or config.observability.log_level)
        payload = run_digest(snapshot, out, now, config=config, write_markdown=markdown)
        typer.echo(
            f"Digest written to {out}: {payload.meta.total_projects} projects, "
            f"{len(payload.top_actions)} top actions"
        )
    except KeyboardInterrupt:
        typer.echo("\nInterrupted by user")
        sys.exit(1)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)


@app.command()
def conflicts(
    items_file: str = typer.Argument(..., help="JSON list of timeline items"),
    buffer_hours: Optional[float] = typer.Option(None, "--buffer-hours", help="Territory buffer in hours"),
    no_travel: bool = typer.Option(False, "--no-travel", help="Only check lane overlaps and territory buffers"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"),
):
    """Detect scheduling conflicts between timeline items."""
    try:
        setup_logging(log_level=log_level)
        options = Config().conflicts.detector_options()
        if buffer_hours is not None:
            options["buffer_hours"] = buffer_hours
        if no_travel:
            options["travel_checks"] = False
        items = _items(load_json(items_file), "items")
        _echo_json([conflict.to_dict() for conflict in detect_conflicts(items, **options)])
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)


@app.command()
def slots(
    items_file: str = typer.Argument(..., help="JSON list of timeline items already scheduled"),
    start: str = typer.Option(..., "--start", help="Range start (ISO-8601)"),
    end: str = typer.Option(..., "--end", help="Range end (ISO-8601)"),
    duration: float = typer.Option(..., "--duration", help="Slot length in hours"),
    city: Optional[str] = typer.Option(None, "--city", help="City the new item takes place in"),
    territory: Optional[str] = typer.Option(None, "--territory", help="Territory the new item belongs to"),
    constraint: List[str] = typer.Option([], "--constraint", help="Constraint to honor; repeatable"),
    max_results: Optional[int] = typer.Option(None, "--max-results", help="Maximum number of slots"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"),
):
    """Suggest free time slots around existing timeline items."""
    try:
        setup_logging(log_level=log_level)
        config = Config()
        items = _items(load_json(items_file), "items")
        found = find_available_slots(
            items,
            date_range=(start, end),
            duration_hours=duration,
            city=city,
            territory=territory,
            constraints=constraint,
            max_results=max_results or config.slots.max_results,
            business_hours=(config.slots.business_hours_start, config.slots.business_hours_end),
            timezone=config.slots.timezone,
            default_travel_hours=config.conflicts.default_travel_hours,
        )
        _echo_json([slot.to_dict() for slot in found])
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)


@app.command()
def score(
    entity_file: str = typer.Argument(..., help="JSON entity, or list of entities, to score"),
    entity_type: str = typer.Option("email", "--type", help="Entity type: email, task or timeline"),
    now: Optional[str] = typer.Option(None, "--now", help="Reference time (ISO-8601)"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"),
):
    """Score entities with the configured scoring config and print the breakdown."""
    try:
        setup_logging(log_level=log_level)
        scorer = SCORERS.get(entity_type)
        if scorer is None:
            raise ValueError(f"Unknown entity type '{entity_type}', expected one of {', '.join(SCORERS)}")
        reference = resolve_now(now)
        config = Config().load_scoring_config(now=reference)
        data = load_json(entity_file)
        entities = data if isinstance(data, list) else [data]
        _echo_json([scorer(entity, config=config, now=reference).to_dict() for entity in entities])
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)


@app.command(name="top-actions")
def top_actions(
    project_file: str = typer.Argument(..., help="JSON project input (tasks, timelineItems, dependencies, emails)"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Number of actions to keep; defaults to digest.minimum_top_actions"),
    now: Optional[str] = typer.Option(None, "--now", help="Reference time (ISO-8601)"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"),
):
    """Rank one project's open work and print its top actions."""
    try:
        setup_logging(log_level=log_level)
        config = Config()
        reference = resolve_now(now)
        inputs = coerce_record(ProjectDigestInput, load_json(project_file))
        actions = compute_top_actions(
            tasks=inputs.tasks,
            timeline_items=inputs.timeline_items,
            dependencies=inputs.dependencies,
            emails=inputs.emails,
            now=reference,
            minimum_count=limit if limit is not None else config.digest.minimum_top_actions,
            config=config.load_scoring_config(now=reference),
            project_id=inputs.project.id,
            conflict_options=config.conflicts.detector_options(),
        )
        _echo_json([action.to_dict() for action in actions])
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)


@app.command(name="explain-rule")
def explain_rule(
    rule_file: str = typer.Argument(..., help="JSON condition tree"),
    entity_file: str = typer.Argument(..., help="JSON entity the conditions are evaluated against"),
    now: Optional[str] = typer.Option(None, "--now", help="Reference time for date operators (ISO-8601)"),
):
    """Evaluate a condition tree against one entity and print the trace."""
    try:
        result = RuleSet.from_json(load_json(rule_file)).explain(load_json(entity_file), now=resolve_now(now))
        _echo_json(result.to_dict())
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)


@app.command(name="suggest-projects")
def suggest_projects_command(
    email_file: str = typer.Argument(..., help="JSON e-mail to place"),
    projects_file: str = typer.Argument(..., help="JSON list of projects (or an object with a \"projects\" list)"),
    limit: int = typer.Option(3, "--limit", help="Maximum number of suggestions"),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude", help="Project id to leave out; repeatable"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"),
):
    """Suggest which projects an e-mail belongs to, with rationales."""
    try:
        setup_logging(log_level=log_level)
        suggestions = suggest_projects(
            load_json(email_file),
            _items(load_json(projects_file), "projects"),
            exclude_project_ids=exclude or (),
            limit=limit,
        )
        _echo_json([suggestion.to_dict() for suggestion in suggestions])
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)


@app.command()
def presets():
    """List the built-in scoring presets."""
    for preset in list_presets():
        typer.echo(f"{preset.slug}: {preset.name}")
        typer.echo(f"  {preset.description}")
        for adjustment in preset.adjustments:
            typer.echo(f"  - {adjustment}")


@app.command(name="normalize-config")
def normalize_config(
    overrides_file: Optional[str] = typer.Argument(None, help="JSON file with a partial scoring config"),
):
    """Print the sanitized scoring config in canonical JSON."""
    try:
        overrides = load_json(overrides_file) if overrides_file else {}
        typer.echo(canonical_json(normalize(overrides)))
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    app()
