"""
Markdown output assembler for digest payloads.
"""
from pathlib import Path
from typing import Any, Dict, List

import structlog

from triage_core.digest.models import DigestPayload, DigestProjectSnapshot

logger = structlog.get_logger()

ENTITY_LABELS = {
    "task": "Task",
    "timeline": "Timeline",
    "email": "Email",
    "thread": "Thread",
}


class MarkdownAssembler:
    """Render digest payloads as Markdown."""

    def __init__(self):
        self.max_rationale_per_action = 3
        self.max_items_per_section = 10

    def write_digest(self, payload: DigestPayload, output_path: Path) -> None:
        """Write the rendered payload to ``output_path``."""
        logger.info("Writing Markdown digest", output_path=str(output_path))

        content = self.render(payload)
        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(content)
        except OSError as e:
            logger.error("Failed to write Markdown digest", output_path=str(output_path), error=str(e))
            raise

        logger.info("Markdown digest written successfully",
                    output_path=str(output_path),
                    word_count=len(content.split()))

    def render(self, payload: DigestPayload) -> str:
        lines: List[str] = []
        lines.append(f"# Daily digest - {payload.generated_at[:10]}")
        lines.append("")
        lines.append(f"*Generated at {payload.generated_at}*")
        if payload.scoring_preset:
            lines.append(f"*Scoring preset: {payload.scoring_preset}*")
        lines.append("")

        if not payload.top_actions:
            lines.append("Nothing needs attention right now.")
            return "\n".join(lines)

        lines.append("## Top actions")
        lines.append("")
        for i, action in enumerate(payload.top_actions[: self.max_items_per_section], 1):
            lines.extend(self._render_action(i, action, with_project=True))

        if len(payload.top_actions) > self.max_items_per_section:
            remaining = len(payload.top_actions) - self.max_items_per_section
            lines.append(f"*... and {remaining} more*")
            lines.append("")

        for snapshot in payload.projects:
            lines.extend(self._render_project(snapshot))

        meta = payload.meta
        lines.append("## Summary")
        lines.append("")
        lines.append(
            f"{meta.total_projects} projects, {meta.highlighted_projects} highlighted, "
            f"{meta.total_pending_approvals} pending approvals"
        )
        lines.append("")
        return "\n".join(lines)

    def _render_action(self, index: int, action: Dict[str, Any], with_project: bool = False) -> List[str]:
        kind = ENTITY_LABELS.get(action.get("entity_type"), action.get("entity_type", ""))
        lines = [f"### {index}. {action.get('title') or action.get('id')} ({action.get('score', 0)})"]
        details = [f"**Type:** {kind}"]
        if with_project and action.get("project_name"):
            details.append(f"**Project:** {action['project_name']}")
        if action.get("due_at"):
            details.append(f"**Due:** {action['due_at']}")
        elif action.get("starts_at"):
            details.append(f"**Starts:** {action['starts_at']}")
        lines.append(" | ".join(details))

        for reason in list(action.get("rationale") or [])[: self.max_rationale_per_action]:
            lines.append(f"- {reason}")
        lines.append("")
        return lines

    def _render_project(self, snapshot: DigestProjectSnapshot) -> List[str]:
        metrics = snapshot.metrics
        lines = [f"## {snapshot.project.name or snapshot.project.id}", ""]
        trend = f", trend {metrics.trend}" if metrics.trend else ""
        lines.append(
            f"Health {metrics.health_score}{trend} | {metrics.open_tasks} open tasks | "
            f"{metrics.upcoming_timeline} upcoming | {metrics.linked_emails} emails | {metrics.conflicts} conflicts"
        )
        lines.append("")

        for action in snapshot.top_actions:
            lines.append(f"- {action.get('title') or action.get('id')} ({action.get('score', 0)})")
        if snapshot.approvals:
            lines.append(f"- {len(snapshot.approvals)} approvals waiting")
        lines.append("")
        return lines
