"""Result types shared by the entity scorers."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from triage_core.scoring.models import ExplainabilityConfig


@dataclass(frozen=True)
class ScoreComponent:
    """One signed contribution to a score."""

    label: str
    value: int

    def describe(self) -> str:
        sign = "+" if self.value > 0 else ""
        return f"{self.label} ({sign}{self.value})"

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "value": self.value}


@dataclass(frozen=True)
class ScoredEntity:
    """Ranked work item with its audit trail."""

    id: str
    entity_type: str
    title: str
    score: int
    components: Tuple[ScoreComponent, ...] = ()
    rationale: Tuple[str, ...] = ()
    project_id: Optional[str] = None
    due_at: Optional[str] = None
    starts_at: Optional[str] = None
    ends_at: Optional[str] = None
    status: Optional[str] = None
    ref_table: str = ""
    ref_id: str = ""
    priority: Optional[float] = None
    actions: Tuple[str, ...] = ()
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "project_id": self.project_id,
            "entity_type": self.entity_type,
            "title": self.title,
            "score": self.score,
            "rationale": list(self.rationale),
            "components": [component.to_dict() for component in self.components],
            "due_at": self.due_at,
            "starts_at": self.starts_at,
            "ends_at": self.ends_at,
            "status": self.status,
            "ref_table": self.ref_table,
            "ref_id": self.ref_id,
            "priority": self.priority,
        }
        if self.actions:
            data["actions"] = list(self.actions)
        data.update(self.extra)
        return data


def sum_components(components: Iterable[ScoreComponent]) -> int:
    return sum(component.value for component in components)


def floor_total(components: Sequence[ScoreComponent]) -> int:
    """Totals never go below zero."""
    return max(0, sum_components(components))


def build_rationale(
    components: Sequence[ScoreComponent],
    explainability: Optional[ExplainabilityConfig] = None,
) -> Tuple[str, ...]:
    """Human-readable ``"Label (+N)"`` strings shaped by the explainability flags."""
    settings = explainability or ExplainabilityConfig()
    if not settings.show_breakdown:
        return ()

    lines: List[str] = [
        component.describe()
        for component in components
        if settings.include_zero_components or component.value != 0
    ]
    return tuple(lines[: settings.max_rationale_items])


def iso_or_none(value: Any) -> Optional[str]:
    """Echo a record timestamp for display; datetimes become ISO strings."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def format_number(value: float) -> str:
    """``80.0`` -> ``80``; ``72.5`` stays ``72.5``."""
    return f"{value:g}"


__all__ = [
    "ScoreComponent",
    "ScoredEntity",
    "build_rationale",
    "floor_total",
    "format_number",
    "iso_or_none",
    "sum_components",
]
