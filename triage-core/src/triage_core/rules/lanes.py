"""
Timeline lane auto-assignment.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

import structlog

from triage_core.rules.fields import LANE_FIELDS
from triage_core.rules.ruleset import RuleSet
from triage_core.utils.coerce import ensure_string, to_number

logger = structlog.get_logger()


@dataclass(frozen=True)
class LaneDefinition:
    id: str
    name: str
    slug: Optional[str] = None
    color: Optional[str] = None
    sort_order: float = 0
    auto_assign_rules: RuleSet = field(default_factory=RuleSet)
    has_rules: bool = False

    @classmethod
    def from_dict(cls, raw: Mapping) -> "LaneDefinition":
        rules_raw = raw.get("auto_assign_rules", raw.get("autoAssignRules"))
        sort_order = to_number(raw.get("sort_order", raw.get("sortOrder")))
        return cls(
            id=ensure_string(raw.get("id")),
            name=ensure_string(raw.get("name")),
            slug=ensure_string(raw.get("slug")) or None,
            color=ensure_string(raw.get("color")) or None,
            sort_order=sort_order if sort_order is not None else 0,
            auto_assign_rules=RuleSet.from_json(rules_raw),
            # A lane without rules never auto-assigns, unlike an empty RuleSet.
            has_rules=bool(rules_raw),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "color": self.color,
            "sort_order": self.sort_order,
            "auto_assign_rules": self.auto_assign_rules.to_json() if self.has_rules else None,
        }


def lane_context(context: Mapping) -> Dict[str, Any]:
    """Entity context with ``labels`` defaulted and the whole context reachable as ``metadata.*``."""
    return {**context, "labels": context.get("labels") or {}, "metadata": dict(context)}


def evaluate_lane_assignment(lane: LaneDefinition, context: Mapping) -> bool:
    if not lane.has_rules or lane.auto_assign_rules.is_empty:
        return False
    return lane.auto_assign_rules.matches(lane_context(context), schema=LANE_FIELDS)


def resolve_auto_assigned_lane(lanes: Iterable[LaneDefinition], context: Mapping) -> Optional[LaneDefinition]:
    """First lane, by (sort order, name), whose rules match ``context``."""
    for lane in sorted(lanes, key=lambda lane: (lane.sort_order, lane.name.lower())):
        if evaluate_lane_assignment(lane, context):
            logger.debug("Lane auto-assigned", lane_id=lane.id, lane=lane.name)
            return lane
    return None


__all__ = ["LaneDefinition", "evaluate_lane_assignment", "lane_context", "resolve_auto_assigned_lane"]
