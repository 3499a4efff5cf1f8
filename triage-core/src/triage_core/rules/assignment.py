"""
Project assignment rules: link an inbound e-mail to a project.

Rules arrive as loosely-typed JSON from the web layer and are normalised with
lenient defaults before evaluation. Conditions run through the shared
condition evaluator against ``ASSIGNMENT_FIELDS``.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog

from triage_core.rules.fields import ASSIGNMENT_FIELDS
from triage_core.rules.models import LeafTrace
from triage_core.rules.ruleset import RuleSet
from triage_core.schemas import MessageRecord
from triage_core.utils.coerce import ensure_bool, ensure_string, to_number

logger = structlog.get_logger()

CONFIDENCE_LEVELS = ("low", "medium", "high")
CONFIDENCE_SCORES = {"high": 1.0, "medium": 0.7, "low": 0.4}

CATEGORY_TIMELINE_TYPES: Tuple[Tuple[str, str], ...] = (
    ("BOOKING", "LIVE_HOLD"),
    ("LEGAL", "LEGAL_ACTION"),
    ("FINANCE", "FINANCE_ACTION"),
    ("PROMO", "PROMO_SLOT"),
    ("LOGISTICS", "TRAVEL_SEGMENT"),
)
DEFAULT_TIMELINE_TYPE = "TASK"


@dataclass(frozen=True)
class AssignmentAction:
    project_id: str
    assign_to_lane_id: Optional[str] = None
    confidence: str = "high"
    note: Optional[str] = None
    create_timeline_item: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "assign_to_lane_id": self.assign_to_lane_id,
            "confidence": self.confidence,
            "note": self.note,
            "create_timeline_item": self.create_timeline_item,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class ProjectAssignmentRule:
    id: str
    project_id: str
    name: str = "Untitled rule"
    description: Optional[str] = None
    enabled: bool = True
    sort_order: float = 0
    conditions: RuleSet = field(default_factory=RuleSet)
    action: AssignmentAction = field(default_factory=lambda: AssignmentAction(project_id=""))
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "enabled": self.enabled,
            "sort_order": self.sort_order,
            "conditions": self.conditions.to_json(),
            "actions": self.action.to_dict(),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class AssignmentEvaluation:
    matched: bool
    trace: Tuple[LeafTrace, ...] = ()
    message_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"matched": self.matched, "matches": [entry.to_dict() for entry in self.trace]}
        if self.message_id is not None:
            data["email_id"] = self.message_id
        return data


def _pick(raw: Mapping, *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def ensure_confidence(value: Any, fallback: str = "high") -> str:
    normalised = ensure_string(value).lower()
    return normalised if normalised in CONFIDENCE_LEVELS else fallback


def _normalize_action(raw: Any, fallback_project_id: str) -> AssignmentAction:
    if not isinstance(raw, Mapping):
        return AssignmentAction(project_id=fallback_project_id)
    metadata = raw.get("metadata")
    return AssignmentAction(
        project_id=ensure_string(_pick(raw, "project_id", "projectId"), fallback_project_id) or fallback_project_id,
        assign_to_lane_id=ensure_string(
            _pick(raw, "assign_to_lane_id", "assignToLaneId", "lane_id", "laneId", "assignToLane")
        ) or None,
        confidence=ensure_confidence(raw.get("confidence")),
        note=ensure_string(raw.get("note")) or None,
        create_timeline_item=ensure_bool(_pick(raw, "create_timeline_item", "createTimelineItem"), False),
        metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
    )


def normalize_assignment_rule(raw: Any) -> ProjectAssignmentRule:
    """Build a rule from stored JSON, filling every missing or malformed field with its default."""
    data: Mapping = raw if isinstance(raw, Mapping) else {}
    fallback_project_id = ensure_string(_pick(data, "project_id", "projectId"))
    action = _normalize_action(_pick(data, "actions", "action"), fallback_project_id)
    project_id = action.project_id or fallback_project_id
    if action.project_id != project_id:
        action = replace(action, project_id=project_id)

    description = ensure_string(data.get("description")) or None
    sort_order = to_number(_pick(data, "sort_order", "sortOrder"))
    metadata = data.get("metadata")

    return ProjectAssignmentRule(
        id=ensure_string(data.get("id"), "temp") or "temp",
        project_id=project_id,
        name=ensure_string(data.get("name")) or "Untitled rule",
        description=description,
        enabled=ensure_bool(data.get("enabled"), True),
        sort_order=sort_order if sort_order is not None else 0,
        conditions=RuleSet.from_json(data.get("conditions")),
        action=action,
        metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
    )


def message_assignment_fields(message: MessageRecord) -> Dict[str, Any]:
    """Field map an assignment rule sees for one e-mail; ``body`` falls back to the summary."""
    return {
        "subject": message.subject or "",
        "from_name": message.from_name or "",
        "from_email": message.from_email or "",
        "body": message.body or message.summary or "",
        "category": message.category or "",
        "labels": list(message.labels),
        "has_attachment": message.has_attachments,
        "received_at": message.received_at,
        "priority_score": message.priority_score,
        "triage_state": message.triage_state or "",
    }


def evaluate_assignment_rule(
    rule: ProjectAssignmentRule,
    message: MessageRecord,
    *,
    now: Optional[datetime] = None,
) -> AssignmentEvaluation:
    if not rule.enabled:
        return AssignmentEvaluation(matched=False, message_id=message.id)
    result = rule.conditions.explain(message_assignment_fields(message), schema=ASSIGNMENT_FIELDS, now=now)
    return AssignmentEvaluation(matched=result.matched, trace=result.trace, message_id=message.id)


def test_assignment_rule(
    rule: ProjectAssignmentRule,
    messages: Iterable[MessageRecord],
    *,
    now: Optional[datetime] = None,
) -> List[AssignmentEvaluation]:
    """Dry-run one rule over a batch of e-mails."""
    return [evaluate_assignment_rule(rule, message, now=now) for message in messages]


# Not collected by pytest.
test_assignment_rule.__test__ = False


def resolve_project_assignments(
    rules: Iterable[ProjectAssignmentRule],
    message: MessageRecord,
    *,
    now: Optional[datetime] = None,
) -> List[ProjectAssignmentRule]:
    """Matching rules ordered by ``sort_order`` then id."""
    ordered = sorted(rules, key=lambda rule: (rule.sort_order, rule.id))
    matched = [rule for rule in ordered if evaluate_assignment_rule(rule, message, now=now).matched]
    logger.debug("Assignment rules resolved", email_id=message.id, checked=len(ordered), matched=len(matched))
    return matched


def confidence_to_score(level: Optional[str]) -> Optional[float]:
    return CONFIDENCE_SCORES.get(str(level or "").lower())


def score_to_confidence(score: Optional[float]) -> Optional[str]:
    if score is None:
        return None
    if score >= 0.85:
        return "high"
    if score >= 0.6:
        return "medium"
    return "low"


def timeline_type_for_category(category: Optional[str]) -> str:
    if not category:
        return DEFAULT_TIMELINE_TYPE
    upper = category.upper()
    for prefix, item_type in CATEGORY_TIMELINE_TYPES:
        if upper.startswith(prefix):
            return item_type
    return DEFAULT_TIMELINE_TYPE


__all__ = [
    "AssignmentAction",
    "AssignmentEvaluation",
    "CONFIDENCE_SCORES",
    "ProjectAssignmentRule",
    "confidence_to_score",
    "evaluate_assignment_rule",
    "message_assignment_fields",
    "normalize_assignment_rule",
    "resolve_project_assignments",
    "score_to_confidence",
    "test_assignment_rule",
    "timeline_type_for_category",
]
