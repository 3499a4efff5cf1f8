"""
Inbox automation rules: trigger filter, conditions and actions.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog

from triage_core.rules.fields import AUTOMATION_FIELDS
from triage_core.rules.ruleset import RuleSet
from triage_core.schemas import MessageRecord, TaskRecord
from triage_core.utils.coerce import ensure_bool, ensure_string, ensure_string_list

logger = structlog.get_logger()

EMAIL_RECEIVED = "email_received"
TASK_CREATED = "task_created"
TRIGGER_TYPES = (EMAIL_RECEIVED, TASK_CREATED)

ACTION_TYPES = ("create_task", "assign_timeline_lane", "send_email_template")

DEFAULT_TRIGGER_CATEGORIES = (
    "LEGAL/Contract_Draft",
    "LEGAL/Contract_Executed",
    "LEGAL/Addendum_or_Amendment",
    "LEGAL/NDA_or_Clearance",
)


@dataclass(frozen=True)
class AutomationTrigger:
    type: str = EMAIL_RECEIVED
    categories: Tuple[str, ...] = ()
    labels: Tuple[str, ...] = ()
    triage_states: Tuple[str, ...] = ()
    statuses: Tuple[str, ...] = ()
    lanes: Tuple[str, ...] = ()

    def accepts(self, fields: Mapping) -> bool:
        """Empty filters accept everything."""
        if self.type == TASK_CREATED:
            task = fields.get("task") or {}
            return _allowed(task.get("status"), self.statuses) and _allowed(task.get("lane"), self.lanes)

        email = fields.get("email") or {}
        if not _allowed(email.get("category"), self.categories):
            return False
        if not _allowed(email.get("triage_state"), self.triage_states):
            return False
        if self.labels:
            wanted = {label.lower() for label in self.labels}
            present = {str(label).lower() for label in email.get("labels") or ()}
            if not wanted & present:
                return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        if self.type == TASK_CREATED:
            options = {"statuses": list(self.statuses), "lanes": list(self.lanes)}
        else:
            options = {
                "categories": list(self.categories),
                "labels": list(self.labels),
                "triage_states": list(self.triage_states),
            }
        return {"type": self.type, "options": options}


DEFAULT_TRIGGER = AutomationTrigger(
    type=EMAIL_RECEIVED,
    categories=DEFAULT_TRIGGER_CATEGORIES,
    triage_states=("unassigned",),
)


@dataclass(frozen=True)
class AutomationAction:
    type: str
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "params": dict(self.params)}


DEFAULT_ACTION = AutomationAction(type="create_task", params={"title": "Follow up"})


@dataclass(frozen=True)
class AutomationRule:
    id: str = "temp"
    name: str = "Untitled rule"
    description: Optional[str] = None
    is_enabled: bool = True
    trigger: AutomationTrigger = DEFAULT_TRIGGER
    conditions: RuleSet = field(default_factory=RuleSet)
    actions: Tuple[AutomationAction, ...] = (DEFAULT_ACTION,)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "is_enabled": self.is_enabled,
            "trigger": self.trigger.to_dict(),
            "conditions": self.conditions.to_json(),
            "actions": [action.to_dict() for action in self.actions],
        }


def _allowed(value: Any, options: Tuple[str, ...]) -> bool:
    if not options:
        return True
    return str(value or "").lower() in {option.lower() for option in options}


def _normalize_trigger(raw: Any) -> AutomationTrigger:
    if not isinstance(raw, Mapping):
        return DEFAULT_TRIGGER
    options = raw.get("options")
    options = options if isinstance(options, Mapping) else {}
    if raw.get("type") == TASK_CREATED:
        return AutomationTrigger(
            type=TASK_CREATED,
            statuses=tuple(ensure_string_list(options.get("statuses"))),
            lanes=tuple(ensure_string_list(options.get("lanes"))),
        )
    return AutomationTrigger(
        type=EMAIL_RECEIVED,
        categories=tuple(ensure_string_list(options.get("categories"))),
        labels=tuple(ensure_string_list(options.get("labels"))),
        triage_states=tuple(ensure_string_list(options.get("triage_states", options.get("triageStates")))),
    )


def _normalize_action(raw: Any) -> AutomationAction:
    if not isinstance(raw, Mapping):
        return DEFAULT_ACTION
    action_type = raw.get("type") if raw.get("type") in ACTION_TYPES else "create_task"
    params = raw.get("params")
    return AutomationAction(type=action_type, params=dict(params) if isinstance(params, Mapping) else {})


def normalize_automation_rule(raw: Any) -> AutomationRule:
    """Build a rule from stored JSON; missing parts take the defaults a new rule starts with."""
    data: Mapping = raw if isinstance(raw, Mapping) else {}
    actions_raw = data.get("actions")
    if isinstance(actions_raw, (list, tuple)) and actions_raw:
        actions = tuple(_normalize_action(action) for action in actions_raw)
    else:
        actions = (DEFAULT_ACTION,)

    description = data.get("description")
    return AutomationRule(
        id=ensure_string(data.get("id")) or "temp",
        name=ensure_string(data.get("name")) or "Untitled rule",
        description=description if isinstance(description, str) else None,
        is_enabled=ensure_bool(data.get("is_enabled", data.get("isEnabled")), True),
        trigger=_normalize_trigger(data.get("trigger")),
        conditions=RuleSet.from_json(data.get("conditions")),
        actions=actions,
    )


def message_automation_fields(message: MessageRecord) -> Dict[str, Any]:
    return {
        "email": {
            "id": message.id,
            "subject": message.subject or "",
            "from_name": message.from_name or "",
            "from_email": message.from_email or "",
            "category": message.category,
            "labels": list(message.labels),
            "triage_state": message.triage_state,
            "priority_score": message.priority_score,
            "has_attachment": message.has_attachments,
            "received_at": message.received_at,
        }
    }


def task_automation_fields(task: TaskRecord) -> Dict[str, Any]:
    return {
        "task": {
            "id": task.id,
            "title": task.title,
            "status": task.status,
            "lane": task.lane,
            "priority": task.priority,
            "due_at": task.due_at,
        }
    }


def match_automation_rules(
    rules: Iterable[AutomationRule],
    trigger: str,
    fields: Mapping,
    now: Optional[datetime] = None,
) -> List[Tuple[AutomationRule, Tuple[AutomationAction, ...]]]:
    """
    Enabled rules for ``trigger`` whose trigger filter and conditions hold.

    Returns ``(rule, actions)`` pairs in the order the rules were given.
    """
    matched: List[Tuple[AutomationRule, Tuple[AutomationAction, ...]]] = []
    for rule in rules:
        if not rule.is_enabled or rule.trigger.type != trigger:
            continue
        if not rule.trigger.accepts(fields):
            continue
        if rule.conditions.matches(fields, schema=AUTOMATION_FIELDS, now=now):
            matched.append((rule, rule.actions))
    logger.debug("Automation rules matched", trigger=trigger, matched=[rule.id for rule, _ in matched])
    return matched


__all__ = [
    "ACTION_TYPES",
    "AutomationAction",
    "AutomationRule",
    "AutomationTrigger",
    "EMAIL_RECEIVED",
    "TASK_CREATED",
    "match_automation_rules",
    "message_automation_fields",
    "normalize_automation_rule",
    "task_automation_fields",
]
