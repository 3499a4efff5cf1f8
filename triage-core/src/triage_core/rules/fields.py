"""
Field types, the operators valid for each, and the field schemas of each call site.
"""
from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Dict, Optional

TEXT = "text"
NUMBER = "number"
BOOLEAN = "boolean"
ARRAY = "array"
DATE = "date"
RANGE = "range"

FIELD_TYPES = (TEXT, NUMBER, BOOLEAN, ARRAY, DATE, RANGE)

OPERATORS_BY_TYPE: Dict[str, frozenset] = {
    TEXT: frozenset({
        "equals", "not_equals", "contains", "not_contains", "starts_with", "ends_with",
        "matches_regex", "is_one_of", "not_in",
    }),
    NUMBER: frozenset({
        "equals", "not_equals", "greater_than", "less_than", "greater_than_or_equal",
        "less_than_or_equal", "between", "is_one_of", "not_in",
    }),
    ARRAY: frozenset({"is_one_of", "not_in", "contains", "not_contains", "equals", "not_equals"}),
    BOOLEAN: frozenset({"equals"}),
    DATE: frozenset({"before", "after", "within_last_days"}),
    RANGE: frozenset({"contains", "not_contains", "between"}),
}

OPERATOR_ALIASES = {
    "eq": "equals",
    "ne": "not_equals",
    "neq": "not_equals",
    "gt": "greater_than",
    "gte": "greater_than_or_equal",
    "lt": "less_than",
    "lte": "less_than_or_equal",
    "in": "is_one_of",
    "nin": "not_in",
}

DATE_OPERATORS = OPERATORS_BY_TYPE[DATE]

FieldSchema = Mapping[str, str]

# Project assignment rules evaluate against a flattened e-mail.
ASSIGNMENT_FIELDS: FieldSchema = {
    "subject": TEXT,
    "from_name": TEXT,
    "from_email": TEXT,
    "body": TEXT,
    "category": TEXT,
    "labels": ARRAY,
    "has_attachment": BOOLEAN,
    "received_at": DATE,
    "priority_score": NUMBER,
    "triage_state": TEXT,
}

# Inbox automation rules address fields through their entity prefix.
AUTOMATION_FIELDS: FieldSchema = {
    "email.subject": TEXT,
    "email.from_name": TEXT,
    "email.from_email": TEXT,
    "email.category": TEXT,
    "email.labels": ARRAY,
    "email.triage_state": TEXT,
    "email.priority_score": NUMBER,
    "email.has_attachment": BOOLEAN,
    "email.received_at": DATE,
    "task.title": TEXT,
    "task.status": TEXT,
    "task.lane": TEXT,
    "task.priority": NUMBER,
    "task.due_at": DATE,
}

# Lane auto-assignment; ``labels.*`` and custom keys are inferred from their values.
LANE_FIELDS: FieldSchema = {
    "type": TEXT,
    "title": TEXT,
    "description": TEXT,
    "status": TEXT,
    "category": TEXT,
    "priority": NUMBER,
}


def canonical_operator(operator: Any) -> str:
    name = str(operator or "").strip().lower()
    return OPERATOR_ALIASES.get(name, name)


def _is_range(value: Any) -> bool:
    return isinstance(value, Mapping) and ("min" in value or "max" in value)


def infer_field_type(value: Any, operator: str) -> Optional[str]:
    """Best guess at a field's type from its value when no schema declares it."""
    if value is None:
        return None
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, (int, float)):
        return NUMBER
    if isinstance(value, datetime):
        return DATE
    if isinstance(value, (list, tuple, set, frozenset)):
        return ARRAY
    if _is_range(value):
        return RANGE
    if isinstance(value, str):
        return DATE if operator in DATE_OPERATORS else TEXT
    return None


def resolve_field_type(field: str, value: Any, operator: str, schema: Optional[FieldSchema]) -> Optional[str]:
    if schema is not None and field in schema:
        return schema[field]
    return infer_field_type(value, operator)


__all__ = [
    "ARRAY",
    "ASSIGNMENT_FIELDS",
    "AUTOMATION_FIELDS",
    "BOOLEAN",
    "DATE",
    "FIELD_TYPES",
    "LANE_FIELDS",
    "NUMBER",
    "OPERATORS_BY_TYPE",
    "OPERATOR_ALIASES",
    "RANGE",
    "TEXT",
    "canonical_operator",
    "infer_field_type",
    "resolve_field_type",
]
