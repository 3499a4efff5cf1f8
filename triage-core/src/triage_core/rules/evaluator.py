"""
Generic condition evaluator shared by automation, project assignment and lane rules.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import is_dataclass
from datetime import datetime
from typing import Any, List, Optional

import structlog
from pydantic import BaseModel

from triage_core.rules.fields import OPERATORS_BY_TYPE, FieldSchema, canonical_operator, resolve_field_type
from triage_core.rules.models import (
    ConditionGroup,
    ConditionLeaf,
    ConditionNode,
    EvaluationResult,
    InvalidCondition,
    LeafTrace,
)
from triage_core.rules.operators import APPLY_BY_TYPE
from triage_core.rules.parser import parse_condition

logger = structlog.get_logger()


def get_field(entity: Any, path: str) -> Any:
    """
    Resolve a dotted path such as ``labels.territory``.

    Mappings are indexed by key, models and dataclasses by attribute. A missing
    segment anywhere along the path yields ``None``.
    """
    segments = [segment.strip() for segment in str(path or "").split(".") if segment.strip()]
    if not segments:
        return None
    value = entity
    for segment in segments:
        if value is None:
            return None
        if isinstance(value, Mapping):
            value = value.get(segment)
        elif isinstance(value, BaseModel) or is_dataclass(value):
            value = getattr(value, segment, None)
        else:
            return None
    return value


def as_condition(node: Any) -> ConditionNode:
    root = getattr(node, "root", None)
    if isinstance(root, (ConditionGroup, ConditionLeaf, InvalidCondition)):
        return root
    return parse_condition(node)


def evaluate_leaf(
    leaf: ConditionLeaf,
    entity: Any,
    *,
    schema: Optional[FieldSchema] = None,
    now: Optional[datetime] = None,
) -> LeafTrace:
    operator = canonical_operator(leaf.operator)

    def outcome(matched: bool, reason: Optional[str] = None) -> LeafTrace:
        if reason:
            logger.debug("Rule leaf rejected", field=leaf.field, operator=operator, reason=reason)
        return LeafTrace(field=leaf.field, operator=operator, matched=matched, reason=reason, id=leaf.id)

    actual = get_field(entity, leaf.field)
    if actual is None:
        return outcome(False, "field is missing")

    field_type = resolve_field_type(leaf.field, actual, operator, schema)
    if field_type is None:
        return outcome(False, f"cannot determine the type of {type(actual).__name__} values")
    if operator not in OPERATORS_BY_TYPE[field_type]:
        return outcome(False, f"operator '{operator}' is not valid for {field_type} fields")

    matched, reason = APPLY_BY_TYPE[field_type](actual, operator, leaf.value, now)
    return outcome(matched, reason)


def _walk(
    node: ConditionNode,
    entity: Any,
    schema: Optional[FieldSchema],
    now: Optional[datetime],
    trace: List[LeafTrace],
) -> bool:
    if isinstance(node, ConditionGroup):
        # Every child is evaluated so the trace is complete.
        results = [_walk(child, entity, schema, now, trace) for child in node.children]
        if node.mode == "all":
            return all(results)
        if node.mode == "any":
            return any(results)
        return not any(results)

    if isinstance(node, ConditionLeaf):
        entry = evaluate_leaf(node, entity, schema=schema, now=now)
        trace.append(entry)
        return entry.matched

    trace.append(LeafTrace(field="", operator="", matched=False, reason=node.reason))
    return False


def explain(
    node: Any,
    entity: Any,
    *,
    schema: Optional[FieldSchema] = None,
    now: Optional[datetime] = None,
) -> EvaluationResult:
    """Evaluate ``node`` (raw JSON or a parsed tree) and keep the per-leaf trace."""
    trace: List[LeafTrace] = []
    matched = _walk(as_condition(node), entity, schema, now, trace)
    return EvaluationResult(matched=matched, trace=tuple(trace))


def evaluate(
    node: Any,
    entity: Any,
    *,
    schema: Optional[FieldSchema] = None,
    now: Optional[datetime] = None,
) -> bool:
    return explain(node, entity, schema=schema, now=now).matched


__all__ = ["as_condition", "evaluate", "evaluate_leaf", "explain", "get_field"]
