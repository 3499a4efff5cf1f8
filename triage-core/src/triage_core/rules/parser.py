"""
Lowering of persisted rule JSON into the canonical condition tree.

Accepted shapes, in the order they are recognised:

- ``None`` / ``{}``: empty ``all`` (matches everything)
- a list of nodes: ``all`` over the parsed items
- combinator objects ``{"all": [...]}``, ``{"any": [...]}``, ``{"none": [...]}``
  (several combinator keys in one object are joined with ``all``)
- the flat sugar ``{"logic": "and"|"or", "conditions": [...]}``
- a bare leaf ``{"field": ..., "operator": ..., "value": ...}`` from older rule
  versions
- the legacy lane field map ``{"labels": {"territory": "IE"}, "priority": {...}}``

Anything else becomes an ``InvalidCondition`` that never matches.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, List

import structlog

from triage_core.rules.fields import canonical_operator
from triage_core.rules.models import (
    GROUP_MODES,
    ConditionGroup,
    ConditionLeaf,
    ConditionNode,
    InvalidCondition,
)

logger = structlog.get_logger()

LOGIC_MODES = {
    "and": "all",
    "all": "all",
    "or": "any",
    "any": "any",
    "none": "none",
    "not": "none",
}

EMPTY = ConditionGroup("all", ())


def _invalid(reason: str, raw: Any) -> InvalidCondition:
    logger.debug("Malformed rule node", reason=reason)
    return InvalidCondition(reason=reason, raw=raw)


def _freeze(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_freeze(item) for item in value)
    return value


def _parse_children(items: Any, raw: Any) -> List[ConditionNode] | InvalidCondition:
    if items is None:
        return []
    if isinstance(items, Mapping):
        items = [items]
    if not isinstance(items, (list, tuple)):
        return _invalid("combinator children must be a list", raw)
    return [parse_condition(item) for item in items]


def _parse_leaf(raw: Mapping) -> ConditionNode:
    field = raw.get("field")
    if not isinstance(field, str) or not field.strip():
        return _invalid("leaf field must be a non-empty string", raw)
    operator = canonical_operator(raw.get("operator"))
    if not operator:
        return _invalid(f"leaf on '{field}' has no operator", raw)
    rule_id = raw.get("id")
    return ConditionLeaf(
        field=field.strip(),
        operator=operator,
        value=_freeze(raw.get("value")),
        id=str(rule_id) if rule_id not in (None, "") else None,
    )


def _looks_like_node(value: Any) -> bool:
    if not isinstance(value, Mapping):
        return False
    return any(key in value for key in GROUP_MODES) or "logic" in value or "conditions" in value


def _parse_field_map(raw: Mapping, prefix: str = "") -> List[ConditionNode]:
    nodes: List[ConditionNode] = []
    for key, expected in raw.items():
        path = f"{prefix}{key}"
        if isinstance(expected, Mapping):
            if "operator" in expected:
                nodes.append(_parse_leaf({"field": path, **expected}))
            elif _looks_like_node(expected):
                nodes.append(parse_condition(expected))
            else:
                nodes.extend(_parse_field_map(expected, prefix=f"{path}."))
        else:
            nodes.append(ConditionLeaf(field=path, operator="equals", value=_freeze(expected)))
    return nodes


def parse_condition(raw: Any) -> ConditionNode:
    """Parse any accepted rule shape into a canonical node; never raises."""
    if isinstance(raw, (ConditionGroup, ConditionLeaf, InvalidCondition)):
        return raw
    if raw is None:
        return EMPTY

    if isinstance(raw, (list, tuple)):
        return ConditionGroup("all", tuple(parse_condition(item) for item in raw))

    if not isinstance(raw, Mapping):
        return _invalid(f"unsupported rule node of type {type(raw).__name__}", raw)

    if not raw:
        return EMPTY

    modes = [mode for mode in GROUP_MODES if mode in raw]
    if modes:
        groups: List[ConditionNode] = []
        for mode in modes:
            children = _parse_children(raw[mode], raw)
            if isinstance(children, InvalidCondition):
                groups.append(children)
            else:
                groups.append(ConditionGroup(mode, tuple(children)))
        return groups[0] if len(groups) == 1 else ConditionGroup("all", tuple(groups))

    if "logic" in raw or "conditions" in raw:
        logic = str(raw.get("logic") or "and").strip().lower()
        mode = LOGIC_MODES.get(logic)
        if mode is None:
            return _invalid(f"unknown logic '{logic}'", raw)
        children = _parse_children(raw.get("conditions"), raw)
        if isinstance(children, InvalidCondition):
            return children
        return ConditionGroup(mode, tuple(children))

    if "field" in raw:
        return _parse_leaf(raw)

    if "operator" in raw:
        return _invalid("leaf has an operator but no field", raw)

    nodes = _parse_field_map(raw)
    return nodes[0] if len(nodes) == 1 else ConditionGroup("all", tuple(nodes))


__all__ = ["EMPTY", "LOGIC_MODES", "parse_condition"]
