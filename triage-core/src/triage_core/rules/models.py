"""
Canonical condition tree.

Every accepted rule shape is lowered by ``triage_core.rules.parser`` into these
immutable nodes before evaluation:

- ``ConditionGroup``: ``all`` / ``any`` / ``none`` over child nodes
- ``ConditionLeaf``: ``field`` / ``operator`` / ``value`` predicate
- ``InvalidCondition``: a node that could not be parsed; never matches
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

GROUP_MODES = ("all", "any", "none")


@dataclass(frozen=True)
class ConditionLeaf:
    field: str
    operator: str
    value: Any = None
    id: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"field": self.field, "operator": self.operator, "value": _jsonable(self.value)}
        if self.id:
            data["id"] = self.id
        return data


@dataclass(frozen=True)
class ConditionGroup:
    mode: str
    children: Tuple["ConditionNode", ...] = ()

    def to_json(self) -> Dict[str, Any]:
        return {self.mode: [child.to_json() for child in self.children]}


@dataclass(frozen=True)
class InvalidCondition:
    reason: str
    raw: Any = field(default=None, compare=False)

    def to_json(self) -> Any:
        return _jsonable(self.raw)


ConditionNode = Union[ConditionGroup, ConditionLeaf, InvalidCondition]


def _jsonable(value: Any) -> Any:
    if isinstance(value, tuple):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    return value


def count_leaves(node: ConditionNode) -> int:
    """Leaves plus invalid nodes; both take part in matching."""
    if isinstance(node, ConditionGroup):
        return sum(count_leaves(child) for child in node.children)
    return 1


@dataclass(frozen=True)
class LeafTrace:
    """Outcome of one leaf during ``explain``."""

    field: str
    operator: str
    matched: bool
    reason: Optional[str] = None
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "field": self.field,
            "operator": self.operator,
            "matched": self.matched,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class EvaluationResult:
    matched: bool
    trace: Tuple[LeafTrace, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"matched": self.matched, "trace": [entry.to_dict() for entry in self.trace]}


__all__ = [
    "GROUP_MODES",
    "ConditionGroup",
    "ConditionLeaf",
    "ConditionNode",
    "EvaluationResult",
    "InvalidCondition",
    "LeafTrace",
    "count_leaves",
]
