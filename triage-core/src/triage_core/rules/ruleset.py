"""
Persisted shape of one automation, assignment or lane rule.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional

from triage_core.rules.evaluator import explain
from triage_core.rules.fields import FieldSchema
from triage_core.rules.models import ConditionGroup, ConditionNode, EvaluationResult, count_leaves
from triage_core.rules.parser import EMPTY, LOGIC_MODES, parse_condition


@dataclass(frozen=True)
class RuleSet:
    """
    A root condition node.

    A rule with no leaves matches every entity whatever its mode; it is how an
    explicit "always assign" rule is stored. Bare empty groups nested inside a
    rule keep their vacuous meaning.
    """

    root: ConditionNode = EMPTY

    @classmethod
    def from_json(cls, raw: Any) -> "RuleSet":
        return cls(root=parse_condition(raw))

    @classmethod
    def from_list(cls, conditions: Iterable[Any], mode: str = "all") -> "RuleSet":
        """Flat list of conditions joined with ``all`` or ``any``."""
        group_mode = LOGIC_MODES.get(str(mode or "all").strip().lower(), "all")
        children = tuple(parse_condition(item) for item in conditions)
        return cls(root=ConditionGroup(group_mode, children))

    @property
    def mode(self) -> str:
        return self.root.mode if isinstance(self.root, ConditionGroup) else "all"

    @property
    def leaf_count(self) -> int:
        return count_leaves(self.root)

    @property
    def is_empty(self) -> bool:
        return self.leaf_count == 0

    def to_json(self) -> Any:
        return self.root.to_json()

    def explain(
        self,
        entity: Any,
        *,
        schema: Optional[FieldSchema] = None,
        now: Optional[datetime] = None,
    ) -> EvaluationResult:
        if self.is_empty:
            return EvaluationResult(matched=True)
        return explain(self.root, entity, schema=schema, now=now)

    def matches(
        self,
        entity: Any,
        *,
        schema: Optional[FieldSchema] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        return self.explain(entity, schema=schema, now=now).matched


__all__ = ["RuleSet"]
