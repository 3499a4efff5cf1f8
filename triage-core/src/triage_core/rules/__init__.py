"""
Condition evaluation shared by automation, project assignment and lane rules.
"""
from .assignment import (
    ProjectAssignmentRule,
    evaluate_assignment_rule,
    normalize_assignment_rule,
    resolve_project_assignments,
)
from .automation import AutomationRule, match_automation_rules, normalize_automation_rule
from .evaluator import evaluate, explain, get_field
from .lanes import LaneDefinition, evaluate_lane_assignment, resolve_auto_assigned_lane
from .models import ConditionGroup, ConditionLeaf, EvaluationResult, InvalidCondition
from .parser import parse_condition
from .ruleset import RuleSet
from .suggestions import ProjectSuggestion, suggest_projects

__all__ = [
    "AutomationRule",
    "ConditionGroup",
    "ConditionLeaf",
    "EvaluationResult",
    "InvalidCondition",
    "LaneDefinition",
    "ProjectAssignmentRule",
    "ProjectSuggestion",
    "RuleSet",
    "evaluate",
    "evaluate_assignment_rule",
    "evaluate_lane_assignment",
    "explain",
    "get_field",
    "match_automation_rules",
    "normalize_assignment_rule",
    "normalize_automation_rule",
    "parse_condition",
    "resolve_auto_assigned_lane",
    "resolve_project_assignments",
    "suggest_projects",
]
