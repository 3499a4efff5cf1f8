"""
Operator semantics per field type.

Each ``apply_*`` function returns ``(matched, reason)``. ``reason`` explains a
non-match caused by a type mismatch or an unusable rule value; a plain
"did not match" carries no reason.
"""
from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple
import re
import unicodedata

from triage_core.rules.fields import ARRAY, BOOLEAN, DATE, NUMBER, RANGE, TEXT
from triage_core.utils.coerce import to_bool, to_number
from triage_core.utils.tz import DAY_SECONDS, parse_timestamp

Outcome = Tuple[bool, Optional[str]]

NO_VALUE = "rule value is missing or unusable"


def normalize_text(value: Any) -> str:
    """Accent-stripped, trimmed, case-folded text for comparisons."""
    if value is None:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(value))
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return stripped.strip().casefold()


def _listify(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _terms(expected: Any) -> List[str]:
    terms = [normalize_text(item) for item in _listify(expected) if item is not None]
    return [term for term in terms if term]


def range_bounds(value: Any) -> Optional[Tuple[Optional[float], Optional[float]]]:
    """``{"min": a, "max": b}`` or ``[a, b]`` with either bound optional."""
    if isinstance(value, Mapping):
        if "min" not in value and "max" not in value:
            return None
        return to_number(value.get("min")), to_number(value.get("max"))
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return to_number(value[0]), to_number(value[1])
    return None


def _within(number: float, low: Optional[float], high: Optional[float]) -> bool:
    if low is not None and number < low:
        return False
    if high is not None and number > high:
        return False
    return True


def apply_text(actual: Any, operator: str, expected: Any, now: Optional[datetime]) -> Outcome:
    if not isinstance(actual, str):
        return False, "expected a text value"

    if operator == "matches_regex":
        if not isinstance(expected, str) or not expected:
            return False, NO_VALUE
        try:
            return re.search(expected, actual) is not None, None
        except re.error as exc:
            return False, f"invalid regular expression: {exc}"

    terms = _terms(expected)
    if not terms:
        return False, NO_VALUE
    target = normalize_text(actual)

    if operator in ("equals", "is_one_of"):
        return any(target == term for term in terms), None
    if operator in ("not_equals", "not_in"):
        return all(target != term for term in terms), None
    if operator == "contains":
        return any(term in target for term in terms), None
    if operator == "not_contains":
        return all(term not in target for term in terms), None
    if operator == "starts_with":
        return any(target.startswith(term) for term in terms), None
    if operator == "ends_with":
        return any(target.endswith(term) for term in terms), None
    return False, f"unsupported text operator '{operator}'"


def apply_number(actual: Any, operator: str, expected: Any, now: Optional[datetime]) -> Outcome:
    number = to_number(actual)
    if number is None:
        return False, "expected a numeric value"

    if operator == "between":
        bounds = range_bounds(expected)
        if bounds is None:
            return False, NO_VALUE
        return _within(number, *bounds), None

    if operator in ("is_one_of", "not_in"):
        options = [value for value in (to_number(item) for item in _listify(expected)) if value is not None]
        if not options:
            return False, NO_VALUE
        found = number in options
        return (found if operator == "is_one_of" else not found), None

    target = to_number(expected)
    if target is None:
        return False, NO_VALUE

    comparisons: Dict[str, Callable[[float, float], bool]] = {
        "equals": lambda a, b: a == b,
        "not_equals": lambda a, b: a != b,
        "greater_than": lambda a, b: a > b,
        "less_than": lambda a, b: a < b,
        "greater_than_or_equal": lambda a, b: a >= b,
        "less_than_or_equal": lambda a, b: a <= b,
    }
    compare = comparisons.get(operator)
    if compare is None:
        return False, f"unsupported number operator '{operator}'"
    return compare(number, target), None


def apply_array(actual: Any, operator: str, expected: Any, now: Optional[datetime]) -> Outcome:
    if not isinstance(actual, (list, tuple, set, frozenset)):
        return False, "expected a list value"

    terms = _terms(expected)
    if not terms:
        return False, NO_VALUE
    members = [normalize_text(member) for member in actual if member is not None]

    if operator in ("is_one_of", "equals"):
        return bool(set(terms) & set(members)), None
    if operator in ("not_in", "not_equals"):
        return not (set(terms) & set(members)), None
    if operator == "contains":
        return any(term in member for term in terms for member in members), None
    if operator == "not_contains":
        return not any(term in member for term in terms for member in members), None
    return False, f"unsupported list operator '{operator}'"


def apply_boolean(actual: Any, operator: str, expected: Any, now: Optional[datetime]) -> Outcome:
    value = to_bool(actual)
    if value is None:
        return False, "expected a boolean value"
    target = to_bool(expected)
    if target is None:
        return False, NO_VALUE
    return value == target, None


def apply_date(actual: Any, operator: str, expected: Any, now: Optional[datetime]) -> Outcome:
    moment = parse_timestamp(actual)
    if moment is None:
        return False, "expected a timestamp"

    if operator in ("before", "after"):
        limit = parse_timestamp(expected)
        if limit is None:
            return False, NO_VALUE
        return (moment < limit if operator == "before" else moment > limit), None

    if operator == "within_last_days":
        if now is None:
            return False, "within_last_days needs the current time"
        raw_days = expected.get("days") if isinstance(expected, Mapping) else expected
        days = to_number(raw_days)
        if days is None or days < 0:
            return False, NO_VALUE
        reference = parse_timestamp(now)
        elapsed = (reference - moment).total_seconds()
        return 0 <= elapsed <= days * DAY_SECONDS, None

    return False, f"unsupported date operator '{operator}'"


def apply_range(actual: Any, operator: str, expected: Any, now: Optional[datetime]) -> Outcome:
    bounds = range_bounds(actual)
    if bounds is None:
        return False, "expected a range value"
    low, high = bounds

    if operator in ("contains", "not_contains"):
        number = to_number(expected)
        if number is None:
            return False, NO_VALUE
        inside = _within(number, low, high)
        return (inside if operator == "contains" else not inside), None

    if operator == "between":
        outer = range_bounds(expected)
        if outer is None:
            return False, NO_VALUE
        if low is None or high is None:
            return False, None
        return _within(low, *outer) and _within(high, *outer), None

    return False, f"unsupported range operator '{operator}'"


APPLY_BY_TYPE = {
    TEXT: apply_text,
    NUMBER: apply_number,
    ARRAY: apply_array,
    BOOLEAN: apply_boolean,
    DATE: apply_date,
    RANGE: apply_range,
}


__all__ = [
    "APPLY_BY_TYPE",
    "apply_array",
    "apply_boolean",
    "apply_date",
    "apply_number",
    "apply_range",
    "apply_text",
    "normalize_text",
    "range_bounds",
]
