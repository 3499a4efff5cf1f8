"""
Lenient coercion of untrusted JSON-like values.

Every helper returns ``None`` (or the supplied fallback) instead of raising, so
callers can fall back to a known-good value.
"""
from typing import Any, List, Optional
import math

_TRUE = ("true", "1", "yes", "y")
_FALSE = ("false", "0", "no", "n")


def to_number(value: Any) -> Optional[float]:
    """Finite float from a number or numeric string; booleans are not numbers."""
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str) and value.strip():
            number = float(value.strip())
        else:
            return None
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    return None


def ensure_bool(value: Any, fallback: bool = False) -> bool:
    parsed = to_bool(value)
    return fallback if parsed is None else parsed


def ensure_string(value: Any, fallback: str = "") -> str:
    """Trimmed string; numbers and booleans are stringified, anything else falls back."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return fallback


def ensure_string_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]
