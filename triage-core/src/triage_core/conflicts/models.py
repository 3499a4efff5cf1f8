"""Conflict and slot result types."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Tuple

LANE_OVERLAP = "lane_overlap"
TERRITORY_BUFFER = "territory_buffer"
TRAVEL_TIME = "travel_time"
TIMEZONE_JUMP = "timezone_jump"

CONFLICT_KINDS = (LANE_OVERLAP, TERRITORY_BUFFER, TRAVEL_TIME, TIMEZONE_JUMP)

SEVERITY_WARNING = "warning"
SEVERITY_ERROR = "error"


def conflict_id(first_id: str, second_id: str, kind: str) -> str:
    """Pair-symmetric, deterministic conflict identifier."""
    low, high = sorted((first_id, second_id))
    return f"{low}:{high}:{kind}"


@dataclass(frozen=True)
class Conflict:
    id: str
    kind: str
    severity: str
    message: str
    item_ids: Tuple[str, str]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "kind": self.kind,
            "severity": self.severity,
            "message": self.message,
            "item_ids": list(self.item_ids),
        }
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data


@dataclass(frozen=True)
class TimeSlot:
    start: datetime
    end: datetime
    confidence: str
    reasons: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "confidence": self.confidence,
            "reasons": list(self.reasons),
        }


__all__ = [
    "CONFLICT_KINDS",
    "Conflict",
    "LANE_OVERLAP",
    "SEVERITY_ERROR",
    "SEVERITY_WARNING",
    "TERRITORY_BUFFER",
    "TIMEZONE_JUMP",
    "TRAVEL_TIME",
    "TimeSlot",
    "conflict_id",
]
