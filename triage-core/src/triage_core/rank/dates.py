"""Date proximity, overdue and manual-priority components shared by task and timeline scoring."""
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from triage_core.rank.models import ScoreComponent, format_number
from triage_core.scoring.models import TimeDecayConfig
from triage_core.utils.tz import days_between, format_days, parse_timestamp, round_half_up


def date_components(
    value: Any,
    now: datetime,
    label_prefix: str,
    config: TimeDecayConfig,
) -> List[ScoreComponent]:
    """
    Score an upcoming or past date.

    Upcoming dates decay linearly from ``upcoming_base_score``. Once the date
    has passed the item keeps the full proximity value and gains the capped
    overdue escalation, so overdue work always outranks work that is merely due
    soon. Unparsable dates yield no component.
    """
    moment = parse_timestamp(value)
    if moment is None:
        return []

    diff_days = days_between(moment, now)
    if diff_days >= 0:
        proximity = max(0, config.upcoming_base_score - round_half_up(diff_days * config.upcoming_decay_per_day))
        if proximity == 0:
            return []
        return [ScoreComponent(f"{label_prefix} in {format_days(diff_days)}", proximity)]

    overdue_days = abs(diff_days)
    escalation = min(
        config.overdue_max_penalty,
        config.overdue_base_penalty + round_half_up(overdue_days * config.overdue_penalty_per_day),
    )
    components = []
    if config.upcoming_base_score:
        components.append(ScoreComponent(f"{label_prefix} date reached", config.upcoming_base_score))
    if escalation:
        components.append(ScoreComponent(f"Overdue by {format_days(diff_days)}", escalation))
    return components


def manual_priority_component(priority: Optional[float], weight: float) -> List[ScoreComponent]:
    if priority is None or priority != priority or priority <= 0:
        return []
    value = round_half_up(min(priority, 100) * weight)
    if value == 0:
        return []
    return [ScoreComponent(f"Manual priority {format_number(priority)}", value)]


__all__ = ["date_components", "manual_priority_component"]
