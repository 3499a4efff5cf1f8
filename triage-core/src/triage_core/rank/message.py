"""Inbox priority scoring for classified e-mail."""
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Union

from triage_core.rank.models import (
    ScoreComponent,
    ScoredEntity,
    build_rationale,
    floor_total,
    format_number,
    iso_or_none,
    sum_components,
)
from triage_core.schemas import MessageRecord, coerce_record
from triage_core.scoring.defaults import DEFAULT_SCORING_CONFIG
from triage_core.scoring.models import (
    ActionRule,
    AdvancedBoost,
    CrossLabelRule,
    MessageScoringConfig,
    ScoringConfig,
)
from triage_core.utils.tz import format_hours, hours_between, parse_timestamp, reference_time, round_half_up

ConfigLike = Union[ScoringConfig, MessageScoringConfig, None]


def _email_config(config: ConfigLike) -> MessageScoringConfig:
    if config is None:
        return DEFAULT_SCORING_CONFIG.email
    if isinstance(config, ScoringConfig):
        return config.email
    return config


def _matches_cross_label(rule: CrossLabelRule, label: str) -> bool:
    if rule.case_insensitive:
        return label.lower().startswith(rule.prefix.lower())
    return label.startswith(rule.prefix)


def _email_domain(address: Optional[str]) -> Optional[str]:
    if not address or not isinstance(address, str):
        return None
    parts = address.split("@")
    if len(parts) == 2 and parts[1]:
        return parts[1].lower()
    return None


def _matches_boost(boost: AdvancedBoost, message: MessageRecord, running_score: int) -> bool:
    criteria = boost.criteria

    if criteria.min_priority is not None and running_score < criteria.min_priority:
        return False

    if criteria.senders:
        sender = (message.from_email or message.from_name or "").lower()
        if not any(value.lower() in sender for value in criteria.senders):
            return False

    if criteria.domains:
        domain = _email_domain(message.from_email)
        if not domain or not any(domain == value.lower() for value in criteria.domains):
            return False

    if criteria.keywords:
        subject = (message.subject or "").lower()
        if not any(keyword.lower() in subject for keyword in criteria.keywords):
            return False

    if criteria.labels:
        labels = {label.lower() for label in message.labels}
        if not any(label.lower() in labels for label in criteria.labels):
            return False

    if criteria.categories:
        category = (message.category or "").lower()
        if not any(category == value.lower() for value in criteria.categories):
            return False

    if criteria.has_attachment is not None and criteria.has_attachment != message.has_attachments:
        return False

    return True


def idle_age_value(age_hours: float, triage_state: str, config: MessageScoringConfig) -> int:
    """Three-window idle curve, dampened while snoozed."""
    idle = config.idle_age

    if age_hours < idle.short_window_hours:
        value = round_half_up(age_hours * idle.short_window_multiplier)
    elif age_hours < idle.medium_window_end_hours:
        into_medium = max(0.0, age_hours - idle.medium_window_start_hours)
        value = round_half_up(idle.medium_window_base + into_medium * idle.medium_window_multiplier)
    else:
        beyond_long = max(0.0, age_hours - idle.long_window_start_hours)
        bonus = min(idle.long_window_max_bonus, beyond_long * idle.long_window_multiplier)
        value = round_half_up(idle.long_window_base + bonus)

    # Expired snoozes are still dampened until the state changes
    if triage_state == "snoozed":
        value = round_half_up(value * config.snooze_age_reduction)

    return value


def message_components(
    message: Union[MessageRecord, dict],
    *,
    config: ConfigLike = None,
    now: datetime,
) -> List[ScoreComponent]:
    """Signed components in evaluation order; boosts see the running total."""
    message = coerce_record(MessageRecord, message)
    email = _email_config(config)
    now = reference_time(now)
    components: List[ScoreComponent] = []

    weight = email.category_weights.get(message.category, email.default_category_weight)
    components.append(ScoreComponent(f"Category {message.category}", weight))

    model_score = message.model_score
    if model_score is not None and model_score == model_score:
        clamped = min(100.0, max(0.0, model_score))
        weighted = round_half_up(clamped * email.model_priority_weight)
        if weighted != 0:
            components.append(ScoreComponent(f"Model priority {format_number(clamped)}", weighted))

    received = parse_timestamp(message.received_at)
    if received is not None:
        age_hours = hours_between(now, received)
        if age_hours >= 0:
            age_value = idle_age_value(age_hours, message.triage_state, email)
            if age_value != 0:
                components.append(ScoreComponent(f"Idle {format_hours(age_hours)}", age_value))

    if not message.is_read:
        components.append(ScoreComponent("Unread in inbox", email.unread_bonus))

    adjustment = email.triage_state_adjustments.get(message.triage_state, 0)
    if adjustment != 0:
        components.append(ScoreComponent(f"Triage {message.triage_state}", adjustment))

    labels = list(dict.fromkeys(message.labels))
    for rule in email.cross_label_rules:
        if any(_matches_cross_label(rule, label) for label in labels):
            components.append(ScoreComponent(rule.description or rule.prefix, rule.weight))

    running = sum_components(components)
    for boost in email.advanced_boosts:
        if _matches_boost(boost, message, running):
            components.append(ScoreComponent(boost.label, boost.weight))
            running += boost.weight

    return components


def match_action_rules(
    message: Union[MessageRecord, dict],
    score: int,
    config: ConfigLike = None,
) -> List[ActionRule]:
    """Action rules whose category filter, triage filter and score threshold all hold."""
    message = coerce_record(MessageRecord, message)
    email = _email_config(config)
    category = (message.category or "").lower()
    matched = []
    for rule in email.action_rules:
        if rule.categories and category not in {value.lower() for value in rule.categories}:
            continue
        if rule.triage_states and message.triage_state not in rule.triage_states:
            continue
        if score < rule.min_priority:
            continue
        matched.append(rule)
    return matched


def score_message(
    message: Union[MessageRecord, dict],
    *,
    config: ConfigLike = None,
    now: datetime,
) -> ScoredEntity:
    message = coerce_record(MessageRecord, message)
    email = _email_config(config)
    components = message_components(message, config=email, now=now)
    total = floor_total(components)
    actions = match_action_rules(message, total, email)

    return ScoredEntity(
        id=f"email:{message.id}",
        entity_type="email",
        title=message.subject or "(no subject)",
        score=total,
        components=tuple(components),
        rationale=build_rationale(components, email.explainability),
        project_id=message.project_id,
        due_at=None,
        starts_at=None,
        ends_at=None,
        status=message.triage_state,
        ref_table="emails",
        ref_id=message.id,
        priority=message.model_score,
        actions=tuple(rule.id for rule in actions),
        extra={"received_at": iso_or_none(message.received_at), "category": message.category},
    )


def message_priority(message: Any, *, config: ConfigLike = None, now: datetime) -> int:
    """Convenience helper returning the floored total only."""
    return floor_total(message_components(message, config=config, now=now))


__all__ = [
    "idle_age_value",
    "match_action_rules",
    "message_components",
    "message_priority",
    "score_message",
]
