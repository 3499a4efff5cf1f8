"""
Project suggestions for an inbound e-mail.

Unlike assignment rules, suggestions need no configuration: each project is
scored on how well the e-mail lines up with its own name, slug, description,
label values, sender domains and start/end dates. Suggestions are proposals
for a human to confirm, so every point comes with a rationale.
"""
from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog

from triage_core.rules.assignment import message_assignment_fields, score_to_confidence
from triage_core.rules.evaluator import get_field
from triage_core.schemas import MessageRecord, ProjectRecord, coerce_record
from triage_core.utils.tz import days_between, parse_timestamp, round_half_up

logger = structlog.get_logger()

LABEL_MATCH_SCORE = 15
SUBJECT_KEYWORD_SCORE = 8
BODY_KEYWORD_SCORE = 4
SENDER_DOMAIN_SCORE = 18
START_PROXIMITY_SCORE = 12
END_PROXIMITY_SCORE = 10
ACTIVE_PROJECT_SCORE = 5
PROXIMITY_DAYS = 14
MIN_KEYWORD_LENGTH = 3
DEFAULT_SUGGESTION_LIMIT = 5

_NON_KEYWORD = re.compile(r"[^a-z0-9\s/_-]")
_KEYWORD_SPLIT = re.compile(r"[\s/_-]")
_DOMAIN = re.compile(r"([a-z0-9-]+\.[a-z]{2,})")


@dataclass(frozen=True)
class ProjectProfile:
    """Lower-cased terms a project is recognised by."""

    keywords: Tuple[str, ...] = ()
    label_values: Tuple[str, ...] = ()
    domains: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProjectSuggestion:
    project: ProjectRecord
    score: float
    rationales: Tuple[str, ...] = ()

    @property
    def confidence(self) -> float:
        """Score mapped onto 0.1-0.95; a suggestion is never certain."""
        return max(0.1, min(0.95, self.score / 100))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project.id,
            "project_name": self.project.name,
            "score": self.score,
            "confidence": self.confidence,
            "confidence_level": score_to_confidence(self.confidence),
            "rationales": list(self.rationales),
        }


def _keywords(text: Any) -> List[str]:
    if not text:
        return []
    cleaned = _NON_KEYWORD.sub(" ", str(text).strip().lower())
    return [token for token in _KEYWORD_SPLIT.split(cleaned) if len(token) >= MIN_KEYWORD_LENGTH]


def project_profile(project: Any) -> ProjectProfile:
    """Keywords from name, slug, description and label values; domains from domain-like labels."""
    project = coerce_record(ProjectRecord, project)
    keywords: Dict[str, None] = {}
    label_values: Dict[str, None] = {}
    domains: Dict[str, None] = {}

    for text in (project.name, project.slug, project.description):
        keywords.update(dict.fromkeys(_keywords(text)))

    labels = project.labels if isinstance(project.labels, Mapping) else {}
    for key, raw in labels.items():
        if raw is None:
            continue
        value = str(raw).strip()
        if not value:
            continue
        lowered = value.lower()
        label_values[lowered] = None
        keywords.update(dict.fromkeys(_keywords(value)))
        if "domain" in str(key).lower() or "." in lowered:
            match = _DOMAIN.search(lowered)
            if match:
                domains[match.group(1)] = None

    return ProjectProfile(tuple(keywords), tuple(label_values), tuple(domains))


def _mentions(text: Any, keywords: Iterable[str]) -> List[str]:
    lowered = str(text or "").strip().lower()
    if not lowered:
        return []
    return [keyword for keyword in keywords if keyword in lowered]


def _sender_domain(from_email: Any) -> Optional[str]:
    _, _, domain = str(from_email or "").partition("@")
    return domain.strip().lower() or None


def _days_apart(moment: datetime, value: Any) -> Optional[int]:
    other = parse_timestamp(value)
    if other is None:
        return None
    return abs(round_half_up(days_between(other, moment)))


def _proximity(received_at: Any, project: ProjectRecord) -> Tuple[int, Optional[str]]:
    received = parse_timestamp(received_at)
    if received is None or project.start_date is None:
        return 0, None
    start_days = _days_apart(received, project.start_date)
    if start_days is not None and start_days <= PROXIMITY_DAYS:
        return START_PROXIMITY_SCORE, f"Project start is {start_days}d from email"
    end_days = _days_apart(received, project.end_date)
    if end_days is not None and end_days <= PROXIMITY_DAYS:
        return END_PROXIMITY_SCORE, f"Project wrap is {end_days}d from email"
    return 0, None


def score_project_suggestion(message: Any, project: Any) -> ProjectSuggestion:
    """Score one project against one e-mail; a zero score means no evidence."""
    message = coerce_record(MessageRecord, message)
    project = coerce_record(ProjectRecord, project)
    profile = project_profile(project)
    fields = message_assignment_fields(message)
    rationales: List[str] = []
    score = 0.0

    labels = [label for label in get_field(fields, "labels") or [] if label.strip().lower() in profile.label_values]
    if labels:
        score += LABEL_MATCH_SCORE * len(labels)
        rationales.append(f"Matches project labels: {', '.join(labels)}")

    subject_hits = _mentions(get_field(fields, "subject"), profile.keywords)
    if subject_hits:
        score += SUBJECT_KEYWORD_SCORE * len(subject_hits)
        rationales.append(f"Subject references {', '.join(subject_hits)}")

    body_hits = _mentions(get_field(fields, "body"), profile.keywords)
    if body_hits:
        score += BODY_KEYWORD_SCORE * len(body_hits)
        rationales.append(f"Body mentions {', '.join(body_hits)}")

    sender = _sender_domain(get_field(fields, "from_email"))
    if sender:
        domain = next((candidate for candidate in profile.domains if sender.endswith(candidate)), None)
        if domain:
            score += SENDER_DOMAIN_SCORE
            rationales.append(f"Sender domain aligns with {domain}")

    proximity, note = _proximity(get_field(fields, "received_at"), project)
    if proximity:
        score += proximity
        rationales.append(note)

    if project.status == "active":
        score += ACTIVE_PROJECT_SCORE
        rationales.append("Project is active")

    return ProjectSuggestion(project=project, score=round(score, 2), rationales=tuple(rationales))


def suggest_projects(
    message: Any,
    projects: Iterable[Any],
    *,
    exclude_project_ids: Iterable[str] = (),
    limit: int = DEFAULT_SUGGESTION_LIMIT,
    min_score: float = 0,
) -> List[ProjectSuggestion]:
    """
    Projects the e-mail most likely belongs to, best first.

    Only suggestions scoring above ``min_score`` are kept; ties keep the input
    order of ``projects``.
    """
    message = coerce_record(MessageRecord, message)
    excluded = set(exclude_project_ids)
    suggestions = [
        suggestion
        for suggestion in (
            score_project_suggestion(message, project)
            for project in projects
            if coerce_record(ProjectRecord, project).id not in excluded
        )
        if suggestion.score > min_score
    ]
    suggestions.sort(key=lambda suggestion: -suggestion.score)
    logger.debug(
        "Project suggestions computed",
        email_id=message.id,
        candidates=len(suggestions),
        top=suggestions[0].project.id if suggestions else None,
    )
    return suggestions[: max(0, limit)]


__all__ = [
    "ProjectProfile",
    "ProjectSuggestion",
    "project_profile",
    "score_project_suggestion",
    "suggest_projects",
]
