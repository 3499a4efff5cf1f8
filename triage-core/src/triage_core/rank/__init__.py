"""Entity scorers for triage-core."""

from .message import match_action_rules, message_components, score_message
from .models import ScoreComponent, ScoredEntity
from .task import score_task
from .thread import ThreadScoreBreakdown, score_thread, score_thread_entity
from .timeline import score_timeline_item

__all__ = [
    "ScoreComponent",
    "ScoredEntity",
    "ThreadScoreBreakdown",
    "match_action_rules",
    "message_components",
    "score_message",
    "score_task",
    "score_thread",
    "score_thread_entity",
    "score_timeline_item",
]
