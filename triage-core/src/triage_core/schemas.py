"""
Entity snapshots consumed by the scoring, rule and conflict engines.

Records mirror the rows the web layer reads from storage. They accept either
snake_case or camelCase keys and ignore unknown columns. Timestamps may be
datetimes or ISO-8601 strings; unparsable strings are kept as-is and treated as
absent by the engines.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Timestamp = Optional[Union[datetime, str]]

FALLBACK_CATEGORY = "MISC/Uncategorized"
TERMINAL_STATUSES = ("done", "completed")


class Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class MessageRecord(Record):
    """Inbound e-mail with its upstream classification."""
    id: str
    project_id: Optional[str] = None
    from_name: Optional[str] = None
    from_email: Optional[str] = None
    subject: Optional[str] = None
    summary: Optional[str] = None
    body: Optional[str] = None
    received_at: Timestamp = None
    category: str = FALLBACK_CATEGORY
    labels: List[str] = Field(default_factory=list)
    is_read: bool = False
    triage_state: str = "unassigned"
    snoozed_until: Timestamp = None
    has_attachments: bool = False
    priority_score: Optional[float] = None
    model_score: Optional[float] = Field(default=None, description="Classifier confidence 0-100")


class TaskRecord(Record):
    id: str
    project_id: Optional[str] = None
    title: str = ""
    description: Optional[str] = None
    status: str = "todo"
    due_at: Timestamp = None
    priority: Optional[float] = None
    assignee_id: Optional[str] = None
    lane: Optional[str] = None


class TimelineItemRecord(Record):
    """Time-bound entry on a project timeline (show, hold, promo slot, travel leg...)."""
    id: str
    project_id: Optional[str] = None
    type: str = "event"
    title: str = ""
    starts_at: Timestamp = None
    ends_at: Timestamp = None
    due_at: Timestamp = None
    lane: Optional[str] = None
    territory: Optional[str] = None
    city: Optional[str] = None
    timezone: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[float] = None
    ref_table: Optional[str] = None
    ref_id: Optional[str] = None
    labels: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class DependencyRecord(Record):
    """``from_item_id`` must finish (FS) or start (SS) before ``to_item_id``."""
    id: str = ""
    project_id: Optional[str] = None
    from_item_id: str
    to_item_id: str
    kind: str = "FS"
    note: Optional[str] = None

    @property
    def is_finish_to_start(self) -> bool:
        return self.kind.strip().upper() in ("FS", "FINISH_TO_START")


class ApprovalRecord(Record):
    id: str
    project_id: Optional[str] = None
    type: str = "generic"
    status: str = "pending"
    payload: Dict[str, Any] = Field(default_factory=dict)
    requested_by: Optional[str] = None
    created_at: Timestamp = None


class ProjectRecord(Record):
    id: str
    name: str = ""
    slug: Optional[str] = None
    description: Optional[str] = None
    status: str = "active"
    color: Optional[str] = None
    labels: Dict[str, Any] = Field(default_factory=dict)
    start_date: Timestamp = None
    end_date: Timestamp = None


class ProjectMetrics(Record):
    open_tasks: int = 0
    upcoming_timeline: int = 0
    linked_emails: int = 0
    conflicts: int = 0
    health_score: int = 100
    trend: Optional[str] = None


class ThreadSignals(Record):
    """Aggregated conversation signals for thread scoring."""
    last_message_at: Timestamp = None
    message_count: Optional[int] = None
    recent_message_count: Optional[int] = None
    unread_count: Optional[int] = None
    upcoming_deadline_at: Timestamp = None
    has_urgent_keyword: bool = False
    expected_reply_by: Timestamp = None
    attachments_of_interest_count: int = 0
    linked_project_priority: Optional[float] = None
    outstanding_questions: int = 0
    overdue_questions: int = 0


class ProjectDigestInput(Record):
    """Everything the digest builder needs for one project."""
    project: ProjectRecord
    tasks: List[TaskRecord] = Field(default_factory=list)
    timeline_items: List[TimelineItemRecord] = Field(default_factory=list)
    dependencies: List[DependencyRecord] = Field(default_factory=list)
    approvals: List[ApprovalRecord] = Field(default_factory=list)
    emails: List[MessageRecord] = Field(default_factory=list)
    metrics: Optional[Dict[str, Any]] = Field(default=None, description="Externally supplied metrics")


def coerce_record(model_cls, value):
    """Accept a record instance or a plain mapping (snake_case or camelCase)."""
    if isinstance(value, model_cls):
        return value
    if isinstance(value, BaseModel):
        value = value.model_dump()
    return model_cls.model_validate(value)
