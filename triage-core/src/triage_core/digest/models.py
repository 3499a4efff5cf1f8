"""
Digest payload schema.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from triage_core.schemas import ApprovalRecord, ProjectMetrics, ProjectRecord


class DigestProjectSnapshot(BaseModel):
    project: ProjectRecord
    metrics: ProjectMetrics
    top_actions: List[Dict[str, Any]] = Field(default_factory=list)
    approvals: List[ApprovalRecord] = Field(default_factory=list, description="Pending approvals only")
    conflicts: List[Dict[str, Any]] = Field(default_factory=list, description="Conflicts detected among the timeline items")


class DigestMeta(BaseModel):
    total_projects: int = 0
    total_pending_approvals: int = 0
    highlighted_projects: int = Field(default=0, description="Projects represented in the global top actions")


class DigestPayload(BaseModel):
    generated_at: str
    top_actions: List[Dict[str, Any]] = Field(default_factory=list)
    projects: List[DigestProjectSnapshot] = Field(default_factory=list)
    meta: DigestMeta = Field(default_factory=DigestMeta)
    scoring_preset: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
