"""
Top-actions aggregation and digest building across projects.
"""
from .aggregator import compute_top_actions, rank_entities
from .builder import build_digest_payload, build_project_snapshot
from .health import compute_project_health, project_metrics
from .models import DigestMeta, DigestPayload, DigestProjectSnapshot

__all__ = [
    "DigestMeta",
    "DigestPayload",
    "DigestProjectSnapshot",
    "build_digest_payload",
    "build_project_snapshot",
    "compute_project_health",
    "compute_top_actions",
    "project_metrics",
    "rank_entities",
]
