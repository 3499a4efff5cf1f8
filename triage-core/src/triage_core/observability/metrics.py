"""
Prometheus metrics for triage runs.

The collector owns a private registry, so several collectors (one per test, for
instance) never clash.
"""
from typing import Any, Dict, Iterable

import structlog
from prometheus_client import CollectorRegistry, Counter, Summary, generate_latest
from prometheus_client.parser import text_string_to_metric_families

logger = structlog.get_logger()


class MetricsCollector:
    """Collect and export Prometheus metrics for scoring, conflict and digest runs."""

    def __init__(self):
        self.registry = CollectorRegistry()
        self._init_metrics()

    def _init_metrics(self):
        self.entities_scored_total = Counter(
            'entities_scored_total',
            'Total entities scored',
            ['entity_type'],  # task, timeline, email, thread
            registry=self.registry
        )

        self.conflicts_detected_total = Counter(
            'conflicts_detected_total',
            'Total timeline conflicts detected',
            ['kind', 'severity'],
            registry=self.registry
        )

        self.runs_total = Counter(
            'runs_total',
            'Total digest runs',
            ['status'],  # ok, failed
            registry=self.registry
        )

        self.digest_build_seconds = Summary(
            'digest_build_seconds',
            'Time spent building digest',
            registry=self.registry
        )

    def record_entities_scored(self, entities: Iterable[Any]):
        """Count scored entities by ``entity_type``."""
        counts: Dict[str, int] = {}
        for entity in entities:
            entity_type = entity.get("entity_type") if isinstance(entity, dict) else getattr(entity, "entity_type", None)
            counts[entity_type or "unknown"] = counts.get(entity_type or "unknown", 0) + 1
        for entity_type, count in counts.items():
            self.entities_scored_total.labels(entity_type=entity_type).inc(count)
        logger.debug("Recorded scored entities", counts=counts)

    def record_conflicts(self, conflicts: Iterable[Any]):
        """Count conflicts by kind and severity; accepts Conflict objects or their dicts."""
        for conflict in conflicts:
            if isinstance(conflict, dict):
                kind, severity = conflict.get("kind"), conflict.get("severity")
            else:
                kind, severity = conflict.kind, conflict.severity
            self.conflicts_detected_total.labels(kind=kind, severity=severity).inc()

    def record_run_total(self, status: str):
        """Record run status."""
        self.runs_total.labels(status=status).inc()
        logger.debug("Recorded run status", status=status)

    def record_digest_build_time(self, seconds: float):
        self.digest_build_seconds.observe(seconds)
        logger.debug("Recorded digest build time", build_time=seconds)

    def get_metric_values(self) -> Dict[str, Any]:
        """Current metric values, keyed by metric family name."""
        metrics_text = generate_latest(self.registry).decode('utf-8')
        metrics = {}
        for family in text_string_to_metric_families(metrics_text):
            metrics[family.name] = {
                'type': family.type,
                'help': family.documentation,
                'samples': [
                    {
                        'name': sample.name,
                        'labels': sample.labels,
                        'value': sample.value
                    }
                    for sample in family.samples
                ]
            }
        return metrics

    def sample_value(self, name: str, **labels: str) -> float:
        """Value of one sample, 0.0 when it was never recorded."""
        value = self.registry.get_sample_value(name, labels or None)
        return value if value is not None else 0.0
