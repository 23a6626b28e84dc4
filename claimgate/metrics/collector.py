"""
Prometheus metrics for claimgate.

Counts policy decisions and scenario outcomes. Every collector owns its
own registry, so environments and harness runs never share counters.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


logger = logging.getLogger(__name__)


@dataclass
class MetricConfig:
    """Configuration for metrics collection."""
    enabled: bool = True
    namespace: str = "claimgate"


class DecisionMetrics:
    """Collector for decision and scenario metrics."""

    def __init__(self, config: Optional[MetricConfig] = None):
        self.config = config or MetricConfig()
        self.registry = CollectorRegistry()
        self._counts: Dict[str, int] = {}

        ns = self.config.namespace
        self.decisions = Counter(
            f'{ns}_decisions_total',
            'Total number of policy decisions',
            ['operation', 'collection', 'allowed'],
            registry=self.registry
        )
        self.store_errors = Counter(
            f'{ns}_store_errors_total',
            'Allowed operations the document store rejected or failed',
            ['operation', 'kind'],
            registry=self.registry
        )
        self.scenarios = Counter(
            f'{ns}_scenarios_total',
            'Total number of finished conformance scenarios',
            ['status'],
            registry=self.registry
        )
        self.scenario_duration = Histogram(
            f'{ns}_scenario_duration_seconds',
            'Conformance scenario duration in seconds',
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0],
            registry=self.registry
        )

    def _bump(self, key: str) -> None:
        self._counts[key] = self._counts.get(key, 0) + 1

    def record_decision(self, operation: str, collection: str, allowed: bool) -> None:
        """Record a policy decision."""
        if not self.config.enabled:
            return
        allowed_str = "true" if allowed else "false"
        self.decisions.labels(operation=operation, collection=collection, allowed=allowed_str).inc()
        self._bump(f"decisions_{allowed_str}")

    def record_store_error(self, operation: str, kind: str) -> None:
        if not self.config.enabled:
            return
        self.store_errors.labels(operation=operation, kind=kind).inc()
        self._bump(f"store_errors_{kind}")

    def record_scenario(self, status: str, duration: float) -> None:
        """Record a finished scenario."""
        if not self.config.enabled:
            return
        self.scenarios.labels(status=status).inc()
        self.scenario_duration.observe(duration)
        self._bump(f"scenarios_{status}")

    def count(self, key: str) -> int:
        """Local tally, e.g. count('decisions_true') or count('scenarios_passed')."""
        return self._counts.get(key, 0)

    def export_prometheus_metrics(self) -> str:
        """Export metrics in the Prometheus text format."""
        return generate_latest(self.registry).decode('utf-8')

    def get_metrics_summary(self) -> Dict[str, Any]:
        return {
            'enabled': self.config.enabled,
            'counts': dict(self._counts)
        }
