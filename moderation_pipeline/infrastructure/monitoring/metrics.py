"""Prometheus metrics for the moderation pipeline.

Operational counters and gauges only. Each collector owns its registry,
so tests and multiple pipelines in one process never collide on metric
names.
"""

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

METRICS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

# Analysis latency buckets (10ms to 10s)
ANALYSIS_HISTOGRAM_BUCKETS = (0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


class ModerationMetrics:
    """Collects moderation pipeline metrics.

    Attributes:
        analyses_total: Analyses completed, by action.
        analysis_failures_total: Analyses that failed open.
        analysis_duration_seconds: Analysis wall time.
        reports_submitted_total: Accepted user reports.
        decisions_total: Recorded decisions, by action.
        notification_failures_total: Notifications dropped after retries.
        queue_depth: Items currently in the review queue.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize the collector.

        Args:
            registry: Optional custom registry for testing isolation.
        """
        self._registry = registry or CollectorRegistry()

        self.analyses_total = Counter(
            name="moderation_analyses_total",
            documentation="Content analyses completed",
            labelnames=["action"],
            registry=self._registry,
        )
        self.analysis_failures_total = Counter(
            name="moderation_analysis_failures_total",
            documentation="Content analyses that failed open to a safe result",
            labelnames=["reason"],
            registry=self._registry,
        )
        self.analysis_duration_seconds = Histogram(
            name="moderation_analysis_duration_seconds",
            documentation="Content analysis duration in seconds",
            buckets=ANALYSIS_HISTOGRAM_BUCKETS,
            registry=self._registry,
        )
        self.reports_submitted_total = Counter(
            name="moderation_reports_submitted_total",
            documentation="User reports accepted",
            labelnames=["auto_escalated"],
            registry=self._registry,
        )
        self.decisions_total = Counter(
            name="moderation_decisions_total",
            documentation="Moderation decisions recorded",
            labelnames=["action"],
            registry=self._registry,
        )
        self.notification_failures_total = Counter(
            name="moderation_notification_failures_total",
            documentation="Notifications dropped after exhausting retries",
            labelnames=["event_type", "channel"],
            registry=self._registry,
        )
        self.queue_depth = Gauge(
            name="moderation_queue_depth",
            documentation="Items waiting in the review queue",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_analysis(self, action: str, duration_seconds: float) -> None:
        self.analyses_total.labels(action=action).inc()
        self.analysis_duration_seconds.observe(duration_seconds)

    def record_analysis_failure(self, reason: str) -> None:
        self.analysis_failures_total.labels(reason=reason).inc()

    def record_report(self, auto_escalated: bool) -> None:
        self.reports_submitted_total.labels(
            auto_escalated=str(auto_escalated).lower()
        ).inc()

    def record_decision(self, action: str) -> None:
        self.decisions_total.labels(action=action).inc()

    def record_notification_failure(self, event_type: str, channel: str) -> None:
        self.notification_failures_total.labels(
            event_type=event_type, channel=channel
        ).inc()

    def set_queue_depth(self, depth: int) -> None:
        self.queue_depth.set(depth)

    def generate_metrics(self) -> bytes:
        """Render metrics in Prometheus exposition format."""
        return generate_latest(self._registry)
