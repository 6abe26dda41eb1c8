"""Unit tests for ModerationMetrics.

Each instance owns its registry, so samples are read back with
registry.get_sample_value().
"""

from moderation_pipeline.infrastructure.monitoring.metrics import ModerationMetrics


class TestModerationMetrics:
    def test_instances_do_not_share_registries(self) -> None:
        first = ModerationMetrics()
        second = ModerationMetrics()

        first.record_decision("remove")

        assert first.registry.get_sample_value(
            "moderation_decisions_total", {"action": "remove"}
        ) == 1.0
        assert second.registry.get_sample_value(
            "moderation_decisions_total", {"action": "remove"}
        ) is None

    def test_analysis_counts_and_duration(self) -> None:
        metrics = ModerationMetrics()

        metrics.record_analysis("flag", 0.02)
        metrics.record_analysis("flag", 0.2)
        metrics.record_analysis_failure("timeout")

        registry = metrics.registry
        assert registry.get_sample_value("moderation_analyses_total", {"action": "flag"}) == 2.0
        assert registry.get_sample_value("moderation_analysis_duration_seconds_count") == 2.0
        assert registry.get_sample_value(
            "moderation_analysis_failures_total", {"reason": "timeout"}
        ) == 1.0

    def test_report_label_is_lowercase(self) -> None:
        metrics = ModerationMetrics()

        metrics.record_report(auto_escalated=True)

        assert metrics.registry.get_sample_value(
            "moderation_reports_submitted_total", {"auto_escalated": "true"}
        ) == 1.0

    def test_queue_depth_gauge(self) -> None:
        metrics = ModerationMetrics()

        metrics.set_queue_depth(4)
        metrics.set_queue_depth(2)

        assert metrics.registry.get_sample_value("moderation_queue_depth") == 2.0

    def test_exposition_format(self) -> None:
        metrics = ModerationMetrics()
        metrics.record_notification_failure("appeal", "email")

        body = metrics.generate_metrics().decode()

        assert "# TYPE moderation_notification_failures_total counter" in body
        assert 'channel="email"' in body
