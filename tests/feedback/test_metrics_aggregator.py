#!/usr/bin/env python3
"""
Metrics Aggregator Tests

Daily snapshots: values, idempotent upserts and the no-row rule for empty days.
"""

import pytest
from datetime import date, datetime, timezone

from bizcore.db.models.performance_metric_snapshot import PerformanceMetricSnapshot
from bizcore.errors import InvalidInput

DAY = date(2024, 3, 1)
MORNING = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
NEXT_DAY = datetime(2024, 3, 2, 9, 30, tzinfo=timezone.utc)


def _classify(session, collector, email_id, category, ai_can_reply=False, at=MORNING, tenant_id="tenant-1"):
    collector.record_classification(
        session, tenant_id, email_id, {"category": category, "ai_can_reply": ai_can_reply}, classified_at=at
    )


class TestComputeDailyMetrics:
    """One tenant, one day."""

    def test_single_high_confidence_correction(self, test_session, feedback_collector, metrics_aggregator,
                                               test_data_factory):
        """SALES at 0.91 corrected to SUPPORT is one high-confidence error."""
        test_data_factory.create_feedback(
            test_session, "tenant-1", "e1", {"category": "SALES", "confidence": 0.91}, {"category": "SUPPORT"},
            rating=4, source="web_portal", created_at=MORNING
        )

        snapshot = metrics_aggregator.compute_daily_metrics(test_session, "tenant-1", DAY)

        assert snapshot.total_corrections == 1
        assert snapshot.avg_original_confidence == 0.91
        assert snapshot.high_confidence_errors == 1
        assert snapshot.avg_confidence_when_wrong == 0.91

    def test_confidence_at_threshold_is_not_high(self, test_session, metrics_aggregator, test_data_factory):
        test_data_factory.create_feedback(
            test_session, original={"category": "SALES", "confidence": 0.8}, created_at=MORNING
        )
        snapshot = metrics_aggregator.compute_daily_metrics(test_session, "tenant-1", DAY)
        assert snapshot.high_confidence_errors == 0

    def test_same_category_correction_still_counts_as_high_confidence_error(self, test_session,
                                                                             metrics_aggregator, test_data_factory):
        """A confident classification that was corrected at all is a high-confidence error."""
        test_data_factory.create_feedback(
            test_session, original={"category": "SALES", "confidence": 0.95, "ai_can_reply": True},
            corrected={"category": "SALES", "secondary_category": "Quote", "ai_can_reply": False},
            created_at=MORNING
        )
        snapshot = metrics_aggregator.compute_daily_metrics(test_session, "tenant-1", DAY)

        assert snapshot.total_corrections == 1
        assert snapshot.high_confidence_errors == 1
        # Wrong means the primary category changed
        assert snapshot.avg_confidence_when_wrong is None
        assert snapshot.category_accuracy == {}

    def test_category_accuracy_uses_classification_volume(self, test_session, feedback_collector,
                                                          metrics_aggregator, test_data_factory):
        for i in range(4):
            _classify(test_session, feedback_collector, f"s{i}", "SALES", ai_can_reply=True)
        _classify(test_session, feedback_collector, "u0", "SUPPORT")
        test_data_factory.create_feedback(
            test_session, email_id="s0", original={"category": "SALES", "confidence": 0.6, "ai_can_reply": True},
            corrected={"category": "SUPPORT", "ai_can_reply": False}, created_at=MORNING
        )
        test_data_factory.create_feedback(
            test_session, email_id="u0", original={"category": "SUPPORT", "confidence": 0.4},
            corrected={"category": "SUPPORT", "secondary_category": "Billing"}, created_at=MORNING
        )

        snapshot = metrics_aggregator.compute_daily_metrics(test_session, "tenant-1", DAY)

        assert snapshot.total_classifications == 5
        assert snapshot.total_corrections == 2
        assert snapshot.correction_rate == 40.0
        assert snapshot.category_accuracy == {"SALES": 0.75, "SUPPORT": 1.0}
        assert snapshot.most_corrected_category == "SALES"
        assert snapshot.least_corrected_category == "SUPPORT"
        assert snapshot.avg_original_confidence == 0.5
        assert snapshot.ai_replies_sent == 4
        assert snapshot.ai_replies_corrected == 1
        assert snapshot.ai_reply_accuracy == 75.0

    def test_calendar_fields(self, test_session, metrics_aggregator, test_data_factory):
        test_data_factory.create_feedback(test_session, created_at=MORNING)
        snapshot = metrics_aggregator.compute_daily_metrics(test_session, "tenant-1", DAY)

        assert (snapshot.week_number, snapshot.month_number, snapshot.year) == (9, 3, 2024)

    def test_idempotent(self, test_session, metrics_aggregator, test_data_factory):
        """Running the same day twice leaves one identical row."""
        test_data_factory.create_feedback(test_session, email_id="e1", created_at=MORNING)
        test_data_factory.create_feedback(
            test_session, email_id="e2", original={"category": "SPAM", "confidence": 0.3}, created_at=MORNING
        )

        first = metrics_aggregator.compute_daily_metrics(test_session, "tenant-1", DAY)
        second = metrics_aggregator.compute_daily_metrics(test_session, "tenant-1", DAY)

        assert first == second
        assert test_session.query(PerformanceMetricSnapshot).count() == 1

    def test_day_without_corrections_writes_no_row(self, test_session, feedback_collector, metrics_aggregator):
        """Classifications alone are not enough for a snapshot."""
        _classify(test_session, feedback_collector, "e1", "SALES")

        assert metrics_aggregator.compute_daily_metrics(test_session, "tenant-1", DAY) is None
        assert test_session.query(PerformanceMetricSnapshot).count() == 0

    def test_only_effective_corrections_count(self, test_session, metrics_aggregator, test_data_factory):
        """A re-correction of the same email replaces the earlier one."""
        test_data_factory.create_feedback(test_session, email_id="e1", created_at=MORNING)
        test_data_factory.create_feedback(
            test_session, email_id="e1", corrected={"category": "URGENT"}, created_at=MORNING
        )

        snapshot = metrics_aggregator.compute_daily_metrics(test_session, "tenant-1", DAY)
        assert snapshot.total_corrections == 1

    def test_later_recorrection_does_not_change_earlier_day(self, test_session, metrics_aggregator,
                                                            test_data_factory):
        """Re-correcting on day 2 leaves day 1 and its snapshot as they were."""
        test_data_factory.create_feedback(test_session, email_id="e1", created_at=MORNING)
        first = metrics_aggregator.compute_daily_metrics(test_session, "tenant-1", DAY)

        test_data_factory.create_feedback(
            test_session, email_id="e1", corrected={"category": "URGENT"}, created_at=NEXT_DAY
        )
        rerun = metrics_aggregator.compute_daily_metrics(test_session, "tenant-1", DAY)
        next_day = metrics_aggregator.compute_daily_metrics(test_session, "tenant-1", date(2024, 3, 2))

        assert rerun == first
        assert rerun.total_corrections == 1
        assert next_day.total_corrections == 1
        assert test_session.query(PerformanceMetricSnapshot).count() == 2

    def test_other_days_and_tenants_excluded(self, test_session, metrics_aggregator, test_data_factory):
        test_data_factory.create_feedback(test_session, email_id="e1", created_at=MORNING)
        test_data_factory.create_feedback(test_session, email_id="e2", created_at=NEXT_DAY)
        test_data_factory.create_feedback(test_session, tenant_id="tenant-2", email_id="e3", created_at=MORNING)

        snapshot = metrics_aggregator.compute_daily_metrics(test_session, "tenant-1", DAY)
        assert snapshot.total_corrections == 1

    def test_requires_tenant(self, test_session, metrics_aggregator):
        with pytest.raises(InvalidInput):
            metrics_aggregator.compute_daily_metrics(test_session, "", DAY)


class TestReadMetrics:

    def test_get_metrics_range(self, test_session, metrics_aggregator, test_data_factory):
        test_data_factory.create_feedback(test_session, email_id="e1", created_at=MORNING)
        test_data_factory.create_feedback(test_session, email_id="e2", created_at=NEXT_DAY)
        metrics_aggregator.compute_daily_metrics(test_session, "tenant-1", DAY)
        metrics_aggregator.compute_daily_metrics(test_session, "tenant-1", date(2024, 3, 2))

        snapshots = metrics_aggregator.get_metrics(test_session, "tenant-1", DAY, date(2024, 3, 31))
        assert [s.measurement_date for s in snapshots] == [DAY, date(2024, 3, 2)]
        assert metrics_aggregator.get_metrics(test_session, "tenant-1", DAY, DAY)[0].measurement_date == DAY

    def test_get_metrics_rejects_inverted_range(self, test_session, metrics_aggregator):
        with pytest.raises(InvalidInput):
            metrics_aggregator.get_metrics(test_session, "tenant-1", date(2024, 3, 2), DAY)


class TestAllTenantsBatch:
    """Batch job through the service, one transaction per tenant."""

    def test_computes_every_tenant_with_corrections(self, service):
        from bizcore.db.db_interface import utc_now
        today = utc_now().date()
        for tenant_id in ("tenant-a", "tenant-b"):
            service.submit_correction(tenant_id, "e1", {"category": "SALES", "confidence": 0.9},
                                      {"category": "SUPPORT"}, 4, "api")

        results = service.compute_daily_metrics_for_all_tenants(today)

        assert sorted(results) == ["tenant-a", "tenant-b"]
        assert all(snapshot.total_corrections == 1 for snapshot in results.values())
        assert [s.tenant_id for s in service.get_metrics("tenant-a", today, today)] == ["tenant-a"]

    def test_one_failing_tenant_does_not_stop_the_batch(self, service, monkeypatch):
        from bizcore.db.db_interface import utc_now
        today = utc_now().date()
        for tenant_id in ("tenant-a", "tenant-b"):
            service.submit_correction(tenant_id, "e1", {"category": "SALES"}, {"category": "SUPPORT"}, 4, "api")

        original = service.metrics_aggregator.compute_daily_metrics

        def flaky(session, tenant_id, day):
            if tenant_id == "tenant-a":
                raise RuntimeError("boom")
            return original(session, tenant_id, day)

        monkeypatch.setattr(service.metrics_aggregator, "compute_daily_metrics", flaky)
        results = service.compute_daily_metrics_for_all_tenants(today)

        assert list(results) == ["tenant-b"]
