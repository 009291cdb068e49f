#!/usr/bin/env python3
"""
Metrics Aggregator

Daily per-tenant accuracy snapshots computed from the corrections created that
day (the latest per email within the day) and the classification event log.
Corrections made on later days never change a day already computed. The
snapshot is upserted on (tenant_id, measurement_date) so re-running a day
overwrites it with identical values.
"""

from collections import Counter
from datetime import date
from typing import Callable, Dict, List, Optional

from bizcore.db.db import (
    day_bounds, get_classification_events_between, get_day_feedback_between,
    get_metric_row, get_metric_rows_between, list_tenant_ids_with_feedback_between
)
from bizcore.db.db_interface import utc_now
from bizcore.db.models.performance_metric_snapshot import PerformanceMetricSnapshot
from bizcore.env_var_injection import high_confidence_error_threshold
from bizcore.errors import InvalidInput
from bizcore.feedback.schemas import MetricSnapshotRecord
from bizcore.utils.log import get_logger, logging_context

logger = get_logger(__name__)

RATIO_DIGITS = 4
PERCENT_DIGITS = 2


def _mean(values: List[float]) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), RATIO_DIGITS)


def _percent(part: int, whole: int) -> Optional[float]:
    if not whole:
        return None
    return round(100.0 * part / whole, PERCENT_DIGITS)


def is_wrong(feedback) -> bool:
    """A correction counts as an error when it changes the primary category."""
    return feedback.corrected_primary_category != feedback.original_primary_category


class MetricsAggregator:
    """Computes and reads PerformanceMetricSnapshot rows."""

    def __init__(self, high_confidence_threshold: float = high_confidence_error_threshold):
        self.high_confidence_threshold = high_confidence_threshold

    def compute_daily_metrics(self, session, tenant_id: str, day: date) -> Optional[MetricSnapshotRecord]:
        """
        Upsert the tenant's snapshot for `day`. Returns None and writes nothing
        when the day has no corrections.
        """
        if not tenant_id:
            raise InvalidInput("tenant_id is required")
        start, end = day_bounds(day)
        corrections = get_day_feedback_between(session, tenant_id, start, end)

        if not corrections:
            logger.debug(f"No corrections for tenant {tenant_id} on {day}, skipping")
            return None

        events = get_classification_events_between(session, tenant_id, start, end)
        values = self._compute_values(corrections, events)
        iso_week = day.isocalendar()[1]
        values.update(week_number=iso_week, month_number=day.month, year=day.year)

        row = get_metric_row(session, tenant_id, day)
        if row is None:
            row = PerformanceMetricSnapshot(tenant_id=tenant_id, measurement_date=day, created_at=utc_now())
            session.add(row)
        for key, value in values.items():
            setattr(row, key, value)
        row.updated_at = utc_now()
        session.flush()

        logger.info(f"📊 Metrics for tenant {tenant_id} on {day}: {values['total_corrections']} corrections, "
                    f"{values['high_confidence_errors']} high-confidence errors")
        return MetricSnapshotRecord.from_row(row)

    def compute_daily_metrics_for_all_tenants(self, session_scope: Callable, day: date) -> Dict[str, Optional[MetricSnapshotRecord]]:
        """
        Batch job over every tenant with corrections on `day`. `session_scope` is
        a zero-argument context manager factory (e.g. `transaction`); each tenant
        runs in its own unit of work so one failure does not roll back the rest.
        """
        start, end = day_bounds(day)
        with session_scope() as session:
            tenant_ids = list_tenant_ids_with_feedback_between(session, start, end)

        logger.info(f"🚀 Computing metrics for {len(tenant_ids)} tenants on {day}")
        results = {}
        failures = []
        for tenant_id in tenant_ids:
            with logging_context({"tenant_id": tenant_id, "measurement_date": day.isoformat()}):
                try:
                    with session_scope() as session:
                        results[tenant_id] = self.compute_daily_metrics(session, tenant_id, day)
                except Exception as e:
                    logger.error(f"❌ Metrics failed for tenant {tenant_id} on {day}: {e}", exc_info=True)
                    failures.append(tenant_id)

        if failures:
            logger.warning(f"⚠️ Metrics failed for {len(failures)} of {len(tenant_ids)} tenants: {failures}")
        else:
            logger.info(f"✅ Metrics computed for {len(tenant_ids)} tenants on {day}")
        return results

    def get_metrics(self, session, tenant_id: str, start_date: date, end_date: date) -> List[MetricSnapshotRecord]:
        """Snapshots in [start_date, end_date], oldest first."""
        if start_date > end_date:
            raise InvalidInput(f"start_date {start_date} is after end_date {end_date}")
        return [MetricSnapshotRecord.from_row(row)
                for row in get_metric_rows_between(session, tenant_id, start_date, end_date)]

    def _compute_values(self, corrections, events) -> dict:
        wrong = [feedback for feedback in corrections if is_wrong(feedback)]

        confidences = [f.original_confidence for f in corrections if f.original_confidence is not None]
        wrong_confidences = [f.original_confidence for f in wrong if f.original_confidence is not None]
        # Any correction of a confident classification counts, category change or not
        high_confidence_errors = sum(
            1 for confidence in confidences if confidence > self.high_confidence_threshold
        )

        classified_per_category = Counter(event.primary_category for event in events)
        wrong_per_category = Counter(f.original_primary_category for f in wrong if f.original_primary_category)

        # Accuracy only where classification volume is known
        category_accuracy = {}
        for category in sorted(classified_per_category):
            volume = classified_per_category[category]
            correct = max(volume - wrong_per_category.get(category, 0), 0)
            category_accuracy[category] = round(correct / volume, RATIO_DIGITS)

        corrections_per_category = {
            category: wrong_per_category.get(category, 0)
            for category in set(classified_per_category) | set(wrong_per_category)
        }
        most_corrected = least_corrected = None
        if corrections_per_category:
            # Ties broken alphabetically so re-runs agree
            ranked = sorted(corrections_per_category.items(), key=lambda item: (-item[1], item[0]))
            if ranked[0][1] > 0:
                most_corrected = ranked[0][0]
            least_corrected = min(corrections_per_category.items(), key=lambda item: (item[1], item[0]))[0]

        total_classifications = len(events)
        ai_replies_sent = sum(1 for event in events if event.ai_can_reply)
        ai_replies_corrected = sum(
            1 for f in corrections if f.original_ai_can_reply and f.corrected_ai_can_reply is False
        )

        return {
            "total_classifications": total_classifications,
            "total_corrections": len(corrections),
            "correction_rate": _percent(len(corrections), total_classifications),
            "category_accuracy": category_accuracy,
            "most_corrected_category": most_corrected,
            "least_corrected_category": least_corrected,
            "avg_original_confidence": _mean(confidences),
            "avg_confidence_when_wrong": _mean(wrong_confidences),
            "high_confidence_errors": high_confidence_errors,
            "ai_replies_sent": ai_replies_sent,
            "ai_replies_corrected": ai_replies_corrected,
            "ai_reply_accuracy": _percent(max(ai_replies_sent - ai_replies_corrected, 0), ai_replies_sent),
        }
