#!/usr/bin/env python3
"""
BizCore Service

Calling layer in front of the components. Every public operation runs as one
unit of work in a fresh transaction; transient storage failures are retried
with bounded backoff and surface as StorageUnavailable once exhausted.
NotFound, InvalidInput, Conflict and StateTransitionError propagate untouched.

Authorization is the caller's concern: every operation takes the tenant id
explicitly and nothing is read from ambient state.
"""

from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from sqlalchemy.orm import Session

from bizcore.db.db_interface import transaction
from bizcore.db.storage_retry import run_with_storage_retries
from bizcore.feedback.feedback_collector import FeedbackCollector
from bizcore.feedback.metrics_aggregator import MetricsAggregator
from bizcore.feedback.schemas import FeedbackRecord, MetricSnapshotRecord, TrainingExample
from bizcore.feedback.training_exporter import TrainingExporter
from bizcore.profiles.config_cache import MergedConfigCache, build_config_cache
from bizcore.profiles.profile_resolver import ProfileResolver
from bizcore.profiles.schemas import TenantProfileRecord
from bizcore.templates.merge_engine import MergeEngine
from bizcore.templates.schemas import MergedConfiguration, TemplateRecord, TemplateSnapshotRecord
from bizcore.templates.template_store import TemplateStore, UpsertResult
from bizcore.utils.log import get_logger, logging_context

logger = get_logger(__name__)

T = TypeVar("T")


class BizCoreService:
    """One transaction plus bounded retries per operation."""

    def __init__(self, session_factory=None, cache: Optional[MergedConfigCache] = None,
                 max_retries: Optional[int] = None, retry_base_delay: Optional[float] = None,
                 sleep: Optional[Callable[[float], None]] = None):
        self.session_factory = session_factory
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.sleep = sleep

        self.template_store = TemplateStore()
        self.merge_engine = MergeEngine(self.template_store)
        self.profile_resolver = ProfileResolver(self.merge_engine, self.template_store,
                                                cache if cache is not None else build_config_cache())
        self.feedback_collector = FeedbackCollector()
        self.metrics_aggregator = MetricsAggregator()
        self.training_exporter = TrainingExporter()

    def _run(self, work: Callable[[Session], T]) -> T:
        def attempt():
            with transaction(self.session_factory) as session:
                return work(session)

        kwargs = {"max_retries": self.max_retries, "base_delay": self.retry_base_delay}
        if self.sleep is not None:
            kwargs["sleep"] = self.sleep
        return run_with_storage_retries(attempt, **kwargs)

    def session_scope(self):
        """Zero-argument transaction factory for batch jobs that open one unit of work per item."""
        return transaction(self.session_factory)

    # Template Store
    def get_active_template(self, business_type: str) -> TemplateRecord:
        return self._run(lambda s: self.template_store.get_active_template(s, business_type))

    def list_active_business_types(self) -> List[str]:
        return self._run(self.template_store.list_active_business_types)

    def validate_business_types(self, business_types: Sequence[str]) -> None:
        return self._run(lambda s: self.template_store.validate_business_types(s, business_types))

    def upsert_template(self, business_type: str, fields: Dict[str, Any], create: bool = False) -> UpsertResult:
        return self._run(lambda s: self.template_store.upsert_template(s, business_type, fields, create=create))

    def deactivate_template(self, business_type: str) -> TemplateRecord:
        return self._run(lambda s: self.template_store.deactivate_template(s, business_type))

    def rollback_template(self, business_type: str, to_version: int) -> UpsertResult:
        return self._run(lambda s: self.template_store.rollback_template(s, business_type, to_version))

    def get_version_history(self, template_id: int) -> List[TemplateSnapshotRecord]:
        return self._run(lambda s: self.template_store.get_version_history(s, template_id))

    # Merge Engine and Profile Resolver
    def merge(self, business_types: Sequence[str]) -> MergedConfiguration:
        return self._run(lambda s: self.merge_engine.merge(s, business_types))

    def create_tenant_profile(self, tenant_id: str, business_types: Sequence[str],
                              primary_business_type: Optional[str] = None) -> TenantProfileRecord:
        with logging_context({"tenant_id": tenant_id}):
            return self._run(lambda s: self.profile_resolver.create_tenant_profile(
                s, tenant_id, business_types, primary_business_type))

    def get_tenant_profile(self, tenant_id: str) -> TenantProfileRecord:
        return self._run(lambda s: self.profile_resolver.get_tenant_profile(s, tenant_id))

    def update_tenant_business_types(self, tenant_id: str, business_types: Sequence[str],
                                     primary_business_type: Optional[str] = None) -> TenantProfileRecord:
        with logging_context({"tenant_id": tenant_id}):
            return self._run(lambda s: self.profile_resolver.update_tenant_business_types(
                s, tenant_id, business_types, primary_business_type))

    def resolve(self, tenant_id: str) -> MergedConfiguration:
        with logging_context({"tenant_id": tenant_id}):
            return self._run(lambda s: self.profile_resolver.resolve(s, tenant_id))

    # Feedback Collector
    def record_classification(self, tenant_id: str, email_id: str, classification: Dict[str, Any]) -> int:
        return self._run(lambda s: self.feedback_collector.record_classification(
            s, tenant_id, email_id, classification))

    def submit_correction(self, tenant_id: str, email_id: str, original: Dict[str, Any],
                          corrected: Dict[str, Any], rating: int, source: str,
                          email: Optional[Dict[str, Any]] = None, **kwargs) -> FeedbackRecord:
        with logging_context({"tenant_id": tenant_id}):
            return self._run(lambda s: self.feedback_collector.submit_correction(
                s, tenant_id, email_id, original, corrected, rating, source, email=email, **kwargs))

    def review_correction(self, tenant_id: str, feedback_id: int, new_status: str, reviewer_id: str,
                          notes: Optional[str] = None) -> FeedbackRecord:
        with logging_context({"tenant_id": tenant_id}):
            return self._run(lambda s: self.feedback_collector.review_correction(
                s, tenant_id, feedback_id, new_status, reviewer_id, notes))

    def get_feedback(self, tenant_id: str, feedback_id: int) -> FeedbackRecord:
        return self._run(lambda s: self.feedback_collector.get_feedback(s, tenant_id, feedback_id))

    def list_feedback(self, tenant_id: str, status: Optional[str] = None,
                      limit: Optional[int] = None) -> List[FeedbackRecord]:
        return self._run(lambda s: self.feedback_collector.list_feedback(s, tenant_id, status, limit))

    def get_correction_history(self, tenant_id: str, email_id: str) -> List[FeedbackRecord]:
        return self._run(lambda s: self.feedback_collector.get_correction_history(s, tenant_id, email_id))

    # Metrics Aggregator
    def compute_daily_metrics(self, tenant_id: str, day: date) -> Optional[MetricSnapshotRecord]:
        with logging_context({"tenant_id": tenant_id}):
            return self._run(lambda s: self.metrics_aggregator.compute_daily_metrics(s, tenant_id, day))

    def compute_daily_metrics_for_all_tenants(self, day: date) -> Dict[str, Optional[MetricSnapshotRecord]]:
        return self.metrics_aggregator.compute_daily_metrics_for_all_tenants(self.session_scope, day)

    def get_metrics(self, tenant_id: str, start_date: date, end_date: date) -> List[MetricSnapshotRecord]:
        return self._run(lambda s: self.metrics_aggregator.get_metrics(s, tenant_id, start_date, end_date))

    # Training Exporter
    def export_training_data(self, tenant_id: str, min_quality: Optional[int] = None,
                             limit: Optional[int] = None, include_used: bool = True) -> List[TrainingExample]:
        with logging_context({"tenant_id": tenant_id}):
            return self._run(lambda s: self.training_exporter.export_training_data(
                s, tenant_id, min_quality=min_quality, limit=limit, include_used=include_used))

    def export_feedback(self, tenant_id: str, feedback_id: int) -> TrainingExample:
        with logging_context({"tenant_id": tenant_id}):
            return self._run(lambda s: self.training_exporter.export_feedback(s, tenant_id, feedback_id))
