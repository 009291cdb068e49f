from bizcore.feedback.schemas import (
    CorrectedClassification, EmailContext, FeedbackRecord, MetricSnapshotRecord, OriginalClassification, TrainingExample
)
from bizcore.feedback.feedback_collector import FeedbackCollector
from bizcore.feedback.metrics_aggregator import MetricsAggregator
from bizcore.feedback.training_exporter import TrainingExporter
