# bizcore/db/models/performance_metric_snapshot.py

from sqlalchemy import Column, Integer, Text, Float, Date, JSON, TIMESTAMP, UniqueConstraint
from bizcore.db.db_interface import DbInterface, utc_now


class PerformanceMetricSnapshot(DbInterface):
	__tablename__ = "classification_performance_metrics"

	id = Column(Integer, primary_key=True)
	tenant_id = Column(Text, nullable=False)
	measurement_date = Column(Date, nullable=False)

	# Volume
	total_classifications = Column(Integer, nullable=False, default=0)
	total_corrections = Column(Integer, nullable=False, default=0)
	correction_rate = Column(Float)

	# Category accuracy, e.g. {"SALES": 0.95, "SUPPORT": 0.88}
	category_accuracy = Column(JSON, nullable=False, default=dict)
	most_corrected_category = Column(Text)
	least_corrected_category = Column(Text)

	# Confidence analysis
	avg_original_confidence = Column(Float)
	avg_confidence_when_wrong = Column(Float)
	high_confidence_errors = Column(Integer, nullable=False, default=0)

	# AI reply performance
	ai_replies_sent = Column(Integer, nullable=False, default=0)
	ai_replies_corrected = Column(Integer, nullable=False, default=0)
	ai_reply_accuracy = Column(Float)

	week_number = Column(Integer)
	month_number = Column(Integer)
	year = Column(Integer)

	created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_now)
	updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

	__table_args__ = (
		UniqueConstraint("tenant_id", "measurement_date", name="uq_classification_performance_metrics_tenant_date"),
	)
