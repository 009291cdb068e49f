# bizcore/db/models/classification_feedback.py

from sqlalchemy import Column, Integer, Text, Float, Boolean, JSON, TIMESTAMP, ForeignKey, Index, CheckConstraint, text
from bizcore.db.db_interface import DbInterface, utc_now


class ClassificationFeedback(DbInterface):
	"""Append-only tenant correction of a classification. Only the review columns ever change."""
	__tablename__ = "classification_feedback"

	id = Column(Integer, primary_key=True)
	tenant_id = Column(Text, nullable=False)
	email_id = Column(Text, nullable=False)
	thread_id = Column(Text)
	provider = Column(Text)
	# Previous correction of the same email, if any. At most one row supersedes a given row
	supersedes_id = Column(Integer, ForeignKey("classification_feedback.id"))

	# Original classification, verbatim plus denormalized columns for aggregation
	original_classification = Column(JSON, nullable=False)
	original_primary_category = Column(Text)
	original_secondary_category = Column(Text)
	original_tertiary_category = Column(Text)
	original_confidence = Column(Float)
	original_ai_can_reply = Column(Boolean)

	corrected_primary_category = Column(Text, nullable=False)
	corrected_secondary_category = Column(Text)
	corrected_tertiary_category = Column(Text)
	corrected_ai_can_reply = Column(Boolean)
	correction_reason = Column(Text)

	# Email context for training prompts
	email_subject = Column(Text)
	email_from = Column(Text)
	email_body_preview = Column(Text)
	email_metadata = Column(JSON)

	feedback_type = Column(Text, nullable=False)
	quality_rating = Column(Integer, nullable=False)
	correction_source = Column(Text, nullable=False)

	training_status = Column(Text, nullable=False, default="pending")
	reviewed_by = Column(Text)
	reviewed_at = Column(TIMESTAMP(timezone=True))
	review_notes = Column(Text)
	exported_at = Column(TIMESTAMP(timezone=True))

	created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_now)
	updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

	__table_args__ = (
		CheckConstraint("length(email_id) > 0", name="ck_classification_feedback_email_id"),
		CheckConstraint("length(corrected_primary_category) > 0", name="ck_classification_feedback_corrected_primary"),
		CheckConstraint(
			"training_status IN ('pending', 'approved', 'rejected', 'used')",
			name="ck_classification_feedback_training_status",
		),
		Index("ix_classification_feedback_tenant_id_created_at", "tenant_id", "created_at"),
		Index("ix_classification_feedback_tenant_id_email_id", "tenant_id", "email_id"),
		Index("ix_classification_feedback_training_status", "training_status"),
		Index(
			"uq_classification_feedback_supersedes_id", "supersedes_id", unique=True,
			postgresql_where=text("supersedes_id IS NOT NULL"),
		),
	)
