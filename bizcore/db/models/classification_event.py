# bizcore/db/models/classification_event.py

from sqlalchemy import Column, Integer, Text, Float, Boolean, JSON, TIMESTAMP, Index
from bizcore.db.db_interface import DbInterface, utc_now


class ClassificationEvent(DbInterface):
	"""A classification emitted by the external classifier; gives per-category volume for accuracy."""
	__tablename__ = "classification_events"

	id = Column(Integer, primary_key=True)
	tenant_id = Column(Text, nullable=False)
	email_id = Column(Text, nullable=False)
	primary_category = Column(Text, nullable=False)
	secondary_category = Column(Text)
	tertiary_category = Column(Text)
	confidence = Column(Float)
	ai_can_reply = Column(Boolean)
	raw_classification = Column(JSON)
	classified_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_now)

	__table_args__ = (
		Index("ix_classification_events_tenant_id_classified_at", "tenant_id", "classified_at"),
	)
