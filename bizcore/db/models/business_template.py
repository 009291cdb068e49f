# bizcore/db/models/business_template.py

from sqlalchemy import Column, Integer, Text, Boolean, JSON, TIMESTAMP
from bizcore.db.db_interface import DbInterface, utc_now


class BusinessTemplate(DbInterface):
	"""Active-version pointer and current content for one business type; history lives in snapshots."""
	__tablename__ = "business_templates"

	id = Column(Integer, primary_key=True)
	# One row per business type, so at most one active template per name
	business_type = Column(Text, unique=True, nullable=False)
	version = Column(Integer, nullable=False, default=1)
	inquiry_types = Column(JSON, nullable=False, default=list)
	protocol_text = Column(Text, nullable=False, default="")
	special_rules = Column(JSON, nullable=False, default=list)
	upsell_prompts = Column(JSON, nullable=False, default=list)
	is_active = Column(Boolean, nullable=False, default=True)
	created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_now)
	updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
