# bizcore/db/models/template_version_snapshot.py

from sqlalchemy import Column, Integer, Text, JSON, TIMESTAMP, ForeignKey, UniqueConstraint, Index
from bizcore.db.db_interface import DbInterface, utc_now


class TemplateVersionSnapshot(DbInterface):
	"""Immutable copy of a template's content at `version`, written before each substantive change."""
	__tablename__ = "template_version_snapshots"

	id = Column(Integer, primary_key=True)
	template_id = Column(Integer, ForeignKey("business_templates.id"), nullable=False)
	business_type = Column(Text, nullable=False)
	version = Column(Integer, nullable=False)
	inquiry_types = Column(JSON, nullable=False)
	protocol_text = Column(Text, nullable=False)
	special_rules = Column(JSON, nullable=False)
	upsell_prompts = Column(JSON, nullable=False)
	snapshotted_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_now)

	__table_args__ = (
		UniqueConstraint("template_id", "version", name="uq_template_version_snapshots_template_version"),
		Index("ix_template_version_snapshots_template_id_version", "template_id", "version"),
	)
