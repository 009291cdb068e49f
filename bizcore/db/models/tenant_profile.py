# bizcore/db/models/tenant_profile.py

from sqlalchemy import Column, Integer, Text, JSON, TIMESTAMP
from bizcore.db.db_interface import DbInterface, utc_now


class TenantProfile(DbInterface):
	__tablename__ = "tenant_profiles"

	id = Column(Integer, primary_key=True)
	tenant_id = Column(Text, unique=True, nullable=False)
	# Ordered selection; order drives merge order
	business_types = Column(JSON, nullable=False)
	primary_business_type = Column(Text, nullable=False)
	# Bumped on every write so cached merges keyed on it go stale
	cache_generation = Column(Integer, nullable=False, default=1)
	created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_now)
	updated_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)
