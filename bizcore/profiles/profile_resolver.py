#!/usr/bin/env python3
"""
Profile Resolver

Maps a tenant to its merged configuration. Resolution is cached under a key
derived from the tenant's profile generation and the current version of every
selected template, so there is no explicit invalidation anywhere: a template
bump or a profile update changes the key.
"""

from typing import Optional, Sequence

from bizcore.db.db import get_active_template_versions, get_tenant_profile_row
from bizcore.db.db_interface import begin_consistent_read, utc_now
from bizcore.db.models.tenant_profile import TenantProfile
from bizcore.errors import InvalidInput, NotFound
from bizcore.profiles.config_cache import InMemoryConfigCache, MergedConfigCache, build_cache_key
from bizcore.profiles.schemas import TenantProfileRecord
from bizcore.templates.merge_engine import MergeEngine, validate_business_type_selection
from bizcore.templates.schemas import MergedConfiguration
from bizcore.templates.template_store import TemplateStore
from bizcore.utils.log import get_logger

logger = get_logger(__name__)


class ProfileResolver:
    """Tenant business type selection and version-aware merged configuration lookup."""

    def __init__(self, merge_engine: Optional[MergeEngine] = None,
                 template_store: Optional[TemplateStore] = None,
                 cache: Optional[MergedConfigCache] = None):
        self.template_store = template_store or TemplateStore()
        self.merge_engine = merge_engine or MergeEngine(self.template_store)
        self.cache = cache if cache is not None else InMemoryConfigCache()

    def get_tenant_profile(self, session, tenant_id: str) -> TenantProfileRecord:
        return TenantProfileRecord.from_row(self._get_profile_row(session, tenant_id))

    def create_tenant_profile(self, session, tenant_id: str, business_types: Sequence[str],
                              primary_business_type: Optional[str] = None) -> TenantProfileRecord:
        """Onboarding: first business type selection for a tenant."""
        self._require_tenant_id(tenant_id)
        names = self._validate_selection(session, business_types)
        primary = self._resolve_primary(names, primary_business_type)

        if get_tenant_profile_row(session, tenant_id) is not None:
            raise InvalidInput(f"Tenant '{tenant_id}' already has a profile; update its business types instead")

        row = TenantProfile(
            tenant_id=tenant_id,
            business_types=names,
            primary_business_type=primary,
            cache_generation=1,
            created_at=utc_now(),
            updated_at=utc_now(),
        )
        session.add(row)
        session.flush()
        logger.info(f"🏢 Created profile for tenant {tenant_id}: {names} (primary: {primary})")
        return TenantProfileRecord.from_row(row)

    def update_tenant_business_types(self, session, tenant_id: str, business_types: Sequence[str],
                                     primary_business_type: Optional[str] = None) -> TenantProfileRecord:
        """
        Replace a tenant's ordered selection. The primary type is kept when it is
        still selected, otherwise it falls back to the first selection.
        """
        self._require_tenant_id(tenant_id)
        names = self._validate_selection(session, business_types)
        row = self._get_profile_row(session, tenant_id, for_update=True)

        if primary_business_type is None and row.primary_business_type in names:
            primary_business_type = row.primary_business_type
        primary = self._resolve_primary(names, primary_business_type)

        previous = list(row.business_types or [])
        row.business_types = names
        row.primary_business_type = primary
        row.cache_generation = (row.cache_generation or 0) + 1
        row.updated_at = utc_now()
        session.flush()

        logger.info(f"🔁 Tenant {tenant_id} business types {previous} -> {names} "
                    f"(generation {row.cache_generation})")
        return TenantProfileRecord.from_row(row)

    def resolve(self, session, tenant_id: str) -> MergedConfiguration:
        begin_consistent_read(session)
        row = self._get_profile_row(session, tenant_id)
        names = list(row.business_types or [])

        versions = get_active_template_versions(session, names)
        missing = [name for name in names if name not in versions]
        if missing:
            raise NotFound(
                f"Tenant {tenant_id} references missing or inactive business types: {', '.join(missing)}",
                missing=missing
            )

        cache_key = build_cache_key(tenant_id, row.cache_generation, names, versions)
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Resolved tenant {tenant_id} from cache ({cache_key})")
            return MergedConfiguration.from_dict(cached)

        merged = self.merge_engine.merge(session, names)
        self.cache.set(cache_key, merged.to_dict())
        logger.info(f"📦 Resolved tenant {tenant_id} -> {cache_key}")
        return merged

    def _get_profile_row(self, session, tenant_id: str, for_update: bool = False) -> TenantProfile:
        row = get_tenant_profile_row(session, tenant_id, for_update=for_update)
        if row is None:
            raise NotFound(f"Unknown tenant '{tenant_id}'")
        return row

    def _validate_selection(self, session, business_types) -> list:
        names = validate_business_type_selection(business_types)
        self.template_store.validate_business_types(session, names)
        return names

    @staticmethod
    def _resolve_primary(names, primary_business_type: Optional[str]) -> str:
        if primary_business_type is None:
            return names[0]
        if primary_business_type not in names:
            raise InvalidInput(f"Primary business type '{primary_business_type}' is not among {names}")
        return primary_business_type

    @staticmethod
    def _require_tenant_id(tenant_id: str) -> None:
        if not tenant_id or not str(tenant_id).strip():
            raise InvalidInput("tenant_id is required")
