#!/usr/bin/env python3
"""
Template Store

Versioned repository of per-business-type templates. Each business type has
one row holding its current content and version (the active pointer); every
substantive change first appends an immutable snapshot of the prior state.

All writes happen inside the caller's transaction: read (row locked) ->
compare -> snapshot -> bump, so no reader ever observes a half-applied update.
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from bizcore.db.db import (
    create_snapshot, get_active_template_rows, get_snapshot_row, get_snapshot_rows,
    get_template_row, list_active_business_type_names
)
from bizcore.db.db_interface import utc_now
from bizcore.db.models.business_template import BusinessTemplate
from bizcore.errors import InvalidInput, NotFound
from bizcore.templates.schemas import TemplateFields, TemplateRecord, TemplateSnapshotRecord
from bizcore.utils.log import get_logger

logger = get_logger(__name__)


class UpsertResult:
    """Outcome of an upsert: the resulting template and whether anything changed."""

    def __init__(self, template: TemplateRecord, changed: bool, created: bool = False,
                 reactivated: bool = False, previous_version: Optional[int] = None):
        self.template = template
        self.changed = changed
        self.created = created
        self.reactivated = reactivated
        self.previous_version = previous_version

    def __repr__(self):
        return (f"UpsertResult(business_type={self.template.business_type!r}, version={self.template.version}, "
                f"changed={self.changed}, created={self.created}, reactivated={self.reactivated})")


class TemplateStore:
    """Admin-facing versioned template storage."""

    def get_active_template(self, session, business_type: str) -> TemplateRecord:
        row = get_template_row(session, business_type)
        if row is None or not row.is_active:
            raise NotFound(f"No active template for business type '{business_type}'", missing=[business_type])
        return TemplateRecord.from_row(row)

    def get_active_templates(self, session, business_types: Iterable[str]) -> List[TemplateRecord]:
        """All requested active templates in request order; NotFound lists every missing name."""
        names = list(business_types)
        rows = get_active_template_rows(session, names)
        missing = [name for name in names if name not in rows]
        if missing:
            raise NotFound(f"No active template for business types: {', '.join(missing)}", missing=missing)
        return [TemplateRecord.from_row(rows[name]) for name in names]

    def list_active_business_types(self, session) -> List[str]:
        return list_active_business_type_names(session)

    def validate_business_types(self, session, business_types: Iterable[str]) -> None:
        names = list(business_types)
        active = get_active_template_rows(session, names)
        invalid = [name for name in names if name not in active]
        if invalid:
            available = self.list_active_business_types(session)
            raise NotFound(
                f"Invalid business types: {', '.join(invalid)}. Available types: {', '.join(available)}",
                missing=invalid
            )

    def upsert_template(self, session, business_type: str,
                        fields: Union[TemplateFields, Dict[str, Any]],
                        create: bool = False) -> UpsertResult:
        """
        Apply new content to a business type.

        - unchanged content: no-op (same version, no snapshot)
        - changed content: snapshot at the current version, then version + 1
        - unknown business type: InvalidInput unless `create` is set (starts at version 1)
        - inactive template: only with `create`, which reactivates it
        """
        business_type = (business_type or "").strip()
        if not business_type:
            raise InvalidInput("business_type must be a non-empty string")
        new_fields = self._coerce_fields(fields)
        new_values = new_fields.to_storage()

        row = get_template_row(session, business_type, for_update=True)

        if row is None:
            if not create:
                raise InvalidInput(f"Unknown business type '{business_type}' (pass create=True to add it)")
            row = BusinessTemplate(business_type=business_type, version=1, is_active=True,
                                   created_at=utc_now(), updated_at=utc_now(), **new_values)
            session.add(row)
            session.flush()
            logger.info(f"🆕 Created template '{business_type}' at version 1")
            return UpsertResult(TemplateRecord.from_row(row), changed=True, created=True)

        reactivated = False
        if not row.is_active:
            if not create:
                raise InvalidInput(f"Business type '{business_type}' is inactive (pass create=True to reactivate it)")
            row.is_active = True
            reactivated = True

        current_values = TemplateFields.from_row(row).to_storage()
        if current_values == new_values:
            if reactivated:
                row.updated_at = utc_now()
                session.flush()
                logger.info(f"♻️  Reactivated template '{business_type}' at version {row.version} (content unchanged)")
            else:
                logger.debug(f"Template '{business_type}' unchanged, staying at version {row.version}")
            return UpsertResult(TemplateRecord.from_row(row), changed=False, reactivated=reactivated,
                                previous_version=row.version)

        previous_version = row.version
        create_snapshot(session, row)
        for column, value in new_values.items():
            setattr(row, column, value)
        row.version = previous_version + 1
        row.updated_at = utc_now()
        session.flush()

        logger.info(f"📝 Template '{business_type}' updated: version {previous_version} -> {row.version}")
        return UpsertResult(TemplateRecord.from_row(row), changed=True, reactivated=reactivated,
                            previous_version=previous_version)

    def deactivate_template(self, session, business_type: str) -> TemplateRecord:
        """Soft delete. Content and version are untouched, so no snapshot is written."""
        row = get_template_row(session, business_type, for_update=True)
        if row is None:
            raise NotFound(f"Unknown business type '{business_type}'", missing=[business_type])
        if row.is_active:
            row.is_active = False
            row.updated_at = utc_now()
            session.flush()
            logger.info(f"🚫 Deactivated template '{business_type}' at version {row.version}")
        return TemplateRecord.from_row(row)

    def get_version_history(self, session, template_id: int) -> List[TemplateSnapshotRecord]:
        template = session.get(BusinessTemplate, template_id)
        if template is None:
            raise NotFound(f"Unknown template id {template_id}")
        return [TemplateSnapshotRecord.from_row(row) for row in get_snapshot_rows(session, template_id)]

    def rollback_template(self, session, business_type: str, to_version: int) -> UpsertResult:
        """Re-apply a snapshot's content as a new version; history only moves forward."""
        row = get_template_row(session, business_type)
        if row is None:
            raise NotFound(f"Unknown business type '{business_type}'", missing=[business_type])
        snapshot = get_snapshot_row(session, row.id, to_version)
        if snapshot is None:
            raise NotFound(f"No snapshot of '{business_type}' at version {to_version}")
        logger.info(f"⏪ Rolling back template '{business_type}' to content of version {to_version}")
        return self.upsert_template(session, business_type, TemplateFields.from_row(snapshot))

    def _coerce_fields(self, fields) -> TemplateFields:
        if isinstance(fields, TemplateFields):
            return fields
        try:
            return TemplateFields.model_validate(fields or {})
        except ValidationError as e:
            raise InvalidInput(f"Invalid template fields: {e}") from e
