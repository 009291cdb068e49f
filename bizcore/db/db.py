from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import exists
from sqlalchemy.orm import aliased

from bizcore.db.db_interface import utc_now
from bizcore.db.models.business_template import BusinessTemplate
from bizcore.db.models.template_version_snapshot import TemplateVersionSnapshot
from bizcore.db.models.tenant_profile import TenantProfile
from bizcore.db.models.classification_event import ClassificationEvent
from bizcore.db.models.classification_feedback import ClassificationFeedback
from bizcore.db.models.performance_metric_snapshot import PerformanceMetricSnapshot


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """Half-open UTC interval [day 00:00, next day 00:00)."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


# Templates
def get_template_row(session, business_type: str, for_update: bool = False) -> Optional[BusinessTemplate]:
    """Get a template row (active or not) by business type name."""
    query = session.query(BusinessTemplate).filter(BusinessTemplate.business_type == business_type)
    if for_update:
        query = query.with_for_update()
    return query.first()


def get_active_template_rows(session, business_types: Iterable[str]) -> Dict[str, BusinessTemplate]:
    """Fetch every requested active template in one statement, keyed by business type."""
    names = list(business_types)
    if not names:
        return {}
    rows = session.query(BusinessTemplate).filter(
        BusinessTemplate.business_type.in_(names),
        BusinessTemplate.is_active.is_(True)
    ).all()
    return {row.business_type: row for row in rows}


def get_active_template_versions(session, business_types: Iterable[str]) -> Dict[str, int]:
    """Current version of each requested active template, without loading content."""
    names = list(business_types)
    if not names:
        return {}
    rows = session.query(BusinessTemplate.business_type, BusinessTemplate.version).filter(
        BusinessTemplate.business_type.in_(names),
        BusinessTemplate.is_active.is_(True)
    ).all()
    return {business_type: version for business_type, version in rows}


def list_active_business_type_names(session) -> List[str]:
    rows = session.query(BusinessTemplate.business_type).filter(
        BusinessTemplate.is_active.is_(True)
    ).order_by(BusinessTemplate.business_type.asc()).all()
    return [row[0] for row in rows]


def create_snapshot(session, template: BusinessTemplate) -> TemplateVersionSnapshot:
    """Copy the template's current content at its current version."""
    snapshot = TemplateVersionSnapshot(
        template_id=template.id,
        business_type=template.business_type,
        version=template.version,
        inquiry_types=list(template.inquiry_types or []),
        protocol_text=template.protocol_text or "",
        special_rules=list(template.special_rules or []),
        upsell_prompts=list(template.upsell_prompts or []),
        snapshotted_at=utc_now(),
    )
    session.add(snapshot)
    session.flush()
    return snapshot


def get_snapshot_rows(session, template_id: int) -> List[TemplateVersionSnapshot]:
    return session.query(TemplateVersionSnapshot).filter(
        TemplateVersionSnapshot.template_id == template_id
    ).order_by(TemplateVersionSnapshot.version.desc()).all()


def get_snapshot_row(session, template_id: int, version: int) -> Optional[TemplateVersionSnapshot]:
    return session.query(TemplateVersionSnapshot).filter_by(template_id=template_id, version=version).first()


# Tenant profiles
def get_tenant_profile_row(session, tenant_id: str, for_update: bool = False) -> Optional[TenantProfile]:
    query = session.query(TenantProfile).filter(TenantProfile.tenant_id == tenant_id)
    if for_update:
        query = query.with_for_update()
    return query.first()


# Classification events and feedback
def create_classification_event(session, tenant_id: str, email_id: str, primary_category: str,
                                secondary_category: Optional[str] = None,
                                tertiary_category: Optional[str] = None,
                                confidence: Optional[float] = None,
                                ai_can_reply: Optional[bool] = None,
                                raw_classification: Optional[Dict[str, Any]] = None,
                                classified_at: Optional[datetime] = None) -> ClassificationEvent:
    event = ClassificationEvent(
        tenant_id=tenant_id,
        email_id=email_id,
        primary_category=primary_category,
        secondary_category=secondary_category,
        tertiary_category=tertiary_category,
        confidence=confidence,
        ai_can_reply=ai_can_reply,
        raw_classification=raw_classification,
        classified_at=classified_at or utc_now(),
    )
    session.add(event)
    session.flush()
    return event


def get_classification_events_between(session, tenant_id: str, start: datetime, end: datetime) -> List[ClassificationEvent]:
    return session.query(ClassificationEvent).filter(
        ClassificationEvent.tenant_id == tenant_id,
        ClassificationEvent.classified_at >= start,
        ClassificationEvent.classified_at < end
    ).order_by(ClassificationEvent.id.asc()).all()


def get_feedback_row(session, tenant_id: str, feedback_id: int) -> Optional[ClassificationFeedback]:
    return session.query(ClassificationFeedback).filter(
        ClassificationFeedback.id == feedback_id,
        ClassificationFeedback.tenant_id == tenant_id
    ).first()


def get_latest_feedback_for_email(session, tenant_id: str, email_id: str) -> Optional[ClassificationFeedback]:
    return session.query(ClassificationFeedback).filter(
        ClassificationFeedback.tenant_id == tenant_id,
        ClassificationFeedback.email_id == email_id
    ).order_by(ClassificationFeedback.id.desc()).first()


def get_feedback_rows_for_email(session, tenant_id: str, email_id: str) -> List[ClassificationFeedback]:
    return session.query(ClassificationFeedback).filter(
        ClassificationFeedback.tenant_id == tenant_id,
        ClassificationFeedback.email_id == email_id
    ).order_by(ClassificationFeedback.id.desc()).all()


def list_feedback_rows(session, tenant_id: str, training_status: Optional[str] = None,
                       limit: Optional[int] = None) -> List[ClassificationFeedback]:
    query = session.query(ClassificationFeedback).filter(ClassificationFeedback.tenant_id == tenant_id)
    if training_status is not None:
        query = query.filter(ClassificationFeedback.training_status == training_status)
    query = query.order_by(ClassificationFeedback.created_at.desc(), ClassificationFeedback.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def not_superseded_clause():
    """Rows that no later correction points back to."""
    newer = aliased(ClassificationFeedback)
    return ~exists().where(newer.supersedes_id == ClassificationFeedback.id)


def get_day_feedback_between(session, tenant_id: str, start: datetime, end: datetime) -> List[ClassificationFeedback]:
    """
    Latest correction per email among those created in [start, end). A
    correction superseded only by a row created after `end` still counts, so
    later corrections never change an earlier window.
    """
    newer = aliased(ClassificationFeedback)
    superseded_in_window = exists().where(
        newer.supersedes_id == ClassificationFeedback.id,
        newer.created_at >= start,
        newer.created_at < end
    )
    return session.query(ClassificationFeedback).filter(
        ClassificationFeedback.tenant_id == tenant_id,
        ClassificationFeedback.created_at >= start,
        ClassificationFeedback.created_at < end,
        ~superseded_in_window
    ).order_by(ClassificationFeedback.id.asc()).all()


def get_exportable_feedback_rows(session, tenant_id: str, statuses: Iterable[str], min_quality: int,
                                 limit: int) -> List[ClassificationFeedback]:
    return session.query(ClassificationFeedback).filter(
        ClassificationFeedback.tenant_id == tenant_id,
        ClassificationFeedback.training_status.in_(list(statuses)),
        ClassificationFeedback.quality_rating >= min_quality,
        not_superseded_clause()
    ).order_by(
        ClassificationFeedback.created_at.desc(),
        ClassificationFeedback.id.desc()
    ).limit(limit).all()


def compare_and_set_training_status(session, tenant_id: str, feedback_id: int, expected_status: str,
                                    values: Dict[str, Any]) -> bool:
    """Single-row CAS on training_status. Returns False when another writer got there first."""
    updated = session.query(ClassificationFeedback).filter(
        ClassificationFeedback.id == feedback_id,
        ClassificationFeedback.tenant_id == tenant_id,
        ClassificationFeedback.training_status == expected_status
    ).update({**values, "updated_at": utc_now()}, synchronize_session=False)
    session.flush()
    return updated == 1


def list_tenant_ids_with_feedback_between(session, start: datetime, end: datetime) -> List[str]:
    rows = session.query(ClassificationFeedback.tenant_id).filter(
        ClassificationFeedback.created_at >= start,
        ClassificationFeedback.created_at < end
    ).distinct().order_by(ClassificationFeedback.tenant_id.asc()).all()
    return [row[0] for row in rows]


# Metrics
def get_metric_row(session, tenant_id: str, measurement_date: date) -> Optional[PerformanceMetricSnapshot]:
    return session.query(PerformanceMetricSnapshot).filter_by(
        tenant_id=tenant_id, measurement_date=measurement_date
    ).first()


def get_metric_rows_between(session, tenant_id: str, start_date: date, end_date: date) -> List[PerformanceMetricSnapshot]:
    return session.query(PerformanceMetricSnapshot).filter(
        PerformanceMetricSnapshot.tenant_id == tenant_id,
        PerformanceMetricSnapshot.measurement_date >= start_date,
        PerformanceMetricSnapshot.measurement_date <= end_date
    ).order_by(PerformanceMetricSnapshot.measurement_date.asc()).all()


def is_feedback_superseded(session, feedback_id: int) -> bool:
    return session.query(
        exists().where(ClassificationFeedback.supersedes_id == feedback_id)
    ).scalar()
