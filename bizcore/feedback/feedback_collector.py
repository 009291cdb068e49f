#!/usr/bin/env python3
"""
Feedback Collector

Records tenant corrections of emitted classifications and governs their review
lifecycle:

    pending -> approved | rejected
    approved -> used          (Training Exporter only)
    rejected, used            terminal

Corrections are append-only. Correcting the same email again adds a new row
whose `supersedes_id` points at the previous correction.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from bizcore import consts
from bizcore.db.db import (
    compare_and_set_training_status, create_classification_event, get_feedback_row,
    get_feedback_rows_for_email, get_latest_feedback_for_email, list_feedback_rows
)
from bizcore.db.db_interface import utc_now
from bizcore.db.models.classification_feedback import ClassificationFeedback
from bizcore.env_var_injection import quality_rating_min, quality_rating_max
from bizcore.errors import InvalidInput, NotFound, StateTransitionError
from bizcore.feedback.schemas import CorrectedClassification, EmailContext, FeedbackRecord, OriginalClassification
from bizcore.utils.log import get_logger
from bizcore.utils.strings import truncate

logger = get_logger(__name__)

# Transitions a reviewer may request; approved -> used belongs to the exporter
REVIEW_TRANSITIONS = {
    consts.TRAINING_STATUS_PENDING: {consts.TRAINING_STATUS_APPROVED, consts.TRAINING_STATUS_REJECTED},
}
EXPORT_TRANSITIONS = {
    consts.TRAINING_STATUS_APPROVED: {consts.TRAINING_STATUS_USED},
}


def is_allowed_transition(current: str, requested: str, by_exporter: bool = False) -> bool:
    transitions = EXPORT_TRANSITIONS if by_exporter else REVIEW_TRANSITIONS
    return requested in transitions.get(current, set())


class FeedbackCollector:
    """Tenant-scoped correction capture and review."""

    def __init__(self, rating_min: int = quality_rating_min, rating_max: int = quality_rating_max):
        self.rating_min = rating_min
        self.rating_max = rating_max

    def record_classification(self, session, tenant_id: str, email_id: str,
                              classification: Union[OriginalClassification, Dict[str, Any]],
                              classified_at=None) -> int:
        """Log a classification emitted by the external classifier; gives per-category volume."""
        self._require(tenant_id, "tenant_id")
        self._require(email_id, "email_id")
        raw, original = self._parse_original(classification)
        if not original.category:
            raise InvalidInput("Classification must have a primary category")

        event = create_classification_event(
            session,
            tenant_id=tenant_id,
            email_id=email_id,
            primary_category=original.category,
            secondary_category=original.secondary_category,
            tertiary_category=original.tertiary_category,
            confidence=original.confidence,
            ai_can_reply=original.ai_can_reply,
            raw_classification=raw,
            classified_at=classified_at,
        )
        return event.id

    def submit_correction(self, session, tenant_id: str, email_id: str,
                          original: Union[OriginalClassification, Dict[str, Any]],
                          corrected: Union[CorrectedClassification, Dict[str, Any]],
                          rating: int, source: str,
                          email: Optional[Union[EmailContext, Dict[str, Any]]] = None,
                          feedback_type: str = consts.DEFAULT_FEEDBACK_TYPE) -> FeedbackRecord:
        """Create a pending correction; a repeat correction of the same email supersedes the last one."""
        self._require(tenant_id, "tenant_id")
        self._require(email_id, "email_id")
        raw_original, parsed_original = self._parse_original(original)
        parsed_corrected = self._parse_corrected(corrected)
        email_context = self._parse_email(email)
        self._validate_rating(rating)
        self._validate_choice(source, consts.CORRECTION_SOURCES, "correction_source")
        self._validate_choice(feedback_type, consts.FEEDBACK_TYPES, "feedback_type")
        if email_context.provider is not None:
            self._validate_choice(email_context.provider, consts.EMAIL_PROVIDERS, "provider")

        previous = get_latest_feedback_for_email(session, tenant_id, email_id)

        now = utc_now()
        row = ClassificationFeedback(
            tenant_id=tenant_id,
            email_id=email_id,
            thread_id=email_context.thread_id,
            provider=email_context.provider,
            supersedes_id=previous.id if previous else None,
            original_classification=raw_original,
            original_primary_category=parsed_original.category,
            original_secondary_category=parsed_original.secondary_category,
            original_tertiary_category=parsed_original.tertiary_category,
            original_confidence=parsed_original.confidence,
            original_ai_can_reply=parsed_original.ai_can_reply,
            corrected_primary_category=parsed_corrected.category,
            corrected_secondary_category=parsed_corrected.secondary_category,
            corrected_tertiary_category=parsed_corrected.tertiary_category,
            corrected_ai_can_reply=parsed_corrected.ai_can_reply,
            correction_reason=parsed_corrected.reason,
            email_subject=email_context.subject,
            email_from=email_context.sender,
            email_body_preview=truncate(email_context.body, consts.EMAIL_BODY_PREVIEW_LENGTH),
            email_metadata=email_context.metadata,
            feedback_type=feedback_type,
            quality_rating=rating,
            correction_source=source,
            training_status=consts.TRAINING_STATUS_PENDING,
            created_at=now,
            updated_at=now,
        )
        session.add(row)
        session.flush()

        supersedes = f", supersedes #{previous.id}" if previous else ""
        logger.info(f"✏️  Correction #{row.id} for tenant {tenant_id} email {email_id}: "
                    f"{parsed_original.category} -> {parsed_corrected.category} "
                    f"(rating {rating}, via {source}{supersedes})")
        return FeedbackRecord.from_row(row)

    def review_correction(self, session, tenant_id: str, feedback_id: int, new_status: str,
                          reviewer_id: str, notes: Optional[str] = None) -> FeedbackRecord:
        """Move a pending correction to approved or rejected with a single-row compare-and-set."""
        self._require(reviewer_id, "reviewer_id")
        row = self._get_row(session, tenant_id, feedback_id)
        current = row.training_status

        if new_status not in consts.TRAINING_STATUSES:
            raise InvalidInput(f"Unknown training status '{new_status}'")
        if not is_allowed_transition(current, new_status):
            raise StateTransitionError(current, new_status)

        swapped = compare_and_set_training_status(session, tenant_id, feedback_id, current, {
            "training_status": new_status,
            "reviewed_by": reviewer_id,
            "reviewed_at": utc_now(),
            "review_notes": notes,
        })
        session.refresh(row)
        if not swapped:
            # Another reviewer or the exporter moved it first
            raise StateTransitionError(
                row.training_status, new_status,
                f"Feedback #{feedback_id} changed concurrently ({current} -> {row.training_status}); "
                f"cannot move it to {new_status}"
            )

        logger.info(f"🧑‍⚖️ Feedback #{feedback_id} {current} -> {new_status} by {reviewer_id}")
        return FeedbackRecord.from_row(row)

    def get_feedback(self, session, tenant_id: str, feedback_id: int) -> FeedbackRecord:
        return FeedbackRecord.from_row(self._get_row(session, tenant_id, feedback_id))

    def list_feedback(self, session, tenant_id: str, status: Optional[str] = None,
                      limit: Optional[int] = None) -> List[FeedbackRecord]:
        if status is not None and status not in consts.TRAINING_STATUSES:
            raise InvalidInput(f"Unknown training status '{status}'")
        return [FeedbackRecord.from_row(row) for row in list_feedback_rows(session, tenant_id, status, limit)]

    def get_correction_history(self, session, tenant_id: str, email_id: str) -> List[FeedbackRecord]:
        """Every correction of one email, newest first."""
        return [FeedbackRecord.from_row(row) for row in get_feedback_rows_for_email(session, tenant_id, email_id)]

    def _get_row(self, session, tenant_id: str, feedback_id: int) -> ClassificationFeedback:
        row = get_feedback_row(session, tenant_id, feedback_id)
        if row is None:
            raise NotFound(f"Unknown feedback id {feedback_id} for tenant {tenant_id}")
        return row

    def _parse_original(self, original):
        if isinstance(original, OriginalClassification):
            return original.model_dump(exclude_none=True), original
        if not isinstance(original, dict):
            raise InvalidInput("original classification must be a mapping")
        try:
            return dict(original), OriginalClassification.model_validate(original)
        except ValidationError as e:
            raise InvalidInput(f"Invalid original classification: {e}") from e

    def _parse_corrected(self, corrected) -> CorrectedClassification:
        if not isinstance(corrected, CorrectedClassification):
            try:
                corrected = CorrectedClassification.model_validate(corrected or {})
            except ValidationError as e:
                raise InvalidInput(f"Invalid corrected classification: {e}") from e
        if not corrected.category:
            raise InvalidInput("Corrected primary category must not be empty")
        return corrected

    def _parse_email(self, email) -> EmailContext:
        if email is None:
            return EmailContext()
        if isinstance(email, EmailContext):
            return email
        try:
            return EmailContext.model_validate(email)
        except ValidationError as e:
            raise InvalidInput(f"Invalid email context: {e}") from e

    def _validate_rating(self, rating) -> None:
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise InvalidInput(f"Quality rating must be an integer, got {rating!r}")
        if not (self.rating_min <= rating <= self.rating_max):
            raise InvalidInput(f"Quality rating must be between {self.rating_min} and {self.rating_max}, got {rating}")

    @staticmethod
    def _validate_choice(value, choices, field_name: str) -> None:
        if value not in choices:
            raise InvalidInput(f"Invalid {field_name} '{value}'. Expected one of: {', '.join(choices)}")

    @staticmethod
    def _require(value, field_name: str) -> None:
        if value is None or not str(value).strip():
            raise InvalidInput(f"{field_name} is required")
