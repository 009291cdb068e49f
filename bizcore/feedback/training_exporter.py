#!/usr/bin/env python3
"""
Training Exporter

Turns vetted corrections into (prompt, completion, metadata) examples. Export
is state-transitioning: every `approved` row handed out is flipped to `used` in
the caller's transaction, so a correction cannot feed two training runs
without fresh approval.
"""

from typing import Dict, List, Optional

import ujson

from bizcore import consts
from bizcore.db.db import (
    compare_and_set_training_status, get_exportable_feedback_rows, get_feedback_row,
    get_tenant_profile_row, is_feedback_superseded
)
from bizcore.db.db_interface import utc_now
from bizcore.db.models.classification_feedback import ClassificationFeedback
from bizcore.env_var_injection import training_export_limit, training_min_quality
from bizcore.errors import Conflict, InvalidInput, NotFound, StateTransitionError
from bizcore.feedback.feedback_collector import is_allowed_transition
from bizcore.feedback.schemas import TrainingExample
from bizcore.utils.log import get_logger

logger = get_logger(__name__)

PROMPT_FORMAT = "Subject: {subject}\nFrom: {sender}\n\n{body}"


def build_prompt(row: ClassificationFeedback) -> str:
    return PROMPT_FORMAT.format(
        subject=row.email_subject or "",
        sender=row.email_from or "",
        body=row.email_body_preview or "",
    )


def build_completion(row: ClassificationFeedback) -> str:
    return ujson.dumps({
        "primary_category": row.corrected_primary_category,
        "secondary_category": row.corrected_secondary_category,
        "tertiary_category": row.corrected_tertiary_category,
        "ai_can_reply": row.corrected_ai_can_reply,
    })


class TrainingExporter:

    def __init__(self, min_quality: int = training_min_quality, limit: int = training_export_limit):
        self.min_quality = min_quality
        self.limit = limit

    def export_training_data(self, session, tenant_id: str, min_quality: Optional[int] = None,
                             limit: Optional[int] = None, include_used: bool = True) -> List[TrainingExample]:
        """
        Examples from effective (not superseded) rows that are approved, or used
        when `include_used`, rated at least `min_quality`, newest first.
        """
        if not tenant_id:
            raise InvalidInput("tenant_id is required")
        min_quality = self.min_quality if min_quality is None else min_quality
        limit = self.limit if limit is None else limit
        if limit < 1:
            raise InvalidInput(f"limit must be positive, got {limit}")

        statuses = consts.EXPORTABLE_TRAINING_STATUSES if include_used else (consts.TRAINING_STATUS_APPROVED,)
        rows = get_exportable_feedback_rows(session, tenant_id, statuses, min_quality, limit)
        profile = self._get_profile_context(session, tenant_id)

        examples = []
        flipped = 0
        for row in rows:
            examples.append(self._to_example(row, profile))
            if row.training_status == consts.TRAINING_STATUS_APPROVED:
                self._mark_used(session, row)
                flipped += 1

        logger.info(f"📤 Exported {len(examples)} training examples for tenant {tenant_id} "
                    f"(min quality {min_quality}, {flipped} newly used)")
        return examples

    def export_feedback(self, session, tenant_id: str, feedback_id: int) -> TrainingExample:
        """Export one approved correction; re-exporting a used one needs fresh approval."""
        row = get_feedback_row(session, tenant_id, feedback_id)
        if row is None:
            raise NotFound(f"Unknown feedback id {feedback_id} for tenant {tenant_id}")
        if row.training_status == consts.TRAINING_STATUS_USED:
            raise Conflict(f"Feedback #{feedback_id} was already exported; it needs fresh approval")
        if not is_allowed_transition(row.training_status, consts.TRAINING_STATUS_USED, by_exporter=True):
            raise StateTransitionError(row.training_status, consts.TRAINING_STATUS_USED)
        if is_feedback_superseded(session, feedback_id):
            raise Conflict(f"Feedback #{feedback_id} was superseded by a later correction")

        example = self._to_example(row, self._get_profile_context(session, tenant_id))
        self._mark_used(session, row)
        logger.info(f"📤 Exported feedback #{feedback_id} for tenant {tenant_id}")
        return example

    def _mark_used(self, session, row: ClassificationFeedback) -> None:
        swapped = compare_and_set_training_status(
            session, row.tenant_id, row.id, consts.TRAINING_STATUS_APPROVED,
            {"training_status": consts.TRAINING_STATUS_USED, "exported_at": utc_now()}
        )
        if not swapped:
            raise Conflict(f"Feedback #{row.id} was exported or changed by a concurrent writer")
        session.refresh(row)

    @staticmethod
    def _get_profile_context(session, tenant_id: str) -> Dict:
        profile = get_tenant_profile_row(session, tenant_id)
        if profile is None:
            return {"business_types": [], "primary_business_type": None}
        return {
            "business_types": list(profile.business_types or []),
            "primary_business_type": profile.primary_business_type,
        }

    @staticmethod
    def _to_example(row: ClassificationFeedback, profile: Dict) -> TrainingExample:
        return TrainingExample(
            prompt=build_prompt(row),
            completion=build_completion(row),
            metadata={
                "feedback_id": row.id,
                "quality_rating": row.quality_rating,
                "created_at": row.created_at.isoformat() if row.created_at else None,
                "original_category": row.original_primary_category,
                "was_wrong": row.original_primary_category != row.corrected_primary_category,
                "business_types": profile["business_types"],
                "primary_business_type": profile["primary_business_type"],
                "correction_source": row.correction_source,
            },
        )
