"""
Pydantic models for classification feedback, metrics and training exports.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OriginalClassification(BaseModel):
    """Classification as emitted by the external classifier. Unknown keys are kept verbatim."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    category: Optional[str] = Field(default=None, alias="primary_category",
                                    description="Primary category, e.g. 'SALES'")
    secondary_category: Optional[str] = None
    tertiary_category: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    ai_can_reply: Optional[bool] = None


class CorrectedClassification(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    category: str = Field(alias="primary_category", description="Corrected primary category")
    secondary_category: Optional[str] = None
    tertiary_category: Optional[str] = None
    ai_can_reply: Optional[bool] = None
    reason: Optional[str] = Field(default=None, description="Why the tenant corrected it")

    @field_validator("category", mode="before")
    @classmethod
    def _strip_category(cls, value):
        return value.strip() if isinstance(value, str) else value


class EmailContext(BaseModel):
    """Email details kept with a correction so it can become a training prompt."""
    model_config = ConfigDict(extra="forbid")

    thread_id: Optional[str] = None
    provider: Optional[str] = None
    subject: Optional[str] = None
    sender: Optional[str] = Field(default=None, description="From address")
    body: Optional[str] = Field(default=None, description="Body; truncated to a preview when stored")
    metadata: Optional[Dict[str, Any]] = None


class FeedbackRecord(BaseModel):
    id: int
    tenant_id: str
    email_id: str
    supersedes_id: Optional[int] = None
    original_classification: Dict[str, Any]
    original_primary_category: Optional[str] = None
    original_confidence: Optional[float] = None
    corrected_primary_category: str
    corrected_secondary_category: Optional[str] = None
    corrected_tertiary_category: Optional[str] = None
    corrected_ai_can_reply: Optional[bool] = None
    correction_reason: Optional[str] = None
    quality_rating: int
    correction_source: str
    feedback_type: str
    training_status: str
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    exported_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "FeedbackRecord":
        return cls(
            id=row.id,
            tenant_id=row.tenant_id,
            email_id=row.email_id,
            supersedes_id=row.supersedes_id,
            original_classification=dict(row.original_classification or {}),
            original_primary_category=row.original_primary_category,
            original_confidence=row.original_confidence,
            corrected_primary_category=row.corrected_primary_category,
            corrected_secondary_category=row.corrected_secondary_category,
            corrected_tertiary_category=row.corrected_tertiary_category,
            corrected_ai_can_reply=row.corrected_ai_can_reply,
            correction_reason=row.correction_reason,
            quality_rating=row.quality_rating,
            correction_source=row.correction_source,
            feedback_type=row.feedback_type,
            training_status=row.training_status,
            reviewed_by=row.reviewed_by,
            reviewed_at=row.reviewed_at,
            review_notes=row.review_notes,
            exported_at=row.exported_at,
            created_at=row.created_at,
        )


class MetricSnapshotRecord(BaseModel):
    tenant_id: str
    measurement_date: date
    total_classifications: int
    total_corrections: int
    correction_rate: Optional[float] = None
    category_accuracy: Dict[str, float] = Field(default_factory=dict)
    most_corrected_category: Optional[str] = None
    least_corrected_category: Optional[str] = None
    avg_original_confidence: Optional[float] = None
    avg_confidence_when_wrong: Optional[float] = None
    high_confidence_errors: int
    ai_replies_sent: int
    ai_replies_corrected: int
    ai_reply_accuracy: Optional[float] = None
    week_number: Optional[int] = None
    month_number: Optional[int] = None
    year: Optional[int] = None

    @classmethod
    def from_row(cls, row) -> "MetricSnapshotRecord":
        return cls(
            tenant_id=row.tenant_id,
            measurement_date=row.measurement_date,
            total_classifications=row.total_classifications,
            total_corrections=row.total_corrections,
            correction_rate=row.correction_rate,
            category_accuracy=dict(row.category_accuracy or {}),
            most_corrected_category=row.most_corrected_category,
            least_corrected_category=row.least_corrected_category,
            avg_original_confidence=row.avg_original_confidence,
            avg_confidence_when_wrong=row.avg_confidence_when_wrong,
            high_confidence_errors=row.high_confidence_errors,
            ai_replies_sent=row.ai_replies_sent,
            ai_replies_corrected=row.ai_replies_corrected,
            ai_reply_accuracy=row.ai_reply_accuracy,
            week_number=row.week_number,
            month_number=row.month_number,
            year=row.year,
        )


class TrainingExample(BaseModel):
    """
    (prompt, label, metadata) triple for supervised fine-tuning.

    The label is stored and serialized under the `completion` key, the field
    name fine-tuning JSONL files expect; `label` reads the same value.
    """
    prompt: str
    completion: str = Field(description="JSON-encoded corrected classification label")
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def label(self) -> str:
        return self.completion
