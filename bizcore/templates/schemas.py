"""
Pydantic models for business templates and the merged configuration contract.

`MergedConfiguration` is what the deployment collaborator receives: its
serialized (camelCase) field names and list orders are a stable contract.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

import ujson as json
from pydantic import BaseModel, ConfigDict, Field, field_validator

from bizcore.utils.strings import split_keywords


class InquiryType(BaseModel):
    """One kind of inbound inquiry a business handles."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    name: str = Field(min_length=1, description="Inquiry type name, e.g. 'Emergency Service'")
    description: str = Field(default="", description="What the inquiry is about")
    keywords: List[str] = Field(default_factory=list, description="Trigger keywords")
    pricing_hint: Optional[str] = Field(default=None, alias="pricingHint",
                                        description="Pricing guidance quoted in replies")

    @field_validator("keywords", mode="before")
    @classmethod
    def _split_keywords(cls, value):
        return split_keywords(value)


class TemplateFields(BaseModel):
    """Substantive (versioned) content of a business template."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    inquiry_types: List[InquiryType] = Field(default_factory=list, alias="inquiryTypes")
    protocol_text: str = Field(default="", alias="protocolText")
    special_rules: List[str] = Field(default_factory=list, alias="specialRules")
    upsell_prompts: List[str] = Field(default_factory=list, alias="upsellPrompts")

    def to_storage(self) -> Dict[str, Any]:
        """Plain column values; also the canonical form used for change detection."""
        return {
            "inquiry_types": [inquiry.model_dump(by_alias=True) for inquiry in self.inquiry_types],
            "protocol_text": self.protocol_text,
            "special_rules": list(self.special_rules),
            "upsell_prompts": list(self.upsell_prompts),
        }

    @classmethod
    def from_row(cls, row) -> "TemplateFields":
        return cls(
            inquiry_types=row.inquiry_types or [],
            protocol_text=row.protocol_text or "",
            special_rules=row.special_rules or [],
            upsell_prompts=row.upsell_prompts or [],
        )


class TemplateRecord(BaseModel):
    """Read model of the active state of one business template."""
    id: int
    business_type: str
    version: int
    is_active: bool
    content: TemplateFields
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "TemplateRecord":
        return cls(
            id=row.id,
            business_type=row.business_type,
            version=row.version,
            is_active=row.is_active,
            content=TemplateFields.from_row(row),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class TemplateSnapshotRecord(BaseModel):
    id: int
    template_id: int
    business_type: str
    version: int
    content: TemplateFields
    snapshotted_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "TemplateSnapshotRecord":
        return cls(
            id=row.id,
            template_id=row.template_id,
            business_type=row.business_type,
            version=row.version,
            content=TemplateFields.from_row(row),
            snapshotted_at=row.snapshotted_at,
        )


class MergedInquiryType(InquiryType):
    """An inquiry type tagged with the business type it came from."""
    source_business_type: str = Field(alias="sourceBusinessType")


class MergedConfiguration(BaseModel):
    """Derived runtime configuration for one ordered business type selection."""
    model_config = ConfigDict(populate_by_name=True)

    business_type_list: List[str] = Field(alias="businessTypeList")
    template_count: int = Field(alias="templateCount")
    merged_at: datetime = Field(alias="mergedAt")
    inquiry_types: List[MergedInquiryType] = Field(default_factory=list, alias="inquiryTypes")
    protocols: str = ""
    special_rules: List[str] = Field(default_factory=list, alias="specialRules")
    upsell_prompts: List[str] = Field(default_factory=list, alias="upsellPrompts")
    template_versions: Dict[str, int] = Field(default_factory=dict, alias="templateVersions")

    def to_dict(self, include_merged_at: bool = True) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True, mode="json")
        if not include_merged_at:
            data.pop("mergedAt")
        return data

    def to_json(self, include_merged_at: bool = True) -> str:
        return json.dumps(self.to_dict(include_merged_at=include_merged_at), escape_forward_slashes=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MergedConfiguration":
        return cls.model_validate(data)
