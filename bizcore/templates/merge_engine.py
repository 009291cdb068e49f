#!/usr/bin/env python3
"""
Merge Engine

Combines the active templates of an ordered business type selection into one
MergedConfiguration. Input order is significant and preserved everywhere;
nothing is deduplicated across business types.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from bizcore import consts
from bizcore.db.db_interface import begin_consistent_read, utc_now
from bizcore.errors import InvalidInput
from bizcore.templates.schemas import MergedConfiguration, MergedInquiryType, TemplateRecord
from bizcore.templates.template_store import TemplateStore
from bizcore.utils.log import get_logger, log_in_out

logger = get_logger(__name__)


def validate_business_type_selection(business_types: Optional[Iterable[str]]) -> List[str]:
    """Check count bounds, blank names and duplicates; returns the selection as a list."""
    if business_types is None or isinstance(business_types, str):
        raise InvalidInput("business_types must be a list of business type names")
    names = list(business_types)

    if not (consts.MIN_BUSINESS_TYPES <= len(names) <= consts.MAX_BUSINESS_TYPES):
        raise InvalidInput(
            f"Between {consts.MIN_BUSINESS_TYPES} and {consts.MAX_BUSINESS_TYPES} business types "
            f"are required, got {len(names)}"
        )
    if any(not isinstance(name, str) or not name.strip() for name in names):
        raise InvalidInput("Business type names must be non-empty strings")

    seen = set()
    duplicates = []
    for name in names:
        if name in seen and name not in duplicates:
            duplicates.append(name)
        seen.add(name)
    if duplicates:
        raise InvalidInput(f"Duplicate business types: {', '.join(duplicates)}")
    return names


def format_protocol_block(business_type: str, protocol_text: str) -> str:
    header = consts.PROTOCOL_HEADER_FORMAT.format(business_type=business_type)
    return f"{header}{consts.PROTOCOL_HEADER_JOINER}{protocol_text}"


def merge_templates(templates: Sequence[TemplateRecord], business_types: Sequence[str],
                    merged_at: Optional[datetime] = None) -> MergedConfiguration:
    """
    Pure merge of already-fetched templates.

    `templates` must hold exactly one template per name in `business_types`;
    output follows `business_types` order regardless of `templates` order.
    """
    names = validate_business_type_selection(business_types)
    by_type = {template.business_type: template for template in templates}
    missing = [name for name in names if name not in by_type]
    if missing:
        raise InvalidInput(f"Templates not supplied for: {', '.join(missing)}")

    inquiry_types: List[MergedInquiryType] = []
    protocol_blocks: List[str] = []
    special_rules: List[str] = []
    upsell_prompts: List[str] = []

    for name in names:
        content = by_type[name].content
        for inquiry in content.inquiry_types:
            inquiry_types.append(MergedInquiryType(**inquiry.model_dump(), source_business_type=name))
        protocol_blocks.append(format_protocol_block(name, content.protocol_text))
        special_rules.extend(content.special_rules)
        upsell_prompts.extend(content.upsell_prompts)

    return MergedConfiguration(
        business_type_list=list(names),
        template_count=len(names),
        merged_at=merged_at or utc_now(),
        inquiry_types=inquiry_types,
        protocols=consts.PROTOCOL_SEPARATOR.join(protocol_blocks),
        special_rules=special_rules,
        upsell_prompts=upsell_prompts,
        template_versions={name: by_type[name].version for name in names},
    )


class MergeEngine:
    """Fetches the referenced active templates in one consistent read and merges them. Never writes."""

    def __init__(self, template_store: Optional[TemplateStore] = None):
        self.template_store = template_store or TemplateStore()

    @log_in_out(is_print_output=False)
    def merge(self, session, business_types: Sequence[str]) -> MergedConfiguration:
        names = validate_business_type_selection(business_types)
        begin_consistent_read(session)
        # NotFound here reports every missing or inactive name; no partial merge
        templates = self.template_store.get_active_templates(session, names)
        merged = merge_templates(templates, names)
        logger.info(f"🧩 Merged {merged.template_count} templates: {' + '.join(names)} "
                    f"({len(merged.inquiry_types)} inquiry types)")
        return merged
