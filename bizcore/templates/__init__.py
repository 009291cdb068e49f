from bizcore.templates.schemas import InquiryType, TemplateFields, TemplateRecord, MergedConfiguration
from bizcore.templates.template_store import TemplateStore, UpsertResult
from bizcore.templates.merge_engine import MergeEngine, merge_templates, validate_business_type_selection
