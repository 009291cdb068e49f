# bizcore/db/models/__init__.py

from bizcore.db.db_interface import DbInterface

# Import all model classes so they're registered with DbInterface.metadata
from .business_template import BusinessTemplate
from .template_version_snapshot import TemplateVersionSnapshot
from .tenant_profile import TenantProfile
from .classification_event import ClassificationEvent
from .classification_feedback import ClassificationFeedback
from .performance_metric_snapshot import PerformanceMetricSnapshot
