# Logging configuration environment variables
ENABLE_DEBUG_LOG = "BIZCORE_ENABLE_DEBUG_LOG"
ENABLE_LOCAL_LOG = "BIZCORE_ENABLE_LOCAL_LOG"
ENABLE_REMOTE_LOG = "BIZCORE_ENABLE_REMOTE_LOG"
LOCAL_LOG_MIN_SEVERITY = "BIZCORE_LOCAL_LOG_SEVERITY"
REMOTE_LOG_MIN_SEVERITY = "BIZCORE_REMOTE_LOG_SEVERITY"
LOGGING_FORMAT_ENV = "LOGGING_FORMAT"

LOCAL_LOGGING = "LOCAL"
REMOTE_LOGGING = "REMOTE"

# Business type selection bounds
MIN_BUSINESS_TYPES = 1
MAX_BUSINESS_TYPES = 12

# Merged protocol layout
PROTOCOL_HEADER_FORMAT = "**{business_type} Protocols:**"
PROTOCOL_HEADER_JOINER = "\n"
PROTOCOL_SEPARATOR = "\n\n---\n\n"

# Feedback
EMAIL_BODY_PREVIEW_LENGTH = 500

TRAINING_STATUS_PENDING = "pending"
TRAINING_STATUS_APPROVED = "approved"
TRAINING_STATUS_REJECTED = "rejected"
TRAINING_STATUS_USED = "used"
TRAINING_STATUSES = (
    TRAINING_STATUS_PENDING,
    TRAINING_STATUS_APPROVED,
    TRAINING_STATUS_REJECTED,
    TRAINING_STATUS_USED,
)
EXPORTABLE_TRAINING_STATUSES = (TRAINING_STATUS_APPROVED, TRAINING_STATUS_USED)

CORRECTION_SOURCES = ("web_portal", "gmail_addon", "outlook_addon", "api", "mobile_app")
EMAIL_PROVIDERS = ("gmail", "outlook", "imap")
FEEDBACK_TYPES = ("manual_correction", "approve", "reject", "suggest")
DEFAULT_FEEDBACK_TYPE = "manual_correction"

# Cache
MERGED_CONFIG_CACHE_PREFIX = "merged_config"
