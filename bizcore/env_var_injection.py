import os
from typing import Optional


def sanitize_env_var(name, default: Optional[str] = None):
	value = os.getenv(name)
	if value is None:
		if default is not None:
			return default
		raise RuntimeError(f"Missing required environment variable: {name}")
	value = value.replace('"', "")
	return value


def get_database_url() -> str:
	# Resolved on first engine creation so tests never need a real database
	return sanitize_env_var("SUPABASE_DATABASE_CONNECTION_STRING")


# Merged configuration cache
redis_host = sanitize_env_var("REDIS_HOST", "redis")
redis_port = int(sanitize_env_var("REDIS_PORT", "6379"))
redis_db = int(sanitize_env_var("REDIS_DB", "0"))
merged_config_cache_ttl_seconds = int(sanitize_env_var("MERGED_CONFIG_CACHE_TTL_SECONDS", "1800"))
merged_config_cache_backend = sanitize_env_var("MERGED_CONFIG_CACHE_BACKEND", "redis")

# Feedback policy
high_confidence_error_threshold = float(sanitize_env_var("HIGH_CONFIDENCE_ERROR_THRESHOLD", "0.8"))
training_min_quality = int(sanitize_env_var("TRAINING_MIN_QUALITY", "3"))
training_export_limit = int(sanitize_env_var("TRAINING_EXPORT_LIMIT", "1000"))
quality_rating_min = int(sanitize_env_var("QUALITY_RATING_MIN", "1"))
quality_rating_max = int(sanitize_env_var("QUALITY_RATING_MAX", "5"))

# Storage retries, applied by the calling layer only
storage_max_retries = int(sanitize_env_var("STORAGE_MAX_RETRIES", "3"))
storage_retry_base_delay_seconds = float(sanitize_env_var("STORAGE_RETRY_BASE_DELAY_SECONDS", "1.0"))
