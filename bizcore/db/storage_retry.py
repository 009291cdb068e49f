"""
Bounded retry of transient storage failures.

Components never retry on their own: the calling layer wraps a whole unit of
work (a fresh transaction per attempt) with `run_with_storage_retries`.
"""

import random
import time
from typing import Callable, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, TimeoutError as PoolTimeoutError

from bizcore.env_var_injection import storage_max_retries, storage_retry_base_delay_seconds
from bizcore.errors import StorageUnavailable
from bizcore.utils.log import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# SQLSTATE codes worth retrying: serialization failure, deadlock, lock timeout
RETRYABLE_SQLSTATES = {"40001", "40P01", "55P03"}

# SQLite names the table and column, PostgreSQL names the index
UNIQUE_RACE_KEYS = (
    "template_version_snapshots",
    "classification_feedback.supersedes_id",
    "uq_classification_feedback_supersedes_id",
)


def is_transient_storage_error(error: BaseException) -> bool:
    """Timeouts, dropped connections and serialization conflicts are transient; constraint bugs are not."""
    if isinstance(error, (OperationalError, PoolTimeoutError)):
        return True
    if isinstance(error, IntegrityError):
        # Lost races on a unique key: two admins snapshotting the same template
        # version, or two corrections superseding the same row. A retry re-reads
        # the winner.
        message = str(error.orig)
        return any(key in message for key in UNIQUE_RACE_KEYS)
    if isinstance(error, DBAPIError):
        if error.connection_invalidated:
            return True
        sqlstate = getattr(error.orig, "pgcode", None) or getattr(error.orig, "sqlstate", None)
        return sqlstate in RETRYABLE_SQLSTATES
    return False


def run_with_storage_retries(operation: Callable[[], T],
                             max_retries: int = None,
                             base_delay: float = None,
                             sleep: Callable[[float], None] = time.sleep) -> T:
    """Run `operation`, retrying transient failures with exponential backoff plus jitter."""
    max_retries = storage_max_retries if max_retries is None else max_retries
    base_delay = storage_retry_base_delay_seconds if base_delay is None else base_delay

    for attempt in range(max_retries):
        try:
            return operation()
        except Exception as e:
            if not is_transient_storage_error(e):
                raise
            if attempt == max_retries - 1:
                logger.error(f"❌ Storage still unavailable after {max_retries} attempts: {e}")
                raise StorageUnavailable(f"Storage unavailable after {max_retries} attempts: {e}") from e

            delay = base_delay * (2 ** attempt) + random.uniform(0, 1)
            logger.warning(f"🔄 Transient storage error, retrying in {delay:.2f} seconds "
                           f"(attempt {attempt + 1}/{max_retries}): {e}")
            sleep(delay)

    raise StorageUnavailable("Storage operation was not attempted (max_retries < 1)")
