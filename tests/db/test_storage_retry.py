#!/usr/bin/env python3
"""
Storage Retry Tests

Transient failures are retried with backoff; everything else propagates at once.
"""

import pytest
from unittest.mock import Mock

from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from bizcore.db.storage_retry import is_transient_storage_error, run_with_storage_retries
from bizcore.errors import InvalidInput, StorageUnavailable


def _operational_error():
    return OperationalError("SELECT 1", {}, Exception("server closed the connection unexpectedly"))


class TestIsTransientStorageError:

    def test_operational_error_is_transient(self):
        assert is_transient_storage_error(_operational_error())

    def test_snapshot_unique_race_is_transient(self):
        error = IntegrityError("INSERT", {}, Exception(
            "UNIQUE constraint failed: template_version_snapshots.template_id, template_version_snapshots.version"
        ))
        assert is_transient_storage_error(error)

    @pytest.mark.parametrize("message", [
        "UNIQUE constraint failed: classification_feedback.supersedes_id",
        'duplicate key value violates unique constraint "uq_classification_feedback_supersedes_id"',
    ])
    def test_supersedes_unique_race_is_transient(self, message):
        assert is_transient_storage_error(IntegrityError("INSERT", {}, Exception(message)))

    def test_other_integrity_errors_are_not(self):
        error = IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed: tenant_profiles.tenant_id"))
        assert not is_transient_storage_error(error)

    def test_serialization_failure_is_transient(self):
        orig = Exception("could not serialize access")
        orig.pgcode = "40001"
        assert is_transient_storage_error(ProgrammingError("UPDATE", {}, orig))

    def test_domain_errors_are_not(self):
        assert not is_transient_storage_error(InvalidInput("bad"))


class TestRunWithStorageRetries:

    def test_success_needs_no_retry(self):
        sleep = Mock()
        assert run_with_storage_retries(lambda: 42, max_retries=3, base_delay=0.5, sleep=sleep) == 42
        sleep.assert_not_called()

    def test_retries_then_succeeds(self):
        operation = Mock(side_effect=[_operational_error(), _operational_error(), "ok"])
        sleep = Mock()

        assert run_with_storage_retries(operation, max_retries=3, base_delay=0.5, sleep=sleep) == "ok"
        assert operation.call_count == 3
        first_delay, second_delay = [call.args[0] for call in sleep.call_args_list]
        assert 0.5 <= first_delay < 1.5
        assert 1.0 <= second_delay < 2.0

    def test_exhausted_retries_raise_storage_unavailable(self):
        operation = Mock(side_effect=_operational_error())
        sleep = Mock()

        with pytest.raises(StorageUnavailable) as exc_info:
            run_with_storage_retries(operation, max_retries=3, base_delay=0.0, sleep=sleep)
        assert operation.call_count == 3
        assert sleep.call_count == 2
        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_non_transient_errors_propagate_immediately(self):
        operation = Mock(side_effect=InvalidInput("limit must be positive"))
        sleep = Mock()

        with pytest.raises(InvalidInput):
            run_with_storage_retries(operation, max_retries=3, base_delay=0.0, sleep=sleep)
        assert operation.call_count == 1
        sleep.assert_not_called()

    def test_zero_attempts(self):
        operation = Mock()
        with pytest.raises(StorageUnavailable):
            run_with_storage_retries(operation, max_retries=0, base_delay=0.0, sleep=Mock())
        operation.assert_not_called()
