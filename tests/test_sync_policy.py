"""Tests for TransferPolicy and the bounded retry helper."""

import threading
from unittest.mock import Mock, patch

import pytest

from pypcloud.exceptions import (
    LocalIOError,
    PCloudRejectedError,
    PCloudUnavailableError,
    RetryExhaustedError,
    SyncCancelledError,
)
from pypcloud.sync.comparator import CompareMethod
from pypcloud.sync.policy import TransferPolicy, calculate_retry_delay, with_retry


def failing(times: int, result="ok"):
    """Operation failing ``times`` times before returning ``result``."""
    return Mock(
        side_effect=[PCloudUnavailableError(f"fail {i}") for i in range(times)]
        + [result]
    )


class TestTransferPolicy:
    """Tests for TransferPolicy."""

    def test_defaults(self):
        policy = TransferPolicy()

        assert policy.upload is True
        assert policy.download is True
        assert policy.remove_after_upload is False
        assert policy.remove_after_download is False
        assert policy.allow_partial_upload is False
        assert policy.retries == 5
        assert policy.compare_method == CompareMethod.CHECKSUM
        assert policy.retry_delay == 0.0

    def test_is_immutable(self):
        policy = TransferPolicy()
        with pytest.raises(AttributeError):
            policy.retries = 3  # type: ignore[misc]

    def test_negative_retries_rejected(self):
        with pytest.raises(ValueError, match="retries"):
            TransferPolicy(retries=-1)

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError, match="retry_delay"):
            TransferPolicy(retry_delay=-0.5)


class TestWithRetry:
    """Tests for with_retry."""

    def test_success_first_attempt(self):
        operation = failing(0)

        assert with_retry(operation, 5, "upload a") == "ok"
        assert operation.call_count == 1

    @pytest.mark.parametrize("failures", [1, 2, 5])
    def test_success_after_failures(self, failures):
        operation = failing(failures)

        assert with_retry(operation, 5, "upload a") == "ok"
        assert operation.call_count == failures + 1

    @pytest.mark.parametrize("retries", [0, 1, 3])
    def test_exhausted_after_retries_plus_one(self, retries):
        operation = failing(100)

        with pytest.raises(RetryExhaustedError) as exc_info:
            with_retry(operation, retries, "upload a")

        assert operation.call_count == retries + 1
        assert len(exc_info.value.errors) == retries + 1
        assert exc_info.value.description == "upload a"
        assert [str(e) for e in exc_info.value.errors] == [
            f"fail {i}" for i in range(retries + 1)
        ]

    def test_rejected_and_local_errors_are_retried(self):
        operation = Mock(
            side_effect=[
                PCloudRejectedError(5000, "Internal error."),
                LocalIOError("/tmp/a", OSError(5, "Input/output error")),
                "done",
            ]
        )

        assert with_retry(operation, 2, "upload a") == "done"

    def test_other_exceptions_propagate(self):
        operation = Mock(side_effect=KeyError("bug"))

        with pytest.raises(KeyError):
            with_retry(operation, 5, "upload a")
        assert operation.call_count == 1

    def test_cancelled_before_first_attempt(self):
        event = threading.Event()
        event.set()
        operation = failing(0)

        with pytest.raises(SyncCancelledError):
            with_retry(operation, 5, "upload a", cancel_event=event)
        operation.assert_not_called()

    def test_cancelled_between_attempts(self):
        event = threading.Event()

        def operation():
            event.set()
            raise PCloudUnavailableError("timeout")

        with pytest.raises(SyncCancelledError):
            with_retry(operation, 5, "upload a", cancel_event=event)

    def test_no_sleep_without_delay(self):
        with patch("pypcloud.sync.policy.time.sleep") as mock_sleep:
            with_retry(failing(2), 5, "upload a")
        mock_sleep.assert_not_called()

    def test_sleeps_between_attempts(self):
        with patch("pypcloud.sync.policy.time.sleep") as mock_sleep:
            with pytest.raises(RetryExhaustedError):
                with_retry(failing(100), 2, "upload a", retry_delay=1.0)
        # no sleep after the last attempt
        assert mock_sleep.call_count == 2


class TestCalculateRetryDelay:
    """Tests for calculate_retry_delay."""

    def test_zero_base(self):
        assert calculate_retry_delay(0.0, 3) == 0.0

    @pytest.mark.parametrize("attempt", [0, 1, 2, 3])
    def test_exponential_with_jitter(self, attempt):
        expected = 2.0 * (2**attempt)
        delay = calculate_retry_delay(2.0, attempt)
        assert expected * 0.75 <= delay <= expected * 1.25
