"""Transfer policy and bounded retry for single-item transfers."""

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from ..exceptions import PCloudError, RetryExhaustedError, SyncCancelledError
from ..utils import DEFAULT_RETRIES
from .comparator import CompareMethod

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class TransferPolicy:
    """Settings for one sync invocation.

    Passed explicitly through the engine; never modified during a run.
    """

    upload: bool = True
    """Upload local-only entries"""

    download: bool = True
    """Download remote-only entries"""

    remove_after_upload: bool = False
    """Delete local files/directories once uploaded"""

    remove_after_download: bool = False
    """Delete remote files/folders once downloaded"""

    allow_partial_upload: bool = False
    """Let the server keep a partially uploaded file"""

    retries: int = DEFAULT_RETRIES
    """Additional attempts allowed for a failing transfer"""

    compare_method: CompareMethod = CompareMethod.CHECKSUM
    """Strategy for files that may already exist remotely (upload variant)"""

    retry_delay: float = 0.0
    """Base delay in seconds for exponential backoff (0 retries immediately)"""

    def __post_init__(self) -> None:
        if self.retries < 0:
            raise ValueError("retries must be >= 0")
        if self.retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")


def calculate_retry_delay(base_delay: float, attempt: int) -> float:
    """Exponential backoff with +/- 25% jitter.

    Args:
        base_delay: Delay before the first retry in seconds
        attempt: Number of the failed attempt (0-based)

    Returns:
        Delay in seconds (0 when base_delay is 0)
    """
    if base_delay <= 0:
        return 0.0
    delay = base_delay * (2**attempt)
    jitter = delay * 0.25 * (2 * random.random() - 1)
    return delay + jitter


def with_retry(
    operation: Callable[[], T],
    retries: int,
    description: str,
    retry_delay: float = 0.0,
    cancel_event: Optional[threading.Event] = None,
) -> T:
    """Run ``operation`` until it succeeds or ``retries + 1`` attempts failed.

    Only PCloudError subclasses (remote and local IO failures) are retried;
    anything else is a bug and propagates immediately.

    Args:
        operation: Zero-argument callable performing one attempt
        retries: Additional attempts after the first failure
        description: Human-readable name of the operation for logs/errors
        retry_delay: Base backoff delay in seconds
        cancel_event: Checked before every attempt

    Returns:
        The operation's return value

    Raises:
        RetryExhaustedError: With one error per attempt when all attempts fail
        SyncCancelledError: If cancel_event is set before an attempt
    """
    errors: list[Exception] = []
    for attempt in range(retries + 1):
        if cancel_event is not None and cancel_event.is_set():
            raise SyncCancelledError(f"Cancelled before {description}")
        if attempt:
            logger.debug(
                "Retrying %s (attempt %d/%d)", description, attempt + 1, retries + 1
            )
        try:
            return operation()
        except SyncCancelledError:
            raise
        except PCloudError as e:
            logger.warning("Unable to %s: %s", description, e)
            errors.append(e)
            if attempt < retries:
                delay = calculate_retry_delay(retry_delay, attempt)
                if delay:
                    time.sleep(delay)

    raise RetryExhaustedError(description, errors)
