"""Exceptions raised by the pCloud client and the sync engine."""

from pathlib import Path
from typing import Optional


class PCloudError(Exception):
    """Base exception for all pypcloud errors."""


class PCloudConfigError(PCloudError):
    """Configuration is missing or invalid."""


class PCloudUnavailableError(PCloudError):
    """The remote store could not be reached or answered garbage.

    Raised for connection failures, HTTP error statuses and bodies that
    are not valid JSON.
    """


class PCloudRejectedError(PCloudError):
    """The remote store answered with a non-zero result code."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(f"pCloud error {code}: {message}")


class LocalIOError(PCloudError):
    """A local filesystem operation failed."""

    def __init__(self, path: Path, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"{path}: {cause.strerror or cause}")


class RetryExhaustedError(PCloudError):
    """A single item failed every allowed attempt.

    Attributes:
        description: What was being attempted (e.g. "upload foo.txt")
        errors: One exception per attempt, in order
    """

    def __init__(self, description: str, errors: list[Exception]):
        self.description = description
        self.errors = errors
        last: Optional[Exception] = errors[-1] if errors else None
        super().__init__(
            f"{description} failed after {len(errors)} attempt(s): {last}"
        )


class SyncCancelledError(PCloudError):
    """The sync run was cancelled before completion."""
