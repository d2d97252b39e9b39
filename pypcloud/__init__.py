"""pypcloud - CLI tool for synchronizing local folders with pCloud."""

from .api import PCloudClient
from .config import Config, load_config
from .exceptions import (
    LocalIOError,
    PCloudConfigError,
    PCloudError,
    PCloudRejectedError,
    PCloudUnavailableError,
    RetryExhaustedError,
    SyncCancelledError,
)
from .models import FileChecksums, RemoteEntry, RemoteFile, RemoteFolder

__all__ = [
    "PCloudClient",
    "Config",
    "load_config",
    "PCloudError",
    "PCloudConfigError",
    "PCloudRejectedError",
    "PCloudUnavailableError",
    "LocalIOError",
    "RetryExhaustedError",
    "SyncCancelledError",
    "FileChecksums",
    "RemoteEntry",
    "RemoteFile",
    "RemoteFolder",
]
