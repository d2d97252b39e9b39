"""Utility functions for pCloud."""

import hashlib
from datetime import datetime
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Optional

# =============================================================================
# Constants
# =============================================================================

# Read size when hashing or uploading local files (1 MB)
DEFAULT_CHUNK_SIZE: int = 1024 * 1024

# Per-item retry budget used by the CLI
DEFAULT_RETRIES: int = 5

# Process exit codes (sysexits.h)
EXIT_OK: int = 0
EXIT_DATAERR: int = 65
EXIT_INTERRUPTED: int = 130


# =============================================================================
# Timestamp parsing utilities
# =============================================================================


def parse_pcloud_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse a timestamp from pCloud metadata.

    pCloud uses RFC 2822 dates by default but some endpoints may return
    ISO 8601 strings, so both are accepted.

    Args:
        timestamp_str: Timestamp string (e.g., "Thu, 19 Sep 2013 07:31:46 +0000")

    Returns:
        Timezone-aware datetime or None if parsing fails
    """
    if not timestamp_str:
        return None

    try:
        return parsedate_to_datetime(timestamp_str)
    except (TypeError, ValueError, IndexError):
        pass

    try:
        if timestamp_str.endswith("Z"):
            timestamp_str = timestamp_str[:-1] + "+00:00"
        return datetime.fromisoformat(timestamp_str)
    except ValueError:
        return None


def format_timestamp(value: Optional[datetime]) -> str:
    """Format a datetime for table output."""
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M:%S")


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


# =============================================================================
# Hash calculation utilities
# =============================================================================


def calculate_file_checksum(
    file_path: Path, algorithm: str = "sha256", chunk_size: int = DEFAULT_CHUNK_SIZE
) -> str:
    """Compute the hex digest of a local file.

    Args:
        file_path: Path to the file
        algorithm: Any algorithm name accepted by hashlib ("sha256", "sha1", ...)
        chunk_size: Read size in bytes

    Returns:
        Lowercase hex digest

    Raises:
        OSError: If the file cannot be read

    Examples:
        >>> calculate_file_checksum(Path("empty.txt"))  # doctest: +SKIP
        'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'
    """
    digest = hashlib.new(algorithm)
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()
