"""Entry classification and upload decisions for sync operations."""

import logging
from enum import Enum
from pathlib import Path
from typing import NamedTuple

from ..models import RemoteFolder
from ..utils import calculate_file_checksum
from .remote import RemoteTree

logger = logging.getLogger(__name__)


class Classification(NamedTuple):
    """Names of one directory level split by where they exist."""

    remote_only: frozenset[str]
    """Names present remotely but not locally"""

    local_only: frozenset[str]
    """Names present locally but not remotely"""

    common: frozenset[str]
    """Names present on both sides"""


def classify(remote_names: set[str], local_names: set[str]) -> Classification:
    """Partition entry names of a remote and a local listing.

    Every name of either listing ends up in exactly one of the three sets.
    The sets carry no ordering.

    Examples:
        >>> result = classify({"a", "b"}, {"b", "c"})
        >>> sorted(result.remote_only), sorted(result.local_only), sorted(result.common)
        (['a'], ['c'], ['b'])
    """
    remote = frozenset(remote_names)
    local = frozenset(local_names)
    return Classification(
        remote_only=remote - local,
        local_only=local - remote,
        common=remote & local,
    )


class CompareMethod(str, Enum):
    """Strategy deciding whether a local file must be uploaded."""

    FORCE = "force"
    """Always upload, ignoring remote state"""

    PRESENCE = "presence"
    """Upload only if no remote file with the same name exists"""

    CHECKSUM = "checksum"
    """Upload if missing remotely or if the checksums differ"""


class UploadDecision(str, Enum):
    """Outcome of comparing a local file with its remote counterpart."""

    UPLOAD = "upload"
    """Send the local file"""

    UNCHANGED = "unchanged"
    """The remote file is known to match; nothing to send"""

    UNVERIFIED = "unverified"
    """The local file could not be compared; leave it alone"""


def should_upload_file(
    method: CompareMethod,
    remote: RemoteTree,
    local_path: Path,
    name: str,
    folder: RemoteFolder,
) -> UploadDecision:
    """Decide whether ``local_path`` must be uploaded as ``name`` into ``folder``.

    Args:
        method: Comparison strategy
        remote: Remote tree, used to fetch checksums
        local_path: Local file to upload
        name: Name of the file in the remote folder
        folder: Remote folder listed with its contents

    Returns:
        UPLOAD if the file should be sent, UNCHANGED if the remote side
        already holds it, UNVERIFIED if the local checksum could not be
        computed
    """
    if method == CompareMethod.FORCE:
        return UploadDecision.UPLOAD

    remote_file = folder.find_file(name)
    if remote_file is None:
        logger.info("%s missing remotely, uploading", local_path)
        return UploadDecision.UPLOAD

    if method == CompareMethod.PRESENCE:
        logger.debug("%s already exists remotely, skipping", local_path)
        return UploadDecision.UNCHANGED

    checksums = remote.file_checksum(remote_file.file_id)
    preferred = checksums.preferred()
    if preferred is None:
        logger.warning("No remote checksum for %s, uploading again", local_path)
        return UploadDecision.UPLOAD

    algorithm, remote_digest = preferred
    try:
        local_digest = calculate_file_checksum(local_path, algorithm)
    except OSError as e:
        logger.warning(
            "Skipping upload of %s, cannot compute checksum: %s", local_path, e
        )
        return UploadDecision.UNVERIFIED

    if local_digest != remote_digest:
        logger.debug("%s checksum mismatch, uploading again", local_path)
        return UploadDecision.UPLOAD

    logger.debug("%s unchanged (%s), skipping", local_path, algorithm)
    return UploadDecision.UNCHANGED
