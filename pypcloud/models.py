"""Data models for pCloud API responses."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

from .exceptions import PCloudUnavailableError
from .utils import parse_pcloud_timestamp


@dataclass(frozen=True)
class RemoteFile:
    """A file stored in pCloud."""

    file_id: int
    name: str
    modified: Optional[datetime] = None
    size: int = 0
    content_hash: Optional[str] = None
    """pCloud's own content hash (not a sha digest)"""

    @property
    def id(self) -> int:
        return self.file_id


@dataclass(frozen=True)
class RemoteFolder:
    """A folder stored in pCloud.

    ``contents`` is only populated when the folder was fetched with
    ``listfolder``; metadata returned by other calls leaves it ``None``.
    """

    folder_id: int
    name: str
    modified: Optional[datetime] = None
    contents: Optional[tuple["RemoteEntry", ...]] = None

    @property
    def id(self) -> int:
        return self.folder_id

    def children(self) -> dict[str, "RemoteEntry"]:
        """Map child names to entries (empty when contents were not fetched)."""
        return {entry.name: entry for entry in self.contents or ()}

    def find_file(self, name: str) -> Optional[RemoteFile]:
        """Return the child file called ``name``, if any."""
        entry = self.children().get(name)
        return entry if isinstance(entry, RemoteFile) else None


RemoteEntry = Union[RemoteFile, RemoteFolder]


def entry_from_metadata(metadata: dict[str, Any]) -> RemoteEntry:
    """Build a RemoteFile or RemoteFolder from a pCloud metadata object.

    Args:
        metadata: The ``metadata`` object of an API response

    Returns:
        RemoteFolder when ``isfolder`` is true, RemoteFile otherwise

    Raises:
        PCloudUnavailableError: If mandatory fields are missing
    """
    try:
        name = str(metadata["name"])
        modified = parse_pcloud_timestamp(metadata.get("modified"))
        if metadata.get("isfolder"):
            contents = metadata.get("contents")
            return RemoteFolder(
                folder_id=int(metadata["folderid"]),
                name=name,
                modified=modified,
                contents=(
                    tuple(entry_from_metadata(item) for item in contents)
                    if contents is not None
                    else None
                ),
            )
        content_hash = metadata.get("hash")
        return RemoteFile(
            file_id=int(metadata["fileid"]),
            name=name,
            modified=modified,
            size=int(metadata.get("size", 0)),
            content_hash=str(content_hash) if content_hash is not None else None,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise PCloudUnavailableError(f"Malformed entry metadata: {e}") from e


def folder_from_metadata(metadata: dict[str, Any]) -> RemoteFolder:
    """Like entry_from_metadata but insists on a folder."""
    entry = entry_from_metadata(metadata)
    if not isinstance(entry, RemoteFolder):
        raise PCloudUnavailableError(f"Expected a folder, got file '{entry.name}'")
    return entry


def file_from_metadata(metadata: dict[str, Any]) -> RemoteFile:
    """Like entry_from_metadata but insists on a file."""
    entry = entry_from_metadata(metadata)
    if not isinstance(entry, RemoteFile):
        raise PCloudUnavailableError(f"Expected a file, got folder '{entry.name}'")
    return entry


@dataclass(frozen=True)
class FileChecksums:
    """Checksums reported by ``checksumfile``.

    Which digests are present depends on the account's region: US
    accounts get sha1 and md5, EU accounts get sha1 and sha256.
    """

    sha1: Optional[str] = None
    sha256: Optional[str] = None
    md5: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "FileChecksums":
        return cls(
            sha1=data.get("sha1"),
            sha256=data.get("sha256"),
            md5=data.get("md5"),
        )

    def preferred(self) -> Optional[tuple[str, str]]:
        """Return the strongest available (algorithm, hexdigest) pair."""
        for algorithm in ("sha256", "sha1", "md5"):
            value = getattr(self, algorithm)
            if value:
                return algorithm, value.lower()
        return None
