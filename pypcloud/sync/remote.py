"""Typed access to the remote pCloud tree."""

import logging
from typing import IO, Callable, Optional

from ..api import PCloudClient
from ..exceptions import PCloudUnavailableError
from ..models import (
    FileChecksums,
    RemoteFile,
    RemoteFolder,
    file_from_metadata,
    folder_from_metadata,
)

logger = logging.getLogger(__name__)


class RemoteTree:
    """Remote operations used by the sync engine.

    Wraps PCloudClient and turns raw API payloads into RemoteFile and
    RemoteFolder values.
    """

    def __init__(self, client: PCloudClient):
        """Initialize remote tree access.

        Args:
            client: pCloud API client
        """
        self.client = client

    def list(self, folder_id: int) -> RemoteFolder:
        """Fetch a folder with its immediate children."""
        data = self.client.list_folder(folder_id)
        return folder_from_metadata(data.get("metadata") or {})

    def create_folder(
        self, name: str, parent_id: int, ignore_exists: bool = False
    ) -> RemoteFolder:
        """Create a folder, or return the existing one with ``ignore_exists``."""
        data = self.client.create_folder(name, parent_id, ignore_exists=ignore_exists)
        return folder_from_metadata(data.get("metadata") or {})

    def delete_file(self, file_id: int) -> None:
        self.client.delete_file(file_id)

    def delete_folder_recursive(self, folder_id: int) -> None:
        data = self.client.delete_folder_recursive(folder_id)
        logger.debug(
            "Deleted folder %s: %s file(s), %s folder(s)",
            folder_id,
            data.get("deletedfiles"),
            data.get("deletedfolders"),
        )

    def upload(
        self,
        name: str,
        parent_id: int,
        source: IO[bytes],
        allow_partial: bool = False,
    ) -> RemoteFile:
        """Upload a byte stream as ``name`` into ``parent_id``.

        With ``allow_partial`` false the server is asked to discard the
        file if the upload does not complete.
        """
        data = self.client.upload_file(
            source, name, parent_id, no_partial=not allow_partial
        )
        metadata = data.get("metadata") or []
        if not metadata:
            raise PCloudUnavailableError(f"Upload of '{name}' returned no metadata")
        return file_from_metadata(metadata[0])

    def download(
        self,
        file_id: int,
        sink: IO[bytes],
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> int:
        """Stream a file into ``sink`` and return the number of bytes written."""
        return self.client.download_file(
            file_id, sink, progress_callback=progress_callback
        )

    def file_checksum(self, file_id: int) -> FileChecksums:
        return FileChecksums.from_api_response(self.client.checksum_file(file_id))
