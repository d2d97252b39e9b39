"""API client for pCloud."""

from __future__ import annotations

import logging
from typing import IO, Any, Callable

import httpx

from .config import Config
from .exceptions import PCloudRejectedError, PCloudUnavailableError

logger = logging.getLogger(__name__)


class PCloudClient:
    """Client for interacting with the pCloud JSON API.

    Every method returns the decoded JSON payload of a successful call
    (``result == 0``). Failures are raised as PCloudUnavailableError for
    transport problems and PCloudRejectedError for error payloads.
    """

    def __init__(
        self,
        config: Config,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize pCloud API client.

        Args:
            config: Region and credentials
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport (used by tests)
        """
        self.config = config
        self.api_url = config.api_url
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def _request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        http_method: str = "GET",
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Call an API method and unwrap the result code.

        Args:
            method: pCloud method name (e.g. "listfolder")
            params: Method parameters (authentication is added here)
            http_method: HTTP verb
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON object

        Raises:
            PCloudUnavailableError: On network, HTTP status or decoding errors
            PCloudRejectedError: When the response carries a non-zero result
        """
        url = f"{self.api_url}/{method}"
        query = dict(self.config.auth_params())
        if params:
            query.update(params)

        try:
            response = self._get_client().request(
                http_method, url, params=query, **kwargs
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PCloudUnavailableError(
                f"{method} failed with status {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise PCloudUnavailableError(f"Network error during {method}: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise PCloudUnavailableError(
                f"Invalid JSON response from {method}"
            ) from e

        if not isinstance(data, dict) or "result" not in data:
            raise PCloudUnavailableError(f"Unexpected response format from {method}")

        result = data["result"]
        if result != 0:
            message = str(data.get("error", "unknown error"))
            logger.debug("%s returned error %s: %s", method, result, message)
            raise PCloudRejectedError(int(result), message)

        return data

    # =========================
    # Folder Operations
    # =========================

    def list_folder(self, folder_id: int, recursive: bool = False) -> dict[str, Any]:
        """List a folder.

        Args:
            folder_id: ID of the folder (0 is the root)
            recursive: Return the full tree instead of the immediate children

        Returns:
            Response with a 'metadata' key holding the folder and its 'contents'
        """
        params: dict[str, Any] = {"folderid": folder_id}
        if recursive:
            params["recursive"] = 1
        return self._request("listfolder", params)

    def create_folder(
        self, name: str, parent_id: int, ignore_exists: bool = False
    ) -> dict[str, Any]:
        """Create a folder.

        Args:
            name: Name of the new folder
            parent_id: ID of the parent folder
            ignore_exists: Return the existing folder instead of failing
                when one with the same name is already there

        Returns:
            Response with a 'metadata' key holding the folder
        """
        method = "createfolderifnotexists" if ignore_exists else "createfolder"
        return self._request(method, {"name": name, "folderid": parent_id})

    def delete_folder_recursive(self, folder_id: int) -> dict[str, Any]:
        """Delete a folder with everything below it.

        Returns:
            Response with 'deletedfiles' and 'deletedfolders' counts
        """
        return self._request("deletefolderrecursive", {"folderid": folder_id})

    # =========================
    # File Operations
    # =========================

    def upload_file(
        self,
        source: IO[bytes],
        filename: str,
        folder_id: int,
        no_partial: bool = True,
    ) -> dict[str, Any]:
        """Upload file content into a folder.

        Args:
            source: Binary stream to upload
            filename: Name of the file in pCloud
            folder_id: ID of the destination folder
            no_partial: Ask the server to drop the file if the upload breaks

        Returns:
            Response with 'fileids' and a 'metadata' list
        """
        params: dict[str, Any] = {"folderid": folder_id, "filename": filename}
        if no_partial:
            params["nopartial"] = 1
        return self._request(
            "uploadfile",
            params,
            http_method="POST",
            files={"file": (filename, source, "application/octet-stream")},
        )

    def delete_file(self, file_id: int) -> dict[str, Any]:
        """Delete a file."""
        return self._request("deletefile", {"fileid": file_id})

    def rename_file(self, file_id: int, name: str) -> dict[str, Any]:
        """Rename a file in place."""
        return self._request("renamefile", {"fileid": file_id, "toname": name})

    def copy_file(self, file_id: int, to_folder_id: int) -> dict[str, Any]:
        """Copy a file into another folder."""
        return self._request(
            "copyfile", {"fileid": file_id, "tofolderid": to_folder_id}
        )

    def checksum_file(self, file_id: int) -> dict[str, Any]:
        """Get the checksums of a file.

        Returns:
            Response with 'sha1' and, depending on region, 'sha256' or 'md5'
        """
        return self._request("checksumfile", {"fileid": file_id})

    def get_file_link(self, file_id: int) -> str:
        """Get a direct download URL for a file."""
        data = self._request("getfilelink", {"fileid": file_id})
        hosts = data.get("hosts") or []
        path = data.get("path")
        if not hosts or not path:
            raise PCloudUnavailableError("getfilelink returned no download host")
        return f"https://{hosts[0]}{path}"

    # =========================
    # Download Operations
    # =========================

    def download_file(
        self,
        file_id: int,
        sink: IO[bytes],
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> int:
        """Stream a file's content into a writable binary sink.

        The sink is not truncated or rolled back when the transfer fails.

        Args:
            file_id: ID of the file to download
            sink: Writable binary stream
            progress_callback: Optional callback function(bytes_downloaded,
                total_bytes)

        Returns:
            Number of bytes written
        """
        url = self.get_file_link(file_id)
        client = self._get_client()

        try:
            with client.stream("GET", url) as response:
                response.raise_for_status()
                total_size = int(response.headers.get("Content-Length", 0))
                bytes_downloaded = 0

                for chunk in response.iter_bytes(chunk_size=8192):
                    if chunk:
                        sink.write(chunk)
                        bytes_downloaded += len(chunk)
                        if progress_callback:
                            progress_callback(bytes_downloaded, total_size)

                return bytes_downloaded

        except httpx.HTTPStatusError as e:
            raise PCloudUnavailableError(f"Download failed: {e}") from e
        except httpx.RequestError as e:
            raise PCloudUnavailableError(f"Network error during download: {e}") from e
