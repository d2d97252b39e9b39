"""Shared fixtures for pypcloud tests."""

import hashlib
import itertools
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Union
from unittest.mock import Mock

import pytest

from pypcloud.exceptions import PCloudRejectedError, PCloudUnavailableError
from pypcloud.models import FileChecksums, RemoteFile, RemoteFolder
from pypcloud.output import OutputFormatter


@dataclass
class FakeFile:
    file_id: int
    name: str
    content: bytes


class FakeRemoteTree:
    """In-memory stand-in for RemoteTree.

    Folder 0 is the root. ``fail_uploads``/``fail_downloads`` make the next
    N transfer attempts raise PCloudUnavailableError.
    """

    def __init__(self, with_sha256: bool = True):
        self._ids = itertools.count(100)
        self.with_sha256 = with_sha256
        self.folders: dict[int, dict[str, Union[int, FakeFile]]] = {0: {}}
        self.folder_names: dict[int, str] = {0: "/"}
        self.fail_uploads = 0
        self.fail_downloads = 0
        self.upload_attempts = 0
        self.download_attempts = 0
        self.uploaded: list[str] = []
        self.upload_partial_flags: list[bool] = []

    # -- helpers for tests --

    def add_folder(self, parent_id: int, name: str) -> int:
        folder_id = next(self._ids)
        self.folders[folder_id] = {}
        self.folder_names[folder_id] = name
        self.folders[parent_id][name] = folder_id
        return folder_id

    def add_file(self, parent_id: int, name: str, content: bytes = b"") -> int:
        file_id = next(self._ids)
        self.folders[parent_id][name] = FakeFile(file_id, name, content)
        return file_id

    def paths(self, folder_id: int = 0, prefix: str = "") -> set[str]:
        """Relative paths of all files below a folder."""
        result: set[str] = set()
        for name, child in self.folders[folder_id].items():
            if isinstance(child, FakeFile):
                result.add(f"{prefix}/{name}")
            else:
                result |= self.paths(child, f"{prefix}/{name}")
        return result

    def read(self, folder_id: int, path: str) -> bytes:
        *dirs, name = path.strip("/").split("/")
        for part in dirs:
            child = self.folders[folder_id][part]
            assert isinstance(child, int)
            folder_id = child
        child = self.folders[folder_id][name]
        assert isinstance(child, FakeFile)
        return child.content

    def _find_file(self, file_id: int) -> tuple[int, FakeFile]:
        for folder_id, children in self.folders.items():
            for child in children.values():
                if isinstance(child, FakeFile) and child.file_id == file_id:
                    return folder_id, child
        raise PCloudRejectedError(2009, "File not found.")

    # -- RemoteTree interface --

    def list(self, folder_id: int) -> RemoteFolder:
        if folder_id not in self.folders:
            raise PCloudRejectedError(2005, "Directory does not exist.")
        contents: list[Union[RemoteFile, RemoteFolder]] = []
        for name, child in self.folders[folder_id].items():
            if isinstance(child, FakeFile):
                contents.append(
                    RemoteFile(child.file_id, name, size=len(child.content))
                )
            else:
                contents.append(RemoteFolder(child, name))
        name = self.folder_names[folder_id]
        return RemoteFolder(folder_id, name, None, tuple(contents))

    def create_folder(
        self, name: str, parent_id: int, ignore_exists: bool = False
    ) -> RemoteFolder:
        existing = self.folders[parent_id].get(name)
        if existing is not None:
            if ignore_exists and isinstance(existing, int):
                return RemoteFolder(existing, name)
            raise PCloudRejectedError(2004, "File or folder alredy exists.")
        return RemoteFolder(self.add_folder(parent_id, name), name)

    def delete_file(self, file_id: int) -> None:
        folder_id, fake = self._find_file(file_id)
        del self.folders[folder_id][fake.name]

    def delete_folder_recursive(self, folder_id: int) -> None:
        for children in self.folders.values():
            for name, child in list(children.items()):
                if child == folder_id and not isinstance(child, FakeFile):
                    del children[name]
        for child in list(self.folders[folder_id].values()):
            if isinstance(child, int):
                self.delete_folder_recursive(child)
        del self.folders[folder_id]

    def upload(
        self,
        name: str,
        parent_id: int,
        source: IO[bytes],
        allow_partial: bool = False,
    ) -> RemoteFile:
        self.upload_attempts += 1
        self.upload_partial_flags.append(allow_partial)
        if self.fail_uploads > 0:
            self.fail_uploads -= 1
            raise PCloudUnavailableError("connection reset")
        content = source.read()
        file_id = self.add_file(parent_id, name, content)
        self.uploaded.append(name)
        return RemoteFile(file_id, name, size=len(content))

    def download(self, file_id: int, sink: IO[bytes], progress_callback=None) -> int:
        self.download_attempts += 1
        _, fake = self._find_file(file_id)
        if self.fail_downloads > 0:
            self.fail_downloads -= 1
            sink.write(fake.content[:1])
            raise PCloudUnavailableError("connection reset")
        sink.write(fake.content)
        return len(fake.content)

    def file_checksum(self, file_id: int) -> FileChecksums:
        _, fake = self._find_file(file_id)
        return FileChecksums(
            sha1=hashlib.sha1(fake.content).hexdigest(),
            sha256=(
                hashlib.sha256(fake.content).hexdigest() if self.with_sha256 else None
            ),
        )


def write_file(path: Path, content: str = "content") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def local_paths(root: Path) -> set[str]:
    """Relative paths of all files below a local directory."""
    return {
        "/" + p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file()
    }


@pytest.fixture
def remote() -> FakeRemoteTree:
    return FakeRemoteTree()


@pytest.fixture
def mock_output():
    """Create a mock output formatter."""
    output = Mock(spec=OutputFormatter)
    output.quiet = True
    output.json_output = False
    return output


@pytest.fixture
def sample_tree(tmp_path: Path) -> dict[str, Path]:
    """Local tree with /foo.txt, /first/foo.txt and /first/second/foo.txt."""
    root = tmp_path / "local"
    root.mkdir()
    return {
        "root": root,
        "root_file": write_file(root / "foo.txt", "root"),
        "first_file": write_file(root / "first" / "foo.txt", "first"),
        "second_file": write_file(root / "first" / "second" / "foo.txt", "second"),
    }
