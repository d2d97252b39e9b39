"""Tests for the remote data models."""

from datetime import datetime, timezone

import pytest

from pypcloud.exceptions import PCloudUnavailableError
from pypcloud.models import (
    FileChecksums,
    RemoteFile,
    RemoteFolder,
    entry_from_metadata,
    file_from_metadata,
    folder_from_metadata,
)


class TestEntryFromMetadata:
    """Tests for entry_from_metadata."""

    def test_file(self):
        entry = entry_from_metadata(
            {
                "isfolder": False,
                "fileid": "12",
                "name": "a.txt",
                "size": 10,
                "modified": "Thu, 19 Sep 2013 07:31:46 +0000",
            }
        )

        assert entry == RemoteFile(
            12,
            "a.txt",
            modified=datetime(2013, 9, 19, 7, 31, 46, tzinfo=timezone.utc),
            size=10,
        )
        assert entry.id == 12

    def test_folder_with_nested_contents(self):
        entry = entry_from_metadata(
            {
                "isfolder": True,
                "folderid": 1,
                "name": "top",
                "contents": [
                    {
                        "isfolder": True,
                        "folderid": 2,
                        "name": "inner",
                        "contents": [{"fileid": 3, "name": "x"}],
                    }
                ],
            }
        )

        assert isinstance(entry, RemoteFolder)
        inner = entry.children()["inner"]
        assert isinstance(inner, RemoteFolder)
        assert inner.find_file("x") == RemoteFile(3, "x")

    def test_missing_id(self):
        with pytest.raises(PCloudUnavailableError, match="Malformed"):
            entry_from_metadata({"isfolder": True, "name": "top"})

    def test_folder_from_file_metadata(self):
        with pytest.raises(PCloudUnavailableError, match="Expected a folder"):
            folder_from_metadata({"fileid": 1, "name": "a.txt"})

    def test_file_from_folder_metadata(self):
        with pytest.raises(PCloudUnavailableError, match="Expected a file"):
            file_from_metadata({"isfolder": True, "folderid": 1, "name": "a"})


class TestRemoteFolder:
    """Tests for RemoteFolder helpers."""

    def test_children_without_contents(self):
        assert RemoteFolder(1, "a").children() == {}

    def test_find_file_ignores_folders(self):
        folder = RemoteFolder(1, "a", contents=(RemoteFolder(2, "b"),))
        assert folder.find_file("b") is None
        assert folder.find_file("missing") is None


class TestFileChecksums:
    """Tests for FileChecksums."""

    def test_from_api_response(self):
        checksums = FileChecksums.from_api_response(
            {"result": 0, "sha1": "aa", "md5": "bb", "metadata": {}}
        )
        assert checksums == FileChecksums(sha1="aa", md5="bb")

    def test_preferred_order(self):
        assert FileChecksums(sha1="a", sha256="B", md5="c").preferred() == (
            "sha256",
            "b",
        )
        assert FileChecksums(sha1="A", md5="c").preferred() == ("sha1", "a")
        assert FileChecksums(md5="c").preferred() == ("md5", "c")
        assert FileChecksums().preferred() is None
