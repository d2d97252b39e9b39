"""Unit tests for utility functions."""

import hashlib
from datetime import datetime, timedelta, timezone

import pytest

from pypcloud.utils import (
    calculate_file_checksum,
    format_size,
    format_timestamp,
    parse_pcloud_timestamp,
)


class TestParsePCloudTimestamp:
    """Tests for parse_pcloud_timestamp function."""

    def test_rfc2822(self):
        """Test the default pCloud date format."""
        result = parse_pcloud_timestamp("Thu, 19 Sep 2013 07:31:46 +0000")
        assert result == datetime(2013, 9, 19, 7, 31, 46, tzinfo=timezone.utc)

    def test_rfc2822_with_offset(self):
        result = parse_pcloud_timestamp("Thu, 19 Sep 2013 09:31:46 +0200")
        assert result is not None
        assert result.utcoffset() == timedelta(hours=2)
        assert result == datetime(2013, 9, 19, 7, 31, 46, tzinfo=timezone.utc)

    def test_iso_fallback(self):
        result = parse_pcloud_timestamp("2013-09-19T07:31:46Z")
        assert result == datetime(2013, 9, 19, 7, 31, 46, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_unparseable(self, value):
        assert parse_pcloud_timestamp(value) is None


class TestFormatting:
    """Tests for the display helpers."""

    @pytest.mark.parametrize(
        "size,expected",
        [
            (0, "0 B"),
            (1023, "1023 B"),
            (1536, "1.5 KB"),
            (5 * 1024 * 1024, "5.0 MB"),
            (3 * 1024**3, "3.0 GB"),
        ],
    )
    def test_format_size(self, size, expected):
        assert format_size(size) == expected

    def test_format_timestamp(self):
        value = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert format_timestamp(value) == "2024-01-02 03:04:05"
        assert format_timestamp(None) == "-"


class TestCalculateFileChecksum:
    """Tests for calculate_file_checksum function."""

    def test_default_is_sha256(self, tmp_path):
        path = tmp_path / "a.bin"
        path.write_bytes(b"abc")
        assert calculate_file_checksum(path) == hashlib.sha256(b"abc").hexdigest()

    @pytest.mark.parametrize("algorithm", ["sha1", "md5"])
    def test_other_algorithms(self, tmp_path, algorithm):
        path = tmp_path / "a.bin"
        path.write_bytes(b"abc")
        expected = hashlib.new(algorithm, b"abc").hexdigest()
        assert calculate_file_checksum(path, algorithm) == expected

    def test_reads_in_chunks(self, tmp_path):
        data = bytes(range(256)) * 100
        path = tmp_path / "big.bin"
        path.write_bytes(data)
        result = calculate_file_checksum(path, "sha1", chunk_size=7)
        assert result == hashlib.sha1(data).hexdigest()

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty"
        path.write_bytes(b"")
        assert calculate_file_checksum(path) == (
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
        )

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            calculate_file_checksum(tmp_path / "missing")
