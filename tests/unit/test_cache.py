"""Unit tests for the digest cache side file."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from klaus_oci.cache import (
    CACHE_FILE_NAME,
    cache_path,
    is_fresh,
    read_cache_record,
    write_cache_record,
)
from klaus_oci.errors import CacheError
from klaus_oci.schemas import CacheRecord


class TestCacheRecordIO:
    """Tests for read_cache_record and write_cache_record."""

    def test_write_then_read(self, tmp_path: Path, sample_digest: str) -> None:
        record = CacheRecord(
            digest=sample_digest,
            ref="registry.example.com/p/gs-base:v1.0.0",
            config_json=b'{"name":"gs-base"}',
            annotations={"io.giantswarm.klaus.type": "plugin"},
        )

        written = write_cache_record(tmp_path, record)
        stored = read_cache_record(tmp_path)

        assert stored == written
        assert stored.config_json == b'{"name":"gs-base"}'

    def test_write_stamps_pulled_at(self, tmp_path: Path, sample_digest: str) -> None:
        old = datetime(2020, 1, 1, tzinfo=timezone.utc)

        written = write_cache_record(tmp_path, CacheRecord(digest=sample_digest, pulled_at=old))

        assert written.pulled_at > old

    def test_file_uses_wire_names(self, tmp_path: Path, sample_digest: str) -> None:
        write_cache_record(tmp_path, CacheRecord(digest=sample_digest, config_json=b"{}"))

        data = json.loads((tmp_path / CACHE_FILE_NAME).read_text())

        assert set(data) >= {"digest", "pulledAt", "configJSON"}
        assert data["configJSON"] == {}

    def test_no_temp_file_left_behind(self, tmp_path: Path, sample_digest: str) -> None:
        write_cache_record(tmp_path, CacheRecord(digest=sample_digest))

        assert [p.name for p in tmp_path.iterdir()] == [CACHE_FILE_NAME]

    def test_write_failure(self, tmp_path: Path, sample_digest: str) -> None:
        missing = tmp_path / "does-not-exist"

        with pytest.raises(CacheError) as exc_info:
            write_cache_record(missing, CacheRecord(digest=sample_digest))

        assert exc_info.value.operation == "write"

    def test_replace_failure_removes_temp_file(self, tmp_path: Path, sample_digest: str) -> None:
        with patch("klaus_oci.cache.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(CacheError, match="disk full"):
                write_cache_record(tmp_path, CacheRecord(digest=sample_digest))

        assert list(tmp_path.iterdir()) == []

    def test_read_missing(self, tmp_path: Path) -> None:
        with pytest.raises(CacheError) as exc_info:
            read_cache_record(tmp_path)

        assert exc_info.value.operation == "read"
        assert exc_info.value.path == str(cache_path(tmp_path))

    def test_read_corrupt(self, tmp_path: Path) -> None:
        (tmp_path / CACHE_FILE_NAME).write_text("{not json")

        with pytest.raises(CacheError, match="Corrupt cache record"):
            read_cache_record(tmp_path)


class TestIsFresh:
    """Tests for is_fresh."""

    def test_matching_digest(self, tmp_path: Path, sample_digest: str) -> None:
        write_cache_record(tmp_path, CacheRecord(digest=sample_digest))

        assert is_fresh(tmp_path, sample_digest)

    def test_different_digest(self, tmp_path: Path, sample_digest: str) -> None:
        write_cache_record(tmp_path, CacheRecord(digest=sample_digest))

        assert not is_fresh(tmp_path, "sha256:" + "0" * 64)

    def test_missing_record(self, tmp_path: Path, sample_digest: str) -> None:
        assert not is_fresh(tmp_path, sample_digest)

    def test_missing_directory(self, tmp_path: Path, sample_digest: str) -> None:
        assert not is_fresh(tmp_path / "nope", sample_digest)

    def test_corrupt_record(self, tmp_path: Path, sample_digest: str) -> None:
        (tmp_path / CACHE_FILE_NAME).write_text("garbage")

        assert not is_fresh(tmp_path, sample_digest)

    def test_record_with_embedded_config_json(self, tmp_path: Path, sample_digest: str) -> None:
        (tmp_path / CACHE_FILE_NAME).write_text(
            json.dumps(
                {
                    "digest": sample_digest,
                    "ref": "registry.example.com/p/gs-base:v1.0.0",
                    "pulledAt": "2026-01-19T10:00:00Z",
                    "configJSON": {"name": "gs-base"},
                }
            )
        )

        assert is_fresh(tmp_path, sample_digest)
        assert json.loads(read_cache_record(tmp_path).config_json or b"") == {"name": "gs-base"}
