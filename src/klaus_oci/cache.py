"""Digest cache for pulled artifact directories.

Each pulled directory carries a side file recording the manifest digest
it was populated from. Before transferring a content layer, a pull
checks is_fresh(); a match means the directory is current and the
transfer is skipped. The side file also keeps the raw config blob and
manifest annotations, so metadata stays available on a cache hit.

The side file is excluded from archive packing.

Cache Layout:
    <dest_dir>/
    ├── .oci-cache.json      # CacheRecord (digest, ref, pulledAt, configJSON, annotations)
    └── ...                  # Extracted artifact content

Example:
    >>> write_cache_record(dest, CacheRecord(digest="sha256:abc", ref=ref))
    >>> is_fresh(dest, "sha256:abc")
    True
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path

import structlog
from pydantic import ValidationError

from klaus_oci.errors import CacheError
from klaus_oci.schemas import CacheRecord

logger = structlog.get_logger(__name__)

CACHE_FILE_NAME = ".oci-cache.json"
"""Name of the side file inside each pulled directory."""


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def cache_path(directory: Path) -> Path:
    return Path(directory) / CACHE_FILE_NAME


def read_cache_record(directory: Path) -> CacheRecord:
    """Read the cache record of a pulled directory.

    Args:
        directory: The pulled directory.

    Returns:
        The stored CacheRecord.

    Raises:
        CacheError: If the record is missing, unreadable or corrupt.
    """
    path = cache_path(directory)
    try:
        data = path.read_text(encoding="utf-8")
    except OSError as e:
        raise CacheError("read", f"Failed to read cache record: {e}", str(path)) from e

    try:
        return CacheRecord.model_validate_json(data)
    except ValidationError as e:
        raise CacheError("read", f"Corrupt cache record: {e}", str(path)) from e


def write_cache_record(directory: Path, record: CacheRecord) -> CacheRecord:
    """Persist a cache record, stamped with the current time.

    The file is written to a temporary name and renamed into place, so a
    reader never observes a half-written record.

    Args:
        directory: The pulled directory.
        record: Record to store. Its ``pulled_at`` is replaced.

    Returns:
        The record as written.

    Raises:
        CacheError: If the write fails.
    """
    stamped = record.model_copy(update={"pulled_at": _utc_now()})
    path = cache_path(directory)
    temp_path = path.with_name(path.name + ".tmp")

    try:
        temp_path.write_text(stamped.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        os.replace(temp_path, path)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise CacheError("write", f"Failed to write cache record: {e}", str(path)) from e

    logger.debug("cache_record_written", path=str(path), digest=stamped.digest)
    return stamped


def is_fresh(directory: Path, digest: str) -> bool:
    """Check whether a directory already holds the content for ``digest``.

    A missing or unreadable record counts as not fresh.

    Args:
        directory: The pulled directory.
        digest: Manifest digest the caller is about to pull.

    Returns:
        True if the stored digest equals ``digest``.
    """
    try:
        record = read_cache_record(directory)
    except CacheError as e:
        logger.debug("cache_miss", path=str(cache_path(directory)), reason=e.reason)
        return False

    fresh = record.digest == digest
    logger.debug("cache_hit" if fresh else "cache_stale", path=str(directory), digest=digest)
    return fresh


__all__ = [
    "CACHE_FILE_NAME",
    "cache_path",
    "is_fresh",
    "read_cache_record",
    "write_cache_record",
]
