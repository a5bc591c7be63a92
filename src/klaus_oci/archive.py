"""Secure packing and unpacking of artifact content layers.

Content layers are gzip-compressed tar streams. Packing walks a source
directory and never follows symlinks, so a link planted inside the
directory cannot pull outside files into a pushed layer. Unpacking
treats every layer as untrusted registry content:

    - Entries whose cleaned name is absolute or starts with ".." are rejected
    - Entries whose joined target leaves the destination are rejected
    - Regular files larger than MAX_FILE_SIZE are rejected
    - Symlinks, hard links and device entries are skipped

Example:
    >>> data = pack_directory(Path("plugins/gs-base"))
    >>> unpack_archive(io.BytesIO(data), Path("/tmp/gs-base"))
"""

from __future__ import annotations

import io
import os
import posixpath
import shutil
import tarfile
from collections.abc import Iterator
from pathlib import Path
from typing import IO

import structlog

from klaus_oci.cache import CACHE_FILE_NAME
from klaus_oci.errors import ArchiveError, ArchiveFileTooLargeError, UnsafeArchivePathError

logger = structlog.get_logger(__name__)

MAX_FILE_SIZE = 100 * 1024 * 1024
"""Ceiling in bytes for a single extracted file (100 MiB)."""

_COPY_CHUNK_SIZE = 64 * 1024
_DEFAULT_FILE_MODE = 0o644
_DIR_MODE = 0o755
_EXCLUDED_FILE_NAMES = frozenset({CACHE_FILE_NAME, f"{CACHE_FILE_NAME}.tmp"})


# =============================================================================
# Packing
# =============================================================================


def _walk(root: Path, current: Path) -> Iterator[tuple[Path, str]]:
    """Yield (path, archive name) pairs depth-first in sorted order."""
    for entry in sorted(current.iterdir(), key=lambda p: p.name):
        if entry.is_symlink():
            continue
        arcname = entry.relative_to(root).as_posix()
        if entry.is_dir():
            yield entry, arcname
            yield from _walk(root, entry)
        elif entry.is_file():
            if entry.name in _EXCLUDED_FILE_NAMES:
                continue
            yield entry, arcname


def pack_directory(source_dir: Path) -> bytes:
    """Pack a directory into a gzip-compressed tar stream.

    Only directories and regular files are written. Digest cache side
    files (and their temporary siblings) are left out at any depth, so
    re-pushing a pulled tree never leaks cache metadata into the registry.

    Args:
        source_dir: Directory to pack.

    Returns:
        The compressed archive bytes.

    Raises:
        ArchiveError: If the directory cannot be read.
    """
    source_dir = Path(source_dir)
    buffer = io.BytesIO()
    count = 0

    try:
        with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
            for path, arcname in _walk(source_dir, source_dir):
                info = tar.gettarinfo(str(path), arcname=arcname)
                if info.isdir():
                    tar.addfile(info)
                else:
                    with path.open("rb") as f:
                        tar.addfile(info, f)
                count += 1
    except OSError as e:
        raise ArchiveError(str(source_dir), f"packing directory failed: {e}") from e

    logger.debug("directory_packed", source=str(source_dir), entries=count, size=buffer.tell())
    return buffer.getvalue()


# =============================================================================
# Unpacking
# =============================================================================


def _safe_target(dest_dir: Path, name: str) -> Path:
    """Return the extraction target for an entry name, or raise."""
    cleaned = posixpath.normpath(name.replace("\\", "/"))
    if cleaned.startswith("/") or cleaned == ".." or cleaned.startswith("../"):
        raise UnsafeArchivePathError(name)

    root = os.path.abspath(dest_dir)
    target = os.path.abspath(os.path.join(root, cleaned))
    if os.path.commonpath([root, target]) != root:
        raise UnsafeArchivePathError(name)
    return Path(target)


def _copy_limited(src: IO[bytes], dst: IO[bytes], limit: int) -> int:
    """Copy at most ``limit`` bytes and return how many were copied."""
    copied = 0
    while copied < limit:
        chunk = src.read(min(_COPY_CHUNK_SIZE, limit - copied))
        if not chunk:
            break
        dst.write(chunk)
        copied += len(chunk)
    return copied


def _extract_file(tar: tarfile.TarFile, member: tarfile.TarInfo, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    mode = (member.mode & 0o777) or _DEFAULT_FILE_MODE

    source = tar.extractfile(member)
    if source is None:
        return

    fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with source, os.fdopen(fd, "wb") as out:
        copied = _copy_limited(source, out, MAX_FILE_SIZE + 1)

    if copied > MAX_FILE_SIZE:
        target.unlink(missing_ok=True)
        raise ArchiveFileTooLargeError(member.name, MAX_FILE_SIZE)


def unpack_archive(stream: IO[bytes], dest_dir: Path) -> None:
    """Extract a gzip-compressed tar stream into ``dest_dir``.

    The stream is read sequentially and need not be seekable. Extraction
    stops at the first rejected entry; files already written before it
    are left in place.

    Args:
        stream: Readable binary stream holding the archive.
        dest_dir: Destination directory (created if missing).

    Raises:
        UnsafeArchivePathError: If an entry would land outside ``dest_dir``.
        ArchiveFileTooLargeError: If a file exceeds MAX_FILE_SIZE.
        ArchiveError: If the stream is not a valid gzip tar archive or
            cannot be written.
    """
    dest_dir = Path(dest_dir)
    log = logger.bind(dest=str(dest_dir))

    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
        with tarfile.open(fileobj=stream, mode="r|gz") as tar:
            for member in tar:
                target = _safe_target(dest_dir, member.name)
                if member.isdir():
                    target.mkdir(mode=_DIR_MODE, parents=True, exist_ok=True)
                elif member.isreg():
                    _extract_file(tar, member, target)
                else:
                    log.debug("archive_entry_skipped", entry=member.name, type=member.type)
    except (tarfile.TarError, EOFError) as e:
        raise ArchiveError(str(dest_dir), f"reading archive failed: {e}") from e
    except OSError as e:
        raise ArchiveError(str(dest_dir), f"extracting archive failed: {e}") from e

    log.debug("archive_unpacked")


def clean_and_create(directory: Path) -> None:
    """Remove ``directory`` if it exists, then recreate it empty.

    Raises:
        ArchiveError: If the directory cannot be removed or created.
    """
    directory = Path(directory)
    try:
        if directory.is_symlink() or directory.is_file():
            directory.unlink()
        elif directory.exists():
            shutil.rmtree(directory)
        directory.mkdir(mode=_DIR_MODE, parents=True)
    except OSError as e:
        raise ArchiveError(str(directory), f"preparing destination failed: {e}") from e


__all__ = [
    "MAX_FILE_SIZE",
    "clean_and_create",
    "pack_directory",
    "unpack_archive",
]
