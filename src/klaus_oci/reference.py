"""Reference string helpers.

The reference grammar is ``repository[:tag]`` or ``repository@digest``,
where ``repository`` is ``host[:port]/path``. A tag or digest can only
appear after the last ``/``, so a port number in the host part is never
mistaken for a tag.

Example:
    >>> split_reference("localhost:5000/plugins/gs-base:v1.0.0")
    ('localhost:5000/plugins/gs-base', 'v1.0.0', '')
    >>> repository_from_ref("localhost:5000/plugins/gs-base")
    'localhost:5000/plugins/gs-base'
    >>> short_name("gsoci.azurecr.io/giantswarm/klaus-plugins/gs-base:v1.0.0")
    'gs-base'
"""

from __future__ import annotations

LATEST_TAG = "latest"
"""Sentinel tag that always triggers semver resolution."""

_DIGEST_DISPLAY_LENGTH = 12


def split_reference(ref: str) -> tuple[str, str, str]:
    """Split a reference into repository, tag and digest.

    Args:
        ref: A reference string.

    Returns:
        A ``(repository, tag, digest)`` tuple. At most one of tag and
        digest is non-empty.
    """
    slash = ref.rfind("/")
    head, last = ref[: slash + 1], ref[slash + 1 :]

    if "@" in last:
        name, digest = last.split("@", 1)
        return head + name, "", digest
    if ":" in last:
        name, tag = last.rsplit(":", 1)
        return head + name, tag, ""
    return ref, "", ""


def split_name_tag(ref: str) -> tuple[str, str]:
    """Split a reference into its name and tag.

    The tag is empty when the reference has none or is digest-pinned.
    """
    repository, tag, _ = split_reference(ref)
    return repository, tag


def repository_from_ref(ref: str) -> str:
    """Strip any tag or digest, returning the bare repository."""
    return split_reference(ref)[0]


def extract_tag(ref: str) -> str:
    """Return the tag portion of a reference, or an empty string."""
    return split_reference(ref)[1]


def has_digest(ref: str) -> bool:
    return bool(split_reference(ref)[2])


def has_tag_or_digest(ref: str) -> bool:
    _, tag, digest = split_reference(ref)
    return bool(tag or digest)


def registry_host(ref: str) -> str:
    """Return the registry host (with port) of a reference."""
    return ref.split("/", 1)[0]


def short_name(ref: str) -> str:
    """Return the last path segment of a reference's repository.

    Example:
        >>> short_name("gsoci.azurecr.io/giantswarm/klaus-toolchains/go@sha256:abc")
        'go'
    """
    repository = repository_from_ref(ref)
    return repository.rsplit("/", 1)[-1]


def truncate_digest(digest: str) -> str:
    """Shorten a digest for display: algorithm prefix stripped, 12 hex chars.

    Example:
        >>> truncate_digest("sha256:e3b0c44298fc1c149afbf4c8996fb924")
        'e3b0c44298fc'
    """
    _, _, hex_part = digest.rpartition(":")
    return hex_part[:_DIGEST_DISPLAY_LENGTH]


def split_registry_base(registry_base: str) -> tuple[str, str]:
    """Split a registry base into host and repository prefix.

    The prefix keeps a trailing "/" so it can be matched against catalog
    entries directly. A bare host yields an empty prefix.

    Example:
        >>> split_registry_base("gsoci.azurecr.io/giantswarm/klaus-plugins")
        ('gsoci.azurecr.io', 'giantswarm/klaus-plugins/')
        >>> split_registry_base("localhost:5000")
        ('localhost:5000', '')
    """
    host, _, path = registry_base.strip().rstrip("/").partition("/")
    if not path:
        return host, ""
    return host, path + "/"


__all__ = [
    "LATEST_TAG",
    "extract_tag",
    "has_digest",
    "has_tag_or_digest",
    "registry_host",
    "repository_from_ref",
    "short_name",
    "split_name_tag",
    "split_reference",
    "split_registry_base",
    "truncate_digest",
]
