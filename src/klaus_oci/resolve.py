"""Reference resolution: loose identifiers to fully-qualified references.

Callers type artifact identifiers loosely: a short name ("gs-base"), a
short name with a tag ("gs-base:v1.0.0"), a full repository, or a
digest pin. Resolution turns each into ``repository:tag`` or
``repository@digest``, listing tags only when the newest semver tag has
to be looked up.

Resolution Rules (in order):
    1. Trim whitespace; an empty identifier is an error
    2. No "/" means a short name, expanded under the registry base
    3. A digest is returned unchanged
    4. A tag other than "latest" is returned unchanged
    5. Otherwise the highest semver tag of the repository is appended

Example:
    >>> resolve_artifact_ref(lister, "gs-base", "example.com/klaus-plugins")
    'example.com/klaus-plugins/gs-base:v0.0.3'
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, TypeVar, runtime_checkable

import structlog

from klaus_oci.errors import InvalidReferenceError, NoSemverTagsError, ReferenceResolutionError
from klaus_oci.reference import LATEST_TAG, split_reference
from klaus_oci.schemas import ArtifactReference
from klaus_oci.semver import highest_version

logger = structlog.get_logger(__name__)

RefT = TypeVar("RefT", bound=ArtifactReference)


@runtime_checkable
class TagLister(Protocol):
    """The one transport capability reference resolution needs."""

    def list_tags(self, repository: str) -> list[str]:
        """Return all tags of ``repository``."""
        ...


def resolve_latest_version(lister: TagLister, repository: str) -> str:
    """Pin a repository to its highest semver tag.

    Args:
        lister: Source of the repository's tags.
        repository: Repository without tag or digest.

    Returns:
        ``repository:<highest semver tag>``.

    Raises:
        NoSemverTagsError: If the repository has no valid semver tag.
        OCIError: If listing tags fails (propagated from the transport).
    """
    tags = lister.list_tags(repository)
    latest = highest_version(tags)
    if not latest:
        raise NoSemverTagsError(repository, tags)

    logger.debug("latest_version_resolved", repository=repository, tag=latest, tag_count=len(tags))
    return f"{repository}:{latest}"


def resolve_artifact_ref(lister: TagLister, identifier: str, registry_base: str) -> str:
    """Resolve a loose artifact identifier to a fully-qualified reference.

    A port in the registry host ("localhost:5000/repo") is never taken
    for a tag, since tag and digest are only looked for after the last "/".

    Args:
        lister: Source of tags, consulted only when a semver lookup is needed.
        identifier: Short name, short name with tag, or full reference.
        registry_base: Registry base that short names are expanded under.

    Returns:
        ``repository:tag`` or ``repository@digest``.

    Raises:
        InvalidReferenceError: If the identifier is empty or whitespace.
        NoSemverTagsError: If a lookup is needed and no semver tag exists.
    """
    identifier = identifier.strip()
    if not identifier:
        raise InvalidReferenceError("", "empty artifact reference")

    repository, tag, digest = split_reference(identifier)
    if "/" not in identifier:
        repository = f"{registry_base.rstrip('/')}/{repository}"

    if digest:
        return f"{repository}@{digest}"
    if tag and tag != LATEST_TAG:
        return f"{repository}:{tag}"

    return resolve_latest_version(lister, repository)


def resolve_references(lister: TagLister, refs: Sequence[RefT]) -> list[RefT]:
    """Pin a batch of dependency references to concrete tags.

    Entries carrying a digest or a tag other than "latest" pass through
    as they are; the rest are pinned to their highest semver tag. The
    input sequence and its elements are left untouched.

    Args:
        lister: Source of tags.
        refs: References to resolve.

    Returns:
        A new list, in input order.

    Raises:
        ReferenceResolutionError: On the first entry that cannot be resolved.
    """
    resolved: list[RefT] = []
    for ref in refs:
        if not ref.needs_resolution:
            resolved.append(ref)
            continue

        try:
            pinned = resolve_latest_version(lister, ref.repository)
        except Exception as e:
            logger.warning("reference_resolve_failed", repository=ref.repository, error=str(e))
            raise ReferenceResolutionError(ref.repository, e) from e

        resolved.append(ref.with_tag(split_reference(pinned)[1]))

    return resolved


__all__ = [
    "TagLister",
    "resolve_artifact_ref",
    "resolve_latest_version",
    "resolve_references",
]
