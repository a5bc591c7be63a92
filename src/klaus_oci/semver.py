"""Semantic version selection for OCI tags.

Registries return tags in no particular order and mix release tags with
moving ones ("latest", "main", "dev"). This module keeps only the tags
that parse as semantic versions and orders them by precedence so the
newest release can be picked.

Version Format:
    MAJOR.MINOR.PATCH[-PRERELEASE][+BUILD], optionally prefixed with "v".

Precedence Rules:
    - MAJOR, MINOR and PATCH compare numerically
    - A prerelease sorts below its release: 1.1.0-rc.1 < 1.1.0
    - ...but above the previous release: 1.1.0-rc.1 > 1.0.0
    - Build metadata is ignored

Example:
    >>> from klaus_oci.semver import sorted_versions, highest_version
    >>> sorted_versions(["v0.0.1", "latest", "v0.0.3", "v0.0.2"])
    ['v0.0.3', 'v0.0.2', 'v0.0.1']
    >>> highest_version(["main", "dev"])
    ''
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from functools import total_ordering

SEMVER_PATTERN = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)
"""Pattern matching semantic versioning tags (e.g., v1.0.0, 1.2.3-rc.1+build.5)."""


@total_ordering
@dataclass(frozen=True, eq=False)
class SemanticVersion:
    """A parsed semantic version ordered by precedence.

    Equality and ordering ignore build metadata, so ``1.0.0+a`` and
    ``1.0.0+b`` compare equal.

    Attributes:
        major: Major version number.
        minor: Minor version number.
        patch: Patch version number.
        prerelease: Dot-separated prerelease identifiers (empty for releases).
        build: Build metadata (empty if absent).
    """

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: str = ""

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    def _precedence_key(self) -> tuple[int, int, int, int, tuple[tuple[int, int | str], ...]]:
        # Releases (flag 1) outrank any prerelease (flag 0) of the same core.
        # Numeric identifiers (0, n) sort before alphanumeric ones (1, s).
        identifiers = tuple(
            (0, int(part)) if part.isdigit() else (1, part) for part in self.prerelease
        )
        release_flag = 0 if self.prerelease else 1
        return (self.major, self.minor, self.patch, release_flag, identifiers)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._precedence_key() == other._precedence_key()

    def __lt__(self, other: SemanticVersion) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._precedence_key() < other._precedence_key()

    def __hash__(self) -> int:
        return hash(self._precedence_key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + self.build
        return text


def parse_semver(tag: str) -> SemanticVersion | None:
    """Parse a tag as a semantic version.

    Args:
        tag: Tag string, optionally prefixed with a single "v".

    Returns:
        The parsed version, or None if the tag is not a valid semver.

    Example:
        >>> parse_semver("v1.2.3-rc.1")
        SemanticVersion(major=1, minor=2, patch=3, prerelease=('rc', '1'), build='')
        >>> parse_semver("latest") is None
        True
    """
    match = SEMVER_PATTERN.match(tag)
    if match is None:
        return None

    prerelease = match.group("prerelease")
    return SemanticVersion(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        prerelease=tuple(prerelease.split(".")) if prerelease else (),
        build=match.group("build") or "",
    )


def sorted_versions(tags: Iterable[str]) -> list[str]:
    """Filter tags to valid semantic versions, sorted newest first.

    Non-semver tags are dropped without error. Tags of equal precedence
    (``v1.0.0`` and ``1.0.0``, or differing only in build metadata) are
    ordered by their raw string so the result does not depend on the
    order the registry returned them in.

    Args:
        tags: Tag strings in any order.

    Returns:
        The valid semver tags, in descending precedence.
    """
    parsed = [(version, tag) for tag in tags if (version := parse_semver(tag)) is not None]
    parsed.sort(key=lambda pair: (pair[0], pair[1]), reverse=True)
    return [tag for _, tag in parsed]


def highest_version(tags: Iterable[str]) -> str:
    """Return the highest semver tag, or an empty string if there is none."""
    versions = sorted_versions(tags)
    return versions[0] if versions else ""


__all__ = [
    "SEMVER_PATTERN",
    "SemanticVersion",
    "highest_version",
    "parse_semver",
    "sorted_versions",
]
