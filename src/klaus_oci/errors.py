"""Exception hierarchy for the Klaus OCI client.

All exceptions raised by this package inherit from OCIError, so callers
can catch every registry, cache and archive failure with a single clause.

Exception Hierarchy:
    OCIError (base)
    ├── InvalidReferenceError      # Malformed or incomplete reference
    ├── AuthenticationError        # Registry rejected the credentials
    ├── ArtifactNotFoundError      # Repository, tag or manifest not found
    │   └── NoSemverTagsError      # Repository has no semver tags
    ├── RegistryUnavailableError   # Registry not reachable
    ├── DigestMismatchError        # Fetched content does not match its digest
    ├── ManifestError              # Manifest or config blob cannot be used
    ├── ReferenceResolutionError   # One entry of a batch resolution failed
    ├── CacheError                 # Digest cache side file failed
    ├── ArtifactReadError          # Source directory metadata unreadable
    ├── ArchiveError               # Content layer rejected during extraction
    │   ├── UnsafeArchivePathError
    │   └── ArchiveFileTooLargeError
    └── OperationCancelledError    # Caller cancelled a concurrent operation

Exit Codes:
    1 - General error (OCIError)
    2 - Authentication error (AuthenticationError)
    3 - Artifact not found (ArtifactNotFoundError)
    5 - Network/connectivity error (RegistryUnavailableError)
    6 - Untrusted content (ArchiveError, DigestMismatchError)
    130 - Cancelled (OperationCancelledError)

Example:
    >>> from klaus_oci.errors import NoSemverTagsError
    >>> raise NoSemverTagsError("gsoci.azurecr.io/giantswarm/klaus-plugins/gs-base")
    Traceback (most recent call last):
        ...
    NoSemverTagsError: no semver tags found for gsoci.azurecr.io/giantswarm/klaus-plugins/gs-base
"""

from __future__ import annotations


class OCIError(Exception):
    """Base exception for all Klaus OCI errors.

    Attributes:
        exit_code: CLI exit code for this error type (default: 1).

    Example:
        >>> try:
        ...     client.pull_plugin("gs-base", dest)
        ... except OCIError as e:
        ...     sys.exit(e.exit_code)
    """

    exit_code: int = 1


class InvalidReferenceError(OCIError):
    """Raised when an artifact reference cannot be used as given.

    Covers empty identifiers and references missing a tag or digest where
    one is mandatory (push, manifest fetch).

    Attributes:
        reference: The offending reference as supplied by the caller.
        reason: What is wrong with it.
    """

    def __init__(self, reference: str, reason: str) -> None:
        self.reference = reference
        self.reason = reason
        if reference:
            super().__init__(f"reference {reference!r}: {reason}")
        else:
            super().__init__(reason)


class AuthenticationError(OCIError):
    """Raised when registry authentication fails.

    Attributes:
        registry: The registry host where authentication failed.
        reason: Description of why authentication failed.
        exit_code: CLI exit code (2).
    """

    exit_code: int = 2

    def __init__(self, registry: str, reason: str) -> None:
        """Initialize AuthenticationError.

        Args:
            registry: The registry host where authentication failed.
            reason: Description of why authentication failed.
        """
        self.registry = registry
        self.reason = reason
        super().__init__(f"Authentication failed for {registry}: {reason}")


class ArtifactNotFoundError(OCIError):
    """Raised when a repository, tag or manifest does not exist.

    Attributes:
        reference: The reference (repository, ref string or digest) not found.
        available_tags: Optional list of tags that do exist, for the message.
        exit_code: CLI exit code (3).

    Example:
        >>> raise ArtifactNotFoundError(
        ...     "gsoci.azurecr.io/giantswarm/klaus-plugins/gs-base:v9.0.0",
        ...     available_tags=["v1.0.0", "v1.1.0"],
        ... )
        Traceback (most recent call last):
            ...
        ArtifactNotFoundError: Artifact not found: gsoci.azurecr.io/...:v9.0.0. Available tags: ...
    """

    exit_code: int = 3

    def __init__(
        self,
        reference: str,
        available_tags: list[str] | None = None,
        *,
        message: str | None = None,
    ) -> None:
        """Initialize ArtifactNotFoundError.

        Args:
            reference: The reference that was not found.
            available_tags: Optional list of available tags for a helpful message.
            message: Override for the leading part of the message.
        """
        self.reference = reference
        self.available_tags = available_tags

        msg = message or f"Artifact not found: {reference}"
        if available_tags:
            tags_preview = ", ".join(available_tags[:5])
            if len(available_tags) > 5:
                tags_preview += f" (and {len(available_tags) - 5} more)"
            msg += f". Available tags: {tags_preview}"
        super().__init__(msg)


class NoSemverTagsError(ArtifactNotFoundError):
    """Raised when a repository exists but carries no semver tag to resolve to."""

    def __init__(self, repository: str, available_tags: list[str] | None = None) -> None:
        self.repository = repository
        super().__init__(
            repository,
            available_tags,
            message=f"no semver tags found for {repository}",
        )


class RegistryUnavailableError(OCIError):
    """Raised when the registry is not reachable.

    No retry is attempted; the caller decides whether to try again.

    Attributes:
        registry: The registry host that is unreachable.
        reason: Description of the connectivity failure.
        exit_code: CLI exit code (5).
    """

    exit_code: int = 5

    def __init__(self, registry: str, reason: str) -> None:
        self.registry = registry
        self.reason = reason
        super().__init__(f"Registry unavailable: {registry}: {reason}")


class DigestMismatchError(OCIError):
    """Raised when fetched content does not hash to its descriptor digest.

    Attributes:
        expected: The expected digest (sha256:...).
        actual: The actual computed digest.
        artifact_ref: The reference being fetched.
    """

    exit_code: int = 6

    def __init__(self, expected: str, actual: str, artifact_ref: str) -> None:
        self.expected = expected
        self.actual = actual
        self.artifact_ref = artifact_ref
        super().__init__(
            f"Digest mismatch for {artifact_ref}: expected {expected[:19]}..., got {actual[:19]}..."
        )


class ManifestError(OCIError):
    """Raised when a manifest or config blob is unparseable or incomplete.

    Attributes:
        reference: The reference whose manifest was being read.
        reason: What went wrong.
    """

    def __init__(self, reference: str, reason: str) -> None:
        self.reference = reference
        self.reason = reason
        super().__init__(f"{reason} for {reference}")


class ReferenceResolutionError(OCIError):
    """Raised when one entry of a batch reference resolution fails.

    The underlying error is kept as ``cause`` and chained as ``__cause__``.

    Attributes:
        repository: Repository of the entry that failed.
        cause: The underlying exception.
    """

    def __init__(self, repository: str, cause: BaseException) -> None:
        self.repository = repository
        self.cause = cause
        super().__init__(f"resolving {repository}: {cause}")


class CacheError(OCIError):
    """Raised when the digest cache side file cannot be read or written.

    Attributes:
        operation: The cache operation that failed (read, write).
        reason: Description of the failure.
        path: The cache file involved (if applicable).
        reference: The artifact being pulled when the cache was written.

    Example:
        >>> raise CacheError("write", "Disk full", "/work/gs-base/.oci-cache.json")
        Traceback (most recent call last):
            ...
        CacheError: Cache operation 'write' failed: Disk full (path: /work/gs-base/.oci-cache.json)
    """

    def __init__(
        self,
        operation: str,
        reason: str,
        path: str | None = None,
        *,
        reference: str | None = None,
    ) -> None:
        self.operation = operation
        self.reason = reason
        self.path = path
        self.reference = reference

        msg = f"Cache operation '{operation}' failed"
        if reference:
            msg += f" for {reference}"
        msg += f": {reason}"
        if path:
            msg += f" (path: {path})"
        super().__init__(msg)


class ArtifactReadError(OCIError):
    """Raised when plugin or personality metadata cannot be read from disk."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class ArchiveError(OCIError):
    """Raised when a content layer cannot be packed or safely extracted.

    Archive content originates from a remote registry and is untrusted.
    These errors are never downgraded to warnings.

    Attributes:
        entry: The archive entry (or path) involved.
        reason: Description of the failure.
        reference: The artifact whose content was being extracted.
        exit_code: CLI exit code (6).
    """

    exit_code: int = 6

    def __init__(self, entry: str, reason: str, *, reference: str | None = None) -> None:
        self.entry = entry
        self.reason = reason
        self.reference = reference
        msg = f"{reason}: {entry}"
        if reference:
            msg = f"extracting content for {reference}: {msg}"
        super().__init__(msg)


class UnsafeArchivePathError(ArchiveError):
    """Raised when an archive entry would land outside the destination."""

    def __init__(self, entry: str, *, reference: str | None = None) -> None:
        super().__init__(entry, "invalid file path in archive", reference=reference)


class ArchiveFileTooLargeError(ArchiveError):
    """Raised when an archive entry exceeds the per-file size ceiling.

    Attributes:
        limit: The ceiling in bytes.
    """

    def __init__(self, entry: str, limit: int, *, reference: str | None = None) -> None:
        self.limit = limit
        super().__init__(
            entry, f"file exceeds maximum size of {limit} bytes", reference=reference
        )


class OperationCancelledError(OCIError):
    """Raised when the caller cancels an in-progress operation."""

    exit_code: int = 130

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} cancelled")


__all__ = [
    "ArchiveError",
    "ArchiveFileTooLargeError",
    "ArtifactNotFoundError",
    "ArtifactReadError",
    "AuthenticationError",
    "CacheError",
    "DigestMismatchError",
    "InvalidReferenceError",
    "ManifestError",
    "NoSemverTagsError",
    "OCIError",
    "OperationCancelledError",
    "ReferenceResolutionError",
    "RegistryUnavailableError",
    "UnsafeArchivePathError",
]
