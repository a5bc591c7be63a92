"""OCI client for Klaus plugins, personalities and toolchains.

This package stores and retrieves Klaus artifacts in OCI registries.
Plugins and personalities are custom artifacts (JSON config blob plus a
gzip tar content layer); toolchains are ordinary container images
described by their manifest annotations.

Key Components:
- KlausClient: Resolve, describe, pull, push and list artifacts
- ClientConfig: Client settings (registry bases, concurrency, plain HTTP)
- ArtifactReference: Repository plus tag-or-digest pin
- Plugin, Personality, Toolchain: Artifact metadata
- DependencyResolver: Concurrent personality dependency resolution
- OrasRegistryTransport: Registry access through the ORAS Python client

Media Types:
    application/vnd.giantswarm.klaus-plugin.config.v1+json
    application/vnd.giantswarm.klaus-plugin.content.v1.tar+gzip
    application/vnd.giantswarm.klaus-personality.config.v1+json
    application/vnd.giantswarm.klaus-personality.content.v1.tar+gzip

Example:
    >>> from pathlib import Path
    >>> from klaus_oci import KlausClient
    >>>
    >>> client = KlausClient()
    >>>
    >>> # Short names resolve to the highest semver tag
    >>> described = client.describe_plugin("gs-base")
    >>> print(described.artifact.ref)
    >>>
    >>> # Pull skips the download when the directory is current
    >>> pulled = client.pull_personality("sre", Path("personalities/sre"))
    >>> deps = client.resolve_personality_deps(pulled.personality)
    >>> for warning in deps.warnings:
    ...     print(warning)
"""

from __future__ import annotations

from klaus_oci.annotations import (
    ANNOTATION_KLAUS_NAME,
    ANNOTATION_KLAUS_TYPE,
    ANNOTATION_KLAUS_VERSION,
    TYPE_PERSONALITY,
    TYPE_PLUGIN,
    TYPE_TOOLCHAIN,
    annotation_info_from_annotations,
    build_annotations,
    toolchain_from_annotations,
)
from klaus_oci.archive import MAX_FILE_SIZE, clean_and_create, pack_directory, unpack_archive
from klaus_oci.auth import (
    CredentialResolver,
    Credentials,
    DockerConfigCredentialResolver,
    StaticCredentialResolver,
)
from klaus_oci.cache import CACHE_FILE_NAME, is_fresh, read_cache_record, write_cache_record
from klaus_oci.client import KlausClient
from klaus_oci.dependencies import DependencyResolver
from klaus_oci.errors import (
    ArchiveError,
    ArchiveFileTooLargeError,
    ArtifactNotFoundError,
    ArtifactReadError,
    AuthenticationError,
    CacheError,
    DigestMismatchError,
    InvalidReferenceError,
    ManifestError,
    NoSemverTagsError,
    OCIError,
    OperationCancelledError,
    ReferenceResolutionError,
    RegistryUnavailableError,
    UnsafeArchivePathError,
)
from klaus_oci.mediatypes import PERSONALITY_ARTIFACT, PLUGIN_ARTIFACT, ArtifactKind
from klaus_oci.read import read_personality_from_dir, read_plugin_from_dir, read_soul
from klaus_oci.reference import (
    repository_from_ref,
    short_name,
    split_name_tag,
    split_reference,
    truncate_digest,
)
from klaus_oci.registries import (
    DEFAULT_PERSONALITY_REGISTRY,
    DEFAULT_PLUGIN_REGISTRY,
    DEFAULT_TOOLCHAIN_REGISTRY,
)
from klaus_oci.schemas import (
    AnnotationInfo,
    ArtifactInfo,
    ArtifactReference,
    Author,
    CacheRecord,
    ClientConfig,
    DependencySet,
    DescribedPersonality,
    DescribedPlugin,
    DescribedToolchain,
    ListedArtifact,
    Personality,
    Plugin,
    PluginReference,
    PulledPersonality,
    PulledPlugin,
    PushResult,
    ResolvedArtifact,
    ResolvedDependencies,
    Toolchain,
    ToolchainReference,
)
from klaus_oci.semver import highest_version, parse_semver, sorted_versions
from klaus_oci.telemetry import configure_logging
from klaus_oci.transport import OrasRegistryTransport, RegistryTransport

__version__ = "0.1.0"

__all__ = [
    # Client
    "KlausClient",
    "ClientConfig",
    "DependencyResolver",
    # Transport and credentials
    "OrasRegistryTransport",
    "RegistryTransport",
    "CredentialResolver",
    "Credentials",
    "DockerConfigCredentialResolver",
    "StaticCredentialResolver",
    # Schemas
    "AnnotationInfo",
    "ArtifactInfo",
    "ArtifactReference",
    "Author",
    "CacheRecord",
    "DependencySet",
    "DescribedPersonality",
    "DescribedPlugin",
    "DescribedToolchain",
    "ListedArtifact",
    "Personality",
    "Plugin",
    "PluginReference",
    "PulledPersonality",
    "PulledPlugin",
    "PushResult",
    "ResolvedArtifact",
    "ResolvedDependencies",
    "Toolchain",
    "ToolchainReference",
    # Media types and annotations
    "ArtifactKind",
    "PERSONALITY_ARTIFACT",
    "PLUGIN_ARTIFACT",
    "ANNOTATION_KLAUS_NAME",
    "ANNOTATION_KLAUS_TYPE",
    "ANNOTATION_KLAUS_VERSION",
    "TYPE_PERSONALITY",
    "TYPE_PLUGIN",
    "TYPE_TOOLCHAIN",
    "annotation_info_from_annotations",
    "build_annotations",
    "toolchain_from_annotations",
    # Registries
    "DEFAULT_PERSONALITY_REGISTRY",
    "DEFAULT_PLUGIN_REGISTRY",
    "DEFAULT_TOOLCHAIN_REGISTRY",
    # References and versions
    "highest_version",
    "parse_semver",
    "repository_from_ref",
    "short_name",
    "sorted_versions",
    "split_name_tag",
    "split_reference",
    "truncate_digest",
    # Cache and archives
    "CACHE_FILE_NAME",
    "MAX_FILE_SIZE",
    "clean_and_create",
    "is_fresh",
    "pack_directory",
    "read_cache_record",
    "unpack_archive",
    "write_cache_record",
    # Directory readers
    "read_personality_from_dir",
    "read_plugin_from_dir",
    "read_soul",
    # Logging
    "configure_logging",
    # Errors
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
