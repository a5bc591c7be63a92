"""Klaus OCI client.

KlausClient is the public facade over the registry transport. It turns
loose identifiers into pinned references, describes artifacts from
their manifest and config blob, pulls content into local directories
(skipping the transfer when the digest cache is fresh), pushes new
versions, lists what a registry holds, and resolves a personality's
dependencies concurrently.

Key Features:
    - Short-name and "latest" resolution against per-kind registry bases
    - Describe without downloading content layers
    - Digest-gated pulls with secure archive extraction
    - Push of plugin and personality directories
    - Catalog listing with latest-version resolution
    - Concurrent, failure-tolerant dependency resolution
    - structlog logging and OpenTelemetry spans

Example:
    >>> from klaus_oci import KlausClient
    >>> client = KlausClient()
    >>> described = client.describe_plugin("gs-base")
    >>> pulled = client.pull_plugin("gs-base", Path("plugins/gs-base"))
    >>> deps = client.resolve_personality_deps(personality)
"""

from __future__ import annotations

import io
import json
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import structlog
import yaml
from pydantic import ValidationError

from klaus_oci.annotations import (
    TYPE_PERSONALITY,
    TYPE_PLUGIN,
    annotation_info_from_annotations,
    build_annotations,
    toolchain_from_annotations,
)
from klaus_oci.archive import clean_and_create, pack_directory, unpack_archive
from klaus_oci.auth import CredentialResolver, DockerConfigCredentialResolver
from klaus_oci.cache import is_fresh, read_cache_record, write_cache_record
from klaus_oci.dependencies import DependencyResolver
from klaus_oci.errors import (
    ArchiveError,
    ArchiveFileTooLargeError,
    CacheError,
    InvalidReferenceError,
    ManifestError,
    OCIError,
    UnsafeArchivePathError,
)
from klaus_oci.mediatypes import (
    IMAGE_MANIFEST_MEDIA_TYPES,
    INDEX_MEDIA_TYPES,
    MEDIA_TYPE_OCI_MANIFEST,
    PERSONALITY_ARTIFACT,
    PLUGIN_ARTIFACT,
    ArtifactKind,
)
from klaus_oci.read import read_personality_from_dir, read_plugin_from_dir, read_soul
from klaus_oci.reference import split_registry_base
from klaus_oci.resolve import resolve_artifact_ref, resolve_latest_version, resolve_references
from klaus_oci.schemas import (
    AnnotationInfo,
    ArtifactInfo,
    ArtifactMetadata,
    ArtifactReference,
    CacheRecord,
    ClientConfig,
    DependencySet,
    DescribedPersonality,
    DescribedPlugin,
    DescribedToolchain,
    Descriptor,
    ListedArtifact,
    Manifest,
    ManifestIndex,
    Personality,
    Plugin,
    PluginReference,
    PulledPersonality,
    PulledPlugin,
    PushResult,
    ResolvedArtifact,
    ResolvedDependencies,
)
from klaus_oci.telemetry import (
    SPAN_DESCRIBE,
    SPAN_LIST_ARTIFACTS,
    SPAN_PULL,
    SPAN_PUSH,
    SPAN_RESOLVE_DEPENDENCIES,
    operation_span,
)
from klaus_oci.transport import OrasRegistryTransport, RegistryTransport, compute_digest

logger = structlog.get_logger(__name__)

MetadataT = TypeVar("MetadataT", bound=ArtifactMetadata)


def select_platform_manifest(
    manifests: Sequence[Descriptor],
    platform_os: str,
    platform_arch: str,
) -> Descriptor:
    """Pick the manifest for a platform from an image index.

    Falls back to the first image manifest (skipping attestations and
    other artifacts), then to the first entry.

    Raises:
        ManifestError: If the index lists no manifests.
    """
    for descriptor in manifests:
        platform = descriptor.platform
        if platform and platform.os == platform_os and platform.architecture == platform_arch:
            return descriptor

    for descriptor in manifests:
        if descriptor.media_type in IMAGE_MANIFEST_MEDIA_TYPES:
            return descriptor

    if manifests:
        return manifests[0]
    raise ManifestError("index", "no manifests in index")


def _load_json(data: bytes, ref: str, what: str) -> dict[str, Any]:
    try:
        payload = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestError(ref, f"parsing {what} failed: {e}") from e
    if not isinstance(payload, dict):
        raise ManifestError(ref, f"parsing {what} failed: expected a JSON object")
    return payload


def _with_reference(error: ArchiveError | CacheError, reference: str) -> OCIError:
    """Rebuild an extraction or cache error so its message names ``reference``."""
    if isinstance(error, CacheError):
        return CacheError(error.operation, error.reason, error.path, reference=reference)
    if isinstance(error, UnsafeArchivePathError):
        return UnsafeArchivePathError(error.entry, reference=reference)
    if isinstance(error, ArchiveFileTooLargeError):
        return ArchiveFileTooLargeError(error.entry, error.limit, reference=reference)
    return ArchiveError(error.entry, error.reason, reference=reference)


@dataclass(frozen=True)
class _FetchedManifest:
    """A parsed manifest with the reference and digest it was resolved from."""

    repository: str
    ref: str
    tag: str
    digest: str
    manifest: Manifest

    @property
    def info(self) -> ArtifactInfo:
        return ArtifactInfo(ref=self.ref, tag=self.tag, digest=self.digest)


class KlausClient:
    """Client for Klaus plugins, personalities and toolchains in OCI registries.

    Thread Safety:
        The client holds no per-call state. With the default ORAS
        transport it can be shared across threads.

    Example:
        >>> client = KlausClient(config=ClientConfig(plain_http=True))
        >>> client.resolve_plugin_ref("gs-base")
        'gsoci.azurecr.io/giantswarm/klaus-plugins/gs-base:v0.0.3'
    """

    def __init__(
        self,
        transport: RegistryTransport | None = None,
        config: ClientConfig | None = None,
        *,
        credential_resolver: CredentialResolver | None = None,
    ) -> None:
        """Initialize KlausClient.

        Args:
            transport: Registry transport. Defaults to OrasRegistryTransport
                configured from ``config``.
            config: Client settings. Defaults to ClientConfig().
            credential_resolver: Credential source for the default transport.
                Defaults to DockerConfigCredentialResolver.
        """
        self._config = config or ClientConfig()
        if transport is None:
            resolver = credential_resolver or DockerConfigCredentialResolver(
                self._config.registry_auth_env
            )
            transport = OrasRegistryTransport(
                credential_resolver=resolver,
                plain_http=self._config.plain_http,
                timeout=self._config.timeout_seconds,
            )
        self._transport = transport
        self._dependency_resolver = DependencyResolver(self, max_workers=self._config.concurrency)

        logger.debug(
            "klaus_client_initialized",
            plain_http=self._config.plain_http,
            concurrency=self._config.concurrency,
            transport=type(transport).__name__,
        )

    @classmethod
    def from_config_file(
        cls,
        config_path: str | Path,
        *,
        credential_resolver: CredentialResolver | None = None,
    ) -> KlausClient:
        """Create a client from the ``registry`` section of a YAML file.

        A missing ``registry`` section yields the default configuration.

        Args:
            config_path: Path to the YAML file.
            credential_resolver: Optional credential source.

        Returns:
            Configured KlausClient.

        Raises:
            OCIError: If the file cannot be read or the section is invalid.
        """
        path = Path(config_path)
        try:
            with path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise OCIError(f"Failed to read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise OCIError(f"Failed to parse config YAML {path}: {e}") from e

        if not isinstance(data, dict):
            raise OCIError(f"Config file must contain a mapping: {path}")

        try:
            config = ClientConfig.model_validate(data.get("registry") or {})
        except ValidationError as e:
            raise OCIError(f"Invalid registry configuration in {path}: {e}") from e

        return cls(config=config, credential_resolver=credential_resolver)

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def transport(self) -> RegistryTransport:
        return self._transport

    # =========================================================================
    # Reference resolution
    # =========================================================================

    def resolve_artifact_ref(self, ref: str, registry_base: str) -> str:
        """Resolve a loose identifier against ``registry_base``.

        See resolve.resolve_artifact_ref for the rules.
        """
        return resolve_artifact_ref(self._transport, ref, registry_base)

    def resolve_plugin_ref(self, ref: str) -> str:
        return self.resolve_artifact_ref(ref, self._config.plugin_registry)

    def resolve_personality_ref(self, ref: str) -> str:
        return self.resolve_artifact_ref(ref, self._config.personality_registry)

    def resolve_toolchain_ref(self, ref: str) -> str:
        return self.resolve_artifact_ref(ref, self._config.toolchain_registry)

    def resolve_latest_version(self, repository: str) -> str:
        """Return ``repository:<highest semver tag>``."""
        return resolve_latest_version(self._transport, repository)

    def resolve_plugin_refs(self, plugins: Sequence[PluginReference]) -> list[PluginReference]:
        """Pin plugin references to concrete tags (fail-fast, non-mutating)."""
        return resolve_references(self._transport, plugins)

    def resolve(self, ref: str) -> str:
        """Return the manifest digest a tagged or digest reference points to.

        Raises:
            InvalidReferenceError: If ``ref`` has neither tag nor digest.
        """
        reference, descriptor = self._resolve_descriptor(ref)
        logger.debug("reference_resolved", ref=reference.ref, digest=descriptor.digest)
        return descriptor.digest

    def list_tags(self, repository: str) -> list[str]:
        return self._transport.list_tags(repository)

    # =========================================================================
    # Listing
    # =========================================================================

    def list_repositories(self, registry_base: str) -> list[str]:
        """List repositories under a registry base via the catalog API.

        Catalog pages are requested from just before the prefix. Entries
        outside the prefix are skipped, and paging stops at the first
        entry that sorts after it.

        Args:
            registry_base: ``host[/prefix]``.

        Returns:
            Full repository names (``host/name``) in catalog order.
        """
        host, prefix = split_registry_base(registry_base)
        last = prefix.rstrip("/")
        repositories: list[str] = []

        while True:
            batch = self._transport.list_catalog(host, last)
            # A registry that ignores ``last`` would otherwise repeat pages.
            if not batch or batch[-1] <= last:
                break

            past_prefix = False
            for name in batch:
                if prefix and not name.startswith(prefix):
                    if name > prefix:
                        past_prefix = True
                        break
                    continue
                repositories.append(f"{host}/{name}")

            if past_prefix:
                break
            last = batch[-1]

        logger.debug("repositories_listed", registry_base=registry_base, count=len(repositories))
        return repositories

    def list_artifacts(self, registry_base: str) -> list[ListedArtifact]:
        """List artifacts under a registry base with their latest version.

        Repositories are processed sequentially. Those without a semver
        tag or whose manifest cannot be fetched are skipped.

        Args:
            registry_base: ``host[/prefix]``.

        Returns:
            One ListedArtifact per usable repository.
        """
        attributes = {"klaus.oci.registry_base": registry_base}
        with operation_span(SPAN_LIST_ARTIFACTS, attributes) as span:
            artifacts: list[ListedArtifact] = []
            for repository in self.list_repositories(registry_base):
                try:
                    reference = self.resolve_latest_version(repository)
                    info = self.fetch_annotation_info(reference)
                except OCIError as e:
                    logger.debug("artifact_list_entry_skipped", repository=repository, error=str(e))
                    continue
                artifacts.append(
                    ListedArtifact(repository=repository, reference=reference, info=info)
                )

            span.set_attribute("klaus.oci.artifact_count", len(artifacts))
            return artifacts

    # =========================================================================
    # Manifests
    # =========================================================================

    def _resolve_descriptor(self, ref: str) -> tuple[ArtifactReference, Descriptor]:
        reference = ArtifactReference.parse(ref)
        target = reference.digest or reference.tag
        if not target:
            raise InvalidReferenceError(ref, "reference must include a tag or digest")
        return reference, self._transport.resolve(reference.repository, target)

    def _load_manifest(self, repository: str, descriptor: Descriptor, ref: str) -> Manifest:
        data = self._transport.fetch_manifest(repository, descriptor)
        payload = _load_json(data, ref, "manifest")

        is_index = (
            descriptor.media_type in INDEX_MEDIA_TYPES
            or payload.get("mediaType") in INDEX_MEDIA_TYPES
            or ("manifests" in payload and "layers" not in payload)
        )
        if is_index:
            try:
                index = ManifestIndex.model_validate(payload)
            except ValidationError as e:
                raise ManifestError(ref, f"parsing index failed: {e}") from e
            try:
                platform_descriptor = select_platform_manifest(
                    index.manifests, self._config.platform_os, self._config.platform_arch
                )
            except ManifestError as e:
                raise ManifestError(ref, e.reason) from e
            logger.debug(
                "platform_manifest_selected",
                ref=ref,
                digest=platform_descriptor.digest,
                os=self._config.platform_os,
                arch=self._config.platform_arch,
            )
            data = self._transport.fetch_manifest(repository, platform_descriptor)
            payload = _load_json(data, ref, "platform manifest")

        try:
            return Manifest.model_validate(payload)
        except ValidationError as e:
            raise ManifestError(ref, f"parsing manifest failed: {e}") from e

    def _fetch_manifest(self, ref: str) -> _FetchedManifest:
        reference, descriptor = self._resolve_descriptor(ref)
        manifest = self._load_manifest(reference.repository, descriptor, ref)
        return _FetchedManifest(
            repository=reference.repository,
            ref=ref,
            tag=reference.tag,
            digest=descriptor.digest,
            manifest=manifest,
        )

    def _fetch_config(self, fetched: _FetchedManifest) -> bytes:
        config = fetched.manifest.config
        if config is None:
            raise ManifestError(fetched.ref, "manifest has no config blob")
        return self._transport.fetch_blob(fetched.repository, config)

    @staticmethod
    def _parse_config(model: type[MetadataT], data: bytes, ref: str, tag: str) -> MetadataT:
        try:
            parsed = model.model_validate_json(data)
        except ValidationError as e:
            raise ManifestError(ref, f"parsing {model.__name__.lower()} config failed: {e}") from e
        return parsed.model_copy(update={"version": tag})

    def fetch_manifest_annotations(self, ref: str) -> dict[str, str]:
        """Return the manifest annotations of a tagged or digest reference.

        Only the manifest is fetched. For image indexes the platform
        manifest is used.
        """
        return dict(self._fetch_manifest(ref).manifest.annotations or {})

    def fetch_annotation_info(self, ref: str) -> AnnotationInfo:
        """Return the Klaus type, name and version recorded in annotations."""
        return annotation_info_from_annotations(self.fetch_manifest_annotations(ref))

    # =========================================================================
    # Describe
    # =========================================================================

    def describe_plugin(self, ref: str) -> DescribedPlugin:
        """Describe a plugin from its manifest and config blob.

        Args:
            ref: Short name, short name with tag, or full reference.

        Returns:
            The plugin metadata with ``version`` set from the resolved tag.
        """
        with operation_span(
            SPAN_DESCRIBE, {"klaus.oci.kind": "plugin", "klaus.oci.ref": ref}
        ) as span:
            fetched = self._fetch_manifest(self.resolve_plugin_ref(ref))
            plugin = self._parse_config(
                Plugin, self._fetch_config(fetched), fetched.ref, fetched.tag
            )
            span.set_attribute("klaus.oci.digest", fetched.digest)
            return DescribedPlugin(artifact=fetched.info, plugin=plugin)

    def describe_personality(self, ref: str) -> DescribedPersonality:
        """Describe a personality from its manifest and config blob."""
        with operation_span(
            SPAN_DESCRIBE, {"klaus.oci.kind": "personality", "klaus.oci.ref": ref}
        ) as span:
            fetched = self._fetch_manifest(self.resolve_personality_ref(ref))
            personality = self._parse_config(
                Personality, self._fetch_config(fetched), fetched.ref, fetched.tag
            )
            span.set_attribute("klaus.oci.digest", fetched.digest)
            return DescribedPersonality(artifact=fetched.info, personality=personality)

    def describe_toolchain(self, ref: str) -> DescribedToolchain:
        """Describe a toolchain image from its manifest annotations.

        No config blob or layer is downloaded.
        """
        with operation_span(
            SPAN_DESCRIBE, {"klaus.oci.kind": "toolchain", "klaus.oci.ref": ref}
        ) as span:
            fetched = self._fetch_manifest(self.resolve_toolchain_ref(ref))
            toolchain = toolchain_from_annotations(fetched.manifest.annotations or {})
            span.set_attribute("klaus.oci.digest", fetched.digest)
            return DescribedToolchain(
                artifact=fetched.info,
                toolchain=toolchain.model_copy(update={"version": fetched.tag}),
            )

    # =========================================================================
    # Pull
    # =========================================================================

    def _pull(
        self,
        kind: ArtifactKind,
        resolved: str,
        dest_dir: Path,
    ) -> tuple[ResolvedArtifact, bytes]:
        """Land an artifact's content in ``dest_dir`` unless it is current.

        Returns:
            The resolution outcome and the raw config blob.
        """
        log = logger.bind(kind=kind.name, ref=resolved, dest=str(dest_dir))
        reference, descriptor = self._resolve_descriptor(resolved)

        if is_fresh(dest_dir, descriptor.digest):
            try:
                record = read_cache_record(dest_dir)
            except CacheError as e:
                log.debug("cache_record_unavailable", error=str(e))
                record = None
            if record is not None and record.config_json is not None:
                log.info("pull_skipped_cache_hit", digest=descriptor.digest)
                artifact = ResolvedArtifact(
                    ref=resolved, tag=reference.tag, digest=descriptor.digest, cached=True
                )
                return artifact, record.config_json

        manifest = self._load_manifest(reference.repository, descriptor, resolved)
        fetched = _FetchedManifest(
            repository=reference.repository,
            ref=resolved,
            tag=reference.tag,
            digest=descriptor.digest,
            manifest=manifest,
        )
        config_json = self._fetch_config(fetched)

        layer = next(
            (d for d in manifest.layers if d.media_type == kind.content_media_type),
            None,
        )
        if layer is None:
            raise ManifestError(resolved, f"no layer with media type {kind.content_media_type}")

        content = self._transport.fetch_blob(reference.repository, layer)
        try:
            clean_and_create(dest_dir)
            unpack_archive(io.BytesIO(content), dest_dir)
            write_cache_record(
                dest_dir,
                CacheRecord(
                    digest=descriptor.digest,
                    ref=resolved,
                    config_json=config_json,
                    annotations=manifest.annotations,
                ),
            )
        except (ArchiveError, CacheError) as e:
            log.error("pull_extract_failed", error=str(e), error_type=type(e).__name__)
            raise _with_reference(e, resolved) from e

        log.info("pull_completed", digest=descriptor.digest, size=layer.size)
        artifact = ResolvedArtifact(ref=resolved, tag=reference.tag, digest=descriptor.digest)
        return artifact, config_json

    def pull_plugin(self, ref: str, dest_dir: Path) -> PulledPlugin:
        """Pull a plugin's content into ``dest_dir``.

        The directory is replaced wholesale on a fresh pull. If the cache
        side file already records the manifest digest, nothing is
        transferred and ``cached`` is True.

        Args:
            ref: Short name, short name with tag, or full reference.
            dest_dir: Destination directory.

        Returns:
            The pulled plugin.
        """
        dest_dir = Path(dest_dir)
        with operation_span(SPAN_PULL, {"klaus.oci.kind": "plugin", "klaus.oci.ref": ref}) as span:
            artifact, config_json = self._pull(
                PLUGIN_ARTIFACT, self.resolve_plugin_ref(ref), dest_dir
            )
            plugin = self._parse_config(Plugin, config_json, artifact.ref, artifact.tag)
            span.set_attribute("klaus.oci.digest", artifact.digest)
            span.set_attribute("klaus.oci.cached", artifact.cached)
            return PulledPlugin(artifact=artifact, plugin=plugin, directory=dest_dir)

    def pull_personality(self, ref: str, dest_dir: Path) -> PulledPersonality:
        """Pull a personality's content into ``dest_dir``, including SOUL.md."""
        dest_dir = Path(dest_dir)
        with operation_span(
            SPAN_PULL, {"klaus.oci.kind": "personality", "klaus.oci.ref": ref}
        ) as span:
            artifact, config_json = self._pull(
                PERSONALITY_ARTIFACT, self.resolve_personality_ref(ref), dest_dir
            )
            personality = self._parse_config(Personality, config_json, artifact.ref, artifact.tag)
            span.set_attribute("klaus.oci.digest", artifact.digest)
            span.set_attribute("klaus.oci.cached", artifact.cached)
            return PulledPersonality(
                artifact=artifact,
                personality=personality,
                soul=read_soul(dest_dir),
                directory=dest_dir,
            )

    # =========================================================================
    # Push
    # =========================================================================

    @staticmethod
    def _push_reference(ref: str) -> ArtifactReference:
        reference = ArtifactReference.parse(ref)
        if not reference.tag:
            raise InvalidReferenceError(ref, "push requires a tag")
        return reference

    def push(
        self,
        source_dir: Path,
        ref: str,
        config_json: bytes,
        kind: ArtifactKind,
        annotations: Mapping[str, str] | None = None,
    ) -> PushResult:
        """Push a directory as an artifact of the given kind.

        Uploads the config blob and the packed content layer, then the
        manifest by digest, then tags it.

        Args:
            source_dir: Directory to pack as the content layer.
            ref: Full reference including the tag to push.
            config_json: Raw config blob.
            kind: Media types for config and content.
            annotations: Manifest annotations.

        Returns:
            PushResult with the manifest digest.

        Raises:
            InvalidReferenceError: If ``ref`` has no tag.
        """
        reference = self._push_reference(ref)
        repository = reference.repository

        with operation_span(SPAN_PUSH, {"klaus.oci.kind": kind.name, "klaus.oci.ref": ref}) as span:
            config_descriptor = Descriptor(
                media_type=kind.config_media_type,
                digest=compute_digest(config_json),
                size=len(config_json),
            )
            self._transport.push_blob(repository, config_descriptor, config_json)

            content = pack_directory(Path(source_dir))
            layer_descriptor = Descriptor(
                media_type=kind.content_media_type,
                digest=compute_digest(content),
                size=len(content),
            )
            self._transport.push_blob(repository, layer_descriptor, content)

            manifest = Manifest(
                config=config_descriptor,
                layers=[layer_descriptor],
                annotations=dict(annotations) if annotations else None,
            )
            data = manifest.to_json()
            manifest_descriptor = self._transport.push_manifest(
                repository, compute_digest(data), MEDIA_TYPE_OCI_MANIFEST, data
            )
            self._transport.tag_manifest(repository, manifest_descriptor, reference.tag)

            span.set_attribute("klaus.oci.digest", manifest_descriptor.digest)
            logger.info(
                "push_completed",
                ref=ref,
                digest=manifest_descriptor.digest,
                content_size=len(content),
            )
            return PushResult(digest=manifest_descriptor.digest)

    def push_plugin(
        self,
        source_dir: Path,
        ref: str,
        annotations: Mapping[str, str] | None = None,
    ) -> PushResult:
        """Read a plugin directory and push it under ``ref``."""
        reference = self._push_reference(ref)
        plugin = read_plugin_from_dir(Path(source_dir))
        return self.push(
            source_dir,
            ref,
            plugin.config_json(),
            PLUGIN_ARTIFACT,
            build_annotations(TYPE_PLUGIN, plugin, reference.tag, annotations),
        )

    def push_personality(
        self,
        source_dir: Path,
        ref: str,
        annotations: Mapping[str, str] | None = None,
    ) -> PushResult:
        """Read a personality directory and push it under ``ref``."""
        reference = self._push_reference(ref)
        personality = read_personality_from_dir(Path(source_dir))
        return self.push(
            source_dir,
            ref,
            personality.config_json(),
            PERSONALITY_ARTIFACT,
            build_annotations(TYPE_PERSONALITY, personality, reference.tag, annotations),
        )

    # =========================================================================
    # Dependencies
    # =========================================================================

    def resolve_personality_deps(
        self,
        personality: Personality | DependencySet,
        cancel_event: threading.Event | None = None,
    ) -> ResolvedDependencies:
        """Resolve a personality's toolchain and plugins concurrently.

        Unresolvable dependencies become warnings; this never fails
        because of them.

        Args:
            personality: The personality, or its DependencySet.
            cancel_event: Set to abandon the operation.

        Returns:
            ResolvedDependencies.

        Raises:
            OperationCancelledError: If ``cancel_event`` is set first.
        """
        deps = personality.dependencies if isinstance(personality, Personality) else personality
        with operation_span(
            SPAN_RESOLVE_DEPENDENCIES, {"klaus.oci.dependency_count": len(deps)}
        ) as span:
            result = self._dependency_resolver.resolve(deps, cancel_event)
            span.set_attribute("klaus.oci.warning_count", len(result.warnings))
            return result


__all__ = [
    "KlausClient",
    "select_platform_manifest",
]
