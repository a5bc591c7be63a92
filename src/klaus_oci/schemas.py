"""Pydantic v2 schemas for Klaus OCI artifacts.

Key Components:
    ArtifactReference: Repository plus an optional tag-or-digest pin
    Plugin, Personality, Toolchain: Artifact metadata
    ArtifactInfo, ResolvedArtifact: OCI-level outcome of a resolution
    Described*/Pulled*: Metadata joined with its OCI outcome
    DependencySet, ResolvedDependencies: Personality composition
    CacheRecord: Digest cache side file
    Descriptor, Manifest, ManifestIndex: The subset of OCI manifests we read
    ClientConfig: Client settings, loadable from YAML

All models are frozen. Operations that "change" a model return a copy.
"""

from __future__ import annotations

import base64
import json
import platform
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_serializer,
    model_validator,
)

from klaus_oci.errors import InvalidReferenceError
from klaus_oci.mediatypes import MEDIA_TYPE_OCI_MANIFEST
from klaus_oci.reference import LATEST_TAG, split_reference
from klaus_oci.registries import (
    DEFAULT_PERSONALITY_REGISTRY,
    DEFAULT_PLUGIN_REGISTRY,
    DEFAULT_TOOLCHAIN_REGISTRY,
)

# =============================================================================
# Utility Functions
# =============================================================================


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "i386": "386",
    "i686": "386",
}


def _default_arch() -> str:
    """Map the interpreter's machine name to an OCI architecture."""
    machine = platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine)


# =============================================================================
# References
# =============================================================================


class TagPin(BaseModel):
    """A reference pinned to a tag (which may be the "latest" sentinel)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["tag"] = "tag"
    value: str = Field(..., min_length=1)


class DigestPin(BaseModel):
    """A reference pinned to a content digest."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["digest"] = "digest"
    value: str = Field(..., min_length=1)


Pin = Annotated[Union[TagPin, DigestPin], Field(discriminator="kind")]


class ArtifactReference(BaseModel):
    """A logical pointer to a registry object.

    A reference holds a repository and at most one pin. Manifests and
    YAML files spell references as ``repository``/``tag``/``digest``
    keys; on input these collapse into a single pin, with the digest
    taking precedence when both are present.

    Examples:
        >>> ref = ArtifactReference(repository="example.com/plugins/gs-base", tag="v1.0.0")
        >>> ref.ref
        'example.com/plugins/gs-base:v1.0.0'
        >>> ArtifactReference.parse("example.com/plugins/gs-base@sha256:abc").digest
        'sha256:abc'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    repository: str = Field(
        ...,
        description="Registry host and path, without tag or digest",
        examples=["gsoci.azurecr.io/giantswarm/klaus-plugins/gs-base"],
    )
    pin: Pin | None = Field(
        default=None,
        description="Tag or digest the reference is pinned to",
    )

    @model_validator(mode="before")
    @classmethod
    def _collapse_tag_and_digest(cls, data: Any) -> Any:
        if not isinstance(data, dict) or ("tag" not in data and "digest" not in data):
            return data
        data = dict(data)
        tag = data.pop("tag", None) or ""
        digest = data.pop("digest", None) or ""
        if "pin" not in data:
            if digest:
                data["pin"] = DigestPin(value=digest)
            elif tag:
                data["pin"] = TagPin(value=tag)
        return data

    @model_serializer
    def _serialize(self) -> dict[str, str]:
        data = {"repository": self.repository}
        if self.tag:
            data["tag"] = self.tag
        if self.digest:
            data["digest"] = self.digest
        return data

    @classmethod
    def parse(cls, ref: str) -> ArtifactReference:
        """Build a reference from a ``repository[:tag|@digest]`` string.

        Raises:
            InvalidReferenceError: If the string is empty after trimming.
        """
        ref = ref.strip()
        if not ref:
            raise InvalidReferenceError("", "empty artifact reference")
        repository, tag, digest = split_reference(ref)
        return cls(repository=repository, tag=tag, digest=digest)

    @property
    def tag(self) -> str:
        return self.pin.value if isinstance(self.pin, TagPin) else ""

    @property
    def digest(self) -> str:
        return self.pin.value if isinstance(self.pin, DigestPin) else ""

    @property
    def ref(self) -> str:
        """The full reference string: repo@digest, repo:tag, or bare repo."""
        if isinstance(self.pin, DigestPin):
            return f"{self.repository}@{self.pin.value}"
        if isinstance(self.pin, TagPin):
            return f"{self.repository}:{self.pin.value}"
        return self.repository

    @property
    def needs_resolution(self) -> bool:
        """True when the reference has no pin or is pinned to "latest"."""
        return self.pin is None or (isinstance(self.pin, TagPin) and self.pin.value == LATEST_TAG)

    def with_tag(self, tag: str) -> ArtifactReference:
        """Return a copy pinned to ``tag``."""
        return self.model_copy(update={"pin": TagPin(value=tag)})

    def __str__(self) -> str:
        return self.ref


class PluginReference(ArtifactReference):
    """Reference to a plugin artifact."""


class ToolchainReference(ArtifactReference):
    """Reference to a toolchain container image."""


# =============================================================================
# Artifact Metadata
# =============================================================================


class Author(BaseModel):
    """Author of an artifact."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    email: str = ""
    url: str = ""


class ArtifactMetadata(BaseModel):
    """Metadata shared by all three artifact kinds.

    ``version`` is never serialized. It travels as the OCI tag on push
    and is filled in from the resolved tag on describe and pull.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str = Field(default="", description="Human-readable artifact name")
    version: str = Field(default="", exclude=True, description="Populated from the OCI tag")
    description: str = ""
    author: Author | None = None
    homepage: str = ""
    repository: str = Field(default="", description="Source code repository URL")
    license: str = ""
    keywords: list[str] = Field(default_factory=list)

    def config_json(self) -> bytes:
        """Serialize to the config blob format (empty fields omitted)."""
        return self.model_dump_json(by_alias=True, exclude_defaults=True).encode("utf-8")


class Plugin(ArtifactMetadata):
    """A Klaus plugin.

    The metadata fields come from ``.claude-plugin/plugin.json``. The
    component lists are discovered by scanning the plugin directory at
    push time, so describe can report what a plugin provides without
    downloading its content layer.
    """

    skills: list[str] = Field(default_factory=list)
    commands: list[str] = Field(default_factory=list)
    agents: list[str] = Field(default_factory=list)
    has_hooks: bool = Field(default=False, alias="hasHooks")
    mcp_servers: list[str] = Field(default_factory=list, alias="mcpServers")
    lsp_servers: list[str] = Field(default_factory=list, alias="lspServers")


class Personality(ArtifactMetadata):
    """A Klaus personality: a toolchain plus plugins plus a soul.

    Loaded from ``personality.yaml`` and stored as the config blob. The
    soul (``SOUL.md``) lives only in the content layer.
    """

    toolchain: ToolchainReference | None = None
    plugins: list[PluginReference] = Field(default_factory=list)

    @property
    def dependencies(self) -> DependencySet:
        """The declared toolchain and plugins as a DependencySet."""
        toolchain = self.toolchain if self.toolchain and self.toolchain.repository else None
        return DependencySet(toolchain=toolchain, plugins=list(self.plugins))


class Toolchain(ArtifactMetadata):
    """A Klaus toolchain (container image), described by manifest annotations."""


# =============================================================================
# Operation Results
# =============================================================================


class ArtifactInfo(BaseModel):
    """OCI-level outcome of contacting the registry for one artifact."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ref: str = Field(..., description="Fully-qualified reference")
    tag: str = Field(default="", description="Resolved tag; empty for digest pins")
    digest: str = Field(default="", description="Manifest digest")


class ResolvedArtifact(ArtifactInfo):
    """ArtifactInfo plus whether the local content was already current."""

    cached: bool = False


class DescribedPlugin(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    artifact: ArtifactInfo
    plugin: Plugin


class DescribedPersonality(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    artifact: ArtifactInfo
    personality: Personality


class DescribedToolchain(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    artifact: ArtifactInfo
    toolchain: Toolchain


class PulledPlugin(BaseModel):
    """A plugin whose content has been landed in ``directory``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    artifact: ResolvedArtifact
    plugin: Plugin
    directory: Path

    @property
    def cached(self) -> bool:
        return self.artifact.cached


class PulledPersonality(BaseModel):
    """A personality whose content has been landed in ``directory``.

    ``soul`` holds the text of ``SOUL.md`` and is empty if the content
    layer has none.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    artifact: ResolvedArtifact
    personality: Personality
    soul: str = ""
    directory: Path

    @property
    def cached(self) -> bool:
        return self.artifact.cached


class DependencySet(BaseModel):
    """Declared composition of a personality."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    toolchain: ToolchainReference | None = None
    plugins: list[PluginReference] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.plugins) + (1 if self.toolchain is not None else 0)


class ResolvedDependencies(BaseModel):
    """Result of resolving a DependencySet.

    Every declared dependency appears exactly once: either in
    ``toolchain``/``plugins`` or as one entry of ``warnings``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    toolchain: DescribedToolchain | None = None
    plugins: list[DescribedPlugin] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class PushResult(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    digest: str


class AnnotationInfo(BaseModel):
    """Klaus identity read from manifest annotations. Missing keys are empty."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: str = ""
    name: str = ""
    version: str = ""


class ListedArtifact(BaseModel):
    """An artifact discovered by catalog listing."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    repository: str
    reference: str
    info: AnnotationInfo


# =============================================================================
# Digest Cache
# =============================================================================


class CacheRecord(BaseModel):
    """Contents of the digest cache side file.

    ``config_json`` keeps the raw config blob so describe-style metadata
    stays answerable when a pull is a cache hit. In the file it is embedded
    as a JSON value; records that stored it as a base64 string still load.

    Examples:
        >>> record = CacheRecord(digest="sha256:abc", ref="example.com/p/gs-base:v1.0.0")
        >>> record.pulled_at.tzinfo is not None
        True
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    digest: str = Field(..., min_length=1, description="Manifest digest of the content")
    ref: str = Field(default="", description="Reference used to populate the directory")
    pulled_at: datetime = Field(default_factory=_utc_now, alias="pulledAt")
    config_json: bytes | None = Field(default=None, alias="configJSON")
    annotations: dict[str, str] | None = None

    @field_validator("config_json", mode="before")
    @classmethod
    def _decode_config_json(cls, v: Any) -> Any:
        if v is None or isinstance(v, (bytes, bytearray)):
            return v
        if isinstance(v, str):
            return base64.b64decode(v, validate=True)
        return json.dumps(v, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    @field_serializer("config_json")
    def _encode_config_json(self, v: bytes | None) -> Any:
        if v is None:
            return None
        try:
            return json.loads(v)
        except ValueError:
            return base64.b64encode(v).decode("ascii")


# =============================================================================
# OCI Manifests
# =============================================================================


class Platform(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    architecture: str = ""
    os: str = ""
    variant: str = ""


class Descriptor(BaseModel):
    """An OCI content descriptor."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    media_type: str = Field(default="", alias="mediaType")
    digest: str
    size: int = Field(default=0, ge=0)
    annotations: dict[str, str] | None = None
    platform: Platform | None = None


class Manifest(BaseModel):
    """An OCI image manifest: config blob, layers and annotations."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    schema_version: int = Field(default=2, alias="schemaVersion")
    media_type: str = Field(default=MEDIA_TYPE_OCI_MANIFEST, alias="mediaType")
    config: Descriptor | None = None
    layers: list[Descriptor] = Field(default_factory=list)
    annotations: dict[str, str] | None = None

    def to_json(self) -> bytes:
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


class ManifestIndex(BaseModel):
    """An OCI image index (multi-platform manifest list)."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    schema_version: int = Field(default=2, alias="schemaVersion")
    media_type: str = Field(default="", alias="mediaType")
    manifests: list[Descriptor] = Field(default_factory=list)


# =============================================================================
# Client Configuration
# =============================================================================


class ClientConfig(BaseModel):
    """Settings for KlausClient and its HTTP transport.

    Typically the ``registry`` section of a YAML file:

    .. code-block:: yaml

        registry:
          concurrency: 5
          plain_http: true
          registry_auth_env: KLAUS_REGISTRY_AUTH
          plugin_registry: localhost:5000/klaus-plugins

    Examples:
        >>> ClientConfig().concurrency
        10
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    concurrency: int = Field(
        default=10,
        ge=1,
        le=20,
        description="Maximum parallel dependency resolutions",
    )
    plain_http: bool = Field(
        default=False,
        description="Talk to the registry over HTTP instead of HTTPS (local testing only)",
    )
    registry_auth_env: str | None = Field(
        default=None,
        description="Environment variable holding base64-encoded Docker config JSON",
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-request HTTP timeout",
    )
    platform_os: str = Field(default="linux", description="OS used to pick from image indexes")
    platform_arch: str = Field(
        default_factory=_default_arch,
        description="Architecture used to pick from image indexes",
    )
    plugin_registry: str = Field(default=DEFAULT_PLUGIN_REGISTRY, min_length=1)
    personality_registry: str = Field(default=DEFAULT_PERSONALITY_REGISTRY, min_length=1)
    toolchain_registry: str = Field(default=DEFAULT_TOOLCHAIN_REGISTRY, min_length=1)

    @field_validator("plugin_registry", "personality_registry", "toolchain_registry")
    @classmethod
    def validate_registry_base(cls, v: str) -> str:
        """Strip surrounding whitespace and a trailing slash."""
        v = v.strip().rstrip("/")
        if not v:
            raise ValueError("Registry base must not be empty")
        return v


__all__ = [
    "AnnotationInfo",
    "ArtifactInfo",
    "ArtifactMetadata",
    "ArtifactReference",
    "Author",
    "CacheRecord",
    "ClientConfig",
    "DependencySet",
    "DescribedPersonality",
    "DescribedPlugin",
    "DescribedToolchain",
    "Descriptor",
    "DigestPin",
    "ListedArtifact",
    "Manifest",
    "ManifestIndex",
    "Personality",
    "Platform",
    "Plugin",
    "PluginReference",
    "PulledPersonality",
    "PulledPlugin",
    "PushResult",
    "ResolvedArtifact",
    "ResolvedDependencies",
    "TagPin",
    "Toolchain",
    "ToolchainReference",
]
