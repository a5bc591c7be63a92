"""OCI media types for Klaus artifacts and the manifests that carry them.

Plugins and personalities are custom OCI artifacts: one JSON config blob
plus one gzip-compressed tar content layer, each with its own media type.
Toolchains are ordinary container images and have no Klaus media types.

Example:
    >>> from klaus_oci.mediatypes import PLUGIN_ARTIFACT
    >>> PLUGIN_ARTIFACT.content_media_type
    'application/vnd.giantswarm.klaus-plugin.content.v1.tar+gzip'
"""

from __future__ import annotations

from dataclasses import dataclass

MEDIA_TYPE_PLUGIN_CONFIG = "application/vnd.giantswarm.klaus-plugin.config.v1+json"
MEDIA_TYPE_PLUGIN_CONTENT = "application/vnd.giantswarm.klaus-plugin.content.v1.tar+gzip"

MEDIA_TYPE_PERSONALITY_CONFIG = "application/vnd.giantswarm.klaus-personality.config.v1+json"
MEDIA_TYPE_PERSONALITY_CONTENT = (
    "application/vnd.giantswarm.klaus-personality.content.v1.tar+gzip"
)

MEDIA_TYPE_OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
MEDIA_TYPE_OCI_INDEX = "application/vnd.oci.image.index.v1+json"
MEDIA_TYPE_DOCKER_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"
MEDIA_TYPE_DOCKER_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"

MANIFEST_MEDIA_TYPES = (
    MEDIA_TYPE_OCI_MANIFEST,
    MEDIA_TYPE_OCI_INDEX,
    MEDIA_TYPE_DOCKER_MANIFEST,
    MEDIA_TYPE_DOCKER_MANIFEST_LIST,
)
"""Media types accepted when resolving or fetching a manifest."""

INDEX_MEDIA_TYPES = frozenset({MEDIA_TYPE_OCI_INDEX, MEDIA_TYPE_DOCKER_MANIFEST_LIST})
IMAGE_MANIFEST_MEDIA_TYPES = frozenset({MEDIA_TYPE_OCI_MANIFEST, MEDIA_TYPE_DOCKER_MANIFEST})


@dataclass(frozen=True)
class ArtifactKind:
    """The pair of media types identifying one kind of Klaus artifact.

    Attributes:
        name: Kind name, also used as the ``io.giantswarm.klaus.type`` value.
        config_media_type: Media type of the config blob.
        content_media_type: Media type of the content layer.
    """

    name: str
    config_media_type: str
    content_media_type: str


PLUGIN_ARTIFACT = ArtifactKind(
    name="plugin",
    config_media_type=MEDIA_TYPE_PLUGIN_CONFIG,
    content_media_type=MEDIA_TYPE_PLUGIN_CONTENT,
)

PERSONALITY_ARTIFACT = ArtifactKind(
    name="personality",
    config_media_type=MEDIA_TYPE_PERSONALITY_CONFIG,
    content_media_type=MEDIA_TYPE_PERSONALITY_CONTENT,
)

__all__ = [
    "ArtifactKind",
    "IMAGE_MANIFEST_MEDIA_TYPES",
    "INDEX_MEDIA_TYPES",
    "MANIFEST_MEDIA_TYPES",
    "MEDIA_TYPE_DOCKER_MANIFEST",
    "MEDIA_TYPE_DOCKER_MANIFEST_LIST",
    "MEDIA_TYPE_OCI_INDEX",
    "MEDIA_TYPE_OCI_MANIFEST",
    "MEDIA_TYPE_PERSONALITY_CONFIG",
    "MEDIA_TYPE_PERSONALITY_CONTENT",
    "MEDIA_TYPE_PLUGIN_CONFIG",
    "MEDIA_TYPE_PLUGIN_CONTENT",
    "PERSONALITY_ARTIFACT",
    "PLUGIN_ARTIFACT",
]
