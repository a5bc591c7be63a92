"""Klaus OCI manifest annotations.

All three artifact kinds carry the same ``io.giantswarm.klaus.*`` keys
on their manifest, so a listing can identify an artifact without
fetching its config blob. Toolchains are plain container images and
have no config blob of ours, so their metadata lives entirely in these
annotations.

Example:
    >>> annotations = {"io.giantswarm.klaus.type": "plugin", "io.giantswarm.klaus.name": "gs-base"}
    >>> annotation_info_from_annotations(annotations).name
    'gs-base'
"""

from __future__ import annotations

from collections.abc import Mapping

from klaus_oci.schemas import AnnotationInfo, ArtifactMetadata, Author, Toolchain

ANNOTATION_KLAUS_TYPE = "io.giantswarm.klaus.type"
ANNOTATION_KLAUS_NAME = "io.giantswarm.klaus.name"
ANNOTATION_KLAUS_VERSION = "io.giantswarm.klaus.version"

ANNOTATION_DESCRIPTION = "io.giantswarm.klaus.description"
ANNOTATION_AUTHOR_NAME = "io.giantswarm.klaus.author.name"
ANNOTATION_AUTHOR_EMAIL = "io.giantswarm.klaus.author.email"
ANNOTATION_AUTHOR_URL = "io.giantswarm.klaus.author.url"
ANNOTATION_HOMEPAGE = "io.giantswarm.klaus.homepage"
ANNOTATION_REPOSITORY = "io.giantswarm.klaus.repository"
ANNOTATION_LICENSE = "io.giantswarm.klaus.license"
ANNOTATION_KEYWORDS = "io.giantswarm.klaus.keywords"

OCI_ANNOTATION_TITLE = "org.opencontainers.image.title"
OCI_ANNOTATION_VERSION = "org.opencontainers.image.version"
OCI_ANNOTATION_DESCRIPTION = "org.opencontainers.image.description"

TYPE_PLUGIN = "plugin"
TYPE_PERSONALITY = "personality"
TYPE_TOOLCHAIN = "toolchain"


def annotation_info_from_annotations(annotations: Mapping[str, str]) -> AnnotationInfo:
    """Extract Klaus type, name and version. Missing keys become empty strings."""
    return AnnotationInfo(
        type=annotations.get(ANNOTATION_KLAUS_TYPE, ""),
        name=annotations.get(ANNOTATION_KLAUS_NAME, ""),
        version=annotations.get(ANNOTATION_KLAUS_VERSION, ""),
    )


def toolchain_from_annotations(annotations: Mapping[str, str]) -> Toolchain:
    """Build Toolchain metadata from manifest annotations.

    The name falls back to the OCI image title when the Klaus name is
    absent. Version is left empty; callers fill it from the OCI tag.

    Args:
        annotations: Manifest annotation map.

    Returns:
        Toolchain metadata.
    """
    author = None
    author_fields = {
        "name": annotations.get(ANNOTATION_AUTHOR_NAME, ""),
        "email": annotations.get(ANNOTATION_AUTHOR_EMAIL, ""),
        "url": annotations.get(ANNOTATION_AUTHOR_URL, ""),
    }
    if any(author_fields.values()):
        author = Author(**author_fields)

    keywords = [
        keyword.strip()
        for keyword in annotations.get(ANNOTATION_KEYWORDS, "").split(",")
        if keyword.strip()
    ]

    return Toolchain(
        name=annotations.get(ANNOTATION_KLAUS_NAME) or annotations.get(OCI_ANNOTATION_TITLE, ""),
        description=annotations.get(ANNOTATION_DESCRIPTION)
        or annotations.get(OCI_ANNOTATION_DESCRIPTION, ""),
        author=author,
        homepage=annotations.get(ANNOTATION_HOMEPAGE, ""),
        repository=annotations.get(ANNOTATION_REPOSITORY, ""),
        license=annotations.get(ANNOTATION_LICENSE, ""),
        keywords=keywords,
    )


def build_annotations(
    artifact_type: str,
    metadata: ArtifactMetadata,
    tag: str,
    extra: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Build the manifest annotations written on push.

    Standard OCI title/version/description are set alongside the Klaus
    identity keys. Empty values are omitted. ``extra`` entries win over
    the generated ones.

    Args:
        artifact_type: One of TYPE_PLUGIN, TYPE_PERSONALITY, TYPE_TOOLCHAIN.
        metadata: The artifact metadata being pushed.
        tag: The tag being pushed, recorded as the version.
        extra: Additional caller-supplied annotations.

    Returns:
        The annotation map.
    """
    annotations = {
        ANNOTATION_KLAUS_TYPE: artifact_type,
        ANNOTATION_KLAUS_NAME: metadata.name,
        ANNOTATION_KLAUS_VERSION: tag,
        OCI_ANNOTATION_TITLE: metadata.name,
        OCI_ANNOTATION_VERSION: tag,
        OCI_ANNOTATION_DESCRIPTION: metadata.description,
    }
    annotations = {key: value for key, value in annotations.items() if value}
    if extra:
        annotations.update(extra)
    return annotations


__all__ = [
    "ANNOTATION_AUTHOR_EMAIL",
    "ANNOTATION_AUTHOR_NAME",
    "ANNOTATION_AUTHOR_URL",
    "ANNOTATION_DESCRIPTION",
    "ANNOTATION_HOMEPAGE",
    "ANNOTATION_KEYWORDS",
    "ANNOTATION_KLAUS_NAME",
    "ANNOTATION_KLAUS_TYPE",
    "ANNOTATION_KLAUS_VERSION",
    "ANNOTATION_LICENSE",
    "ANNOTATION_REPOSITORY",
    "OCI_ANNOTATION_DESCRIPTION",
    "OCI_ANNOTATION_TITLE",
    "OCI_ANNOTATION_VERSION",
    "TYPE_PERSONALITY",
    "TYPE_PLUGIN",
    "TYPE_TOOLCHAIN",
    "annotation_info_from_annotations",
    "build_annotations",
    "toolchain_from_annotations",
]
