"""Shared fixtures for klaus_oci tests.

Tests run without a registry or network. Registry behavior comes from
FakeRegistry, an in-memory RegistryTransport that stores tags, manifests
and blobs in dictionaries and records which blobs were fetched.

Key Fixtures:
- sample_digest: A valid sha256 digest string
- fake_registry: Empty FakeRegistry
- plugin_source: A plugin source directory on disk
- personality_source: A personality source directory on disk
"""

from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from klaus_oci.errors import ArtifactNotFoundError
from klaus_oci.mediatypes import MEDIA_TYPE_OCI_MANIFEST, ArtifactKind
from klaus_oci.schemas import Descriptor, Manifest
from klaus_oci.transport import compute_digest


class FakeRegistry:
    """In-memory RegistryTransport.

    Repositories are full ``host/path`` names. Tags keep insertion order
    so tests can check that resolution does not depend on it.
    """

    def __init__(self, page_size: int = 100) -> None:
        self.page_size = page_size
        self.tags: dict[str, list[str]] = {}
        self.tag_digests: dict[tuple[str, str], str] = {}
        self.manifests: dict[tuple[str, str], tuple[str, bytes]] = {}
        self.blobs: dict[tuple[str, str], bytes] = {}
        self.fetched_blobs: list[str] = []
        self.list_tags_calls: list[str] = []
        self.catalog_calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    # -- seeding helpers ----------------------------------------------------

    def add_tags(self, repository: str, *tags: str) -> None:
        self.tags.setdefault(repository, []).extend(tags)

    def add_blob(self, repository: str, data: bytes) -> str:
        digest = compute_digest(data)
        self.blobs[(repository, digest)] = data
        return digest

    def add_manifest(
        self,
        repository: str,
        tag: str,
        payload: dict | bytes,
        media_type: str = MEDIA_TYPE_OCI_MANIFEST,
    ) -> str:
        data = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        digest = compute_digest(data)
        self.manifests[(repository, digest)] = (media_type, data)
        self.tags.setdefault(repository, [])
        if tag:
            self.tag_digests[(repository, tag)] = digest
            if tag not in self.tags[repository]:
                self.tags[repository].append(tag)
        return digest

    def add_artifact(
        self,
        repository: str,
        tag: str,
        kind: ArtifactKind,
        config_json: bytes,
        content: bytes,
        annotations: dict[str, str] | None = None,
    ) -> str:
        """Store config, content and manifest; return the manifest digest."""
        config_digest = self.add_blob(repository, config_json)
        content_digest = self.add_blob(repository, content)
        manifest = Manifest(
            config=Descriptor(
                media_type=kind.config_media_type, digest=config_digest, size=len(config_json)
            ),
            layers=[
                Descriptor(
                    media_type=kind.content_media_type, digest=content_digest, size=len(content)
                )
            ],
            annotations=annotations,
        )
        return self.add_manifest(repository, tag, manifest.to_json())

    # -- RegistryTransport --------------------------------------------------

    def list_tags(self, repository: str) -> list[str]:
        with self._lock:
            self.list_tags_calls.append(repository)
        if repository not in self.tags:
            raise ArtifactNotFoundError(repository)
        return list(self.tags[repository])

    def resolve(self, repository: str, reference: str) -> Descriptor:
        if reference.startswith("sha256:"):
            digest = reference
        else:
            digest = self.tag_digests.get((repository, reference), "")
        if (repository, digest) not in self.manifests:
            raise ArtifactNotFoundError(f"{repository}:{reference}")
        media_type, data = self.manifests[(repository, digest)]
        return Descriptor(media_type=media_type, digest=digest, size=len(data))

    def fetch_manifest(self, repository: str, descriptor: Descriptor) -> bytes:
        try:
            return self.manifests[(repository, descriptor.digest)][1]
        except KeyError:
            raise ArtifactNotFoundError(f"{repository}@{descriptor.digest}") from None

    def fetch_blob(self, repository: str, descriptor: Descriptor) -> bytes:
        with self._lock:
            self.fetched_blobs.append(descriptor.digest)
        try:
            return self.blobs[(repository, descriptor.digest)]
        except KeyError:
            raise ArtifactNotFoundError(f"{repository}@{descriptor.digest}") from None

    def list_catalog(self, host: str, last: str = "") -> list[str]:
        self.catalog_calls.append((host, last))
        names = sorted(
            repository.split("/", 1)[1]
            for repository in self.tags
            if repository.split("/", 1)[0] == host
        )
        return [name for name in names if name > last][: self.page_size]

    def push_blob(self, repository: str, descriptor: Descriptor, data: bytes) -> None:
        self.blobs[(repository, descriptor.digest)] = data

    def push_manifest(
        self, repository: str, reference: str, media_type: str, data: bytes
    ) -> Descriptor:
        digest = compute_digest(data)
        self.manifests[(repository, digest)] = (media_type, data)
        self.tags.setdefault(repository, [])
        if not reference.startswith("sha256:"):
            self.tag_digests[(repository, reference)] = digest
        return Descriptor(media_type=media_type, digest=digest, size=len(data))

    def tag_manifest(self, repository: str, descriptor: Descriptor, tag: str) -> None:
        self.tag_digests[(repository, tag)] = descriptor.digest
        if tag not in self.tags.setdefault(repository, []):
            self.tags[repository].append(tag)


@pytest.fixture
def sample_digest() -> str:
    """Return a valid SHA256 digest for testing."""
    return "sha256:e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


@pytest.fixture
def fake_registry() -> FakeRegistry:
    """Return an empty in-memory registry."""
    return FakeRegistry()


@pytest.fixture
def plugin_source(tmp_path: Path) -> Path:
    """Create a plugin source directory with every component type.

    Layout:
        .claude-plugin/plugin.json, skills/kubernetes/SKILL.md,
        skills/notes (no SKILL.md), commands/deploy.md, agents/reviewer.md,
        hooks/pre.sh, .mcp.json (github, k8s), .lsp.json (gopls)
    """
    root = tmp_path / "gs-base"
    (root / ".claude-plugin").mkdir(parents=True)
    (root / ".claude-plugin" / "plugin.json").write_text(
        json.dumps(
            {
                "name": "gs-base",
                "description": "Base plugin",
                "author": {"name": "Giant Swarm", "email": "dev@example.com"},
                "keywords": ["kubernetes", "base"],
                "commands": "./custom-commands",
                "version": "9.9.9",
            }
        )
    )
    (root / "skills" / "kubernetes").mkdir(parents=True)
    (root / "skills" / "kubernetes" / "SKILL.md").write_text("# Kubernetes\n")
    (root / "skills" / "notes").mkdir()
    (root / "commands").mkdir()
    (root / "commands" / "deploy.md").write_text("deploy\n")
    (root / "commands" / "README.txt").write_text("not a command\n")
    (root / "agents").mkdir()
    (root / "agents" / "reviewer.md").write_text("review\n")
    (root / "hooks").mkdir()
    (root / "hooks" / "pre.sh").write_text("#!/bin/sh\n")
    (root / ".mcp.json").write_text(json.dumps({"k8s": {}, "github": {}}))
    (root / ".lsp.json").write_text(json.dumps({"gopls": {}}))
    return root


@pytest.fixture
def personality_source(tmp_path: Path) -> Path:
    """Create a personality source directory with a toolchain and two plugins."""
    root = tmp_path / "sre"
    root.mkdir()
    (root / "personality.yaml").write_text(
        "name: sre\n"
        "version: 0.0.1\n"
        "description: Site reliability engineer\n"
        "toolchain:\n"
        "  repository: registry.example.com/klaus-toolchains/go\n"
        "  tag: v1.0.0\n"
        "plugins:\n"
        "  - repository: registry.example.com/klaus-plugins/gs-base\n"
        "    tag: v0.0.3\n"
        "  - repository: registry.example.com/klaus-plugins/gs-sre\n"
    )
    (root / "SOUL.md").write_text("You are calm under pressure.\n")
    return root
