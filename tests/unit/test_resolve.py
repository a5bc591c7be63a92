"""Unit tests for reference resolution."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from klaus_oci.errors import (
    ArtifactNotFoundError,
    InvalidReferenceError,
    NoSemverTagsError,
    ReferenceResolutionError,
)
from klaus_oci.resolve import (
    TagLister,
    resolve_artifact_ref,
    resolve_latest_version,
    resolve_references,
)
from klaus_oci.schemas import PluginReference

BASE = "registry.example.com/klaus-plugins"


@pytest.fixture
def lister(fake_registry: Any) -> Any:
    """Registry with tags for gs-base and a repository without semver tags."""
    fake_registry.add_tags(f"{BASE}/gs-base", "v0.0.1", "latest", "v0.0.3", "v0.0.2")
    fake_registry.add_tags(f"{BASE}/gs-dev", "main", "latest")
    return fake_registry


class TestResolveLatestVersion:
    """Tests for resolve_latest_version."""

    def test_picks_highest_semver(self, lister: Any) -> None:
        assert resolve_latest_version(lister, f"{BASE}/gs-base") == f"{BASE}/gs-base:v0.0.3"

    def test_no_semver_tags(self, lister: Any) -> None:
        with pytest.raises(NoSemverTagsError, match="no semver tags found") as exc_info:
            resolve_latest_version(lister, f"{BASE}/gs-dev")

        assert exc_info.value.available_tags == ["main", "latest"]

    def test_listing_error_propagates(self, lister: Any) -> None:
        with pytest.raises(ArtifactNotFoundError):
            resolve_latest_version(lister, f"{BASE}/missing")

    def test_fake_registry_is_a_tag_lister(self, lister: Any) -> None:
        assert isinstance(lister, TagLister)


class TestResolveArtifactRef:
    """Tests for resolve_artifact_ref."""

    def test_short_name_resolves_latest_semver(self, lister: Any) -> None:
        assert resolve_artifact_ref(lister, "gs-base", BASE) == f"{BASE}/gs-base:v0.0.3"

    def test_short_name_with_tag_skips_listing(self, lister: Any) -> None:
        ref = resolve_artifact_ref(lister, "gs-base:v0.0.1", BASE)

        assert ref == f"{BASE}/gs-base:v0.0.1"
        assert lister.list_tags_calls == []

    def test_latest_tag_triggers_resolution(self, lister: Any) -> None:
        assert resolve_artifact_ref(lister, "gs-base:latest", BASE) == f"{BASE}/gs-base:v0.0.3"

    def test_digest_returned_unchanged(self, lister: Any, sample_digest: str) -> None:
        ref = resolve_artifact_ref(lister, f"{BASE}/gs-base@{sample_digest}", BASE)

        assert ref == f"{BASE}/gs-base@{sample_digest}"
        assert lister.list_tags_calls == []

    def test_short_name_with_digest(self, lister: Any, sample_digest: str) -> None:
        ref = resolve_artifact_ref(lister, f"gs-base@{sample_digest}", BASE)

        assert ref == f"{BASE}/gs-base@{sample_digest}"

    def test_full_reference_ignores_base(self, lister: Any) -> None:
        ref = resolve_artifact_ref(lister, "other.example.com/x/y:v2.0.0", BASE)

        assert ref == "other.example.com/x/y:v2.0.0"

    def test_port_not_mistaken_for_tag(self, fake_registry: Any) -> None:
        fake_registry.add_tags("localhost:5000/klaus-plugins/gs-base", "v1.0.0")

        ref = resolve_artifact_ref(fake_registry, "localhost:5000/klaus-plugins/gs-base", BASE)

        assert ref == "localhost:5000/klaus-plugins/gs-base:v1.0.0"

    def test_base_trailing_slash(self, lister: Any) -> None:
        assert resolve_artifact_ref(lister, "gs-base:v1", BASE + "/") == f"{BASE}/gs-base:v1"

    def test_whitespace_trimmed(self, lister: Any) -> None:
        assert resolve_artifact_ref(lister, "  gs-base:v1 ", BASE) == f"{BASE}/gs-base:v1"

    @pytest.mark.parametrize("identifier", ["", "   "])
    def test_empty_identifier(self, lister: Any, identifier: str) -> None:
        with pytest.raises(InvalidReferenceError):
            resolve_artifact_ref(lister, identifier, BASE)

    def test_no_semver_tags(self, lister: Any) -> None:
        with pytest.raises(NoSemverTagsError):
            resolve_artifact_ref(lister, "gs-dev", BASE)


class TestResolveReferences:
    """Tests for resolve_references."""

    def test_pins_unpinned_and_latest(self, lister: Any, sample_digest: str) -> None:
        refs = [
            PluginReference(repository=f"{BASE}/gs-base"),
            PluginReference(repository=f"{BASE}/gs-base", tag="latest"),
            PluginReference(repository=f"{BASE}/gs-base", tag="v0.0.1"),
            PluginReference(repository=f"{BASE}/gs-other", digest=sample_digest),
        ]

        resolved = resolve_references(lister, refs)

        assert [r.ref for r in resolved] == [
            f"{BASE}/gs-base:v0.0.3",
            f"{BASE}/gs-base:v0.0.3",
            f"{BASE}/gs-base:v0.0.1",
            f"{BASE}/gs-other@{sample_digest}",
        ]

    def test_input_not_mutated(self, lister: Any) -> None:
        refs = [PluginReference(repository=f"{BASE}/gs-base")]

        resolved = resolve_references(lister, refs)

        assert resolved is not refs
        assert refs[0].pin is None
        assert isinstance(resolved[0], PluginReference)

    def test_pinned_entries_skip_listing(self) -> None:
        mock_lister = MagicMock()
        refs = [PluginReference(repository=f"{BASE}/gs-base", tag="v1.0.0")]

        assert resolve_references(mock_lister, refs) == refs
        mock_lister.list_tags.assert_not_called()

    def test_fails_fast_naming_repository(self, lister: Any) -> None:
        refs = [
            PluginReference(repository=f"{BASE}/gs-dev"),
            PluginReference(repository=f"{BASE}/gs-base"),
        ]

        with pytest.raises(ReferenceResolutionError) as exc_info:
            resolve_references(lister, refs)

        assert str(exc_info.value).startswith(f"resolving {BASE}/gs-dev: ")
        assert exc_info.value.repository == f"{BASE}/gs-dev"
        assert isinstance(exc_info.value.__cause__, NoSemverTagsError)
        assert lister.list_tags_calls == [f"{BASE}/gs-dev"]

    def test_empty(self, lister: Any) -> None:
        assert resolve_references(lister, []) == []
