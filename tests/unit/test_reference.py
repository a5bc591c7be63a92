"""Unit tests for reference string helpers."""

from __future__ import annotations

import pytest

from klaus_oci.reference import (
    extract_tag,
    has_digest,
    has_tag_or_digest,
    registry_host,
    repository_from_ref,
    short_name,
    split_name_tag,
    split_reference,
    split_registry_base,
    truncate_digest,
)


class TestSplitReference:
    """Tests for split_reference."""

    @pytest.mark.parametrize(
        ("ref", "expected"),
        [
            ("example.com/p/gs-base:v1.0.0", ("example.com/p/gs-base", "v1.0.0", "")),
            ("example.com/p/gs-base@sha256:abc", ("example.com/p/gs-base", "", "sha256:abc")),
            ("example.com/p/gs-base", ("example.com/p/gs-base", "", "")),
            ("localhost:5000/p/gs-base", ("localhost:5000/p/gs-base", "", "")),
            ("localhost:5000/p/gs-base:v1", ("localhost:5000/p/gs-base", "v1", "")),
            ("gs-base:v1.0.0", ("gs-base", "v1.0.0", "")),
            ("gs-base", ("gs-base", "", "")),
        ],
    )
    def test_split(self, ref: str, expected: tuple[str, str, str]) -> None:
        assert split_reference(ref) == expected

    def test_port_is_never_a_tag(self) -> None:
        """Test a host port is not mistaken for a tag."""
        assert extract_tag("localhost:5000/klaus-plugins/gs-base") == ""
        assert repository_from_ref("localhost:5000/klaus-plugins/gs-base") == (
            "localhost:5000/klaus-plugins/gs-base"
        )


class TestHelpers:
    """Tests for the smaller reference helpers."""

    def test_split_name_tag_drops_digest(self) -> None:
        assert split_name_tag("example.com/p/x@sha256:abc") == ("example.com/p/x", "")

    def test_has_digest(self) -> None:
        assert has_digest("example.com/p/x@sha256:abc")
        assert not has_digest("example.com/p/x:v1")

    def test_has_tag_or_digest(self) -> None:
        assert has_tag_or_digest("example.com/p/x:v1")
        assert has_tag_or_digest("example.com/p/x@sha256:abc")
        assert not has_tag_or_digest("localhost:5000/p/x")

    def test_registry_host(self) -> None:
        assert registry_host("localhost:5000/p/x:v1") == "localhost:5000"

    @pytest.mark.parametrize(
        ("ref", "expected"),
        [
            ("gsoci.azurecr.io/giantswarm/klaus-plugins/gs-base:v1.0.0", "gs-base"),
            ("gsoci.azurecr.io/giantswarm/klaus-toolchains/go@sha256:abc", "go"),
            ("gs-base", "gs-base"),
        ],
    )
    def test_short_name(self, ref: str, expected: str) -> None:
        assert short_name(ref) == expected

    def test_truncate_digest(self, sample_digest: str) -> None:
        assert truncate_digest(sample_digest) == "e3b0c44298fc"

    def test_truncate_short_digest(self) -> None:
        assert truncate_digest("sha256:abc") == "abc"


class TestSplitRegistryBase:
    """Tests for split_registry_base."""

    def test_host_and_prefix(self) -> None:
        assert split_registry_base("gsoci.azurecr.io/giantswarm/klaus-plugins") == (
            "gsoci.azurecr.io",
            "giantswarm/klaus-plugins/",
        )

    def test_trailing_slash_ignored(self) -> None:
        assert split_registry_base("localhost:5000/klaus-plugins/") == (
            "localhost:5000",
            "klaus-plugins/",
        )

    def test_bare_host(self) -> None:
        assert split_registry_base("localhost:5000") == ("localhost:5000", "")
