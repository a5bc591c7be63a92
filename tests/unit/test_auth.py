"""Unit tests for registry credential resolution."""

from __future__ import annotations

import base64
import json
from pathlib import Path

import pytest

from klaus_oci.auth import (
    Credentials,
    DockerConfigCredentialResolver,
    StaticCredentialResolver,
    credentials_from_env,
    credentials_from_json,
)


def _docker_config(auths: dict[str, str]) -> bytes:
    return json.dumps(
        {
            "auths": {
                host: {"auth": base64.b64encode(userpass.encode()).decode()}
                for host, userpass in auths.items()
            }
        }
    ).encode()


class TestCredentialsFromJson:
    """Tests for Docker config JSON parsing."""

    def test_exact_host(self) -> None:
        data = _docker_config({"registry.example.com": "alice:secret"})

        assert credentials_from_json(data, "registry.example.com") == Credentials("alice", "secret")

    def test_password_may_contain_colon(self) -> None:
        data = _docker_config({"r.example.com": "alice:se:cret"})

        assert credentials_from_json(data, "r.example.com") == Credentials("alice", "se:cret")

    def test_host_with_port_falls_back_to_bare_host(self) -> None:
        data = _docker_config({"localhost": "bob:pw"})

        assert credentials_from_json(data, "localhost:5000") == Credentials("bob", "pw")

    def test_exact_port_match_preferred(self) -> None:
        data = _docker_config({"localhost": "bob:pw", "localhost:5000": "carol:pw2"})

        assert credentials_from_json(data, "localhost:5000") == Credentials("carol", "pw2")

    @pytest.mark.parametrize(
        "data",
        [
            b"not json",
            b"[]",
            b'{"auths": []}',
            b'{"auths": {"r.example.com": {}}}',
            b'{"auths": {"r.example.com": {"auth": "!!!"}}}',
            json.dumps(
                {"auths": {"r.example.com": {"auth": base64.b64encode(b"nocolon").decode()}}}
            ).encode(),
        ],
    )
    def test_unusable_data_returns_none(self, data: bytes) -> None:
        assert credentials_from_json(data, "r.example.com") is None

    def test_unknown_host(self) -> None:
        data = _docker_config({"a.example.com": "u:p"})

        assert credentials_from_json(data, "b.example.com") is None


class TestCredentialsFromEnv:
    """Tests for base64-encoded Docker config in an environment variable."""

    def test_decodes(self) -> None:
        value = base64.b64encode(_docker_config({"r.example.com": "u:p"})).decode()

        assert credentials_from_env(value, "r.example.com") == Credentials("u", "p")

    def test_invalid_base64(self) -> None:
        assert credentials_from_env("%%%", "r.example.com") is None


class TestDockerConfigCredentialResolver:
    """Tests for the credential source chain."""

    @pytest.fixture
    def docker_config(self, tmp_path: Path) -> Path:
        path = tmp_path / "docker" / "config.json"
        path.parent.mkdir()
        path.write_bytes(_docker_config({"r.example.com": "docker:pw"}))
        return path

    @pytest.fixture
    def podman_auth(self, tmp_path: Path) -> Path:
        path = tmp_path / "containers" / "auth.json"
        path.parent.mkdir()
        path.write_bytes(
            _docker_config({"r.example.com": "podman:pw", "p.example.com": "podman:pw"})
        )
        return path

    def test_env_var_first(
        self, monkeypatch: pytest.MonkeyPatch, docker_config: Path, podman_auth: Path
    ) -> None:
        value = base64.b64encode(_docker_config({"r.example.com": "env:pw"})).decode()
        monkeypatch.setenv("KLAUS_REGISTRY_AUTH", value)
        resolver = DockerConfigCredentialResolver(
            "KLAUS_REGISTRY_AUTH", docker_config_path=docker_config, podman_auth_path=podman_auth
        )

        assert resolver.resolve("r.example.com") == Credentials("env", "pw")

    def test_env_var_ignored_when_not_configured(
        self, monkeypatch: pytest.MonkeyPatch, docker_config: Path, podman_auth: Path
    ) -> None:
        value = base64.b64encode(_docker_config({"r.example.com": "env:pw"})).decode()
        monkeypatch.setenv("KLAUS_REGISTRY_AUTH", value)
        resolver = DockerConfigCredentialResolver(
            docker_config_path=docker_config, podman_auth_path=podman_auth
        )

        assert resolver.resolve("r.example.com") == Credentials("docker", "pw")

    def test_falls_through_to_podman(self, docker_config: Path, podman_auth: Path) -> None:
        resolver = DockerConfigCredentialResolver(
            docker_config_path=docker_config, podman_auth_path=podman_auth
        )

        assert resolver.resolve("p.example.com") == Credentials("podman", "pw")

    def test_podman_from_xdg_runtime_dir(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, podman_auth: Path
    ) -> None:
        monkeypatch.setenv("XDG_RUNTIME_DIR", str(tmp_path))
        resolver = DockerConfigCredentialResolver(docker_config_path=tmp_path / "missing.json")

        assert resolver.resolve("p.example.com") == Credentials("podman", "pw")

    def test_anonymous(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.delenv("XDG_RUNTIME_DIR", raising=False)
        resolver = DockerConfigCredentialResolver(docker_config_path=tmp_path / "missing.json")

        assert resolver.resolve("r.example.com") is None


class TestStaticCredentialResolver:
    """Tests for StaticCredentialResolver."""

    def test_lookup(self) -> None:
        resolver = StaticCredentialResolver({"localhost": Credentials("u", "p")})

        assert resolver.resolve("localhost:5000") == Credentials("u", "p")
        assert resolver.resolve("other") is None
