"""Registry credential resolution.

The HTTP transport asks a CredentialResolver for credentials whenever a
registry answers with an authentication challenge. The default resolver
reads the credential stores that docker and podman maintain, in order:

    1. An environment variable holding base64-encoded Docker config JSON
       (only when the variable name is configured)
    2. ~/.docker/config.json
    3. $XDG_RUNTIME_DIR/containers/auth.json
    4. Anonymous (no credentials)

Example:
    >>> resolver = DockerConfigCredentialResolver(registry_auth_env="KLAUS_REGISTRY_AUTH")
    >>> creds = resolver.resolve("gsoci.azurecr.io")
"""

from __future__ import annotations

import base64
import binascii
import json
import os
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Credentials:
    """Container for registry credentials.

    Attributes:
        username: Username for basic auth.
        password: Password or identity token.
    """

    username: str
    password: str


class CredentialResolver(ABC):
    """Source of credentials for a registry host."""

    @abstractmethod
    def resolve(self, host: str) -> Credentials | None:
        """Return credentials for ``host`` (``name[:port]``), or None for anonymous."""


class StaticCredentialResolver(CredentialResolver):
    """Resolver over a fixed host-to-credentials mapping."""

    def __init__(self, credentials: Mapping[str, Credentials] | None = None) -> None:
        self._credentials = dict(credentials or {})

    def resolve(self, host: str) -> Credentials | None:
        return _lookup_host(self._credentials, host)


class DockerConfigCredentialResolver(CredentialResolver):
    """Resolve credentials from Docker/Podman config files.

    Sources that are missing, unreadable, malformed or lack an entry for
    the host are skipped; the next source is tried.

    Args:
        registry_auth_env: Name of an environment variable holding
            base64-encoded Docker config JSON. Checked first when set.
        docker_config_path: Override for ~/.docker/config.json.
        podman_auth_path: Override for $XDG_RUNTIME_DIR/containers/auth.json.
    """

    def __init__(
        self,
        registry_auth_env: str | None = None,
        *,
        docker_config_path: Path | None = None,
        podman_auth_path: Path | None = None,
    ) -> None:
        self._registry_auth_env = registry_auth_env
        self._docker_config_path = docker_config_path
        self._podman_auth_path = podman_auth_path

    def _docker_config(self) -> Path | None:
        if self._docker_config_path is not None:
            return self._docker_config_path
        try:
            return Path.home() / ".docker" / "config.json"
        except RuntimeError:
            return None

    def _podman_auth(self) -> Path | None:
        if self._podman_auth_path is not None:
            return self._podman_auth_path
        runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
        if not runtime_dir:
            return None
        return Path(runtime_dir) / "containers" / "auth.json"

    def resolve(self, host: str) -> Credentials | None:
        if self._registry_auth_env:
            env_value = os.environ.get(self._registry_auth_env, "")
            if env_value:
                creds = credentials_from_env(env_value, host)
                if creds is not None:
                    logger.debug("credentials_resolved", host=host, source="env")
                    return creds

        for source, path in (("docker", self._docker_config()), ("podman", self._podman_auth())):
            if path is None:
                continue
            creds = credentials_from_file(path, host)
            if creds is not None:
                logger.debug("credentials_resolved", host=host, source=source)
                return creds

        logger.debug("credentials_anonymous", host=host)
        return None


def credentials_from_env(env_value: str, host: str) -> Credentials | None:
    """Decode base64 Docker config JSON and look up ``host``."""
    try:
        data = base64.b64decode(env_value, validate=True)
    except (binascii.Error, ValueError):
        return None
    return credentials_from_json(data, host)


def credentials_from_file(path: Path, host: str) -> Credentials | None:
    """Read a Docker/Podman config file and look up ``host``."""
    try:
        data = Path(path).read_bytes()
    except OSError:
        return None
    return credentials_from_json(data, host)


def credentials_from_json(data: bytes, host: str) -> Credentials | None:
    """Extract credentials for ``host`` from Docker config JSON.

    The lookup tries ``host`` as given, then without its port. Each entry
    holds ``auth`` as ``base64(username:password)``.

    Args:
        data: Docker config JSON bytes.
        host: Registry host, optionally with port.

    Returns:
        Credentials, or None if the JSON is invalid or has no usable entry.
    """
    try:
        config = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(config, dict) or not isinstance(config.get("auths"), dict):
        return None

    entry = _lookup_host(config["auths"], host)
    if not isinstance(entry, dict) or not entry.get("auth"):
        return None

    try:
        decoded = base64.b64decode(entry["auth"], validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return None

    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return Credentials(username=username, password=password)


def _lookup_host(entries: Mapping[str, object], host: str) -> object | None:
    if host in entries:
        return entries[host]
    name, sep, port = host.rpartition(":")
    if sep and name and port.isdigit():
        return entries.get(name)
    return None


__all__ = [
    "CredentialResolver",
    "Credentials",
    "DockerConfigCredentialResolver",
    "StaticCredentialResolver",
    "credentials_from_env",
    "credentials_from_file",
    "credentials_from_json",
]
