"""Registry transport built on the ORAS Python client.

RegistryTransport is the narrow capability set the rest of the package
consumes: tag listing, manifest resolution, manifest and blob fetch,
catalog paging, and the push-side counterparts. Tests substitute an
in-memory implementation; OrasRegistryTransport is the real one.

OrasRegistryTransport opens a fresh ``oras.client.OrasClient`` per
operation, scoped to the registry host and loaded with credentials from a
CredentialResolver. ORAS answers Basic and Bearer challenges, follows
tag-list pagination and runs the POST-then-PUT blob upload. Manifests
travel through ``OrasClient.do_request`` so the exact bytes covered by a
digest are kept on both the read and the write side.

Error Mapping:
    401/403              -> AuthenticationError
    404                  -> ArtifactNotFoundError
    other >= 400         -> OCIError
    connection/timeouts  -> RegistryUnavailableError
    content hash differs -> DigestMismatchError

Example:
    >>> transport = OrasRegistryTransport(credential_resolver=DockerConfigCredentialResolver())
    >>> transport.list_tags("gsoci.azurecr.io/giantswarm/klaus-plugins/gs-base")
    ['v0.1.0', 'v0.2.0']
"""

from __future__ import annotations

import hashlib
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlencode

import requests
import structlog
from oras.client import OrasClient
from oras.container import Container
from requests.adapters import HTTPAdapter

from klaus_oci.auth import CredentialResolver
from klaus_oci.errors import (
    ArtifactNotFoundError,
    AuthenticationError,
    DigestMismatchError,
    InvalidReferenceError,
    OCIError,
    RegistryUnavailableError,
)
from klaus_oci.mediatypes import MANIFEST_MEDIA_TYPES
from klaus_oci.schemas import Descriptor

logger = structlog.get_logger(__name__)

DEFAULT_PAGE_SIZE = 100
"""Page size requested for catalog listings."""

_BLOB_MEDIA_TYPE = "application/octet-stream"


def compute_digest(data: bytes) -> str:
    """Return the sha256 content digest of ``data``."""
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


def verify_digest(data: bytes, expected: str, artifact_ref: str) -> None:
    """Check that ``data`` hashes to ``expected``.

    Only sha256 digests are verified; other algorithms pass through.

    Raises:
        DigestMismatchError: If the sha256 digest differs.
    """
    if not expected.startswith("sha256:"):
        return
    actual = compute_digest(data)
    if actual != expected:
        raise DigestMismatchError(expected, actual, artifact_ref)


def split_repository(repository: str) -> tuple[str, str]:
    """Split ``host[:port]/path`` into host and repository path.

    Raises:
        InvalidReferenceError: If there is no path after the host.
    """
    host, _, name = repository.partition("/")
    if not host or not name:
        raise InvalidReferenceError(repository, "repository must include a registry host and path")
    return host, name


# =============================================================================
# Transport Protocol
# =============================================================================


@runtime_checkable
class RegistryTransport(Protocol):
    """Registry operations consumed by the client.

    ``repository`` arguments are full ``host/path`` names without tag or
    digest. ``reference`` arguments are a tag or a digest.
    """

    def list_tags(self, repository: str) -> list[str]: ...

    def resolve(self, repository: str, reference: str) -> Descriptor: ...

    def fetch_manifest(self, repository: str, descriptor: Descriptor) -> bytes: ...

    def fetch_blob(self, repository: str, descriptor: Descriptor) -> bytes: ...

    def list_catalog(self, host: str, last: str = "") -> list[str]: ...

    def push_blob(self, repository: str, descriptor: Descriptor, data: bytes) -> None: ...

    def push_manifest(
        self, repository: str, reference: str, media_type: str, data: bytes
    ) -> Descriptor: ...

    def tag_manifest(self, repository: str, descriptor: Descriptor, tag: str) -> None: ...


# =============================================================================
# Error mapping
# =============================================================================


def raise_for_status(
    response: requests.Response, host: str, reference: str, operation: str
) -> None:
    """Raise the OCIError matching a failed registry response."""
    status = response.status_code
    if status in (401, 403):
        raise AuthenticationError(host, f"{operation} {reference}: HTTP {status}")
    if status == 404:
        raise ArtifactNotFoundError(reference)
    if status >= 400:
        raise OCIError(f"{operation} {reference}: HTTP {status}: {response.text[:200]}")


def map_oras_error(error: Exception, host: str, reference: str, operation: str) -> OCIError:
    """Translate an exception raised inside the ORAS client into an OCIError.

    ORAS reports failed responses as ``ValueError`` carrying the HTTP
    reason phrase, so those are classified by message.
    """
    if isinstance(error, requests.exceptions.JSONDecodeError):
        return OCIError(f"{operation} {reference}: invalid JSON response")
    if isinstance(error, (requests.ConnectionError, requests.Timeout)):
        return RegistryUnavailableError(host, f"{operation} {reference}: {error}")

    message = str(error).lower()
    if "not found" in message or "manifest unknown" in message:
        return ArtifactNotFoundError(reference)
    if any(word in message for word in ("unauthorized", "forbidden", "authentication")):
        return AuthenticationError(host, f"{operation} {reference}: {error}")
    if isinstance(error, requests.RequestException):
        return RegistryUnavailableError(host, f"{operation} {reference}: {error}")
    return OCIError(f"{operation} {reference}: {error}")


# =============================================================================
# ORAS Transport
# =============================================================================


class _TimeoutAdapter(HTTPAdapter):
    """HTTPAdapter applying a default timeout to every request."""

    def __init__(self, timeout: float) -> None:
        super().__init__()
        self._timeout = timeout

    def send(  # type: ignore[override]
        self, request: requests.PreparedRequest, **kwargs: Any
    ) -> requests.Response:
        if kwargs.get("timeout") is None:
            kwargs["timeout"] = self._timeout
        return super().send(request, **kwargs)


class OrasRegistryTransport:
    """RegistryTransport backed by ``oras.client.OrasClient``.

    Each operation gets its own ORAS client. The ORAS token backend holds a
    single bearer token, so sharing one client across repositories or
    worker threads would replay a token scoped to another repository.

    Args:
        credential_resolver: Source of registry credentials. None means
            anonymous, which still works for registries issuing anonymous
            tokens.
        plain_http: Use ``http://`` instead of ``https://``.
        timeout: Per-request timeout in seconds.
        page_size: Page size for catalog listings.
        client_factory: Builds the ORAS client for a host. Tests inject one
            returning a mock.
    """

    def __init__(
        self,
        *,
        credential_resolver: CredentialResolver | None = None,
        plain_http: bool = False,
        timeout: float = 30.0,
        page_size: int = DEFAULT_PAGE_SIZE,
        client_factory: Callable[[str], OrasClient] | None = None,
    ) -> None:
        self._resolver = credential_resolver
        self._plain_http = plain_http
        self._timeout = timeout
        self._page_size = page_size
        self._client_factory = client_factory or self._create_oras_client

    def _create_oras_client(self, host: str) -> OrasClient:
        """Create an ORAS client for ``host`` with resolved credentials.

        Credentials go straight to the ORAS auth backend.
        ``OrasClient.login`` would also write them into the user's Docker
        config file.
        """
        client = OrasClient(hostname=host, insecure=self._plain_http, auth_backend="token")
        adapter = _TimeoutAdapter(self._timeout)
        client.session.mount("https://", adapter)
        client.session.mount("http://", adapter)

        credentials = self._resolver.resolve(host) if self._resolver is not None else None
        if credentials is not None:
            client.auth.set_basic_auth(credentials.username, credentials.password)
            logger.debug("registry_credentials_loaded", host=host, username=credentials.username)
        return client

    @contextmanager
    def _oras(self, host: str, reference: str, operation: str) -> Iterator[OrasClient]:
        client = self._client_factory(host)
        try:
            yield client
        except OCIError:
            raise
        except Exception as e:
            raise map_oras_error(e, host, reference, operation) from e
        finally:
            client.session.close()

    @staticmethod
    def _container(host: str, name: str, reference: str = "") -> Container:
        if reference:
            name = f"{name}@{reference}" if ":" in reference else f"{name}:{reference}"
        return Container(name, registry=host)

    @staticmethod
    def _ref(repository: str, reference: str) -> str:
        separator = "@" if ":" in reference else ":"
        return f"{repository}{separator}{reference}"

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    def list_tags(self, repository: str) -> list[str]:
        host, name = split_repository(repository)
        with self._oras(host, repository, "listing tags for") as client:
            tags = list(client.get_tags(self._container(host, name)))
        logger.debug("tags_listed", repository=repository, count=len(tags))
        return tags

    def resolve(self, repository: str, reference: str) -> Descriptor:
        """Resolve a tag or digest to the manifest descriptor.

        Uses HEAD and the ``Docker-Content-Digest`` header; falls back to
        GET and hashing the body when the registry omits the header.
        """
        host, name = split_repository(repository)
        ref = self._ref(repository, reference)
        accept = ", ".join(MANIFEST_MEDIA_TYPES)

        with self._oras(host, ref, "resolving") as client:
            url = f"{client.prefix}://{self._container(host, name).manifest_url(reference)}"
            response = client.do_request(url, "HEAD", headers={"Accept": accept})
            raise_for_status(response, host, ref, "resolving")
            digest = response.headers.get("Docker-Content-Digest", "")
            size = int(response.headers.get("Content-Length", "0") or 0)
            if not digest:
                response = client.do_request(url, "GET", headers={"Accept": accept})
                raise_for_status(response, host, ref, "resolving")
                digest = compute_digest(response.content)
                size = len(response.content)

        media_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        logger.debug("manifest_resolved", ref=ref, digest=digest, media_type=media_type)
        return Descriptor(media_type=media_type, digest=digest, size=size)

    def fetch_manifest(self, repository: str, descriptor: Descriptor) -> bytes:
        """Fetch the raw manifest bytes for ``descriptor``.

        ``OrasClient.get_manifest`` returns parsed JSON, which cannot be
        checked against the digest, so the GET goes through ``do_request``.
        """
        host, name = split_repository(repository)
        ref = f"{repository}@{descriptor.digest}"
        accept = descriptor.media_type or ", ".join(MANIFEST_MEDIA_TYPES)

        with self._oras(host, ref, "fetching manifest for") as client:
            container = self._container(host, name, descriptor.digest)
            response = client.do_request(
                f"{client.prefix}://{container.manifest_url()}", "GET", headers={"Accept": accept}
            )
            raise_for_status(response, host, ref, "fetching manifest for")

        verify_digest(response.content, descriptor.digest, ref)
        return response.content

    def fetch_blob(self, repository: str, descriptor: Descriptor) -> bytes:
        host, name = split_repository(repository)
        ref = f"{repository}@{descriptor.digest}"
        with self._oras(host, ref, "fetching blob for") as client:
            response = client.get_blob(self._container(host, name), descriptor.digest)
            raise_for_status(response, host, ref, "fetching blob for")

        verify_digest(response.content, descriptor.digest, ref)
        return response.content

    def list_catalog(self, host: str, last: str = "") -> list[str]:
        """Return one page of repository names, starting after ``last``."""
        params: dict[str, Any] = {"n": self._page_size}
        if last:
            params["last"] = last
        operation = "listing repositories in"

        with self._oras(host, host, operation) as client:
            url = f"{client.prefix}://{host}/v2/_catalog?{urlencode(params)}"
            response = client.do_request(url, "GET")
            raise_for_status(response, host, host, operation)
            body = response.json()

        if not isinstance(body, dict):
            raise OCIError(f"{operation} {host}: unexpected response shape")
        return list(body.get("repositories") or [])

    # -------------------------------------------------------------------------
    # Write side
    # -------------------------------------------------------------------------

    def push_blob(self, repository: str, descriptor: Descriptor, data: bytes) -> None:
        """Upload a blob through ``OrasClient.upload_blob``.

        ORAS skips blobs the registry already has.
        """
        host, name = split_repository(repository)
        ref = f"{repository}@{descriptor.digest}"
        layer = {
            "mediaType": descriptor.media_type or _BLOB_MEDIA_TYPE,
            "digest": descriptor.digest,
            "size": len(data),
        }

        with tempfile.TemporaryDirectory(prefix="klaus-oci-") as tmp:
            blob_path = Path(tmp) / "blob"
            blob_path.write_bytes(data)
            with self._oras(host, ref, "uploading blob to") as client:
                response = client.upload_blob(str(blob_path), self._container(host, name), layer)
                raise_for_status(response, host, ref, "uploading blob to")

        logger.debug("blob_pushed", repository=repository, digest=descriptor.digest, size=len(data))

    def push_manifest(
        self, repository: str, reference: str, media_type: str, data: bytes
    ) -> Descriptor:
        """PUT manifest bytes under a tag or digest.

        ``OrasClient.upload_manifest`` re-serializes a dict and fixes the
        media type, so the stored bytes would no longer match the digest of
        ``data``. The PUT goes through ``do_request`` with the bytes as-is.
        """
        host, name = split_repository(repository)
        ref = self._ref(repository, reference)
        operation = "pushing manifest to"

        with self._oras(host, ref, operation) as client:
            url = f"{client.prefix}://{self._container(host, name).manifest_url(reference)}"
            response = client.do_request(
                url, "PUT", data=data, headers={"Content-Type": media_type}
            )
            raise_for_status(response, host, ref, operation)

        descriptor = Descriptor(media_type=media_type, digest=compute_digest(data), size=len(data))
        logger.debug("manifest_pushed", repository=repository, reference=reference)
        return descriptor

    def tag_manifest(self, repository: str, descriptor: Descriptor, tag: str) -> None:
        data = self.fetch_manifest(repository, descriptor)
        self.push_manifest(repository, tag, descriptor.media_type, data)


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "OrasRegistryTransport",
    "RegistryTransport",
    "compute_digest",
    "map_oras_error",
    "raise_for_status",
    "split_repository",
    "verify_digest",
]
