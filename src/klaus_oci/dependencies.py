"""Concurrent resolution of a personality's dependencies.

A personality declares an optional toolchain and any number of plugins.
Each is resolved to a concrete tag and described (manifest + config
blob, no content layer) in parallel on a bounded thread pool. A
dependency that cannot be resolved becomes a warning; it never fails
the whole operation, so callers always get a usable partial result.

Ordering:
    Resolved plugins keep their declaration order. Each task writes into
    a pre-sized slot by original index; unresolved slots are dropped
    after all tasks finish. Warnings are unordered.

Example:
    >>> resolver = DependencyResolver(client, max_workers=10)
    >>> deps = resolver.resolve(personality.dependencies)
    >>> for warning in deps.warnings:
    ...     print(warning)
    plugin gsoci.azurecr.io/giantswarm/klaus-plugins/gs-missing: Artifact not found: ...
"""

from __future__ import annotations

import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Protocol

import structlog

from klaus_oci.errors import OperationCancelledError
from klaus_oci.schemas import (
    ArtifactReference,
    DependencySet,
    DescribedPlugin,
    DescribedToolchain,
    ResolvedDependencies,
)

logger = structlog.get_logger(__name__)


DEFAULT_MAX_WORKERS = 10
"""Default number of dependencies resolved in parallel."""

MAX_WORKERS_LIMIT = 20
"""Maximum allowed workers to prevent overwhelming registries."""

_CANCEL_POLL_SECONDS = 0.1

KIND_TOOLCHAIN = "toolchain"
KIND_PLUGIN = "plugin"


class ArtifactDescriber(Protocol):
    """Describe operations used per dependency.

    Each call resolves the reference (short name, "latest" or bare
    repository) before fetching the manifest and config.
    """

    def describe_toolchain(self, ref: str) -> DescribedToolchain: ...

    def describe_plugin(self, ref: str) -> DescribedPlugin: ...


class DependencyResolver:
    """Resolves a DependencySet concurrently, tolerating partial failure.

    Thread Safety:
        Each call to resolve() creates its own executor and accumulator,
        so one resolver may be shared across threads.
    """

    def __init__(
        self,
        describer: ArtifactDescriber,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ) -> None:
        """Initialize DependencyResolver.

        Args:
            describer: Provider of describe_toolchain/describe_plugin.
            max_workers: Maximum parallel resolutions. Capped at
                MAX_WORKERS_LIMIT; non-positive values use the default.
        """
        if max_workers <= 0:
            max_workers = DEFAULT_MAX_WORKERS
        self._describer = describer
        self._max_workers = min(max_workers, MAX_WORKERS_LIMIT)

    @property
    def max_workers(self) -> int:
        """Return the maximum number of worker threads."""
        return self._max_workers

    def resolve(
        self,
        deps: DependencySet,
        cancel_event: threading.Event | None = None,
    ) -> ResolvedDependencies:
        """Resolve every declared dependency.

        Args:
            deps: The toolchain and plugin references to resolve.
            cancel_event: Set by the caller to abandon the operation. Tasks
                not yet started do no work, pending ones are cancelled, and
                the call returns without waiting for in-flight requests.

        Returns:
            ResolvedDependencies with the described toolchain (if any),
            the described plugins in declaration order, and one warning
            per dependency that could not be resolved.

        Raises:
            OperationCancelledError: If ``cancel_event`` is set before all
                dependencies have been resolved.
        """
        plugins = list(deps.plugins)
        toolchain = deps.toolchain if deps.toolchain and deps.toolchain.repository else None
        if toolchain is None and not plugins:
            return ResolvedDependencies()

        log = logger.bind(
            toolchain=toolchain.ref if toolchain else None,
            plugin_count=len(plugins),
            max_workers=self._max_workers,
        )
        log.debug("dependency_resolve_started")

        lock = threading.Lock()
        slots: list[DescribedPlugin | None] = [None] * len(plugins)
        resolved_toolchain: list[DescribedToolchain] = []
        warnings: list[str] = []

        def _cancelled() -> bool:
            return cancel_event is not None and cancel_event.is_set()

        def _record_failure(kind: str, reference: ArtifactReference, error: Exception) -> None:
            log.warning(
                "dependency_resolve_failed",
                kind=kind,
                ref=reference.ref,
                error=str(error),
                error_type=type(error).__name__,
            )
            with lock:
                warnings.append(f"{kind} {reference.ref}: {error}")

        def _resolve_toolchain(reference: ArtifactReference) -> None:
            if _cancelled():
                return
            try:
                described = self._describer.describe_toolchain(reference.ref)
            except Exception as e:
                _record_failure(KIND_TOOLCHAIN, reference, e)
                return
            with lock:
                resolved_toolchain.append(described)

        def _resolve_plugin(index: int, reference: ArtifactReference) -> None:
            if _cancelled():
                return
            try:
                described = self._describer.describe_plugin(reference.ref)
            except Exception as e:
                _record_failure(KIND_PLUGIN, reference, e)
                return
            with lock:
                slots[index] = described

        executor = ThreadPoolExecutor(
            max_workers=self._max_workers,
            thread_name_prefix="klaus-deps",
        )
        cancelled = False
        try:
            futures: set[Future[None]] = set()
            if toolchain is not None:
                futures.add(executor.submit(_resolve_toolchain, toolchain))
            for index, reference in enumerate(plugins):
                futures.add(executor.submit(_resolve_plugin, index, reference))

            pending = futures
            while pending:
                timeout = _CANCEL_POLL_SECONDS if cancel_event is not None else None
                _, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)
                if _cancelled():
                    cancelled = True
                    break
        finally:
            executor.shutdown(wait=not cancelled, cancel_futures=cancelled)

        if cancelled or _cancelled():
            log.info("dependency_resolve_cancelled")
            raise OperationCancelledError("resolving dependencies")

        result = ResolvedDependencies(
            toolchain=resolved_toolchain[0] if resolved_toolchain else None,
            plugins=[slot for slot in slots if slot is not None],
            warnings=warnings,
        )
        log.debug(
            "dependency_resolve_completed",
            resolved_plugins=len(result.plugins),
            warnings=len(result.warnings),
        )
        return result


__all__ = [
    "ArtifactDescriber",
    "DEFAULT_MAX_WORKERS",
    "DependencyResolver",
    "KIND_PLUGIN",
    "KIND_TOOLCHAIN",
]
