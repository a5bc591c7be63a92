"""Default registry bases for each Klaus artifact kind.

Each kind lives in its own sub-namespace, so a short name such as
"gs-base" or "go" is resolved by appending it to the base for its kind.
"""

from __future__ import annotations

DEFAULT_PLUGIN_REGISTRY = "gsoci.azurecr.io/giantswarm/klaus-plugins"
DEFAULT_PERSONALITY_REGISTRY = "gsoci.azurecr.io/giantswarm/klaus-personalities"
DEFAULT_TOOLCHAIN_REGISTRY = "gsoci.azurecr.io/giantswarm/klaus-toolchains"

__all__ = [
    "DEFAULT_PERSONALITY_REGISTRY",
    "DEFAULT_PLUGIN_REGISTRY",
    "DEFAULT_TOOLCHAIN_REGISTRY",
]
