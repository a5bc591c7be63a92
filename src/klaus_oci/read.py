"""Read artifact metadata from a source directory before pushing.

Plugin Layout:
    <dir>/
    ├── .claude-plugin/plugin.json   # name, description, author, ...
    ├── skills/<name>/SKILL.md       # -> skills
    ├── commands/<name>.md           # -> commands
    ├── agents/<name>.md             # -> agents
    ├── hooks/                       # non-empty -> has_hooks
    ├── .mcp.json                    # top-level keys -> mcp_servers
    └── .lsp.json                    # top-level keys -> lsp_servers

Personality Layout:
    <dir>/
    ├── personality.yaml             # metadata, toolchain, plugins
    └── SOUL.md                      # content layer only, not read here

Version is never read from disk; it travels as the OCI tag.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from klaus_oci.errors import ArtifactReadError
from klaus_oci.schemas import Personality, Plugin

logger = structlog.get_logger(__name__)

PLUGIN_MANIFEST_PATH = Path(".claude-plugin") / "plugin.json"
PERSONALITY_FILE_NAME = "personality.yaml"
SOUL_FILE_NAME = "SOUL.md"

# plugin.json may reuse component keys ("commands", "agents", ...) as path
# overrides, so only the metadata keys are taken from it.
_PLUGIN_METADATA_KEYS = (
    "name",
    "description",
    "author",
    "homepage",
    "repository",
    "license",
    "keywords",
)


def read_plugin_from_dir(directory: Path) -> Plugin:
    """Read plugin metadata and discover its components.

    Args:
        directory: Plugin source directory.

    Returns:
        Plugin with metadata from plugin.json and sorted component lists.

    Raises:
        ArtifactReadError: If plugin.json is missing or invalid.
    """
    directory = Path(directory)
    manifest_path = directory / PLUGIN_MANIFEST_PATH
    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ArtifactReadError(str(manifest_path), f"reading plugin manifest failed: {e}") from e
    except json.JSONDecodeError as e:
        raise ArtifactReadError(str(manifest_path), f"parsing plugin manifest failed: {e}") from e
    if not isinstance(data, dict):
        raise ArtifactReadError(str(manifest_path), "plugin manifest must be a JSON object")

    metadata = {key: data[key] for key in _PLUGIN_METADATA_KEYS if key in data}
    try:
        plugin = Plugin(
            **metadata,
            skills=_discover_skills(directory),
            commands=_discover_markdown_names(directory / "commands"),
            agents=_discover_markdown_names(directory / "agents"),
            has_hooks=_detect_hooks(directory),
            mcp_servers=_discover_json_keys(directory / ".mcp.json"),
            lsp_servers=_discover_json_keys(directory / ".lsp.json"),
        )
    except ValidationError as e:
        raise ArtifactReadError(str(manifest_path), f"invalid plugin manifest: {e}") from e

    logger.debug("plugin_read", path=str(directory), name=plugin.name, skills=len(plugin.skills))
    return plugin


def read_personality_from_dir(directory: Path) -> Personality:
    """Read personality metadata from ``personality.yaml``.

    Args:
        directory: Personality source directory.

    Returns:
        The Personality, including its toolchain and plugin references.

    Raises:
        ArtifactReadError: If the file is missing, invalid, or has no name.
    """
    path = Path(directory) / PERSONALITY_FILE_NAME
    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ArtifactReadError(str(path), f"reading {PERSONALITY_FILE_NAME} failed: {e}") from e
    except yaml.YAMLError as e:
        raise ArtifactReadError(str(path), f"parsing {PERSONALITY_FILE_NAME} failed: {e}") from e

    if not isinstance(data, dict):
        raise ArtifactReadError(str(path), f"{PERSONALITY_FILE_NAME} must be a mapping")

    data.pop("version", None)
    try:
        personality = Personality.model_validate(data)
    except ValidationError as e:
        raise ArtifactReadError(str(path), f"invalid {PERSONALITY_FILE_NAME}: {e}") from e

    if not personality.name:
        raise ArtifactReadError(str(path), f"{PERSONALITY_FILE_NAME}: name is required")
    return personality


def read_soul(directory: Path) -> str:
    """Return the text of SOUL.md, or an empty string if there is none."""
    path = Path(directory) / SOUL_FILE_NAME
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""
    except OSError as e:
        raise ArtifactReadError(str(path), f"reading {SOUL_FILE_NAME} failed: {e}") from e


def _discover_skills(directory: Path) -> list[str]:
    skills_dir = directory / "skills"
    if not skills_dir.is_dir():
        return []
    return sorted(
        entry.name
        for entry in skills_dir.iterdir()
        if entry.is_dir() and (entry / "SKILL.md").is_file()
    )


def _discover_markdown_names(directory: Path) -> list[str]:
    if not directory.is_dir():
        return []
    return sorted(
        entry.stem for entry in directory.iterdir() if entry.is_file() and entry.suffix == ".md"
    )


def _detect_hooks(directory: Path) -> bool:
    hooks_dir = directory / "hooks"
    return hooks_dir.is_dir() and any(hooks_dir.iterdir())


def _discover_json_keys(path: Path) -> list[str]:
    """Return the sorted top-level keys of a JSON object file, or []."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return []
    if not isinstance(data, dict):
        return []
    return sorted(data)


__all__ = [
    "PERSONALITY_FILE_NAME",
    "PLUGIN_MANIFEST_PATH",
    "SOUL_FILE_NAME",
    "read_personality_from_dir",
    "read_plugin_from_dir",
    "read_soul",
]
