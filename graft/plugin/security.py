"""
Path Containment Checks.

Every artifact path must stay inside its permitted root after '..'
traversal and symlinks are resolved. Checks run before any filesystem
mutation for the artifact.
"""

import os
from pathlib import Path

from graft.core.event_bus import EventBus
from graft.plugin.manifest import Artifact

# Artifact attributes resolved against the plugin directory
SOURCE_ATTRIBUTES = ("src",)

# Artifact attributes resolved against the project directory
DESTINATION_ATTRIBUTES = ("target", "target-dir")


class SecurityError(Exception):
    """Base exception for security policy violations."""

    pass


class PathEscapeError(SecurityError):
    """Raised when a path resolves outside its permitted root."""

    def __init__(self, path: str, root: Path | str):
        self.path = path
        self.root = str(root)
        super().__init__(
            f"Plugin attempted to access files outside the permitted root: "
            f"'{path}' escapes '{root}'"
        )


def _is_within(path: str, root: str) -> bool:
    try:
        return os.path.commonpath([path, root]) == root
    except ValueError:
        # Different drives on Windows
        return False


def check_path_escape(
    relative_path: str, root: Path | str, events: EventBus | None = None
) -> Path:
    """
    Resolve a declared path against its root and verify containment.

    Args:
        relative_path: Path as declared in the manifest
        root: Directory the path must stay within
        events: Optional event sink for diagnostics

    Returns:
        The fully resolved path

    Raises:
        PathEscapeError: If the resolved path lies outside root
    """
    real_root = os.path.realpath(root)
    resolved = os.path.realpath(os.path.join(real_root, relative_path))

    if not _is_within(resolved, real_root):
        raise PathEscapeError(relative_path, root)

    if events is not None and not os.path.exists(resolved):
        events.emit("verbose", f"path does not exist: {resolved}")

    return Path(resolved)


def check_artifact_paths(
    artifact: Artifact,
    plugin_dir: Path | str,
    project_dir: Path | str,
    events: EventBus | None = None,
) -> None:
    """
    Check the source and destination attributes of one artifact.

    Args:
        artifact: The declared artifact
        plugin_dir: Root for source attributes
        project_dir: Root for destination attributes
        events: Optional event sink for diagnostics

    Raises:
        PathEscapeError: On the first attribute that escapes its root
    """
    for attribute in SOURCE_ATTRIBUTES:
        value = artifact.get(attribute)
        if value:
            check_path_escape(value, plugin_dir, events)

    for attribute in DESTINATION_ATTRIBUTES:
        value = artifact.get(attribute)
        if value:
            check_path_escape(value, project_dir, events)


def check_module_destination(
    plugin_id: str,
    artifact: Artifact,
    www_dir: Path | str,
    events: EventBus | None = None,
) -> Path:
    """
    Check where a js-module will be written: <www_dir>/plugins/<plugin_id>/<src>.

    The plugin id is part of the path, so this also covers ids that
    slipped past manifest validation.

    Raises:
        PathEscapeError: If the derived destination leaves www_dir
    """
    return check_path_escape(
        os.path.join("plugins", plugin_id, artifact.get("src") or ""), www_dir, events
    )
