"""
Platform Capabilities.

This module provides the per-platform install/uninstall primitives.

Key features:
- PlatformCapability protocol: an open-ended, platform-supplied kind set
- PlatformRegistry mapping platform names to capabilities
- FileCopyPlatform reference capability copying plugin files into a project
- Copy primitives that refuse missing sources and occupied destinations
- Removal that prunes the empty parent directories left behind
"""

import os
import shutil
from collections.abc import Iterable
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from graft.plugin.manifest import Artifact

# Kinds copied into the native project tree
NATIVE_FILE_KINDS = ("source-file", "header-file", "resource-file", "lib-file", "framework")

DEFAULT_PLATFORMS = ("android", "ios", "browser")


class PlatformError(Exception):
    """Base exception for platform-related errors."""

    pass


class ArtifactNotFoundError(PlatformError):
    """Raised when a declared source file does not exist."""

    def __init__(self, path: Path | str):
        self.path = str(path)
        super().__init__(f'"{path}" not found!')


class DestinationCollisionError(PlatformError):
    """Raised when a target path is already occupied."""

    def __init__(self, path: Path | str):
        self.path = str(path)
        super().__init__(f'"{path}" already exists!')


class UnknownPlatformError(PlatformError):
    """Raised when no capability is registered under a platform name."""

    pass


@runtime_checkable
class PlatformCapability(Protocol):
    """
    Install/uninstall primitives for one platform.

    Either operation may return an awaitable; callers await it in place.
    """

    name: str
    kinds: tuple[str, ...]

    def install(
        self,
        kind: str,
        artifact: Artifact,
        plugin_dir: Path,
        project_dir: Path,
        plugin_id: str,
        options: Any,
    ) -> Any: ...

    def uninstall(
        self,
        kind: str,
        artifact: Artifact,
        project_dir: Path,
        plugin_id: str,
        options: Any,
    ) -> Any: ...


# ----------------------------------------------------------------------
# File primitives
# ----------------------------------------------------------------------


def copy_file(
    plugin_dir: Path | str, src: str, project_dir: Path | str, dest: str, link: bool = False
) -> Path:
    """
    Copy a plugin file or directory into the project, overwriting.

    Args:
        plugin_dir: Directory src resolves against
        src: Source path relative to plugin_dir
        project_dir: Directory dest resolves against
        dest: Destination path relative to project_dir
        link: Symlink instead of copying

    Returns:
        The destination path

    Raises:
        ArtifactNotFoundError: If the source does not exist
    """
    source = Path(plugin_dir, src).resolve()
    if not source.exists():
        raise ArtifactNotFoundError(source)

    target = Path(project_dir, dest).resolve()
    target.parent.mkdir(parents=True, exist_ok=True)

    if link:
        if target.is_symlink() or target.exists():
            _remove_path(target)
        os.symlink(os.path.relpath(source, target.parent), target)
    elif source.is_dir():
        shutil.copytree(source, target, dirs_exist_ok=True)
    else:
        shutil.copy2(source, target)
    return target


def copy_new_file(
    plugin_dir: Path | str, src: str, project_dir: Path | str, dest: str, link: bool = False
) -> Path:
    """
    Same as copy_file, but the destination must not exist yet.

    Raises:
        DestinationCollisionError: If the destination is occupied
        ArtifactNotFoundError: If the source does not exist
    """
    target = Path(project_dir, dest).resolve()
    if target.exists() or target.is_symlink():
        raise DestinationCollisionError(target)
    return copy_file(plugin_dir, src, project_dir, dest, link)


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def remove_file_and_parents(base_dir: Path | str, dest: str, stopper: str = ".") -> None:
    """
    Remove a file, then prune parent directories left empty.

    Pruning stops at base_dir/stopper or at the first non-empty directory.
    A missing file is not an error.
    """
    base = Path(base_dir).resolve()
    target = Path(base, dest)
    if not target.exists() and not target.is_symlink():
        return

    _remove_path(target)

    stop = (base / stopper).resolve()
    current = target.parent.resolve()
    while current != stop and stop in current.parents:
        if current.exists() and not any(current.iterdir()):
            current.rmdir()
            current = current.parent
        else:
            break


# ----------------------------------------------------------------------
# Reference capability
# ----------------------------------------------------------------------


def _require(artifact: Artifact, attribute: str) -> str:
    value = artifact.get(attribute)
    if not value:
        raise PlatformError(f"<{artifact.kind}> artifact without required '{attribute}' attribute")
    return value


def _native_destination(artifact: Artifact) -> str:
    """target if declared, else target-dir/basename(src)."""
    if artifact.target:
        return artifact.target
    src = _require(artifact, "src")
    return os.path.join(artifact.target_dir or "", os.path.basename(src))


def wrap_module(module_id: str, source: str, is_json: bool = False) -> str:
    """Wrap module source in its runtime definition."""
    content = source.removeprefix("\ufeff")
    if is_json:
        content = "module.exports = " + content
    return f'graft.define("{module_id}", function(require, exports, module) {{ {content}\n}});\n'


class FileCopyPlatform:
    """
    Platform capability that copies plugin files into a project tree.

    Native kinds land under the project directory; 'asset' and 'js-module'
    land under the web-asset root (www_dir, relative to the project).

    Example:
        platform = FileCopyPlatform('ios', www_dir='www')
        platform.install('source-file', artifact, plugin_dir, project_dir, 'org.x', options)
    """

    def __init__(self, name: str, www_dir: str = "www", kinds: Iterable[str] | None = None):
        self.name = name
        self.www_dir = www_dir
        self.kinds = tuple(kinds) if kinds is not None else NATIVE_FILE_KINDS + ("asset", "js-module")

    def __repr__(self) -> str:
        return f"FileCopyPlatform(name={self.name!r}, www_dir={self.www_dir!r})"

    def _www(self, project_dir: Path) -> Path:
        return Path(project_dir) / self.www_dir

    def install(
        self,
        kind: str,
        artifact: Artifact,
        plugin_dir: Path,
        project_dir: Path,
        plugin_id: str,
        options: Any = None,
    ) -> None:
        """
        Install one artifact.

        Raises:
            PlatformError: If kind is unsupported or a required attribute is missing
            ArtifactNotFoundError: If the source file is missing
            DestinationCollisionError: If the destination is occupied
        """
        link = bool(getattr(options, "link", False))

        if kind in NATIVE_FILE_KINDS:
            copy_new_file(plugin_dir, _require(artifact, "src"), project_dir, _native_destination(artifact), link)
        elif kind == "asset":
            copy_new_file(
                plugin_dir, _require(artifact, "src"), self._www(project_dir), _require(artifact, "target"), link
            )
        elif kind == "js-module":
            self._install_module(artifact, Path(plugin_dir), Path(project_dir), plugin_id)
        else:
            raise PlatformError(f"Unsupported artifact kind for {self.name}: {kind}")

    def uninstall(
        self,
        kind: str,
        artifact: Artifact,
        project_dir: Path,
        plugin_id: str,
        options: Any = None,
    ) -> None:
        """
        Remove what install() put in place for one artifact.

        Raises:
            PlatformError: If kind is unsupported or a required attribute is missing
        """
        if kind in NATIVE_FILE_KINDS:
            remove_file_and_parents(project_dir, _native_destination(artifact))
        elif kind == "asset":
            target = artifact.target or _require(artifact, "src")
            remove_file_and_parents(self._www(project_dir), target)
        elif kind == "js-module":
            src = _require(artifact, "src")
            remove_file_and_parents(self._www(project_dir), os.path.join("plugins", plugin_id, src))
        else:
            raise PlatformError(f"Unsupported artifact kind for {self.name}: {kind}")

    def _install_module(
        self, artifact: Artifact, plugin_dir: Path, project_dir: Path, plugin_id: str
    ) -> None:
        src = _require(artifact, "src")
        source = (plugin_dir / src).resolve()
        if not source.is_file():
            raise ArtifactNotFoundError(source)

        destination = self._www(project_dir) / "plugins" / plugin_id / src
        if destination.exists() or destination.is_symlink():
            raise DestinationCollisionError(destination)

        name = artifact.get("name") or os.path.splitext(os.path.basename(src))[0]
        content = wrap_module(
            f"{plugin_id}.{name}",
            source.read_text(encoding="utf-8"),
            is_json=source.suffix == ".json",
        )

        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(content, encoding="utf-8")


class PlatformRegistry:
    """
    Maps platform names to capabilities.

    Re-registering a name replaces the previous capability.
    """

    def __init__(self):
        self._platforms: dict[str, PlatformCapability] = {}

    def register(self, capability: PlatformCapability) -> None:
        self._platforms[capability.name] = capability

    def get(self, name: str) -> PlatformCapability:
        """
        Look up a platform capability.

        Raises:
            UnknownPlatformError: If nothing is registered under name
        """
        try:
            return self._platforms[name]
        except KeyError:
            known = ", ".join(self._platforms) or "none"
            raise UnknownPlatformError(f"Unknown platform: {name} (registered: {known})") from None

    def names(self) -> list[str]:
        return list(self._platforms)

    def __contains__(self, name: str) -> bool:
        return name in self._platforms


def create_default_registry(www_dir: str = "www") -> PlatformRegistry:
    """Registry with a FileCopyPlatform for each default platform name."""
    registry = PlatformRegistry()
    for name in DEFAULT_PLATFORMS:
        registry.register(FileCopyPlatform(name, www_dir=www_dir))
    return registry
