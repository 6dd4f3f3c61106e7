"""
Installed Module Ledger.

This module records what plugins contributed to a platform project.

Key features:
- Module metadata derived deterministically from plugin declarations
- First-registered-wins deduplication keyed by normalized file path
- Plugin version mapping kept consistent with the module list
- Top-level / dependent plugin bookkeeping
- Deterministic metadata document and 4-space JSON state file
"""

import json
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from graft.plugin.manifest import PluginDescriptor

METADATA_FILENAME = "graft_plugins.js"


class LedgerError(Exception):
    """Base exception for ledger-related errors."""

    pass


def module_file_path(plugin_id: str, src: str) -> str:
    """Normalized web-asset-relative path of a module: plugins/<id>/<src>."""
    return posixpath.normpath(posixpath.join("plugins", plugin_id, src.replace("\\", "/")))


def _targets(entries: list[Any] | None) -> tuple[str, ...] | None:
    """Accept ["a.b"] or [{"target": "a.b"}] declarations."""
    if entries is None:
        return None
    return tuple(e["target"] if isinstance(e, dict) else e for e in entries)


@dataclass(frozen=True)
class ModuleMetadata:
    """
    One installed module entry.

    Attributes:
        plugin_id: Plugin that contributed the module
        id: Module id, '<plugin_id>.<name or file stem>'
        file: Normalized path relative to the web-asset root
        clobbers: Global symbols the module replaces
        merges: Global symbols the module merges into
        runs: Whether the module runs on load
    """

    plugin_id: str
    id: str
    file: str
    clobbers: tuple[str, ...] | None = None
    merges: tuple[str, ...] | None = None
    runs: bool | None = None

    @classmethod
    def from_declaration(cls, plugin_id: str, module: dict[str, Any]) -> "ModuleMetadata":
        """
        Derive metadata from a manifest module declaration.

        Raises:
            LedgerError: If plugin_id or the module's src is missing
        """
        if not plugin_id:
            raise LedgerError("Module metadata requires a plugin id")
        src = module.get("src")
        if not src:
            raise LedgerError(f"Module declared by '{plugin_id}' has no 'src'")

        name = module.get("name") or posixpath.splitext(posixpath.basename(src))[0]
        return cls(
            plugin_id=plugin_id,
            id=f"{plugin_id}.{name}",
            file=module_file_path(plugin_id, src),
            clobbers=_targets(module.get("clobbers")),
            merges=_targets(module.get("merges")),
            runs=module.get("runs"),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModuleMetadata":
        """Rebuild an entry from its serialized form."""
        try:
            return cls(
                plugin_id=data["pluginId"],
                id=data["id"],
                file=posixpath.normpath(data["file"]),
                clobbers=_targets(data.get("clobbers")),
                merges=_targets(data.get("merges")),
                runs=data.get("runs"),
            )
        except KeyError as e:
            raise LedgerError(f"Module entry is missing field {e}") from e

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "file": self.file,
            "pluginId": self.plugin_id,
        }
        if self.clobbers is not None:
            data["clobbers"] = list(self.clobbers)
        if self.merges is not None:
            data["merges"] = list(self.merges)
        if self.runs is not None:
            data["runs"] = self.runs
        return data


class InstalledModuleLedger:
    """
    Persisted record of installed modules and plugins for one platform.

    Example:
        ledger = InstalledModuleLedger.load(plugins_dir, 'ios')
        ledger.add_plugin_metadata(plugin)
        text = ledger.generate_metadata()
        ledger.save()
    """

    def __init__(self, file_path: Path | None = None, platform: str | None = None):
        """
        Initialize an empty ledger.

        Args:
            file_path: Where save() writes the state file
            platform: Platform the ledger belongs to
        """
        self.file_path = file_path
        self.platform = platform
        self._modules: list[ModuleMetadata] = []
        self._files: set[str] = set()
        self.plugin_versions: dict[str, str] = {}
        self.installed_plugins: dict[str, dict[str, Any]] = {}
        self.dependent_plugins: dict[str, dict[str, Any]] = {}

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, plugins_dir: Path, platform: str) -> "InstalledModuleLedger":
        """
        Load the ledger state file <plugins_dir>/<platform>.json.

        A missing file yields an empty ledger.

        Raises:
            LedgerError: If the file cannot be parsed
        """
        file_path = Path(plugins_dir) / f"{platform}.json"
        ledger = cls(file_path, platform)
        if not file_path.exists():
            return ledger

        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise LedgerError(f"Failed to parse ledger file {file_path}: {e}") from e
        except OSError as e:
            raise LedgerError(f"Failed to read ledger file {file_path}: {e}") from e

        if not isinstance(data, dict):
            raise LedgerError(f"Ledger file {file_path} must contain a JSON object")

        for entry in data.get("modules", []):
            ledger._append(ModuleMetadata.from_dict(entry))
        ledger.plugin_versions = dict(data.get("plugin_metadata", {}))
        ledger.installed_plugins = dict(data.get("installed_plugins", {}))
        ledger.dependent_plugins = dict(data.get("dependent_plugins", {}))
        return ledger

    def to_dict(self) -> dict[str, Any]:
        return {
            "modules": [m.to_dict() for m in self._modules],
            "plugin_metadata": dict(self.plugin_versions),
            "installed_plugins": dict(self.installed_plugins),
            "dependent_plugins": dict(self.dependent_plugins),
        }

    def save(self) -> None:
        """
        Write the state file with 4-space indentation.

        Raises:
            LedgerError: If no file path is set or writing fails
        """
        if self.file_path is None:
            raise LedgerError("Ledger has no file path to save to")
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            self.file_path.write_text(
                json.dumps(self.to_dict(), indent=4, ensure_ascii=False), encoding="utf-8"
            )
        except OSError as e:
            raise LedgerError(f"Failed to write ledger file {self.file_path}: {e}") from e

    # ------------------------------------------------------------------
    # Module metadata
    # ------------------------------------------------------------------

    @property
    def modules(self) -> list[ModuleMetadata]:
        """Installed modules in load order."""
        return list(self._modules)

    def _append(self, entry: ModuleMetadata) -> bool:
        if entry.file in self._files:
            return False
        self._modules.append(entry)
        self._files.add(entry.file)
        return True

    def add_plugin_metadata(self, plugin: PluginDescriptor) -> "InstalledModuleLedger":
        """
        Record a plugin's modules and version.

        A module whose file path is already registered is skipped silently;
        the entry registered first keeps its owner.

        Args:
            plugin: The installed plugin

        Returns:
            self, for chaining
        """
        for module in plugin.get_modules(self.platform):
            self._append(ModuleMetadata.from_declaration(plugin.id, module))

        self.plugin_versions[plugin.id] = plugin.version
        return self

    def remove_plugin_metadata(self, plugin: PluginDescriptor) -> "InstalledModuleLedger":
        """
        Drop every module entry at one of the plugin's module paths, and its version.

        Args:
            plugin: The plugin being removed

        Returns:
            self, for chaining
        """
        paths = {
            module_file_path(plugin.id, module["src"])
            for module in plugin.get_modules(self.platform)
            if module.get("src")
        }
        self._modules = [m for m in self._modules if m.file not in paths]
        self._files = {m.file for m in self._modules}

        self.plugin_versions.pop(plugin.id, None)
        return self

    def generate_metadata(self) -> str:
        """
        Render the module list and plugin versions as the runtime metadata document.

        Identical ledger state always renders to identical text.
        """
        modules = json.dumps([m.to_dict() for m in self._modules], indent=4, ensure_ascii=False)
        versions = json.dumps(self.plugin_versions, indent=4, ensure_ascii=False)
        return (
            "graft.define('graft/plugin_list', function(require, exports, module) {\n"
            f"module.exports = {modules};\n"
            "module.exports.metadata =\n"
            "// TOP OF METADATA\n"
            f"{versions}\n"
            "// BOTTOM OF METADATA\n"
            "});"
        )

    def write_metadata(self, www_dir: Path) -> Path:
        """
        Write the metadata document under a web-asset directory.

        Returns:
            Path of the written file

        Raises:
            LedgerError: If writing fails
        """
        target = Path(www_dir) / METADATA_FILENAME
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(self.generate_metadata(), encoding="utf-8")
        except OSError as e:
            raise LedgerError(f"Failed to write plugin metadata {target}: {e}") from e
        return target

    # ------------------------------------------------------------------
    # Installed plugin bookkeeping
    # ------------------------------------------------------------------

    def add_plugin(
        self, plugin_id: str, variables: dict[str, Any] | None, is_top_level: bool
    ) -> "InstalledModuleLedger":
        """Mark a plugin installed, either top-level or as a dependency."""
        bucket = self.installed_plugins if is_top_level else self.dependent_plugins
        bucket[plugin_id] = dict(variables or {})
        return self

    def remove_plugin(self, plugin_id: str) -> "InstalledModuleLedger":
        self.installed_plugins.pop(plugin_id, None)
        self.dependent_plugins.pop(plugin_id, None)
        return self

    def is_plugin_top_level(self, plugin_id: str) -> bool:
        return plugin_id in self.installed_plugins

    def is_plugin_dependent(self, plugin_id: str) -> bool:
        return plugin_id in self.dependent_plugins

    def is_plugin_installed(self, plugin_id: str) -> bool:
        return self.is_plugin_top_level(plugin_id) or self.is_plugin_dependent(plugin_id)

    def make_top_level(self, plugin_id: str) -> "InstalledModuleLedger":
        """Promote a dependency-installed plugin to top-level."""
        variables = self.dependent_plugins.pop(plugin_id, None)
        if variables is not None:
            self.installed_plugins[plugin_id] = variables
        return self

    def get_plugin_version(self, plugin_id: str) -> str | None:
        return self.plugin_versions.get(plugin_id)
