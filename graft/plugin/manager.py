"""
Plugin Manager.

This module provides batch installation over a directory of plugins.

Key features:
- Plugin discovery from <search_path>/*/manifest.json
- Dependency resolution with cycle detection before any action is built
- Version constraint checking against discovered or installed versions
- Serial installation in dependency order (never parallel)
- Guarded removal with pruning of dependencies nothing else needs
"""

from dataclasses import dataclass
from pathlib import Path

from graft.core.event_bus import EventBus
from graft.plugin.dep_graph import DependencyError, DependencyGraph
from graft.plugin.installer import InstallationOrchestrator, InstallOptions
from graft.plugin.manifest import MANIFEST_FILENAME, ManifestError, PluginDescriptor, parse_manifest


class MissingDependencyError(DependencyError):
    """Raised when a required plugin is neither discovered nor installed."""

    def __init__(self, plugin_id: str, dependency_id: str | None = None):
        self.plugin_id = plugin_id
        self.dependency_id = dependency_id
        if dependency_id is None:
            message = f"Plugin not found: {plugin_id}"
        else:
            message = f"Missing dependency: {plugin_id} requires {dependency_id}"
        super().__init__(message)


@dataclass(frozen=True)
class InstalledPlugin:
    """
    A plugin recorded in the ledger.

    Attributes:
        id: Plugin identifier
        version: Recorded version
        top_level: Requested directly (False when installed as a dependency)
    """

    id: str
    version: str
    top_level: bool


class PluginManager:
    """
    Installs and removes sets of plugins on one platform project.

    Example:
        manager = PluginManager(plugins_dir, orchestrator, events)
        await manager.install(['org.example.camera'], InstallOptions())
    """

    def __init__(
        self,
        search_path: Path,
        orchestrator: InstallationOrchestrator,
        events: EventBus | None = None,
    ):
        """
        Initialize PluginManager.

        Args:
            search_path: Directory holding one subdirectory per plugin
            orchestrator: Orchestrator for the target platform project
            events: Event sink for diagnostics
        """
        self.search_path = Path(search_path)
        self.orchestrator = orchestrator
        self._events = events or EventBus()
        self._plugins: dict[str, PluginDescriptor] | None = None

    @property
    def ledger(self):
        return self.orchestrator.ledger

    def discover(self) -> dict[str, PluginDescriptor]:
        """
        Parse every plugin manifest under the search path.

        Unreadable or invalid manifests are reported and skipped.

        Returns:
            Mapping of plugin id -> descriptor
        """
        plugins: dict[str, PluginDescriptor] = {}

        if self.search_path.is_dir():
            for plugin_dir in sorted(self.search_path.iterdir()):
                manifest_path = plugin_dir / MANIFEST_FILENAME
                if not plugin_dir.is_dir() or not manifest_path.exists():
                    continue

                try:
                    plugin = parse_manifest(manifest_path)
                except ManifestError as e:
                    self._events.emit(
                        "warn", f"Failed to parse manifest for {plugin_dir.name}: {e}"
                    )
                    continue

                plugins[plugin.id] = plugin

        self._plugins = plugins
        return dict(plugins)

    @property
    def plugins(self) -> dict[str, PluginDescriptor]:
        """Discovered plugins (discovering on first access)."""
        if self._plugins is None:
            self.discover()
        return self._plugins

    def get_plugin(self, plugin_id: str) -> PluginDescriptor:
        """
        Raises:
            MissingDependencyError: If plugin_id was not discovered
        """
        try:
            return self.plugins[plugin_id]
        except KeyError:
            raise MissingDependencyError(plugin_id) from None

    def installed(self) -> list[InstalledPlugin]:
        """Plugins the ledger records, in installation order."""
        return [
            InstalledPlugin(
                id=plugin_id,
                version=version,
                top_level=not self.ledger.is_plugin_dependent(plugin_id),
            )
            for plugin_id, version in self.ledger.plugin_versions.items()
        ]

    def _available_version(self, plugin_id: str) -> str | None:
        """Version that will satisfy a dependency: installed first, then discovered."""
        version = self.ledger.get_plugin_version(plugin_id)
        if version is not None:
            return version
        plugin = self.plugins.get(plugin_id)
        return plugin.version if plugin is not None else None

    def resolve(self, plugin_ids: list[str]) -> list[str]:
        """
        Compute the installation order for a request.

        Each requested id is preceded by its dependency chain; duplicates
        are dropped, first occurrence kept.

        Args:
            plugin_ids: Requested plugin ids

        Returns:
            Plugin ids in installation order

        Raises:
            MissingDependencyError: If a requested or required plugin is unknown
            DependencyError: If a version constraint is not satisfied
            CyclicDependencyError: If the dependencies form a cycle
        """
        graph = DependencyGraph()
        pending = list(plugin_ids)
        seen: set[str] = set()

        for plugin_id in plugin_ids:
            if self._available_version(plugin_id) is None:
                raise MissingDependencyError(plugin_id)

        while pending:
            plugin_id = pending.pop(0)
            if plugin_id in seen:
                continue
            seen.add(plugin_id)

            plugin = self.plugins.get(plugin_id)
            if plugin is None:
                # Installed but not present under the search path
                continue

            for dep_id, constraint in plugin.dependencies.items():
                graph.add(plugin_id, dep_id)

                version = self._available_version(dep_id)
                if version is None:
                    raise MissingDependencyError(plugin_id, dep_id)
                if constraint is not None and not constraint.matches(version):
                    raise DependencyError(
                        f"Version mismatch: {plugin_id} requires {dep_id}{constraint}, "
                        f"but {version} is available"
                    )
                pending.append(dep_id)

        order: list[str] = []
        for plugin_id in plugin_ids:
            for node in graph.get_chain(plugin_id) + [plugin_id]:
                if node not in order:
                    order.append(node)
        return order

    async def install(
        self, plugin_ids: list[str], options: InstallOptions | None = None
    ) -> list[str]:
        """
        Install plugins and their dependencies, one at a time.

        Requested plugins are recorded top-level; everything pulled in as a
        dependency is recorded as dependent. A requested plugin that is
        already installed as a dependency is promoted to top-level.

        Args:
            plugin_ids: Requested plugin ids
            options: Options applied to every plugin of the batch

        Returns:
            Ids of the plugins installed by this call

        Raises:
            MissingDependencyError, DependencyError, CyclicDependencyError:
                Before anything is installed
            Exception: The first failing plugin's error; plugins installed
                before it stay installed
        """
        options = options or InstallOptions()
        order = self.resolve(plugin_ids)
        requested = set(plugin_ids)
        installed = []

        for plugin_id in order:
            is_top_level = plugin_id in requested

            if self.orchestrator.is_installed(plugin_id) and not (options.force and is_top_level):
                if is_top_level and self.ledger.is_plugin_dependent(plugin_id):
                    self.ledger.make_top_level(plugin_id)
                    self.orchestrator.project.write()
                self._events.emit("verbose", f"Dependency {plugin_id} already installed.")
                continue

            await self.orchestrator.add_plugin(
                self.get_plugin(plugin_id), options, is_top_level=is_top_level
            )
            installed.append(plugin_id)

        if installed:
            self._events.emit("results", f"Installed: {', '.join(installed)}")
        return installed

    def _installed_ids(self) -> list[str]:
        return list(self.ledger.installed_plugins) + list(self.ledger.dependent_plugins)

    def installed_dependents(self, plugin_id: str) -> list[str]:
        """Installed plugins that declare a dependency on plugin_id."""
        dependents = []
        for other_id in self._installed_ids():
            other = self.plugins.get(other_id)
            if other_id != plugin_id and other is not None and plugin_id in other.dependencies:
                dependents.append(other_id)
        return dependents

    async def uninstall(
        self, plugin_id: str, options: InstallOptions | None = None
    ) -> list[str]:
        """
        Remove a plugin, then the dependencies nothing else needs.

        Args:
            plugin_id: Plugin to remove
            options: Call options; force removes despite installed dependents

        Returns:
            Ids of the removed plugins, in removal order

        Raises:
            DependencyError: If other installed plugins depend on it (without force)
            MissingDependencyError: If the plugin's descriptor cannot be found
        """
        options = options or InstallOptions()

        if not self.orchestrator.is_installed(plugin_id):
            self._events.emit("info", f"Plugin \"{plugin_id}\" is not installed.")
            return []

        dependents = self.installed_dependents(plugin_id)
        if dependents and not options.force:
            raise DependencyError(
                f"Plugin {plugin_id} is required by: {', '.join(dependents)}"
            )

        plugin = self.get_plugin(plugin_id)
        await self.orchestrator.remove_plugin(plugin, options)
        removed = [plugin_id]
        await self._prune_orphans(plugin, options, removed)

        self._events.emit("results", f"Removed: {', '.join(removed)}")
        return removed

    async def _prune_orphans(
        self, plugin: PluginDescriptor, options: InstallOptions, removed: list[str]
    ) -> None:
        for dep_id in plugin.dependencies:
            if not self.ledger.is_plugin_dependent(dep_id):
                continue
            if self.installed_dependents(dep_id):
                continue

            dep = self.plugins.get(dep_id)
            if dep is None:
                self._events.emit("warn", f"Cannot remove dependency {dep_id}: descriptor not found")
                continue

            await self.orchestrator.remove_plugin(dep, options)
            removed.append(dep_id)
            await self._prune_orphans(dep, options, removed)
