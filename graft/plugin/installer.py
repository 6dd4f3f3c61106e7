"""
Installation Orchestrator.

This module turns a plugin's declared artifacts into paired actions and
drives them against a platform project.

Key features:
- Containment check of every artifact path before any action is pushed
- One install/uninstall Action per artifact, processed with automatic rollback
- Ledger update, metadata document and project write only after success
- Lifecycle hooks bracketing the operation (beforeinstall/afterinstall, uninstall)
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from graft.core.event_bus import EventBus
from graft.plugin.action_stack import Action, ActionStack
from graft.plugin.hooks import HookRunner, HookType
from graft.plugin.loader import load_script
from graft.plugin.manifest import MODULE_KIND, Artifact, PluginDescriptor
from graft.plugin.project import PlatformProject
from graft.plugin.security import check_artifact_paths, check_module_destination


@dataclass
class InstallOptions:
    """
    Options for a single add/remove call.

    Attributes:
        use_platform_www: Mirror the metadata document into the platform web-asset dir
        nohooks: Regex patterns of hook events to skip
        variables: Preference variables recorded for the plugin
        force: Re-install a recorded plugin / remove despite dependents
        link: Symlink files instead of copying
    """

    use_platform_www: bool = False
    nohooks: tuple[str, ...] = ()
    variables: dict[str, Any] = field(default_factory=dict)
    force: bool = False
    link: bool = False


class InstallationOrchestrator:
    """
    Adds and removes plugins on one platform project.

    Each call is all-or-nothing for its actions: on failure the committed
    actions are reverted, the ledger is left untouched and the error is
    re-raised. Calls against the same project must not overlap.

    Example:
        orchestrator = InstallationOrchestrator(project, events)
        await orchestrator.add_plugin(plugin, InstallOptions())
    """

    def __init__(
        self,
        project: PlatformProject,
        events: EventBus | None = None,
        script_loader: Callable[[Path], Callable] = load_script,
    ):
        """
        Initialize InstallationOrchestrator.

        Args:
            project: Platform project collaborator
            events: Event sink for diagnostics
            script_loader: Loader handed to the hook runner
        """
        self.project = project
        self._events = events or EventBus()
        self._script_loader = script_loader

    @property
    def platform(self) -> str:
        return self.project.platform

    @property
    def ledger(self):
        return self.project.ledger

    def is_installed(self, plugin_id: str) -> bool:
        """Whether the ledger records a version for plugin_id."""
        return self.ledger.get_plugin_version(plugin_id) is not None

    def _hook_runner(self, options: InstallOptions) -> HookRunner:
        return HookRunner(self._events, self._script_loader, options.nohooks)

    async def _fire(self, runner: HookRunner, hook: HookType, plugin: PluginDescriptor) -> None:
        await runner.fire(
            hook.value,
            plugin.id,
            plugin,
            self.platform,
            self.project.locations.root,
            plugin.dir,
        )

    # ------------------------------------------------------------------
    # Action building
    # ------------------------------------------------------------------

    def _collect_artifacts(self, plugin: PluginDescriptor) -> list[Artifact]:
        """Artifacts of every supported kind, in the platform's kind order."""
        supported = self.project.kinds
        for kind in plugin.get_artifact_kinds(self.platform):
            if kind not in supported:
                self._events.emit(
                    "verbose",
                    f"Platform {self.platform} does not handle '{kind}' artifacts of {plugin.id}; skipping",
                )

        artifacts = []
        for kind in supported:
            artifacts.extend(plugin.get_artifacts(kind, self.platform))
        return artifacts

    def build_actions(
        self, plugin: PluginDescriptor, options: InstallOptions, uninstall: bool = False
    ) -> list[Action]:
        """
        Build one Action per artifact.

        Every artifact path is checked before any action is built.

        Args:
            plugin: Plugin to act on
            options: Call options, bound into each action
            uninstall: Use uninstall as the forward operation

        Returns:
            Actions in execution order

        Raises:
            PathEscapeError: If any artifact path escapes its root
            PlatformError: If the platform lacks a handler for a kind
        """
        root = self.project.locations.root
        artifacts = self._collect_artifacts(plugin)

        for artifact in artifacts:
            check_artifact_paths(artifact, plugin.dir, root, self._events)
            if artifact.kind == MODULE_KIND:
                check_module_destination(plugin.id, artifact, self.project.locations.www, self._events)

        actions = []
        for artifact in artifacts:
            installer = self.project.get_installer(artifact.kind)
            uninstaller = self.project.get_uninstaller(artifact.kind)
            install_args = [artifact, plugin.dir, root, plugin.id, options]
            uninstall_args = [artifact, root, plugin.id, options]

            if uninstall:
                actions.append(
                    ActionStack.create_action(uninstaller, uninstall_args, installer, install_args)
                )
            else:
                actions.append(
                    ActionStack.create_action(installer, install_args, uninstaller, uninstall_args)
                )
        return actions

    async def _run_actions(self, actions: list[Action]) -> None:
        stack = ActionStack(self._events)
        for action in actions:
            stack.push(action)
        await stack.process(self.platform, self.project.locations.root)

    def _write_metadata(self, options: InstallOptions) -> None:
        locations = self.project.locations
        self.ledger.write_metadata(locations.www)
        if options.use_platform_www:
            self.ledger.write_metadata(locations.platform_www)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def add_plugin(
        self,
        plugin: PluginDescriptor,
        options: InstallOptions | None = None,
        *,
        is_top_level: bool = True,
    ) -> None:
        """
        Install a plugin on the project.

        With options.force an installed plugin is removed first and then
        installed again.

        Args:
            plugin: Plugin to install
            options: Call options
            is_top_level: Record the plugin as requested (else as a dependency)

        Raises:
            PathEscapeError: Before any mutation, if an artifact path escapes
            ArtifactNotFoundError, DestinationCollisionError: After unwinding
            ScriptFailureError: If a hook script fails
        """
        options = options or InstallOptions()

        if self.is_installed(plugin.id):
            if not options.force:
                self._events.emit(
                    "info", f"Plugin \"{plugin.id}\" already installed on {self.platform}."
                )
                return
            self._events.emit("verbose", f"Reinstalling \"{plugin.id}\" on {self.platform}.")
            await self.remove_plugin(plugin, options)

        self._events.emit("verbose", f"Install start for \"{plugin.id}\" on {self.platform}.")
        hooks = self._hook_runner(options)

        await self._fire(hooks, HookType.BEFORE_INSTALL, plugin)

        actions = self.build_actions(plugin, options)
        await self._run_actions(actions)

        variables = {**plugin.preferences, **options.variables}
        self.ledger.add_plugin_metadata(plugin)
        self.ledger.add_plugin(plugin.id, variables, is_top_level)
        self._write_metadata(options)
        self.project.write()

        await self._fire(hooks, HookType.AFTER_INSTALL, plugin)

        self._events.emit("verbose", f"Install complete for {plugin.id} on {self.platform}.")

    async def remove_plugin(
        self, plugin: PluginDescriptor, options: InstallOptions | None = None
    ) -> None:
        """
        Uninstall a plugin from the project.

        Args:
            plugin: Plugin to remove
            options: Call options

        Raises:
            PathEscapeError: Before any mutation, if an artifact path escapes
            ScriptFailureError: If the uninstall hook fails (nothing is removed)
        """
        options = options or InstallOptions()

        if not self.is_installed(plugin.id) and not options.force:
            self._events.emit(
                "info", f"Plugin \"{plugin.id}\" is not installed on {self.platform}."
            )
            return

        self._events.emit("verbose", f"Uninstall start for \"{plugin.id}\" on {self.platform}.")
        hooks = self._hook_runner(options)

        await self._fire(hooks, HookType.UNINSTALL, plugin)

        actions = self.build_actions(plugin, options, uninstall=True)
        await self._run_actions(actions)

        self.ledger.remove_plugin_metadata(plugin)
        self.ledger.remove_plugin(plugin.id)
        self._write_metadata(options)
        self.project.write()

        self._events.emit("verbose", f"Uninstall complete for {plugin.id} on {self.platform}.")
