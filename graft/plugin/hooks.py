"""
Plugin Lifecycle Hooks.

This module provides serial execution of plugin-declared hook scripts.

Key features:
- Event names map to the raw script types plugins historically declared
- Script discovery at plugin-global scope, then platform scope
- One shared context per fired event
- Strictly serial execution; async scripts are awaited before the next starts
- Missing script files are skipped with a warning
- Hook events can be disabled by regex pattern (nohooks)
"""

import inspect
import re
import sys
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

from graft.core.event_bus import EventBus
from graft.plugin.loader import load_script
from graft.plugin.manifest import PluginDescriptor


class HookError(Exception):
    """Base exception for hook-related errors."""

    pass


class UnknownHookTypeError(HookError):
    """Raised when fire() is called with an unrecognized event name."""

    pass


class ScriptFailureError(HookError):
    """Raised when a hook script raises; the batch stops at that script."""

    def __init__(self, script: Path, hook: str, cause: Exception):
        self.script = script
        self.hook = hook
        super().__init__(f"Hook script {script} failed during '{hook}': {cause}")


class HookType(Enum):
    """Hook events the runner can fire."""

    BEFORE_INSTALL = "beforeinstall"
    AFTER_INSTALL = "afterinstall"
    UNINSTALL = "uninstall"


# Accepted declared script types per event
SCRIPT_TYPES_FOR_HOOK: dict[str, tuple[str, ...]] = {
    HookType.BEFORE_INSTALL.value: ("beforeinstall", "preinstall"),
    HookType.AFTER_INSTALL.value: ("install", "afterinstall", "postinstall"),
    HookType.UNINSTALL.value: ("uninstall",),
}


class HookScope(Enum):
    """Where a script was declared in the manifest."""

    GLOBAL = "global"
    PLATFORM = "platform"


@dataclass(frozen=True)
class HookBinding:
    """
    A declared hook script.

    Attributes:
        script_path: Script path relative to the plugin directory
        declared_types: Lowercased script types from the declaration
        scope: Plugin-global or platform-specific declaration
    """

    script_path: str
    declared_types: frozenset[str]
    scope: HookScope


@dataclass(frozen=True)
class HookContext:
    """
    Context handed to every script of one fired event.

    Attributes:
        hook: Event name being fired
        platform: Target platform
        project_dir: Platform project directory
        plugin_dir: Plugin directory
        plugin_id: Plugin identifier
        cmd_line: Command line of the invoking process
        script_location: Resolved path of the running script
    """

    hook: str
    platform: str
    project_dir: Path
    plugin_dir: Path
    plugin_id: str
    cmd_line: str
    script_location: Path | None = None


def _declared_types(raw_type) -> frozenset[str]:
    if isinstance(raw_type, str):
        return frozenset({raw_type.lower()})
    if isinstance(raw_type, Iterable):
        return frozenset(t.lower() for t in raw_type if isinstance(t, str))
    return frozenset()


class HookRunner:
    """
    Fires plugin lifecycle hooks.

    Example:
        runner = HookRunner(events)
        await runner.fire('afterinstall', plugin.id, plugin, 'ios', project_dir, plugin.dir)
    """

    def __init__(
        self,
        events: EventBus | None = None,
        script_loader: Callable[[Path], Callable] = load_script,
        nohooks: Iterable[str] = (),
    ):
        """
        Initialize HookRunner.

        Args:
            events: Event sink for diagnostics
            script_loader: Maps a script path to an invocable unit
            nohooks: Regex patterns of event names never fired
        """
        self._events = events or EventBus()
        self._load = script_loader
        self._nohooks = tuple(nohooks)

    @staticmethod
    def get_script_types_for_hook(hook: str) -> tuple[str, ...] | None:
        """Script types accepted for an event name, or None if unknown."""
        return SCRIPT_TYPES_FOR_HOOK.get(hook.lower())

    def is_hook_disabled(self, hook: str) -> bool:
        return any(re.search(pattern, hook) for pattern in self._nohooks)

    @staticmethod
    def get_hook_bindings(plugin: PluginDescriptor, platform: str) -> list[HookBinding]:
        """All script declarations visible on a platform, global first."""
        scoped = [(HookScope.GLOBAL, el) for el in plugin.get_global_scripts()]
        scoped += [(HookScope.PLATFORM, el) for el in plugin.get_platform_scripts(platform)]

        bindings = []
        for scope, el in scoped:
            if not el.get("src") or not el.get("type"):
                continue
            bindings.append(
                HookBinding(
                    script_path=el["src"],
                    declared_types=_declared_types(el["type"]),
                    scope=scope,
                )
            )
        return bindings

    def get_script_files(
        self, plugin: PluginDescriptor, script_types: Iterable[str], platform: str
    ) -> list[str]:
        """Script paths whose declared type is one of script_types."""
        accepted = set(script_types)
        return [
            binding.script_path
            for binding in self.get_hook_bindings(plugin, platform)
            if binding.declared_types & accepted
        ]

    def fire(
        self,
        hook: str,
        plugin_id: str,
        plugin: PluginDescriptor,
        platform: str,
        project_dir: Path,
        plugin_dir: Path,
    ) -> Awaitable[None]:
        """
        Fire a hook event for one plugin.

        The event name is checked immediately; the returned awaitable runs
        the matching scripts one at a time.

        Args:
            hook: Event name ('beforeinstall', 'afterinstall', 'uninstall')
            plugin_id: Plugin identifier
            plugin: Plugin descriptor to scan for script declarations
            platform: Target platform
            project_dir: Platform project directory
            plugin_dir: Plugin directory scripts resolve against

        Returns:
            Awaitable completing once every script has run

        Raises:
            UnknownHookTypeError: If hook is not a known event (raised eagerly)
            ScriptFailureError: When awaited, if a script fails
        """
        if not hook:
            raise UnknownHookTypeError("hook type is not specified")

        script_types = self.get_script_types_for_hook(hook)
        if script_types is None:
            raise UnknownHookTypeError(f'unknown plugin hook type: "{hook}"')

        if self.is_hook_disabled(hook):
            self._events.emit("verbose", f'Hook "{hook}" is disabled.')
            return self.run_scripts([], None)

        self._events.emit(
            "verbose", f'Executing "{hook}" hook for "{plugin_id}" on {platform}.'
        )

        scripts = self.get_script_files(plugin, script_types, platform)
        context = HookContext(
            hook=hook,
            platform=platform,
            project_dir=Path(project_dir),
            plugin_dir=Path(plugin_dir),
            plugin_id=plugin_id,
            cmd_line=" ".join(sys.argv),
        )
        return self.run_scripts(scripts, context)

    async def run_scripts(self, scripts: list[str], context: HookContext | None) -> None:
        """Run scripts serially; the first failure stops the batch."""
        for script in scripts:
            await self.run_script_file(script, context)

    async def run_script_file(self, script: str, context: HookContext) -> None:
        """
        Run a single script file.

        Raises:
            ScriptFailureError: If the script cannot be loaded or raises
        """
        script_path = context.plugin_dir / script

        if not script_path.exists():
            self._events.emit(
                "warn", f"Script file doesn't exist and will be skipped: {script_path}"
            )
            return

        self._events.emit(
            "verbose",
            f'Executing script found in plugin {context.plugin_id} for hook "{context.hook}": {script}',
        )

        try:
            entry = self._load(script_path)
            result = entry(replace(context, script_location=script_path))
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            raise ScriptFailureError(script_path, context.hook, e) from e
