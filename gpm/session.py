"""
gpm session wiring.

Builds the event sink, settings and plugin manager for one invocation.
"""

import sys
from pathlib import Path
from typing import Any

import graft.config
from graft.core.event_bus import EventBus
from graft.plugin.installer import InstallationOrchestrator, InstallOptions
from graft.plugin.manager import PluginManager
from graft.plugin.platforms import create_default_registry
from graft.plugin.project import PlatformProject, ProjectLocations


class GPMError(Exception):
    """Base exception for gpm errors."""

    pass


def create_event_bus(verbose: bool = False) -> EventBus:
    """
    Event sink printing to the console.

    info/results go to stdout, warn to stderr, verbose only when requested.
    """
    events = EventBus()

    def console(src: str, message: str) -> None:
        level = src.rsplit(".", 1)[-1]
        if level == "warn":
            print(f"Warning: {message}", file=sys.stderr)
        elif level == "verbose":
            if verbose:
                print(message)
        else:
            print(message)

    events.register_event_consumer_re("log.*", console)
    return events


def project_root(args: Any) -> Path:
    return Path(args.project or ".").resolve()


def open_manager(args: Any, events: EventBus) -> tuple[PluginManager, Any]:
    """
    Build the plugin manager for --platform in --project.

    Returns:
        Tuple of (manager, settings)

    Raises:
        GPMError: If no platform was given
        UnknownPlatformError: If the platform is not registered
    """
    if not args.platform:
        raise GPMError("No platform specified (use --platform)")

    root = project_root(args)
    config = graft.config.load(root)
    capability = create_default_registry(config.www_dir).get(args.platform)
    locations = ProjectLocations.from_config(root, config)

    project = PlatformProject.open(capability, locations)
    orchestrator = InstallationOrchestrator(project, events)
    search_path = Path(args.search_path) if args.search_path else locations.plugins
    return PluginManager(search_path, orchestrator, events), config


def install_options(args: Any, config: Any) -> InstallOptions:
    """Merge settings with command-line flags."""
    return InstallOptions(
        use_platform_www=config.use_platform_www,
        nohooks=tuple(config.nohooks) + tuple(args.nohooks or ()),
        force=args.force,
        link=args.link,
    )
