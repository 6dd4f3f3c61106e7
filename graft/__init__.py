"""
Graft - Transactional plugin installation engine for multi-platform app projects.

This is the main package that exports the public API for graft.
"""

__version__ = "0.1.0"

from graft.core.event_bus import EventBus
from graft.plugin.installer import InstallationOrchestrator, InstallOptions
from graft.plugin.manager import PluginManager
from graft.plugin.platforms import FileCopyPlatform, PlatformRegistry
from graft.plugin.project import PlatformProject, ProjectLocations

__all__ = [
    "__version__",
    "EventBus",
    "FileCopyPlatform",
    "InstallationOrchestrator",
    "InstallOptions",
    "PlatformProject",
    "PlatformRegistry",
    "PluginManager",
    "ProjectLocations",
]
