"""
Graft Plugin System - Transactional plugin installation into platform projects.

This module handles:
- Plugin manifest parsing
- Sequential actions with automatic rollback
- Dependency ordering and cycle detection
- Lifecycle hooks execution
- Installed module ledger and metadata document
"""

from graft.plugin.installer import InstallationOrchestrator, InstallOptions
from graft.plugin.manager import PluginManager

__all__ = ["InstallationOrchestrator", "InstallOptions", "PluginManager"]
