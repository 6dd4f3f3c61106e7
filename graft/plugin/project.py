"""
Platform Project.

Binds a platform capability, the project's directory layout and its
installed module ledger into the collaborator the installer drives.
"""

from collections.abc import Callable
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any

from graft.plugin.ledger import InstalledModuleLedger
from graft.plugin.platforms import PlatformCapability, PlatformError


@dataclass(frozen=True)
class ProjectLocations:
    """
    Directory layout of a platform project.

    Attributes:
        root: Project directory; destination paths resolve against it
        www: Web-asset root
        platform_www: Platform web-asset mirror
        plugins: Fetched plugins and ledger state files
    """

    root: Path
    www: Path
    platform_www: Path
    plugins: Path

    @classmethod
    def from_config(cls, root: Path, config: Any) -> "ProjectLocations":
        """
        Build locations from a settings object (graft.config.load()).

        Args:
            root: Project directory
            config: Object exposing www_dir, platform_www_dir and plugins_dir
        """
        root = Path(root)
        return cls(
            root=root,
            www=root / config.www_dir,
            platform_www=root / config.platform_www_dir,
            plugins=root / config.plugins_dir,
        )


class PlatformProject:
    """
    Project collaborator for one platform.

    Example:
        project = PlatformProject.open(capability, locations)
        install = project.get_installer('source-file')
        install(artifact, plugin.dir, locations.root, plugin.id, options)
        project.write()
    """

    def __init__(
        self,
        capability: PlatformCapability,
        locations: ProjectLocations,
        ledger: InstalledModuleLedger,
    ):
        self.capability = capability
        self.locations = locations
        self.ledger = ledger

    @classmethod
    def open(cls, capability: PlatformCapability, locations: ProjectLocations) -> "PlatformProject":
        """Load the platform's ledger state from the plugins directory."""
        ledger = InstalledModuleLedger.load(locations.plugins, capability.name)
        return cls(capability, locations, ledger)

    @property
    def platform(self) -> str:
        return self.capability.name

    @property
    def kinds(self) -> tuple[str, ...]:
        """Artifact kinds the platform can install."""
        return tuple(self.capability.kinds)

    def _check_kind(self, kind: str) -> None:
        if kind not in self.kinds:
            raise PlatformError(f"Platform {self.platform} has no handler for artifact kind '{kind}'")

    def get_installer(self, kind: str) -> Callable[..., Any]:
        """
        Install operation for one kind.

        Returns:
            Callable taking (artifact, plugin_dir, project_dir, plugin_id, options)

        Raises:
            PlatformError: If the platform does not support kind
        """
        self._check_kind(kind)
        return partial(self.capability.install, kind)

    def get_uninstaller(self, kind: str) -> Callable[..., Any]:
        """
        Uninstall operation for one kind.

        Returns:
            Callable taking (artifact, project_dir, plugin_id, options)

        Raises:
            PlatformError: If the platform does not support kind
        """
        self._check_kind(kind)
        return partial(self.capability.uninstall, kind)

    def write(self) -> None:
        """Persist project-level state: the ledger file <plugins>/<platform>.json."""
        self.ledger.save()
