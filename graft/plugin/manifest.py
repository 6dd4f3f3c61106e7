"""
Plugin Descriptor System.

This module provides manifest parsing for plugins.

Key features:
- Structural validation of manifest.json (only what building actions needs)
- Version constraint parsing (>=, ==, ~=)
- Per-platform artifact accessors returning immutable Artifact records
- Module and hook script declarations at global and platform scope
"""

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

MANIFEST_FILENAME = "manifest.json"

# Platform-section keys that are not artifact kinds
RESERVED_KEYS = ("scripts", "modules")

MODULE_KIND = "js-module"


class ManifestError(Exception):
    """Base exception for manifest-related errors."""

    pass


class ValidationError(ManifestError):
    """Raised when manifest validation fails."""

    pass


def _version_parts(version: str) -> list[int]:
    """Numeric components of a version; '1.2.0-dev' -> [1, 2, 0]."""
    core = re.match(r"^\d+(\.\d+)*", version.strip())
    if core is None:
        raise ValidationError(f"Invalid version: {version}")
    return [int(x) for x in core.group(0).split(".")]


def compare_versions(v1: str, v2: str) -> int:
    """
    Compare two version strings.

    Returns:
        -1 if v1 < v2, 0 if v1 == v2, 1 if v1 > v2
    """
    parts1 = _version_parts(v1)
    parts2 = _version_parts(v2)

    max_len = max(len(parts1), len(parts2))
    parts1.extend([0] * (max_len - len(parts1)))
    parts2.extend([0] * (max_len - len(parts2)))

    for p1, p2 in zip(parts1, parts2, strict=True):
        if p1 < p2:
            return -1
        elif p1 > p2:
            return 1
    return 0


@dataclass(frozen=True)
class VersionConstraint:
    """
    Represents a version constraint for dependencies.

    Attributes:
        operator: Constraint operator (>=, ==, ~=)
        version: Version string (e.g., "1.0.0")
    """

    operator: str
    version: str

    def matches(self, version: str) -> bool:
        """
        Check if a version satisfies this constraint.

        Args:
            version: Version string to check

        Returns:
            True if version satisfies constraint
        """
        if self.operator == "==":
            return compare_versions(version, self.version) == 0
        elif self.operator == ">=":
            return compare_versions(version, self.version) >= 0
        elif self.operator == "~=":
            return self._is_compatible_release(version)
        else:
            raise ValidationError(f"Unknown version operator: {self.operator}")

    def _is_compatible_release(self, version: str) -> bool:
        """~=1.2.3 matches >=1.2.3, <1.3.0"""
        if compare_versions(version, self.version) < 0:
            return False

        base_parts = self.version.split(".")
        if len(base_parts) < 2:
            raise ValidationError(f"Invalid version for ~= operator: {self.version}")

        upper_parts = base_parts[:-1]
        upper_parts[-1] = str(int(upper_parts[-1]) + 1)
        upper_bound = ".".join(upper_parts) + ".0"

        return compare_versions(version, upper_bound) < 0

    def __str__(self) -> str:
        return f"{self.operator}{self.version}"


def parse_version_constraint(constraint_str: str) -> VersionConstraint | None:
    """
    Parse a version constraint string.

    Args:
        constraint_str: Constraint string (e.g., ">=1.0.0"); empty or "*" means any

    Returns:
        VersionConstraint object, or None when any version is acceptable

    Raises:
        ValidationError: If constraint string is invalid
    """
    text = constraint_str.strip()
    if text in ("", "*"):
        return None

    match = re.match(r"^(>=|==|~=)(\d+\.\d+\.\d+)$", text)
    if not match:
        raise ValidationError(
            f"Invalid version constraint: {constraint_str}. "
            f"Expected format: operator + version (e.g., '>=1.0.0')"
        )

    operator, version = match.groups()
    return VersionConstraint(operator=operator, version=version)


@dataclass(frozen=True)
class Artifact:
    """
    A single file or patch a plugin contributes for a platform.

    Attributes:
        kind: Artifact kind (e.g. 'source-file', 'framework', 'js-module')
        attrs: Read-only declared attributes ('src', 'target', 'target-dir', ...)
    """

    kind: str
    attrs: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "attrs", MappingProxyType(dict(self.attrs)))

    @property
    def src(self) -> str | None:
        return self.attrs.get("src")

    @property
    def target(self) -> str | None:
        return self.attrs.get("target")

    @property
    def target_dir(self) -> str | None:
        return self.attrs.get("target-dir")

    def get(self, key: str, default: Any = None) -> Any:
        return self.attrs.get(key, default)


@dataclass
class PluginDescriptor:
    """
    Represents a parsed plugin manifest.

    Attributes:
        id: Plugin identifier (unique)
        version: Plugin version
        dir: Plugin directory (artifact sources resolve against it)
        dependencies: Dict of plugin_id -> version constraint (None = any)
        preferences: Declared preference variables
        raw_data: Raw manifest data
    """

    id: str
    version: str
    dir: Path
    dependencies: dict[str, VersionConstraint | None] = field(default_factory=dict)
    preferences: dict[str, Any] = field(default_factory=dict)
    raw_data: dict[str, Any] = field(default_factory=dict)

    def _platform_section(self, platform: str) -> dict[str, Any]:
        return self.raw_data.get("platforms", {}).get(platform, {})

    def get_artifact_kinds(self, platform: str) -> list[str]:
        """Artifact kinds this plugin declares for a platform, in declaration order."""
        kinds = list(self.raw_data.get("artifacts", {}))
        for key in self._platform_section(platform):
            if key not in RESERVED_KEYS and key not in kinds:
                kinds.append(key)
        if self.get_modules(platform) and MODULE_KIND not in kinds:
            kinds.append(MODULE_KIND)
        return kinds

    def get_artifacts(self, kind: str, platform: str) -> list[Artifact]:
        """
        Get the declared artifacts of one kind for a platform.

        Global artifacts come before platform-specific ones. Modules are
        exposed as artifacts of kind 'js-module'.

        Args:
            kind: Artifact kind
            platform: Platform name

        Returns:
            List of Artifact records
        """
        if kind == MODULE_KIND:
            declared = self.get_modules(platform)
        else:
            declared = list(self.raw_data.get("artifacts", {}).get(kind, []))
            declared += self._platform_section(platform).get(kind, [])
        return [Artifact(kind=kind, attrs=attrs) for attrs in declared]

    def get_modules(self, platform: str | None = None) -> list[dict[str, Any]]:
        """Module declarations: global ones, then those of the platform."""
        modules = list(self.raw_data.get("modules", []))
        if platform is not None:
            modules += self._platform_section(platform).get("modules", [])
        return modules

    def get_global_scripts(self) -> list[dict[str, Any]]:
        """Hook script declarations at plugin-global scope."""
        return list(self.raw_data.get("scripts", []))

    def get_platform_scripts(self, platform: str) -> list[dict[str, Any]]:
        """Hook script declarations specific to a platform."""
        return list(self._platform_section(platform).get("scripts", []))


def parse_manifest(manifest_path: Path) -> PluginDescriptor:
    """
    Parse a manifest.json file.

    Args:
        manifest_path: Path to manifest.json

    Returns:
        PluginDescriptor whose dir is the manifest's parent directory

    Raises:
        ManifestError: If file cannot be read or parsed
        ValidationError: If manifest is invalid
    """
    try:
        with open(manifest_path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ManifestError(f"Manifest file not found: {manifest_path}") from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"Failed to parse manifest JSON: {e}") from e
    except OSError as e:
        raise ManifestError(f"Failed to read manifest file: {e}") from e

    return descriptor_from_dict(data, manifest_path.parent)


def descriptor_from_dict(data: dict[str, Any], plugin_dir: Path) -> PluginDescriptor:
    """
    Build a PluginDescriptor from already-loaded manifest data.

    Args:
        data: Manifest data
        plugin_dir: Plugin directory

    Returns:
        PluginDescriptor object

    Raises:
        ValidationError: If manifest is invalid
    """
    validate_manifest_structure(data)

    dependencies = {}
    for dep_id, constraint_str in data.get("dependencies", {}).items():
        try:
            dependencies[dep_id] = parse_version_constraint(constraint_str)
        except ValidationError as e:
            raise ValidationError(
                f"Invalid dependency constraint for '{dep_id}': {e}"
            ) from e

    return PluginDescriptor(
        id=data["id"],
        version=data["version"],
        dir=Path(plugin_dir),
        dependencies=dependencies,
        preferences=dict(data.get("preferences", {})),
        raw_data=data,
    )


def _check_declarations(entries: Any, where: str) -> None:
    if not isinstance(entries, list):
        raise ValidationError(f"'{where}' must be a list")
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValidationError(f"Entries of '{where}' must be objects")


def validate_manifest_structure(data: dict[str, Any]) -> None:
    """
    Validate manifest structure and required fields.

    Args:
        data: Parsed manifest data

    Raises:
        ValidationError: If manifest structure is invalid
    """
    if not isinstance(data, dict):
        raise ValidationError("Manifest must be a JSON object")

    for required in ("id", "version"):
        if required not in data:
            raise ValidationError(f"Missing required field: {required}")

    if not isinstance(data["id"], str) or not data["id"]:
        raise ValidationError(f"Invalid plugin id: {data['id']!r}")

    # The id becomes a directory name under <www>/plugins
    if "/" in data["id"] or "\\" in data["id"] or data["id"] in (".", ".."):
        raise ValidationError(f"Plugin id must not be a path: {data['id']!r}")

    if not isinstance(data["version"], str) or not re.match(r"^\d+(\.\d+)*", data["version"]):
        raise ValidationError(f"Invalid version: {data['version']!r}")

    dependencies = data.get("dependencies", {})
    if not isinstance(dependencies, dict):
        raise ValidationError("'dependencies' field must be a dictionary")
    for dep_id, constraint in dependencies.items():
        if not isinstance(constraint, str):
            raise ValidationError(
                f"Dependency constraint must be string: {dep_id}={constraint!r}"
            )

    if not isinstance(data.get("preferences", {}), dict):
        raise ValidationError("'preferences' field must be a dictionary")

    _check_declarations(data.get("modules", []), "modules")
    _check_declarations(data.get("scripts", []), "scripts")

    artifacts = data.get("artifacts", {})
    if not isinstance(artifacts, dict):
        raise ValidationError("'artifacts' field must be a dictionary")
    for kind, entries in artifacts.items():
        _check_declarations(entries, f"artifacts.{kind}")

    platforms = data.get("platforms", {})
    if not isinstance(platforms, dict):
        raise ValidationError("'platforms' field must be a dictionary")
    for platform, section in platforms.items():
        if not isinstance(section, dict):
            raise ValidationError(f"Platform section '{platform}' must be an object")
        for kind, entries in section.items():
            _check_declarations(entries, f"platforms.{platform}.{kind}")
