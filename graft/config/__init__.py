"""
Graft Configuration System - TOML-based project settings.

Settings live in ``graft.toml`` at the project root, under a ``[graft]`` table.

Example usage:
    import graft.config

    cfg = graft.config.load(Path('/path/to/project'))
    print(cfg.www_dir)          # Read
    cfg.use_platform_www = True # Write (auto-flushes)
"""

from pathlib import Path
from typing import Any

from graft.config.runtime import ConfigProxy
from graft.config.schema import ConfigField
from graft.config.toml_handler import generate_toml_from_schema

CONFIG_FILENAME = "graft.toml"
TABLE_NAME = "graft"


class ConfigError(Exception):
    """Base exception for config API errors."""

    pass


def field(
    type_: type,
    default: Any,
    description: str = "",
    min: Any = None,
    max: Any = None,
    choices: list[Any] | None = None,
    item_type: type | None = None,
) -> ConfigField:
    """
    Helper function to create a ConfigField.

    Example:
        field(str, "www", "Web asset directory", min=1)
    """
    return ConfigField(
        type_=type_,
        default=default,
        description=description,
        min=min,
        max=max,
        choices=choices,
        item_type=item_type,
    )


SCHEMA: dict[str, ConfigField] = {
    "www_dir": field(str, "www", "Web asset root, relative to the project", min=1),
    "platform_www_dir": field(
        str, "platform_www", "Platform web asset mirror, relative to the project", min=1
    ),
    "plugins_dir": field(
        str, "plugins", "Fetched plugins and ledger state, relative to the project", min=1
    ),
    "use_platform_www": field(
        bool, False, "Mirror the plugin metadata document into platform_www_dir"
    ),
    "nohooks": field(
        list, [], "Regex patterns of hook events that are never fired", item_type=str
    ),
}


def load(project_root: Path) -> ConfigProxy:
    """
    Get the runtime settings accessor for a project.

    Args:
        project_root: Project directory containing graft.toml

    Returns:
        ConfigProxy bound to <project_root>/graft.toml
    """
    return ConfigProxy(TABLE_NAME, SCHEMA, project_root / CONFIG_FILENAME)


def init(project_root: Path) -> Path:
    """
    Write a commented default graft.toml.

    Args:
        project_root: Project directory

    Returns:
        Path of the written file

    Raises:
        ConfigError: If the file already exists
    """
    config_file = project_root / CONFIG_FILENAME
    if config_file.exists():
        raise ConfigError(f"Config file already exists: {config_file}")

    project_root.mkdir(parents=True, exist_ok=True)
    config_file.write_text(
        generate_toml_from_schema(TABLE_NAME, SCHEMA, {}), encoding="utf-8"
    )
    return config_file


__all__ = ["field", "load", "init", "ConfigError", "SCHEMA", "CONFIG_FILENAME"]
