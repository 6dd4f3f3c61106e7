"""
Runtime Configuration Access.

This module provides runtime access to project settings with auto-flush on write.

Key features:
- ConfigProxy class with attribute-based access
- Defaults filled in for fields absent from the file
- Auto-flush to TOML file on attribute write
- Thread-safe file writes with locking
"""

import threading
from pathlib import Path
from typing import Any

from graft.config.schema import ConfigField, apply_defaults, validate_config
from graft.config.toml_handler import TOMLError, read_toml, update_toml_table


class ConfigAccessError(Exception):
    """Raised when settings cannot be loaded or flushed."""

    pass


class ConfigProxy:
    """
    Proxy object for runtime access to one TOML table.

    Every write is validated against the schema and immediately flushed to
    the TOML file; other tables and comments in the file are preserved.

    Example:
        cfg = ConfigProxy('graft', schema, Path('graft.toml'))
        cfg.www_dir              # Read
        cfg.use_platform_www = True   # Write (auto-flushes to file)
    """

    def __init__(
        self,
        table_name: str,
        schema: dict[str, ConfigField],
        config_file: Path,
    ):
        # Use object.__setattr__ to avoid triggering our custom __setattr__
        object.__setattr__(self, "_table_name", table_name)
        object.__setattr__(self, "_schema", schema)
        object.__setattr__(self, "_config_file", config_file)
        object.__setattr__(self, "_lock", threading.Lock())
        object.__setattr__(self, "_cache", {})

        self._load_config()

    def _load_config(self) -> None:
        """Load settings from file, falling back to schema defaults."""
        table: dict[str, Any] = {}
        if self._config_file.exists():
            try:
                data = read_toml(self._config_file)
            except TOMLError as e:
                raise ConfigAccessError(f"Failed to load config: {e}") from e
            table = data.get(self._table_name, {})
            validate_config(table, self._schema)

        object.__setattr__(self, "_cache", apply_defaults(table, self._schema))

    def __getattr__(self, name: str) -> Any:
        """
        Get a setting by attribute access.

        Raises:
            AttributeError: If field doesn't exist in schema
        """
        if name.startswith("_"):
            return object.__getattribute__(self, name)

        if name not in self._schema:
            raise AttributeError(
                f"Configuration field '{name}' not found in schema for {self._table_name}"
            )

        return self._cache[name]

    def __setattr__(self, name: str, value: Any) -> None:
        """
        Set a setting by attribute access with auto-flush.

        Raises:
            AttributeError: If field doesn't exist in schema
            ValidationError: If value fails validation
        """
        if name.startswith("_"):
            object.__setattr__(self, name, value)
            return

        if name not in self._schema:
            raise AttributeError(
                f"Configuration field '{name}' not found in schema for {self._table_name}"
            )

        self._schema[name].validate(value)

        with self._lock:
            self._cache[name] = value
            self._flush()

    def _flush(self) -> None:
        """Write the cached table back to the TOML file."""
        try:
            update_toml_table(self._config_file, self._table_name, dict(self._cache))
        except TOMLError as e:
            raise ConfigAccessError(f"Failed to flush config to file: {e}") from e

    def as_dict(self) -> dict[str, Any]:
        """Return a copy of all current settings."""
        return dict(self._cache)

    def __repr__(self) -> str:
        return f"ConfigProxy({self._table_name}, {self._cache})"
