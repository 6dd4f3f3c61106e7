"""
Hook Script Loader.

This module turns a hook script file into an invocable unit.

Key features:
- importlib integration for loading .py scripts by path
- Entry point lookup: a `run` function, else a module-level `hook`
- Clean sys.modules on failure
"""

import hashlib
import importlib.util
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

ENTRY_POINTS = ("run", "hook")


class LoaderError(Exception):
    """Base exception for loader-related errors."""

    pass


class ScriptLoader(Protocol):
    """Maps a script file path to something the hook runner can call."""

    def __call__(self, script_path: Path) -> Callable: ...


def _module_name(script_path: Path) -> str:
    digest = hashlib.sha1(str(script_path).encode("utf-8")).hexdigest()[:12]
    return f"graft_hook_{script_path.stem}_{digest}"


def load_script(script_path: Path) -> Callable:
    """
    Load a hook script and return its entry point.

    The script is executed afresh on every call; hook scripts are expected
    to be cheap to import and are never cached between hook events.

    Args:
        script_path: Path to a .py hook script

    Returns:
        The script's `run` (or `hook`) callable

    Raises:
        LoaderError: If the script cannot be imported or has no entry point
    """
    if script_path.suffix != ".py":
        raise LoaderError(f"Unsupported hook script type: {script_path}")

    module_name = _module_name(script_path)
    spec = importlib.util.spec_from_file_location(module_name, script_path)
    if spec is None or spec.loader is None:
        raise LoaderError(f"Failed to create module spec for {script_path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module

    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise LoaderError(f"Failed to load hook script {script_path}: {e}") from e
    finally:
        sys.modules.pop(module_name, None)

    for name in ENTRY_POINTS:
        entry = getattr(module, name, None)
        if callable(entry):
            return entry

    raise LoaderError(
        f"Hook script {script_path} defines none of: {', '.join(ENTRY_POINTS)}"
    )
