"""
gpm install command (-S).

Install plugins and their dependencies from the search path.
"""

import asyncio
import sys
from typing import Any

from gpm.session import create_event_bus, install_options, open_manager


def install_command(args: Any) -> int:
    """
    Execute install command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if not args.targets:
        print("Error: No targets specified", file=sys.stderr)
        print("Usage: gpm -S <plugin>... --platform <platform>", file=sys.stderr)
        return 1

    return asyncio.run(install_async(args))


async def install_async(args: Any) -> int:
    """Async install implementation."""
    events = create_event_bus(args.verbose)
    manager, config = open_manager(args, events)

    installed = await manager.install(list(args.targets), install_options(args, config))

    if not installed:
        print("Nothing to install")
    return 0
