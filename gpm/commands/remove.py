"""
gpm remove command (-R).

Remove a plugin and the dependencies nothing else needs.
"""

import asyncio
import sys
from typing import Any

from gpm.session import create_event_bus, install_options, open_manager


def confirm(prompt: str) -> bool:
    """Ask a yes/no question; anything but y/yes declines."""
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def remove_command(args: Any) -> int:
    """
    Execute remove command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if len(args.targets) != 1:
        print("Error: Exactly one target required", file=sys.stderr)
        print("Usage: gpm -R <plugin> --platform <platform>", file=sys.stderr)
        return 1

    if not args.noconfirm and not confirm(f"Remove {args.targets[0]}?"):
        print("Aborted")
        return 1

    return asyncio.run(remove_async(args))


async def remove_async(args: Any) -> int:
    """Async remove implementation."""
    events = create_event_bus(args.verbose)
    manager, config = open_manager(args, events)

    await manager.uninstall(args.targets[0], install_options(args, config))
    return 0
