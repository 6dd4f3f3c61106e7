"""
gpm query command (-Q).

List plugins installed on a platform.
"""

from typing import Any

from gpm.session import create_event_bus, open_manager


def query_command(args: Any) -> int:
    """
    Execute query command.

    Prints one "<id> <version>" line per installed plugin; plugins pulled in
    as dependencies are marked.

    Returns:
        Exit code
    """
    events = create_event_bus(args.verbose)
    manager, _ = open_manager(args, events)

    wanted = set(args.targets)
    for plugin in manager.installed():
        if wanted and plugin.id not in wanted:
            continue
        marker = "" if plugin.top_level else " (dependency)"
        print(f"{plugin.id} {plugin.version}{marker}")
    return 0
