"""
gpm init command (--init).

Write a commented default graft.toml into the project.
"""

from typing import Any

import graft.config
from gpm.session import project_root


def init_command(args: Any) -> int:
    """
    Execute init command.

    Returns:
        Exit code

    Raises:
        ConfigError: If graft.toml already exists
    """
    path = graft.config.init(project_root(args))
    print(f"Wrote {path}")
    return 0
