"""gpm operations, one module per pacman-style flag."""
