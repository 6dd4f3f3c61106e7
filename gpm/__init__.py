"""
gpm - Graft Plugin Manager.

Pacman-style command-line front end for the graft engine.
"""
