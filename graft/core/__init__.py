"""
Graft Core - Shared infrastructure for the graft engine.

This module contains:
- Event Bus: explicit diagnostic event sink handed to every component
"""

from graft.core.event_bus import EventBus

__all__ = ["EventBus"]
