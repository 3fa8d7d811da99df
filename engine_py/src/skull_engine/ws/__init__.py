"""
WebSocket transport for the Skull engine.
"""

from .server import GameRoom, RoomRegistry, registry, router

__all__ = ["GameRoom", "RoomRegistry", "registry", "router"]
