"""Room lifecycle and speech clock."""

from .clock import RoomClock

__all__ = ["RoomClock"]
