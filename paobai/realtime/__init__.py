"""
实时通知
"""
from paobai.realtime.events import Event, EventType, session_channel, restaurant_channel
from paobai.realtime.manager import ConnectionManager, ConnectionLimiter, manager, limiter, publish

__all__ = [
    "Event",
    "EventType",
    "session_channel",
    "restaurant_channel",
    "ConnectionManager",
    "ConnectionLimiter",
    "manager",
    "limiter",
    "publish",
]
