"""Broadcast layer - Canal live hacia dashboards."""

from .base import LiveBroadcaster
from .redis_broadcaster import RedisChannelBroadcaster
from .redis_connection import RedisConnection
from .websocket_broadcaster import Subscriber, WebSocketBroadcaster

__all__ = [
    "LiveBroadcaster",
    "RedisChannelBroadcaster",
    "RedisConnection",
    "Subscriber",
    "WebSocketBroadcaster",
]
