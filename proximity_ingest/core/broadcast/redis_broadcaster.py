"""Publicador live a un canal pub/sub de Redis."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Optional

import redis

from ..domain.errors import BroadcastError
from ..domain.reading import LiveUpdate
from .redis_connection import RedisConnection

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "proximity:live"
DEFAULT_RECONNECT_INTERVAL_SECONDS = 30.0


class RedisChannelBroadcaster:
    """Publica lecturas a un canal Redis para dashboards en otros procesos.

    Redis pub/sub entrega solo a los clientes suscritos en el momento del
    PUBLISH, que es el mismo contrato que el fan-out en proceso.

    Si Redis no está disponible se reintenta la conexión en el siguiente
    broadcast, como mucho una vez cada ``reconnect_interval_seconds``.
    """

    def __init__(
        self,
        connection: RedisConnection,
        channel: str = DEFAULT_CHANNEL,
        reconnect_interval_seconds: float = DEFAULT_RECONNECT_INTERVAL_SECONDS,
    ):
        self._conn = connection
        self._channel = channel
        self._reconnect_interval = reconnect_interval_seconds
        self._last_connect_attempt: Optional[float] = None
        self._reconnects = 0
        self._published = 0
        self._errors = 0

    async def broadcast(self, update: LiveUpdate) -> int:
        if not self._conn.is_connected and not await self._reconnect():
            return 0

        data = json.dumps(update.to_message())
        try:
            receivers = await asyncio.to_thread(self._conn.client.publish, self._channel, data)
        except redis.RedisError as e:
            self._errors += 1
            # fuerza reconexión en el próximo broadcast
            self._conn.disconnect()
            logger.warning("[REDIS] Publish failed: %s", BroadcastError(str(e), subscriber=self._channel))
            return 0

        self._published += 1
        logger.debug(
            "[REDIS] Published: channel=%s distance=%.2f receivers=%s",
            self._channel,
            update.distance_cm,
            receivers,
        )
        return int(receivers)

    async def _reconnect(self) -> bool:
        now = time.monotonic()
        if self._last_connect_attempt is not None and now - self._last_connect_attempt < self._reconnect_interval:
            return False
        self._last_connect_attempt = now
        if await asyncio.to_thread(self._conn.connect):
            self._reconnects += 1
            logger.info("[REDIS] Live channel reconnected (reconnects=%d)", self._reconnects)
            return True
        return False

    @property
    def channel(self) -> str:
        return self._channel

    @property
    def stats(self) -> dict:
        return {
            "channel": self._channel,
            "connected": self._conn.is_connected,
            "published": self._published,
            "errors": self._errors,
            "reconnects": self._reconnects,
        }
