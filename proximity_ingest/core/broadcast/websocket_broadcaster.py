"""Fan-out en proceso hacia dashboards conectados por WebSocket."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Protocol, Set

from ..domain.errors import BroadcastError
from ..domain.reading import LiveUpdate

logger = logging.getLogger(__name__)

DEFAULT_SEND_TIMEOUT_SECONDS = 2.0


class Subscriber(Protocol):
    """Cualquier conexión con ``send_json`` asíncrono (p.ej. fastapi.WebSocket)."""

    async def send_json(self, data: Any) -> None:
        ...


class WebSocketBroadcaster:
    """Mantiene el set de suscriptores conectados y les reenvía cada lectura.

    - connect/disconnect modifican el set; nada se persiste
    - broadcast entrega en paralelo a una foto del set tomada al llamar
    - cada envío tiene timeout; un envío fallido o colgado se loggea y el
      suscriptor se descarta, así un cliente lento no frena el pipeline
    """

    def __init__(self, send_timeout_seconds: float = DEFAULT_SEND_TIMEOUT_SECONDS):
        self._subscribers: Set[Subscriber] = set()
        self._send_timeout = send_timeout_seconds
        self._sent = 0
        self._errors = 0
        self._timeouts = 0

    def connect(self, subscriber: Subscriber) -> None:
        self._subscribers.add(subscriber)
        logger.info("[LIVE] Subscriber connected (total=%d)", len(self._subscribers))

    def disconnect(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.discard(subscriber)
            logger.info("[LIVE] Subscriber disconnected (total=%d)", len(self._subscribers))

    async def broadcast(self, update: LiveUpdate) -> int:
        if not self._subscribers:
            return 0

        message = update.to_message()
        results = await asyncio.gather(
            *(self._send(subscriber, message) for subscriber in list(self._subscribers))
        )
        delivered = sum(results)
        self._sent += delivered
        return delivered

    async def _send(self, subscriber: Subscriber, message: Dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(subscriber.send_json(message), timeout=self._send_timeout)
            return True
        except asyncio.TimeoutError:
            self._timeouts += 1
            error = BroadcastError(f"send timed out after {self._send_timeout}s", subscriber=repr(subscriber))
        except Exception as e:
            error = BroadcastError(str(e), subscriber=repr(subscriber))

        logger.warning("[LIVE] Send failed, dropping subscriber: %s", error)
        self._errors += 1
        self.disconnect(subscriber)
        return False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def stats(self) -> Dict[str, int]:
        return {
            "subscribers": len(self._subscribers),
            "sent": self._sent,
            "errors": self._errors,
            "timeouts": self._timeouts,
        }
