"""Conexión MQTT para recepción de telemetría de proximidad."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional
from urllib.parse import urlparse

import paho.mqtt.client as mqtt

from ..domain.errors import BrokerTransportError

logger = logging.getLogger(__name__)

_DEFAULT_PORTS = {"mqtt": 1883, "tcp": 1883, "mqtts": 8883, "ssl": 8883, "ws": 80, "wss": 443}
_TLS_SCHEMES = ("mqtts", "ssl", "wss")
_WS_SCHEMES = ("ws", "wss")


@dataclass(frozen=True)
class BrokerMessage:
    """Mensaje crudo tal como llega del broker."""
    topic: str
    payload: bytes
    received_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class BrokerEndpoint:
    host: str
    port: int
    tls: bool = False
    websockets: bool = False

    @classmethod
    def from_url(cls, url: str) -> "BrokerEndpoint":
        """mqtt://host:1883, mqtts://host, ws://host:8083 ..."""
        parsed = urlparse(url if "://" in url else f"mqtt://{url}")
        scheme = parsed.scheme.lower()
        if scheme not in _DEFAULT_PORTS:
            raise ValueError(f"Unsupported broker URL scheme: {scheme!r}")
        if not parsed.hostname:
            raise ValueError(f"Broker URL without host: {url!r}")
        return cls(
            host=parsed.hostname,
            port=parsed.port or _DEFAULT_PORTS[scheme],
            tls=scheme in _TLS_SCHEMES,
            websockets=scheme in _WS_SCHEMES,
        )


def _is_failure(code) -> bool:
    # ReasonCode de paho v2 o int de MQTT 3.1.1
    return getattr(code, "value", code) >= 0x80


class BrokerConnection:
    """Cliente MQTT que entrega mensajes del topic a una asyncio.Queue.

    Responsabilidades:
    - Conexión al broker con backoff fijo de reconexión
    - Re-suscripción en cada conexión exitosa
    - Encolar (topic, payload) en orden de llegada

    paho corre su loop de red en un hilo propio; cada mensaje se pasa al
    event loop con call_soon_threadsafe, que conserva el orden.
    """

    def __init__(
        self,
        broker_url: str,
        topic: str,
        queue: asyncio.Queue,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id: str = "proximity-ingest",
        qos: int = 0,
        reconnect_delay_seconds: float = 5.0,
        keepalive: int = 60,
        client_factory: Optional[Callable[..., mqtt.Client]] = None,
    ):
        self.endpoint = BrokerEndpoint.from_url(broker_url)
        self.topic = topic
        self.qos = qos
        self.username = username
        self.password = password
        self.client_id = f"{client_id}-{int(time.time())}"
        self.reconnect_delay_seconds = reconnect_delay_seconds
        self.keepalive = keepalive

        self._queue = queue
        self._loop = loop
        self._client_factory = client_factory or self._default_client
        self._client: Optional[mqtt.Client] = None
        self._connected = False
        self._running = False

        # Stats
        self._connect_count = 0
        self._reconnect_count = 0
        self._subscribe_failures = 0
        self._messages_received = 0
        self._messages_dropped = 0
        self._last_message_at: float = 0

    def _default_client(self) -> mqtt.Client:
        return mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            protocol=mqtt.MQTTv311,
            transport="websockets" if self.endpoint.websockets else "tcp",
        )

    def start(self) -> None:
        """Arranca el loop de red. La conexión se completa en segundo plano."""
        if self._running:
            return
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        client = self._client_factory()
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_subscribe = self._on_subscribe
        client.on_message = self._on_message

        if self.username:
            client.username_pw_set(self.username, self.password)
        if self.endpoint.tls:
            client.tls_set()

        delay = max(1, int(round(self.reconnect_delay_seconds)))
        client.reconnect_delay_set(min_delay=delay, max_delay=delay)

        logger.info(
            "[MQTT] Connecting to %s:%d topic=%s",
            self.endpoint.host,
            self.endpoint.port,
            self.topic,
        )
        # connect_async + loop_start: el hilo de paho reintenta también la
        # primera conexión con el mismo backoff
        client.connect_async(self.endpoint.host, self.endpoint.port, keepalive=self.keepalive)
        client.loop_start()

        self._client = client
        self._running = True

    def stop(self) -> None:
        """Detiene el loop y desconecta."""
        self._running = False
        if self._client:
            try:
                self._client.disconnect()
                self._client.loop_stop()
            except Exception as e:
                logger.warning("[MQTT] Disconnect error: %s", e)
        self._connected = False
        logger.info(
            "[MQTT] Stopped. received=%d dropped=%d reconnects=%d",
            self._messages_received,
            self._messages_dropped,
            self._reconnect_count,
        )

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback de conexión: (re)suscribe en cada conexión exitosa."""
        if reason_code != 0:
            self._connected = False
            logger.error("[MQTT] %s", BrokerTransportError(f"connection refused: rc={reason_code}"))
            return

        self._connected = True
        self._connect_count += 1
        if self._connect_count > 1:
            self._reconnect_count += 1
            logger.info("[MQTT] Reconnected to broker (reconnects=%d)", self._reconnect_count)
        else:
            logger.info("[MQTT] Connected to broker")

        result, mid = client.subscribe(self.topic, qos=self.qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            self._subscribe_failures += 1
            logger.error("[MQTT] %s", BrokerTransportError(f"subscribe to {self.topic} failed: rc={result}"))
        else:
            logger.info("[MQTT] Subscribing to %s (mid=%s)", self.topic, mid)

    def _on_subscribe(self, client, userdata, mid, reason_codes, properties=None):
        if any(_is_failure(rc) for rc in reason_codes):
            self._subscribe_failures += 1
            logger.error("[MQTT] Broker rejected subscription to %s: %s", self.topic, reason_codes)
        else:
            logger.info("[MQTT] Subscribed to %s", self.topic)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        self._connected = False
        if self._running:
            logger.warning(
                "[MQTT] Disconnected (rc=%s), retrying in %.0fs",
                reason_code,
                self.reconnect_delay_seconds,
            )

    def _on_message(self, client, userdata, msg):
        """Callback del hilo de paho: pasa el mensaje al event loop."""
        message = BrokerMessage(topic=msg.topic, payload=bytes(msg.payload))
        self._loop.call_soon_threadsafe(self._enqueue, message)

    def _enqueue(self, message: BrokerMessage) -> None:
        self._messages_received += 1
        self._last_message_at = message.received_at
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            self._messages_dropped += 1
            logger.warning("[MQTT] Queue full, dropped message (topic=%s)", message.topic)

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict:
        return {
            "running": self._running,
            "connected": self._connected,
            "broker": f"{self.endpoint.host}:{self.endpoint.port}",
            "topic": self.topic,
            "messages_received": self._messages_received,
            "messages_dropped": self._messages_dropped,
            "reconnect_count": self._reconnect_count,
            "subscribe_failures": self._subscribe_failures,
            "last_message_at": self._last_message_at,
        }

    def health_check(self) -> dict:
        return {
            "healthy": self._running and self._connected,
            "running": self._running,
            "connected": self._connected,
            "last_message_age_seconds": time.time() - self._last_message_at if self._last_message_at > 0 else None,
        }
