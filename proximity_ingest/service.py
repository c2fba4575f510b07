"""Servicio de ingesta - Punto de entrada principal.

Arma los componentes del core a partir de Settings:
- transport/    → BrokerConnection (MQTT)
- validation/   → Parser + Normalizer
- persistence/  → Gateway log/latest/alert
- broadcast/    → Canal live (WebSocket o Redis)
- pipeline/     → Orquestación

No hay singletons de módulo: quien arranca el proceso crea la instancia
y la pasa a quien la necesite (FastAPI la guarda en app.state).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Union

from sqlalchemy.engine import Engine

from .common.config import Settings
from .common.db import get_engine
from .core.broadcast import RedisChannelBroadcaster, RedisConnection, WebSocketBroadcaster
from .core.classification import StatusClassifier, Thresholds
from .core.persistence import AlertMessageFormatter, PersistenceGateway, ReadingQueries, ensure_schema
from .core.pipeline import IngestionPipeline
from .core.transport import BrokerConnection
from .core.validation import UnitNormalizer

logger = logging.getLogger(__name__)

Broadcaster = Union[WebSocketBroadcaster, RedisChannelBroadcaster]


class IngestionService:
    """Servicio completo: broker → pipeline → BD + live.

    Componentes:
    - BrokerConnection: suscripción MQTT y cola de mensajes
    - IngestionPipeline: parseo, normalización, clasificación
    - PersistenceGateway: escrituras a BD
    - Broadcaster: fan-out a dashboards
    """

    def __init__(
        self,
        settings: Settings,
        engine: Optional[Engine] = None,
        mqtt_client_factory: Optional[Callable] = None,
    ):
        self._settings = settings
        self._engine = engine
        self._owns_engine = engine is None
        self._mqtt_client_factory = mqtt_client_factory

        self._redis: Optional[RedisConnection] = None
        self._broadcaster = self._create_broadcaster()

        self._queue: Optional[asyncio.Queue] = None
        self._connection: Optional[BrokerConnection] = None
        self._pipeline: Optional[IngestionPipeline] = None
        self._consumer: Optional[asyncio.Task] = None
        self._running = False

    def _create_broadcaster(self) -> Broadcaster:
        if self._settings.live_backend == "redis":
            self._redis = RedisConnection(self._settings.redis_url)
            return RedisChannelBroadcaster(
                self._redis,
                self._settings.redis_live_channel,
                reconnect_interval_seconds=self._settings.redis_reconnect_interval_seconds,
            )
        return WebSocketBroadcaster(send_timeout_seconds=self._settings.live_send_timeout_seconds)

    async def start(self) -> None:
        """Inicia el servicio."""
        if self._running:
            return
        s = self._settings

        # 1. BD
        if self._engine is None:
            self._engine = get_engine(s)
        if s.db_auto_create_schema:
            ensure_schema(self._engine)

        # 2. Redis (solo backend redis; si falla, el broadcaster reintenta luego)
        if self._redis is not None:
            self._redis.connect()

        # 3. Pipeline
        gateway = PersistenceGateway(
            self._engine,
            profile_id=s.profile_id,
            latest_row_id=s.latest_row_id,
            formatter=AlertMessageFormatter(
                template=s.alert_message_template,
                danger_phrase=s.alert_phrase_danger,
                warning_phrase=s.alert_phrase_warning,
            ),
        )
        self._pipeline = IngestionPipeline(
            gateway=gateway,
            broadcaster=self._broadcaster,
            normalizer=UnitNormalizer(s.normalization_mode),
            classifier=StatusClassifier(
                Thresholds(
                    danger_below_cm=s.danger_threshold_cm,
                    warning_below_cm=s.warning_threshold_cm,
                )
            ),
        )

        # 4. Cola + consumidor
        self._queue = asyncio.Queue(maxsize=s.ingest_queue_size)
        self._consumer = asyncio.create_task(self._pipeline.run(self._queue), name="ingest-pipeline")

        # 5. MQTT
        self._connection = BrokerConnection(
            broker_url=s.broker_url,
            topic=s.topic,
            queue=self._queue,
            username=s.mqtt_username,
            password=s.mqtt_password,
            client_id=s.client_id,
            qos=s.mqtt_qos,
            reconnect_delay_seconds=s.reconnect_delay_seconds,
            client_factory=self._mqtt_client_factory,
        )
        self._connection.start()

        self._running = True
        logger.info(
            "[SERVICE] Started topic=%s mode=%s live=%s profile=%s",
            s.topic,
            s.normalization_mode.value,
            s.live_backend,
            s.profile_id,
        )

    async def stop(self) -> None:
        """Detiene el servicio."""
        self._running = False

        if self._connection:
            self._connection.stop()

        if self._consumer:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None

        if self._redis:
            self._redis.disconnect()

        if self._engine is not None and self._owns_engine:
            self._engine.dispose()

        if self._pipeline:
            logger.info("[SERVICE] Stopped. %s", self._pipeline.stats)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def broadcaster(self) -> Broadcaster:
        return self._broadcaster

    @property
    def pipeline(self) -> Optional[IngestionPipeline]:
        return self._pipeline

    @property
    def connection(self) -> Optional[BrokerConnection]:
        return self._connection

    @property
    def queue(self) -> Optional[asyncio.Queue]:
        return self._queue

    def queries(self) -> ReadingQueries:
        if self._engine is None:
            raise RuntimeError("Service not started")
        return ReadingQueries(
            self._engine,
            profile_id=self._settings.profile_id,
            latest_row_id=self._settings.latest_row_id,
        )

    @property
    def stats(self) -> dict:
        """Estadísticas del servicio."""
        return {
            "running": self._running,
            "broker": self._connection.stats if self._connection else None,
            "pipeline": self._pipeline.stats.to_dict() if self._pipeline else None,
            "live": self._broadcaster.stats,
            "queue_depth": self._queue.qsize() if self._queue else 0,
        }

    def health_check(self) -> dict:
        """Health check del servicio."""
        if not self._running or not self._connection or not self._pipeline:
            return {"healthy": False, "reason": "Not initialized"}

        broker = self._connection.health_check()
        return {
            "healthy": broker["healthy"],
            "mqtt": broker,
            "live_backend": self._settings.live_backend,
            "live": self._broadcaster.stats,
            "processed": self._pipeline.stats.processed,
            "failed": self._pipeline.stats.failed,
        }
