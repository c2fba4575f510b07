"""Orquestador del pipeline de ingesta."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

from ..broadcast.base import LiveBroadcaster
from ..classification.status_classifier import StatusClassifier
from ..domain.errors import BroadcastError, ValidationError
from ..domain.reading import LiveUpdate, Reading, Status
from ..monitoring.stats import Stats
from ..persistence.gateway import PersistenceGateway, PersistResult
from ..transport.mqtt_client import BrokerMessage
from ..validation.normalizer import UnitNormalizer
from ..validation.payload_parser import PayloadParser

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessedReading:
    """Lectura que completó el pipeline."""
    reading: Reading
    status: Status
    persist: PersistResult
    delivered: int


class IngestionPipeline:
    """Procesa mensajes del broker a través del pipeline completo.

    Pipeline:
    1. Parseo del payload (tolerante)
    2. Normalización de unidades
    3. Clasificación de seguridad
    4. Persistencia log/latest/alert (best-effort por escritura)
    5. Broadcast live

    Cualquier fallo de un mensaje se loggea y se descarta; el pipeline
    sigue con el siguiente. No hay reintentos ni dead-letter.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        broadcaster: LiveBroadcaster,
        normalizer: UnitNormalizer,
        classifier: Optional[StatusClassifier] = None,
        parser: Optional[PayloadParser] = None,
    ):
        self._gateway = gateway
        self._broadcaster = broadcaster
        self._normalizer = normalizer
        self._classifier = classifier or StatusClassifier()
        self._parser = parser or PayloadParser()
        self._stats = Stats()

    async def run(self, queue: "asyncio.Queue[BrokerMessage]") -> None:
        """Consume la cola en orden de llegada hasta que se cancele la tarea."""
        logger.info("[PIPELINE] Consumer started (mode=%s)", self._normalizer.mode.value)
        while True:
            message = await queue.get()
            try:
                await self.process(message.topic, message.payload)
            finally:
                queue.task_done()

    async def process(self, topic: str, payload: bytes) -> Optional[ProcessedReading]:
        """Procesa un mensaje. Devuelve None si se descartó."""
        self._stats.received += 1
        self._stats.last_message_at = time.time()

        try:
            return await self._process(topic, payload)
        except Exception as e:
            self._stats.unexpected_errors += 1
            logger.exception("[PIPELINE] Unexpected error (topic=%s): %s", topic, e)
            return None

    async def _process(self, topic: str, payload: bytes) -> Optional[ProcessedReading]:
        # 1. Parsear
        parsed = self._parser.decode(payload)
        if not parsed.valid:
            self._stats.parse_failed += 1
            logger.warning("[PIPELINE] Dropped unparseable message: %s (topic=%s)", parsed.error, topic)
            return None

        # 2. Normalizar
        try:
            distance_cm = self._normalizer.normalize(parsed.reading.raw_value)
        except ValidationError as e:
            self._stats.validation_failed += 1
            logger.warning("[PIPELINE] Dropped invalid reading: %s (topic=%s)", e, topic)
            return None

        reading = Reading.now(distance_cm)

        # 3. Clasificar
        status = self._classifier.classify(reading.distance_cm)

        # 4. Persistir (fuera del event loop)
        persist = await asyncio.to_thread(self._gateway.append, reading, status)
        self._stats.persistence_errors += len(persist.errors)
        if persist.alert_id is not None:
            self._stats.alerts_created += 1

        # 5. Broadcast live
        delivered = await self._broadcast(LiveUpdate.from_reading(reading, status))

        self._stats.processed += 1
        logger.debug(
            "[PIPELINE] Processed: distance=%.2f status=%s via=%s delivered=%d",
            reading.distance_cm,
            status.value,
            parsed.strategy,
            delivered,
        )
        if self._stats.processed % 10 == 0:
            logger.info("[PIPELINE] %s", self._stats)

        return ProcessedReading(reading=reading, status=status, persist=persist, delivered=delivered)

    async def _broadcast(self, update: LiveUpdate) -> int:
        try:
            delivered = await self._broadcaster.broadcast(update)
        except Exception as e:
            logger.warning("[PIPELINE] Live broadcast failed: %s", BroadcastError(str(e)))
            return 0
        self._stats.broadcasts_delivered += delivered
        return delivered

    @property
    def stats(self) -> Stats:
        return self._stats
