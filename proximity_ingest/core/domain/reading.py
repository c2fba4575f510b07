"""Modelo de dominio para lecturas de proximidad."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum


SOURCE_FIELDS = ("distance", "msg", "value")


class Status(str, Enum):
    """Clasificación de seguridad derivada de la distancia."""
    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"


@dataclass(frozen=True)
class RawReading:
    """Valor crudo extraído del payload, antes de normalizar unidades."""
    raw_value: float
    source_field: str = "distance"


@dataclass(frozen=True)
class Reading:
    """Lectura canónica en centímetros.

    Este es el contrato que fluye por el pipeline después de normalizar:
    Normalizer → Classifier → Persistence → Live
    """
    distance_cm: float
    timestamp: datetime

    @classmethod
    def now(cls, distance_cm: float) -> "Reading":
        return cls(distance_cm=distance_cm, timestamp=datetime.now(timezone.utc))


@dataclass(frozen=True)
class LiveUpdate:
    """Mensaje que se empuja a los dashboards conectados."""
    distance_cm: float
    status: Status
    timestamp: datetime

    @classmethod
    def from_reading(cls, reading: Reading, status: Status) -> "LiveUpdate":
        return cls(
            distance_cm=reading.distance_cm,
            status=status,
            timestamp=reading.timestamp,
        )

    def to_message(self) -> dict:
        """Formato del canal live."""
        return {
            "distanceCm": self.distance_cm,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(),
        }
