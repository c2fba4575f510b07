"""Estadísticas de procesamiento."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class Stats:
    """Estadísticas de procesamiento de mensajes."""

    received: int = 0
    processed: int = 0
    parse_failed: int = 0
    validation_failed: int = 0
    unexpected_errors: int = 0
    persistence_errors: int = 0
    alerts_created: int = 0
    broadcasts_delivered: int = 0
    last_message_at: float = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def failed(self) -> int:
        return self.parse_failed + self.validation_failed + self.unexpected_errors

    def __str__(self) -> str:
        return (
            f"Stats: received={self.received} processed={self.processed} "
            f"failed={self.failed} persistence_errors={self.persistence_errors}"
        )

    def to_dict(self) -> dict:
        """Convierte a diccionario."""
        return {
            "received": self.received,
            "processed": self.processed,
            "failed": self.failed,
            "parse_failed": self.parse_failed,
            "validation_failed": self.validation_failed,
            "unexpected_errors": self.unexpected_errors,
            "persistence_errors": self.persistence_errors,
            "alerts_created": self.alerts_created,
            "broadcasts_delivered": self.broadcasts_delivered,
            "last_message_at": self.last_message_at,
            "started_at": self.started_at.isoformat(),
            "success_rate": self._success_rate(),
        }

    def _success_rate(self) -> float:
        """Calcula tasa de éxito."""
        total = self.processed + self.failed
        if total == 0:
            return 1.0
        return self.processed / total
