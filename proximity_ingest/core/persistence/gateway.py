"""Persistencia write-through de lecturas procesadas.

Cada lectura produce hasta tres escrituras independientes:

1. sensor_logs    → INSERT (siempre)
2. sensor_latest  → UPDATE/INSERT de la fila fija (siempre)
3. sensor_alerts  → INSERT (solo warning/danger)

Cada escritura corre en su propia transacción. Si una falla se loggea y
se sigue con las demás: no hay rollback cruzado ni reintentos.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..domain.errors import ConfigurationError, PersistenceError
from ..domain.reading import Reading, Status
from .schema import sensor_alerts, sensor_latest, sensor_logs

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE = "{phrase} distance {distance} cm"
DEFAULT_PHRASES = {
    Status.DANGER: "DANGER! Critical",
    Status.WARNING: "WARNING! Close",
}


def format_distance(distance_cm: float) -> str:
    """12.30 → '12.3', 4.0 → '4', 14.999 → '14.999'.

    Sin redondeo a decimales fijos: el texto no puede cruzar un umbral
    respecto del nivel con que se clasificó la lectura.
    """
    return format(distance_cm, ".15g")


class AlertMessageFormatter:
    """Arma el texto de la alerta a partir de template + frase de severidad.

    Placeholders disponibles: {phrase}, {distance}, {level}
    """

    def __init__(
        self,
        template: str = DEFAULT_TEMPLATE,
        danger_phrase: str = DEFAULT_PHRASES[Status.DANGER],
        warning_phrase: str = DEFAULT_PHRASES[Status.WARNING],
    ):
        self._template = template
        self._phrases = {Status.DANGER: danger_phrase, Status.WARNING: warning_phrase}
        try:
            template.format(phrase="", distance="0", level="")
        except (KeyError, IndexError, ValueError) as e:
            raise ConfigurationError(f"Invalid ALERT_MESSAGE_TEMPLATE {template!r}: {e}") from None

    def format(self, reading: Reading, status: Status) -> str:
        return self._template.format(
            phrase=self._phrases[status],
            distance=format_distance(reading.distance_cm),
            level=status.value,
        )


@dataclass
class PersistResult:
    """Resultado de las tres escrituras de una lectura."""

    log_id: Optional[int] = None
    latest_written: bool = False
    alert_id: Optional[int] = None
    errors: List[PersistenceError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class PersistenceGateway:
    """Escribe lecturas clasificadas en log, latest y alerts.

    Responsabilidades:
    - Append del log histórico
    - Overwrite de la fila latest (id fijo)
    - Append de alertas para lecturas no seguras
    - Aislar fallos por escritura
    """

    def __init__(
        self,
        engine: Engine,
        profile_id: str = "default",
        latest_row_id: int = 1,
        formatter: Optional[AlertMessageFormatter] = None,
    ):
        self._engine = engine
        self._profile_id = profile_id
        self._latest_row_id = latest_row_id
        self._formatter = formatter or AlertMessageFormatter()

    def append(self, reading: Reading, status: Status) -> PersistResult:
        """Persiste una lectura procesada (best-effort por escritura)."""
        result = PersistResult()

        result.log_id = self._write("log", self._insert_log, reading, status, result)

        latest = self._write("latest", self._upsert_latest, reading, status, result)
        result.latest_written = bool(latest)

        if status is not Status.SAFE:
            result.alert_id = self._write("alert", self._insert_alert, reading, status, result)

        if result.ok:
            logger.debug(
                "[PERSIST] Saved: distance=%.2f status=%s log_id=%s alert_id=%s",
                reading.distance_cm,
                status.value,
                result.log_id,
                result.alert_id,
            )
        return result

    def _write(
        self,
        target: str,
        operation: Callable[[Connection, Reading, Status], object],
        reading: Reading,
        status: Status,
        result: PersistResult,
    ):
        try:
            with self._engine.begin() as conn:
                return operation(conn, reading, status)
        except SQLAlchemyError as e:
            logger.error(
                "[PERSIST] %s write failed: distance=%.2f status=%s error=%s",
                target,
                reading.distance_cm,
                status.value,
                e,
            )
            result.errors.append(PersistenceError(target, str(e)))
            return None

    def _insert_log(self, conn: Connection, reading: Reading, status: Status) -> int:
        row = conn.execute(
            sensor_logs.insert().values(
                profile_id=self._profile_id,
                distance=reading.distance_cm,
                status=status.value,
                created_at=reading.timestamp,
            )
        )
        return int(row.inserted_primary_key[0])

    def _upsert_latest(self, conn: Connection, reading: Reading, status: Status) -> bool:
        values = {
            "profile_id": self._profile_id,
            "distance": reading.distance_cm,
            "status": status.value,
            "updated_at": reading.timestamp,
        }
        updated = conn.execute(
            sensor_latest.update()
            .where(sensor_latest.c.id == self._latest_row_id)
            .values(**values)
        )
        if updated.rowcount == 0:
            conn.execute(sensor_latest.insert().values(id=self._latest_row_id, **values))
        return True

    def _insert_alert(self, conn: Connection, reading: Reading, status: Status) -> int:
        row = conn.execute(
            sensor_alerts.insert().values(
                profile_id=self._profile_id,
                message=self._formatter.format(reading, status),
                level=status.value,
                created_at=reading.timestamp,
            )
        )
        return int(row.inserted_primary_key[0])
