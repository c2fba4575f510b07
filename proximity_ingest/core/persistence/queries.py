"""Consultas de solo lectura sobre lo persistido por el pipeline.

Ordenadas por id descendente: el id autoincremental refleja el orden de
creación. No toman locks; la consistencia es la que da la BD por fila.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.engine import Engine

from .schema import sensor_alerts, sensor_latest, sensor_logs

DEFAULT_LOG_LIMIT = 100
DEFAULT_ALERT_LIMIT = 50
MAX_LIMIT = 1000


class ReadingQueries:
    def __init__(self, engine: Engine, profile_id: str = "default", latest_row_id: int = 1):
        self._engine = engine
        self._profile_id = profile_id
        self._latest_row_id = latest_row_id

    def latest(self) -> Optional[Dict[str, Any]]:
        stmt = select(sensor_latest).where(sensor_latest.c.id == self._latest_row_id)
        with self._engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return dict(row) if row else None

    def recent_logs(self, limit: int = DEFAULT_LOG_LIMIT) -> List[Dict[str, Any]]:
        stmt = (
            select(sensor_logs)
            .where(sensor_logs.c.profile_id == self._profile_id)
            .order_by(sensor_logs.c.id.desc())
            .limit(_clamp(limit))
        )
        with self._engine.connect() as conn:
            return [dict(r) for r in conn.execute(stmt).mappings()]

    def recent_alerts(self, limit: int = DEFAULT_ALERT_LIMIT) -> List[Dict[str, Any]]:
        stmt = (
            select(sensor_alerts)
            .where(sensor_alerts.c.profile_id == self._profile_id)
            .order_by(sensor_alerts.c.id.desc())
            .limit(_clamp(limit))
        )
        with self._engine.connect() as conn:
            return [dict(r) for r in conn.execute(stmt).mappings()]


def _clamp(limit: int) -> int:
    return max(1, min(int(limit), MAX_LIMIT))
