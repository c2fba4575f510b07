"""Persistence layer - Escrituras write-through y consultas de lectura."""

from .gateway import AlertMessageFormatter, PersistenceGateway, PersistResult, format_distance
from .queries import ReadingQueries
from .schema import ensure_schema, metadata, sensor_alerts, sensor_latest, sensor_logs

__all__ = [
    "AlertMessageFormatter",
    "PersistenceGateway",
    "PersistResult",
    "format_distance",
    "ReadingQueries",
    "ensure_schema",
    "metadata",
    "sensor_alerts",
    "sensor_latest",
    "sensor_logs",
]
