"""Tablas de almacenamiento de lecturas de proximidad.

El esquema real lo administra el equipo de BD; estas definiciones
describen las columnas que el pipeline escribe y permiten crear las
tablas en desarrollo y tests.
"""

from __future__ import annotations

import logging

from sqlalchemy import Column, DateTime, Float, Integer, MetaData, String, Table
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

metadata = MetaData()

# Append-only, una fila por lectura procesada
sensor_logs = Table(
    "sensor_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("profile_id", String(64), nullable=False, index=True),
    Column("distance", Float, nullable=False),
    Column("status", String(16), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

# Una sola fila con id fijo, sobrescrita en cada lectura
sensor_latest = Table(
    "sensor_latest",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("profile_id", String(64), nullable=False),
    Column("distance", Float, nullable=False),
    Column("status", String(16), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

# Append-only, solo lecturas warning/danger
sensor_alerts = Table(
    "sensor_alerts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("profile_id", String(64), nullable=False, index=True),
    Column("message", String(255), nullable=False),
    Column("level", String(16), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


def ensure_schema(engine: Engine) -> None:
    """Crea las tablas si no existen. Seguro de llamar varias veces."""
    logger.info("[DB] Ensuring schema exists")
    metadata.create_all(engine, checkfirst=True)
