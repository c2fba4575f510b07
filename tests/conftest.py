"""Fixtures compartidos de los tests de ingesta."""

from unittest.mock import AsyncMock, MagicMock

import paho.mqtt.client as mqtt
import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.pool import StaticPool

from proximity_ingest.common.config import Settings
from proximity_ingest.core.persistence import (
    PersistenceGateway,
    ReadingQueries,
    ensure_schema,
    sensor_alerts,
    sensor_logs,
)
from proximity_ingest.core.validation import NormalizationMode


@pytest.fixture
def engine():
    """SQLite en memoria compartido entre hilos (asyncio.to_thread)."""
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        future=True,
    )
    ensure_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def gateway(engine) -> PersistenceGateway:
    return PersistenceGateway(engine, profile_id="test-profile")


@pytest.fixture
def queries(engine) -> ReadingQueries:
    return ReadingQueries(engine, profile_id="test-profile")


@pytest.fixture
def count_rows(engine):
    """Cuenta filas de una tabla."""

    def _count(table) -> int:
        with engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(table)).scalar_one()

    return _count


@pytest.fixture
def log_count(count_rows):
    return lambda: count_rows(sensor_logs)


@pytest.fixture
def alert_count(count_rows):
    return lambda: count_rows(sensor_alerts)


@pytest.fixture
def subscriber() -> AsyncMock:
    """Suscriptor live simulado (interfaz de fastapi.WebSocket)."""
    ws = AsyncMock()
    ws.send_json = AsyncMock()
    return ws


@pytest.fixture
def mqtt_client() -> MagicMock:
    """Mock del cliente paho."""
    client = MagicMock()
    client.subscribe.return_value = (mqtt.MQTT_ERR_SUCCESS, 1)
    return client


@pytest.fixture
def settings() -> Settings:
    return Settings(
        broker_url="mqtt://localhost:1883",
        topic="distance",
        normalization_mode=NormalizationMode.DIRECT,
        profile_id="test-profile",
        database_url="sqlite://",
        reconnect_delay_seconds=2,
    )
