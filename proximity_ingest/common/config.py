from __future__ import annotations

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from ..core.domain.errors import ConfigurationError
from ..core.validation.normalizer import NormalizationMode


LIVE_BACKENDS = ("websocket", "redis")

DEFAULT_ALERT_TEMPLATE = "{phrase} distance {distance} cm"


@dataclass(frozen=True)
class Settings:
    # Broker
    broker_url: str
    topic: str
    normalization_mode: NormalizationMode
    client_id: str = "proximity-ingest"
    mqtt_username: Optional[str] = None
    mqtt_password: Optional[str] = None
    mqtt_qos: int = 0
    reconnect_delay_seconds: float = 5.0

    # Clasificación
    danger_threshold_cm: float = 5.0
    warning_threshold_cm: float = 15.0

    # Persistencia
    profile_id: str = "default"
    database_url: str = "sqlite:///proximity.db"
    db_auto_create_schema: bool = True
    latest_row_id: int = 1

    # Live
    live_backend: str = "websocket"
    redis_url: str = "redis://localhost:6379/0"
    redis_live_channel: str = "proximity:live"
    redis_reconnect_interval_seconds: float = 30.0
    live_send_timeout_seconds: float = 2.0

    # API
    cors_allow_origins: Tuple[str, ...] = ("*",)

    # Alertas
    alert_message_template: str = DEFAULT_ALERT_TEMPLATE
    alert_phrase_danger: str = "DANGER! Critical"
    alert_phrase_warning: str = "WARNING! Close"

    ingest_queue_size: int = 1000
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not (math.isfinite(self.danger_threshold_cm) and math.isfinite(self.warning_threshold_cm)):
            raise ConfigurationError("Thresholds must be finite numbers")
        if self.danger_threshold_cm <= 0 or self.warning_threshold_cm <= 0:
            raise ConfigurationError("Thresholds must be positive")
        if self.danger_threshold_cm >= self.warning_threshold_cm:
            raise ConfigurationError(
                f"DANGER_THRESHOLD_CM ({self.danger_threshold_cm}) must be lower "
                f"than WARNING_THRESHOLD_CM ({self.warning_threshold_cm})"
            )
        if self.mqtt_qos not in (0, 1, 2):
            raise ConfigurationError(f"MQTT_QOS must be 0, 1 or 2, got {self.mqtt_qos}")
        if self.reconnect_delay_seconds <= 0:
            raise ConfigurationError("MQTT_RECONNECT_DELAY_SECONDS must be positive")
        if self.live_backend not in LIVE_BACKENDS:
            raise ConfigurationError(
                f"LIVE_BROADCAST_BACKEND must be one of {LIVE_BACKENDS}, got {self.live_backend!r}"
            )
        if self.ingest_queue_size <= 0:
            raise ConfigurationError("INGEST_QUEUE_SIZE must be positive")
        if not self.live_send_timeout_seconds > 0:
            raise ConfigurationError("LIVE_SEND_TIMEOUT_SECONDS must be positive")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, default: str, cast=float):
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def _load_env_file() -> None:
    # Carga el .env (si existe) sin pisar variables reales del entorno.
    env_file = os.getenv("PROXIMITY_ENV_FILE", ".env")
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)


def get_cors_origins() -> Tuple[str, ...]:
    """CORS_ALLOW_ORIGINS separado por comas; "*" por defecto."""
    _load_env_file()
    raw = os.getenv("CORS_ALLOW_ORIGINS", "*")
    origins = tuple(o.strip() for o in raw.split(",") if o.strip())
    return origins or ("*",)


def get_settings() -> Settings:
    _load_env_file()

    # Sin default: la convención de unidades depende del firmware desplegado.
    raw_mode = os.getenv("NORMALIZATION_MODE", "").strip()
    if not raw_mode:
        raise ConfigurationError(
            "NORMALIZATION_MODE is required (one of: "
            + ", ".join(m.value for m in NormalizationMode)
            + ")"
        )
    try:
        mode = NormalizationMode(raw_mode.lower())
    except ValueError:
        raise ConfigurationError(f"Unknown NORMALIZATION_MODE: {raw_mode!r}") from None

    return Settings(
        broker_url=os.getenv("MQTT_BROKER_URL", "mqtt://broker.emqx.io:1883"),
        topic=os.getenv("MQTT_TOPIC", "distance"),
        normalization_mode=mode,
        client_id=os.getenv("MQTT_CLIENT_ID", "proximity-ingest"),
        mqtt_username=os.getenv("MQTT_USERNAME") or None,
        mqtt_password=os.getenv("MQTT_PASSWORD") or None,
        mqtt_qos=_env_number("MQTT_QOS", "0", int),
        reconnect_delay_seconds=_env_number("MQTT_RECONNECT_DELAY_SECONDS", "5"),
        danger_threshold_cm=_env_number("DANGER_THRESHOLD_CM", "5.0"),
        warning_threshold_cm=_env_number("WARNING_THRESHOLD_CM", "15.0"),
        profile_id=os.getenv("PROFILE_ID", "default"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///proximity.db"),
        db_auto_create_schema=_env_bool("DB_AUTO_CREATE_SCHEMA", True),
        latest_row_id=_env_number("LATEST_ROW_ID", "1", int),
        live_backend=os.getenv("LIVE_BROADCAST_BACKEND", "websocket").strip().lower(),
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        redis_live_channel=os.getenv("REDIS_LIVE_CHANNEL", "proximity:live"),
        redis_reconnect_interval_seconds=_env_number("REDIS_RECONNECT_INTERVAL_SECONDS", "30"),
        live_send_timeout_seconds=_env_number("LIVE_SEND_TIMEOUT_SECONDS", "2"),
        cors_allow_origins=get_cors_origins(),
        alert_message_template=os.getenv("ALERT_MESSAGE_TEMPLATE", DEFAULT_ALERT_TEMPLATE),
        alert_phrase_danger=os.getenv("ALERT_PHRASE_DANGER", "DANGER! Critical"),
        alert_phrase_warning=os.getenv("ALERT_PHRASE_WARNING", "WARNING! Close"),
        ingest_queue_size=_env_number("INGEST_QUEUE_SIZE", "1000", int),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
