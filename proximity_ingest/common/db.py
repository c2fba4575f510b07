from __future__ import annotations

import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url

from .config import Settings


logger = logging.getLogger(__name__)


def get_engine(settings: Settings) -> Engine:
    url = make_url(settings.database_url)

    # Log básico de parámetros de conexión (sin contraseña)
    logger.info(
        "[DB] Crear engine driver=%s host=%s db=%s",
        url.drivername,
        url.host,
        url.database,
    )

    kwargs = {"pool_pre_ping": True, "future": True}
    if url.get_backend_name() == "sqlite":
        # La escritura corre en hilos de asyncio.to_thread
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_recycle"] = 300

    engine = create_engine(url, **kwargs)

    # Test de conexión: ayuda a ver en logs si el servicio realmente llega a la BD
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("[DB] Test de conexión OK")
    except Exception:
        logger.exception("[DB] Test de conexión FALLÓ")

    return engine
