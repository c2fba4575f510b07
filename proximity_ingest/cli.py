"""CLI entry point for the proximity ingest service."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal

from .common.config import get_settings
from .common.db import get_engine
from .core.domain.errors import ConfigurationError
from .core.persistence import ensure_schema
from .service import IngestionService

logger = logging.getLogger(__name__)


async def _run_forever(service: IngestionService) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows: Ctrl+C llega como KeyboardInterrupt
            pass

    await service.start()
    try:
        await stop.wait()
    finally:
        await service.stop()


def main(argv=None) -> int:
    p = argparse.ArgumentParser(description="Proximity telemetry ingest (MQTT → DB + live)")
    sub = p.add_subparsers(dest="command")
    sub.add_parser("run", help="run the ingestion pipeline without the HTTP API")
    sub.add_parser("init-db", help="create the storage tables and exit")
    args = p.parse_args(argv)

    try:
        settings = get_settings()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.ERROR, format="%(asctime)s - %(levelname)s - %(message)s")
        logger.error("Invalid configuration: %s", e)
        return 2

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    if args.command == "init-db":
        ensure_schema(get_engine(settings))
        logger.info("Schema ready")
        return 0

    logger.info(
        "Config: broker=%s topic=%s mode=%s thresholds=%.1f/%.1f",
        settings.broker_url,
        settings.topic,
        settings.normalization_mode.value,
        settings.danger_threshold_cm,
        settings.warning_threshold_cm,
    )
    try:
        asyncio.run(_run_forever(IngestionService(settings)))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
