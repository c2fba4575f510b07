"""Proximity sensor telemetry ingest: MQTT → clasificación → BD + live."""

__version__ = "0.1.0"
