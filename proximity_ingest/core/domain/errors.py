"""Errores del pipeline de ingesta.

Todos los errores por mensaje heredan de IngestError y llevan un ``kind``
que permite contarlos y loggearlos sin inspeccionar el texto. Ninguno de
ellos detiene el proceso; solo ConfigurationError aborta el arranque.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    INVALID_PAYLOAD = "invalid_payload"
    INVALID_DISTANCE = "invalid_distance"
    OUT_OF_RANGE = "out_of_range"
    PERSISTENCE = "persistence"
    BROADCAST = "broadcast"
    TRANSPORT = "transport"


class IngestError(Exception):
    """Base de los errores por mensaje."""

    kind: ErrorKind

    def __init__(self, kind: ErrorKind, detail: str = ""):
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)
        self.kind = kind
        self.detail = detail


class ParseError(IngestError):
    """Payload indecodificable o sin distancia numérica."""


class ValidationError(IngestError):
    """Distancia fuera de rango tras normalizar."""

    def __init__(self, detail: str = "", kind: ErrorKind = ErrorKind.OUT_OF_RANGE):
        super().__init__(kind, detail)


class PersistenceError(IngestError):
    """Falló una de las escrituras (log, latest, alert)."""

    def __init__(self, target: str, detail: str = ""):
        super().__init__(ErrorKind.PERSISTENCE, f"{target}: {detail}")
        self.target = target


class BroadcastError(IngestError):
    """Falló el envío a un suscriptor live."""

    def __init__(self, detail: str = "", subscriber: Optional[str] = None):
        super().__init__(ErrorKind.BROADCAST, detail)
        self.subscriber = subscriber


class BrokerTransportError(IngestError):
    def __init__(self, detail: str = ""):
        super().__init__(ErrorKind.TRANSPORT, detail)


class ConfigurationError(Exception):
    """Configuración ausente o inválida al arrancar."""
