"""Domain layer - Modelos y errores de dominio."""

from .reading import LiveUpdate, RawReading, Reading, Status
from .errors import (
    BroadcastError,
    BrokerTransportError,
    ConfigurationError,
    ErrorKind,
    IngestError,
    ParseError,
    PersistenceError,
    ValidationError,
)

__all__ = [
    "LiveUpdate",
    "RawReading",
    "Reading",
    "Status",
    "BroadcastError",
    "BrokerTransportError",
    "ConfigurationError",
    "ErrorKind",
    "IngestError",
    "ParseError",
    "PersistenceError",
    "ValidationError",
]
