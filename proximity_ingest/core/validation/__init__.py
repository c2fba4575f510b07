"""Validation layer - Parseo de payloads y normalización de unidades."""

from .payload_parser import ParseResult, PayloadParser, ProximityPayload, decode
from .normalizer import NormalizationMode, UnitNormalizer, normalize

__all__ = [
    "ParseResult",
    "PayloadParser",
    "ProximityPayload",
    "decode",
    "NormalizationMode",
    "UnitNormalizer",
    "normalize",
]
