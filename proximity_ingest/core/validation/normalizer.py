"""Normalización de unidades a centímetros."""

from __future__ import annotations

import math
from enum import Enum

from ..domain.errors import ValidationError


class NormalizationMode(str, Enum):
    """Convención de unidades del firmware desplegado.

    El payload no dice en qué unidad viene, así que el modo es
    configuración de despliegue y nunca se infiere por mensaje.
    """
    DIRECT = "direct"
    MM_TO_CM = "mm_to_cm"


def normalize(raw_value: float, mode: NormalizationMode) -> float:
    """Convierte el valor crudo a centímetros.

    Raises:
        ValidationError: si el resultado es negativo o no finito
    """
    mode = NormalizationMode(mode)
    if mode is NormalizationMode.MM_TO_CM:
        distance_cm = round(raw_value / 10, 2)
    else:
        distance_cm = float(raw_value)

    if not math.isfinite(distance_cm):
        raise ValidationError(f"distance {raw_value!r} is not finite")
    if distance_cm < 0:
        raise ValidationError(f"distance {distance_cm} cm is negative")
    return distance_cm


class UnitNormalizer:
    """Normalizador ligado a un modo fijo."""

    def __init__(self, mode: NormalizationMode):
        self._mode = NormalizationMode(mode)

    @property
    def mode(self) -> NormalizationMode:
        return self._mode

    def normalize(self, raw_value: float) -> float:
        return normalize(raw_value, self._mode)
