"""Clasificación de seguridad por distancia.

Cada lectura se clasifica de forma independiente, sin histéresis: un valor
que oscila alrededor de un umbral cambia de estado en cada lectura.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from ..domain.reading import Status

DEFAULT_DANGER_BELOW_CM = 5.0
DEFAULT_WARNING_BELOW_CM = 15.0


@dataclass(frozen=True)
class Thresholds:
    """Umbrales superiores (exclusivos) de cada estado."""
    danger_below_cm: float = DEFAULT_DANGER_BELOW_CM
    warning_below_cm: float = DEFAULT_WARNING_BELOW_CM


def classify(distance_cm: Any, thresholds: Thresholds = Thresholds()) -> Status:
    """Mapea distancia → Status. Pura y total: nunca lanza.

    - distancia ≤ 0 o no numérica → SAFE
    - (0, danger)                 → DANGER
    - [danger, warning)           → WARNING
    - ≥ warning                   → SAFE
    """
    if isinstance(distance_cm, bool) or not isinstance(distance_cm, (int, float)):
        return Status.SAFE
    if math.isnan(distance_cm) or distance_cm <= 0:
        return Status.SAFE
    if distance_cm < thresholds.danger_below_cm:
        return Status.DANGER
    if distance_cm < thresholds.warning_below_cm:
        return Status.WARNING
    return Status.SAFE


class StatusClassifier:
    """Clasificador ligado a un juego de umbrales."""

    def __init__(self, thresholds: Thresholds = Thresholds()):
        self._thresholds = thresholds

    @property
    def thresholds(self) -> Thresholds:
        return self._thresholds

    def classify(self, distance_cm: float) -> Status:
        return classify(distance_cm, self._thresholds)
