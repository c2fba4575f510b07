"""Parser tolerante de payloads de proximidad.

Los sensores publican en tres formatos distintos según el firmware:

    {"distance": 42.5}          JSON estricto
    {'distance': 42.5}          pseudo-JSON con comillas simples
    42.5                        número suelto

El parser prueba en ese orden y nunca lanza excepciones: devuelve un
ParseResult que el pipeline consume.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from ..domain.errors import ErrorKind, ParseError
from ..domain.reading import SOURCE_FIELDS, RawReading

_NUMERIC_LITERAL = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")


class ProximityPayload(BaseModel):
    """Schema del objeto JSON publicado por el sensor.

    Solo interesan los campos candidatos a distancia; el resto se ignora.
    El tipo es Any porque la validación numérica la hace ``_to_number``
    (acepta strings numéricos, igual que el firmware antiguo).
    """

    model_config = ConfigDict(extra="ignore")

    distance: Any = None
    msg: Any = None
    value: Any = None

    def first_present_field(self) -> Optional[str]:
        """Primer campo presente según la precedencia distance > msg > value."""
        for name in SOURCE_FIELDS:
            if name in self.model_fields_set:
                return name
        return None


@dataclass
class ParseResult:
    """Resultado del parseo."""

    valid: bool
    reading: Optional[RawReading] = None
    error: Optional[ParseError] = None
    strategy: Optional[str] = None

    @classmethod
    def ok(cls, reading: RawReading, strategy: str) -> "ParseResult":
        return cls(valid=True, reading=reading, strategy=strategy)

    @classmethod
    def fail(cls, kind: ErrorKind, detail: str) -> "ParseResult":
        return cls(valid=False, error=ParseError(kind, detail))


def _to_number(value: Any) -> Optional[float]:
    """Convierte a float o devuelve None si no es numérico."""
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str) and _NUMERIC_LITERAL.match(value.strip()):
            number = float(value.strip())
        else:
            return None
    except (OverflowError, ValueError):
        # enteros JSON demasiado grandes para un float
        return None
    if math.isnan(number):
        return None
    return number


class PayloadParser:
    """Decodifica bytes MQTT a RawReading.

    Estrategias (en orden):
    1. JSON estricto
    2. JSON con comillas simples normalizadas
    3. Literal numérico suelto → campo distance
    """

    def decode(self, payload: bytes) -> ParseResult:
        try:
            text = payload.decode("utf-8").strip()
        except (UnicodeDecodeError, AttributeError) as e:
            return ParseResult.fail(ErrorKind.INVALID_PAYLOAD, f"not utf-8 text: {e}")

        if not text:
            return ParseResult.fail(ErrorKind.INVALID_PAYLOAD, "empty payload")

        data = self._load_object(text)
        if data is not None:
            strategy, obj = data
            return self._extract(obj, strategy)

        if _NUMERIC_LITERAL.match(text):
            number = _to_number(text)
            if number is not None:
                return ParseResult.ok(RawReading(raw_value=number, source_field="distance"), "bare_numeric")

        return ParseResult.fail(ErrorKind.INVALID_PAYLOAD, f"undecodable payload: {text[:64]!r}")

    def _load_object(self, text: str) -> Optional[tuple[str, dict]]:
        """Intenta JSON estricto y luego la variante con comillas simples."""
        for strategy, candidate in (("json", text), ("lenient_json", text.replace("'", '"'))):
            try:
                obj = json.loads(candidate)
            except ValueError:
                # JSONDecodeError o límite de dígitos de int en literales enormes
                continue
            if isinstance(obj, dict):
                return strategy, obj
        return None

    def _extract(self, obj: dict, strategy: str) -> ParseResult:
        payload = ProximityPayload.model_validate(obj)
        field = payload.first_present_field()
        if field is None:
            return ParseResult.fail(
                ErrorKind.INVALID_DISTANCE,
                f"none of {', '.join(SOURCE_FIELDS)} present",
            )

        raw = getattr(payload, field)
        number = _to_number(raw)
        if number is None:
            return ParseResult.fail(ErrorKind.INVALID_DISTANCE, f"{field}={raw!r} is not numeric")

        return ParseResult.ok(RawReading(raw_value=number, source_field=field), strategy)


def decode(payload: bytes) -> ParseResult:
    """Atajo funcional de PayloadParser().decode()."""
    return PayloadParser().decode(payload)
