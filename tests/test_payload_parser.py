"""Tests del parser tolerante de payloads.

Ejecutar:
    pytest tests/test_payload_parser.py -v
"""

import pytest

from proximity_ingest.core.domain.errors import ErrorKind, ParseError
from proximity_ingest.core.validation import PayloadParser, decode


@pytest.fixture
def parser() -> PayloadParser:
    return PayloadParser()


# =============================================================================
# ESTRATEGIAS DE DECODIFICACIÓN
# =============================================================================

class TestDecodeStrategies:
    """Cada formato publicado por los distintos firmwares."""

    def test_strict_json(self, parser):
        result = parser.decode(b'{"distance": 42}')

        assert result.valid is True
        assert result.reading.raw_value == 42
        assert result.reading.source_field == "distance"
        assert result.strategy == "json"

    def test_single_quoted_pseudo_json(self, parser):
        result = parser.decode(b"{'distance': 7}")

        assert result.valid is True
        assert result.reading.raw_value == 7
        assert result.strategy == "lenient_json"

    def test_bare_numeric(self, parser):
        result = parser.decode(b"17.5")

        assert result.valid is True
        assert result.reading.raw_value == 17.5
        assert result.reading.source_field == "distance"
        assert result.strategy == "bare_numeric"

    def test_bare_numeric_with_whitespace(self, parser):
        result = parser.decode(b"  8\n")

        assert result.valid is True
        assert result.reading.raw_value == 8

    def test_negative_bare_numeric_is_parsed(self, parser):
        """El parser no valida rangos; eso lo hace el normalizador."""
        result = parser.decode(b"-3")

        assert result.valid is True
        assert result.reading.raw_value == -3

    def test_numeric_string_value(self, parser):
        result = parser.decode(b'{"distance": "12.5"}')

        assert result.valid is True
        assert result.reading.raw_value == 12.5

    def test_extra_fields_ignored(self, parser):
        result = parser.decode(b'{"deviceId": "esp32-1", "distance": 30, "unit": "cm"}')

        assert result.valid is True
        assert result.reading.raw_value == 30


# =============================================================================
# PRECEDENCIA DE CAMPOS
# =============================================================================

class TestFieldPrecedence:
    """distance > msg > value."""

    def test_distance_wins(self, parser):
        result = parser.decode(b'{"value": 1, "msg": 2, "distance": 3}')

        assert result.reading.raw_value == 3
        assert result.reading.source_field == "distance"

    def test_msg_before_value(self, parser):
        result = parser.decode(b'{"value": 1, "msg": "8.5"}')

        assert result.reading.raw_value == 8.5
        assert result.reading.source_field == "msg"

    def test_value_fallback(self, parser):
        result = parser.decode(b'{"value": 99}')

        assert result.reading.raw_value == 99
        assert result.reading.source_field == "value"

    def test_present_but_invalid_does_not_fall_through(self, parser):
        """El primer campo presente decide, aunque no sea numérico."""
        result = parser.decode(b'{"distance": "abc", "value": 3}')

        assert result.valid is False
        assert result.error.kind is ErrorKind.INVALID_DISTANCE


# =============================================================================
# PAYLOADS INVÁLIDOS
# =============================================================================

class TestInvalidPayloads:

    def test_not_json(self, parser):
        result = parser.decode(b"not json")

        assert result.valid is False
        assert isinstance(result.error, ParseError)
        assert result.error.kind is ErrorKind.INVALID_PAYLOAD

    def test_no_candidate_field(self, parser):
        result = parser.decode(b'{"temperature": 21}')

        assert result.valid is False
        assert result.error.kind is ErrorKind.INVALID_DISTANCE

    def test_null_distance(self, parser):
        result = parser.decode(b'{"distance": null}')

        assert result.error.kind is ErrorKind.INVALID_DISTANCE

    def test_boolean_distance(self, parser):
        result = parser.decode(b'{"distance": true}')

        assert result.error.kind is ErrorKind.INVALID_DISTANCE

    def test_nan_distance(self, parser):
        result = parser.decode(b'{"distance": NaN}')

        assert result.error.kind is ErrorKind.INVALID_DISTANCE

    def test_nested_object_distance(self, parser):
        result = parser.decode(b'{"distance": {"cm": 4}}')

        assert result.error.kind is ErrorKind.INVALID_DISTANCE

    def test_empty_payload(self, parser):
        result = parser.decode(b"")

        assert result.error.kind is ErrorKind.INVALID_PAYLOAD

    def test_invalid_utf8(self, parser):
        result = parser.decode(b"\xff\xfe\x00")

        assert result.error.kind is ErrorKind.INVALID_PAYLOAD

    def test_json_array(self, parser):
        result = parser.decode(b"[1, 2, 3]")

        assert result.error.kind is ErrorKind.INVALID_PAYLOAD

    @pytest.mark.parametrize(
        "payload",
        [
            b"{",
            b"}",
            b"{'distance':",
            b"12cm",
            b"NaN",
            b"null",
            b"\x00",
            b"'17'",
            b'{"distance": 1' + b"0" * 400 + b"}",
            b"{'value': 1" + b"0" * 400 + b"}",
        ],
    )
    def test_never_raises(self, parser, payload):
        result = parser.decode(payload)

        assert result.valid is False
        assert result.error is not None

    def test_huge_integer_field_is_invalid_distance(self, parser):
        result = parser.decode(b'{"distance": 1' + b"0" * 400 + b"}")

        assert result.error.kind is ErrorKind.INVALID_DISTANCE

    @pytest.mark.parametrize("payload", [b"1" * 5000, b'{"distance": ' + b"1" * 5000 + b"}"])
    def test_literal_beyond_int_digit_limit(self, parser, payload):
        """Más de 4300 dígitos: json.loads lanza ValueError en Python 3.11+."""
        result = parser.decode(payload)

        assert result.valid is (result.error is None)


def test_module_level_decode():
    assert decode(b'{"msg": 5}').reading.raw_value == 5
