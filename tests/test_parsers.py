"""Tests for format detection and free-text field parsers."""
from __future__ import annotations

import pytest

from core.models import PayloadFormat
from ingestion.detector import detect_format, is_fotocasa, is_idealista
from ingestion.parsers import (
    clean_text,
    normalize_phone,
    parse_area,
    parse_bedrooms,
    parse_price,
)


class TestDetectFormat:
    """Fotocasa wins over Idealista; everything else is simplified."""

    def test_fotocasa(self):
        payload = {"ubicacion": "Igualada", "viviendas": [{"precio": "60.000 €"}]}
        assert is_fotocasa(payload)
        assert detect_format(payload) is PayloadFormat.FOTOCASA

    def test_idealista(self):
        payload = {"listName": "Madrid", "viviendas": {"todas": []}}
        assert is_idealista(payload)
        assert not is_fotocasa(payload)
        assert detect_format(payload) is PayloadFormat.IDEALISTA

    def test_ubicacion_with_nested_viviendas_is_idealista(self):
        payload = {"ubicacion": "Igualada", "viviendas": {"todas": []}}
        assert detect_format(payload) is PayloadFormat.IDEALISTA

    def test_non_string_ubicacion_is_not_fotocasa(self):
        payload = {"ubicacion": 42, "viviendas": []}
        assert detect_format(payload) is PayloadFormat.SIMPLIFIED

    @pytest.mark.parametrize("payload", [
        {"properties": []},
        [],
        None,
        "text",
        {"viviendas": "todas"},
    ])
    def test_everything_else_is_simplified(self, payload):
        assert detect_format(payload) is PayloadFormat.SIMPLIFIED


class TestParsePrice:
    @pytest.mark.parametrize("raw,expected", [
        ("90.000€", 90000),
        ("60.000 €", 60000),
        ("1.250.000 €", 1250000),
        ("250000", 250000),
        ("250,000", 250000),
        (185000, 185000),
    ])
    def test_parses_spanish_prices(self, raw, expected):
        assert parse_price(raw) == expected

    @pytest.mark.parametrize("raw", ["", "€", "A consultar", None])
    def test_unparseable_is_none(self, raw):
        assert parse_price(raw) is None


class TestParseArea:
    def test_whole_metres(self):
        assert parse_area("70 m²") == 70

    def test_decimal_comma_rounds_half_up(self):
        assert parse_area("85,5 m²") == 86
        assert parse_area("85,4 m²") == 85

    def test_numeric_input(self):
        assert parse_area(90) == 90

    def test_missing(self):
        assert parse_area(None) is None
        assert parse_area("m²") is None


class TestParseBedrooms:
    @pytest.mark.parametrize("raw,expected", [("3 hab.", 3), ("3 habs", 3), ("1", 1), (4, 4)])
    def test_parses(self, raw, expected):
        assert parse_bedrooms(raw) == expected

    def test_missing(self):
        assert parse_bedrooms("estudio") is None
        assert parse_bedrooms(None) is None


class TestNormalizePhone:
    def test_spanish_mobile_to_e164(self):
        assert normalize_phone("636 51 71 89") == "+34636517189"

    def test_already_e164(self):
        assert normalize_phone("+34636517189") == "+34636517189"

    def test_blank(self):
        assert normalize_phone("   ") is None
        assert normalize_phone(None) is None
        assert normalize_phone("n/a") is None

    def test_invalid_long_number_gets_plus(self):
        assert normalize_phone("0000 0000 0000") == "+000000000000"


def test_clean_text():
    assert clean_text("  Juan  ") == "Juan"
    assert clean_text("   ") is None
    assert clean_text(None) is None
