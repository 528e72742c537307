"""Ingestion subpackage exports."""
from .detector import detect_format, is_fotocasa, is_idealista
from .normalizer import (
    NormalizationResult,
    NormalizedPayload,
    PropertyInput,
    normalize_fotocasa,
    normalize_idealista,
    normalize_payload,
    normalize_simplified,
)
from .parsers import clean_text, normalize_phone, parse_area, parse_bedrooms, parse_price
from .schemas import FotocasaItem, IdealistaItem, SimplifiedItem

__all__ = [
    # Detection
    "detect_format",
    "is_fotocasa",
    "is_idealista",
    # Normalization
    "PropertyInput",
    "NormalizationResult",
    "NormalizedPayload",
    "normalize_simplified",
    "normalize_idealista",
    "normalize_fotocasa",
    "normalize_payload",
    # Parsers
    "clean_text",
    "parse_price",
    "parse_area",
    "parse_bedrooms",
    "normalize_phone",
    # Schemas
    "SimplifiedItem",
    "IdealistaItem",
    "FotocasaItem",
]
