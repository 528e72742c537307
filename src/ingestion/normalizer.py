"""Normalizers that turn each upload format into canonical property inputs.

Each normalizer is a fold over the raw items: an item either becomes a
``PropertyInput`` or contributes one ``"Item <index>: <reason>"`` message.
Only problems with the payload as a whole raise.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from core.exceptions import ValidationError
from core.logging_config import get_logger
from core.models import PayloadFormat

from .detector import detect_format
from .parsers import clean_text, parse_area, parse_bedrooms, parse_price
from .schemas import FotocasaItem, IdealistaItem, SimplifiedItem

LOGGER = get_logger(__name__)


@dataclass(slots=True)
class PropertyInput:
    """Canonical property ready for the upsert engine."""

    price: int
    m2: Optional[int] = None
    bedrooms: Optional[int] = None
    phone: Optional[str] = None
    owner_name: Optional[str] = None
    source_url: Optional[str] = None
    raw_payload: Optional[Dict[str, Any]] = None
    # Position of the item in the uploaded payload, for error messages
    source_index: Optional[int] = None


@dataclass(slots=True)
class NormalizationResult:
    """Accepted inputs and per-item rejections for one payload."""

    accepted: List[PropertyInput] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    total: int = 0

    @property
    def rejected(self) -> int:
        return len(self.errors)


@dataclass(slots=True)
class NormalizedPayload:
    """A detected, normalized payload plus the list hints found at its top level."""

    format: PayloadFormat
    result: NormalizationResult
    list_id: Optional[str] = None
    list_name: Optional[str] = None
    location: Optional[str] = None


def item_error(index: int, reason: str) -> str:
    return f"Item {index}: {reason}"


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error.get("loc", ()))
        msg = error.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def _fold(
    items: Sequence[Any],
    convert: Callable[[Any], PropertyInput],
) -> NormalizationResult:
    result = NormalizationResult(total=len(items))
    for index, raw in enumerate(items):
        if not isinstance(raw, Mapping):
            result.errors.append(item_error(index, "expected an object"))
            continue
        try:
            item = convert(raw)
        except PydanticValidationError as exc:
            result.errors.append(item_error(index, _describe(exc)))
            continue
        except ValueError as exc:
            result.errors.append(item_error(index, str(exc)))
            continue
        item.source_index = index
        result.accepted.append(item)
    return result


# =============================================================================
# Per-format item conversion
# =============================================================================


def _from_simplified(raw: Mapping) -> PropertyInput:
    item = SimplifiedItem.model_validate(raw)
    return PropertyInput(
        price=item.price,
        m2=item.m2,
        bedrooms=item.bedrooms,
        phone=clean_text(item.phone),
        owner_name=clean_text(item.owner_name),
        source_url=item.source_url,
        raw_payload=item.raw_payload,
    )


def _from_scraped(item: IdealistaItem, phone: Optional[str] = None) -> PropertyInput:
    price = parse_price(item.precio)
    if price is None:
        raise ValueError(f"unparseable price '{item.precio}'")
    if price < 0:
        raise ValueError(f"negative price '{item.precio}'")
    return PropertyInput(
        price=price,
        m2=parse_area(item.metros),
        bedrooms=parse_bedrooms(item.habitaciones),
        phone=clean_text(phone),
        owner_name=clean_text(item.anunciante),
        source_url=item.url,
        raw_payload=item.raw_snapshot(),
    )


def _from_idealista(raw: Mapping) -> PropertyInput:
    return _from_scraped(IdealistaItem.model_validate(raw))


def _from_fotocasa(raw: Mapping) -> PropertyInput:
    item = FotocasaItem.model_validate(raw)
    return _from_scraped(item, phone=item.telefono)


# =============================================================================
# Public normalizers
# =============================================================================


def _require_items(items: Any, container: str) -> Sequence[Any]:
    if items is None:
        raise ValidationError(f"Payload has no '{container}' array")
    if not isinstance(items, list):
        raise ValidationError(f"'{container}' must be an array")
    if not items:
        raise ValidationError("At least one property is required")
    return items


def normalize_simplified(payload: Any) -> NormalizationResult:
    """Normalize a bare list of items or a mapping with ``properties``."""
    if isinstance(payload, list):
        items = _require_items(payload, "properties")
    elif isinstance(payload, Mapping):
        items = _require_items(payload.get("properties"), "properties")
    else:
        raise ValidationError("Payload must be an object or an array")
    return _fold(items, _from_simplified)


def normalize_idealista(payload: Mapping) -> NormalizationResult:
    """Normalize an Idealista export (``viviendas.todas``)."""
    viviendas = payload.get("viviendas")
    todas = viviendas.get("todas") if isinstance(viviendas, Mapping) else None
    return _fold(_require_items(todas, "viviendas.todas"), _from_idealista)


def normalize_fotocasa(payload: Mapping) -> NormalizationResult:
    """Normalize a Fotocasa export (``viviendas`` list plus ``ubicacion``)."""
    if clean_text(payload.get("ubicacion")) is None:
        raise ValidationError("Fotocasa payload requires a non-empty 'ubicacion'")
    return _fold(_require_items(payload.get("viviendas"), "viviendas"), _from_fotocasa)


NORMALIZERS: Dict[PayloadFormat, Callable[[Any], NormalizationResult]] = {
    PayloadFormat.SIMPLIFIED: normalize_simplified,
    PayloadFormat.IDEALISTA: normalize_idealista,
    PayloadFormat.FOTOCASA: normalize_fotocasa,
}


def normalize_payload(payload: Any) -> NormalizedPayload:
    """
    Detect the payload format and normalize its items.

    Raises:
        ValidationError: If the payload as a whole is unusable.
    """
    payload_format = detect_format(payload)
    result = NORMALIZERS[payload_format](payload)

    list_id = list_name = location = None
    if isinstance(payload, Mapping):
        list_id = clean_text(payload.get("listId"))
        if payload_format is PayloadFormat.FOTOCASA:
            list_name = location = clean_text(payload.get("ubicacion"))
        else:
            list_name = clean_text(payload.get("listName"))
            location = clean_text(payload.get("location"))

    LOGGER.debug(
        "Normalized %s payload: %d accepted, %d rejected",
        payload_format.value,
        len(result.accepted),
        result.rejected,
        extra={"upload_format": payload_format.value},
    )

    return NormalizedPayload(
        format=payload_format,
        result=result,
        list_id=list_id,
        list_name=list_name,
        location=location,
    )


__all__ = [
    "PropertyInput",
    "NormalizationResult",
    "NormalizedPayload",
    "normalize_simplified",
    "normalize_idealista",
    "normalize_fotocasa",
    "normalize_payload",
    "item_error",
]
