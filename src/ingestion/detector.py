"""Upload payload format detection."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from core.models import PayloadFormat


def is_fotocasa(payload: Any) -> bool:
    """Fotocasa exports carry a string ``ubicacion`` and a flat ``viviendas`` list."""
    return (
        isinstance(payload, Mapping)
        and isinstance(payload.get("ubicacion"), str)
        and isinstance(payload.get("viviendas"), list)
    )


def is_idealista(payload: Any) -> bool:
    """Idealista exports nest their items under ``viviendas.todas``."""
    if not isinstance(payload, Mapping):
        return False
    viviendas = payload.get("viviendas")
    return isinstance(viviendas, Mapping) and isinstance(viviendas.get("todas"), list)


def detect_format(payload: Any) -> PayloadFormat:
    """
    Classify an upload payload.

    Checks run Fotocasa first, then Idealista; anything else is treated as
    the simplified format. Never raises.
    """
    if is_fotocasa(payload):
        return PayloadFormat.FOTOCASA
    if is_idealista(payload):
        return PayloadFormat.IDEALISTA
    return PayloadFormat.SIMPLIFIED


__all__ = ["detect_format", "is_fotocasa", "is_idealista"]
