"""Pydantic models for the items of each upload format."""
from __future__ import annotations

from typing import Any, Dict, Optional, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _check_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"invalid URL '{value}'")
    return value


class SimplifiedItem(BaseModel):
    """One property in the simplified (internal) format."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    price: int = Field(..., ge=0)
    m2: Optional[int] = Field(default=None, ge=0)
    bedrooms: Optional[int] = Field(default=None, ge=0)
    phone: Optional[str] = Field(default=None, max_length=50)
    owner_name: Optional[str] = Field(default=None, alias="ownerName", max_length=200)
    source_url: Optional[str] = Field(default=None, alias="sourceUrl")
    raw_payload: Optional[Dict[str, Any]] = Field(default=None, alias="rawPayload")

    @field_validator("source_url")
    @classmethod
    def validate_source_url(cls, v: Optional[str]) -> Optional[str]:
        return _check_url(v)


class IdealistaItem(BaseModel):
    """One scraped Idealista listing (``viviendas.todas[]``)."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    precio: str
    url: str
    titulo: Optional[str] = None
    ubicacion: Optional[str] = None
    habitaciones: Optional[str] = None
    metros: Optional[str] = None
    descripcion: Optional[str] = None
    anunciante: Optional[str] = None
    fecha_scraping: Optional[str] = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        checked = _check_url(v)
        if checked is None:
            raise ValueError("url is required")
        return checked

    @field_validator("precio")
    @classmethod
    def validate_precio(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("precio is required")
        return v

    def raw_snapshot(self) -> Dict[str, Any]:
        """The source strings kept verbatim for audit."""
        return {
            "titulo": self.titulo,
            "ubicacion": self.ubicacion,
            "descripcion": self.descripcion,
            "fecha_scraping": self.fecha_scraping,
            "precio_original": self.precio,
            "habitaciones_original": self.habitaciones,
            "metros_original": self.metros,
        }


class FotocasaItem(IdealistaItem):
    """One scraped Fotocasa listing (``viviendas[]``); adds the owner's phone."""

    telefono: Optional[str] = None


RawItem = Union[SimplifiedItem, IdealistaItem, FotocasaItem]


__all__ = ["SimplifiedItem", "IdealistaItem", "FotocasaItem", "RawItem"]
