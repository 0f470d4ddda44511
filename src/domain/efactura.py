"""Shaping of an e-Factura registry answer."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EFacturaResult(BaseModel):
    """Registry answer returned by ``POST /efactura``.

    Entries are passed through exactly as ANAF sent them.
    """

    model_config = ConfigDict(frozen=True)

    found: list[Any] = Field(description="Registry entries for the CUI")
    notFound: list[Any] = Field(  # noqa: N815 - public contract field name
        default_factory=list, description="Queried CUIs missing from the registry"
    )


def shape_efactura(payload: dict[str, Any]) -> EFacturaResult | None:
    """Build the result from the upstream payload.

    Args:
        payload: Decoded JSON object returned by the e-Factura API.

    Returns:
        EFacturaResult | None: The result, or None when ``found`` is empty.
    """
    found = payload.get("found") or []
    if not found:
        return None
    return EFacturaResult(found=list(found), notFound=list(payload.get("notFound") or []))


def is_unregistered(payload: dict[str, Any]) -> bool:
    """Whether ANAF explicitly reports the CUI as absent from the registry."""
    return not payload.get("found") and bool(payload.get("notFound"))
