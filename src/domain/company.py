"""Mapping of a VAT payer registry answer to the flat company record.

ANAF nests the interesting fields under ``date_generale``,
``adresa_sediu_social`` and ``inregistrare_scop_tva``. Callers get one flat
record with Romanian field names, as the frontend expects.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

BUCHAREST_COUNTY_UPSTREAM = "MUNICIPIUL BUCUREŞTI"
BUCHAREST_COUNTY = "Bucuresti"
BUCHAREST_LOCALITY_SUFFIX = " Mun. Bucureşti"
MISSING_REG_COM = "-"


class FormattedCompany(BaseModel):
    """Company record returned by ``POST /company``."""

    model_config = ConfigDict(frozen=True)

    denumire: str | None = Field(default=None, description="Company name")
    cui: int | str | None = Field(default=None, description="Fiscal identifier")
    adresa: str | None = Field(default=None, description="Registered address")
    nrRegCom: str = Field(  # noqa: N815 - public contract field name
        default=MISSING_REG_COM, description="Trade register number"
    )
    judet: str | None = Field(default=None, description="County")
    localitate: str | None = Field(default=None, description="Locality")
    stare: str | None = Field(default=None, description="Registration state")
    tva: Literal["DA", "NU"] = Field(
        default="NU", description="Whether the company is VAT registered"
    )


def _section(entry: dict[str, Any], name: str) -> dict[str, Any]:
    section = entry.get(name)
    return section if isinstance(section, dict) else {}


def normalize_county(county: str | None) -> str | None:
    """Shorten the upstream spelling of Bucharest's county."""
    if county is None:
        return None
    return county.replace(BUCHAREST_COUNTY_UPSTREAM, BUCHAREST_COUNTY)


def normalize_locality(locality: str | None) -> str | None:
    """Drop the ``Mun. Bucureşti`` suffix from Bucharest sectors.

    Examples:
        >>> normalize_locality("Sector 1 Mun. Bucureşti")
        'Sector 1'
    """
    if locality is None:
        return None
    return locality.replace(BUCHAREST_LOCALITY_SUFFIX, "")


def format_company(entry: dict[str, Any]) -> FormattedCompany:
    """Flatten one entry of the upstream ``found`` list.

    Args:
        entry: A single element of the ANAF ``found`` array.

    Returns:
        FormattedCompany: The caller-facing record.
    """
    general = _section(entry, "date_generale")
    head_office = _section(entry, "adresa_sediu_social")
    vat = _section(entry, "inregistrare_scop_tva")

    return FormattedCompany(
        denumire=general.get("denumire"),
        cui=general.get("cui"),
        adresa=general.get("adresa"),
        nrRegCom=general.get("nrRegCom") or MISSING_REG_COM,
        judet=normalize_county(head_office.get("sdenumireJudet")),
        localitate=normalize_locality(head_office.get("sdenumireLocalitate")),
        stare=(
            entry.get("stare_inregistrare")
            or entry.get("stare")
            or general.get("stare_inregistrare")
        ),
        tva="DA" if vat.get("scpTVA") else "NU",
    )
