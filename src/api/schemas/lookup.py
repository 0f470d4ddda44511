"""Request and response models for the lookup endpoints."""

from pydantic import BaseModel, Field

from src.domain.company import FormattedCompany


class LookupBody(BaseModel):
    """Body of ``POST /company`` and ``POST /efactura``.

    ``cui`` is optional at the schema level so that a missing value produces
    the documented 400 ``CUI is required`` rather than a schema error.
    """

    cui: str | int | None = Field(
        default=None,
        description="Fiscal identifier, with or without the RO prefix",
        examples=["14399840", "RO 14399840", 14399840],
    )


class CompanyResponse(BaseModel):
    """Successful company lookup."""

    found: list[FormattedCompany] = Field(
        ..., description="Always exactly one company"
    )


class LivenessResponse(BaseModel):
    """Liveness probe answer."""

    message: str = Field(..., examples=["Server is running"])
