"""Error response schema shared by every failing endpoint.

Failures always answer with a short localized ``error`` label and a longer
``details`` explanation. Nothing else is exposed: no stack traces and no
internal identifiers, apart from the firewall support ID that ANAF prints
and that the caller needs when escalating to ANAF support.
"""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standardized error body."""

    error: str = Field(
        ...,
        description="Short localized error label",
        examples=["CUI is required", "Acces blocat de firewall"],
    )

    details: str | None = Field(
        default=None,
        description="Longer localized explanation",
        examples=["Numărul CUI introdus nu este valid"],
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error": "CUI invalid",
                    "details": "Numărul CUI introdus nu este valid",
                },
                {
                    "error": "Acces blocat de firewall",
                    "details": (
                        "Cererea a fost blocată de firewall-ul ANAF. ID suport: "
                        "1234567890. Vă rugăm contactați administratorul."
                    ),
                },
                {
                    "error": "Serviciul ANAF temporar indisponibil",
                    "details": "Vă rugăm să încercați mai târziu",
                },
            ]
        }
    }
