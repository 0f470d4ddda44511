"""Lookup endpoints.

- ``POST /company``: VAT payer registry lookup
- ``POST /efactura``: e-Factura registry lookup
- ``GET /test``: liveness probe

Handlers only normalize input and hand over to ``AnafLookupService``;
failures propagate as ``AnafProxyError`` and are rendered by the exception
handlers in ``src.api.middleware.error_handler``.
"""

from fastapi import APIRouter
from loguru import logger

from src.api.constants import LIVENESS_MESSAGE
from src.api.schemas.errors import ErrorResponse
from src.api.schemas.lookup import CompanyResponse, LivenessResponse, LookupBody
from src.domain.efactura import EFacturaResult
from src.domain.lookup import build_lookup_request
from src.infrastructure.anaf.dependencies import LookupService

router = APIRouter(tags=["lookup"])

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    status: {"model": ErrorResponse} for status in (400, 403, 404, 429, 503)
}


@router.get("/test")
async def liveness() -> LivenessResponse:
    """Report that the server is up. Does not contact ANAF."""
    return LivenessResponse(message=LIVENESS_MESSAGE)


@router.post("/company", responses=_ERROR_RESPONSES)
async def lookup_company(
    service: LookupService, body: LookupBody | None = None
) -> CompanyResponse:
    """Return the company registered under the given CUI.

    Args:
        service: Lookup service injected via dependency.
        body: Request body holding the CUI.

    Returns:
        CompanyResponse: The company, as a one-element ``found`` list.
    """
    raw_cui = body.cui if body else None
    logger.info("Received request for CUI: {}", raw_cui)

    lookup = build_lookup_request(raw_cui)
    company = await service.lookup_company(lookup)
    return CompanyResponse(found=[company])


@router.post("/efactura", responses=_ERROR_RESPONSES)
async def lookup_efactura(
    service: LookupService, body: LookupBody | None = None
) -> EFacturaResult:
    """Return the e-Factura registry entries for the given CUI.

    Args:
        service: Lookup service injected via dependency.
        body: Request body holding the CUI.

    Returns:
        EFacturaResult: The ``found`` and ``notFound`` lists from ANAF.
    """
    raw_cui = body.cui if body else None
    logger.info("Received e-Factura request for CUI: {}", raw_cui)

    lookup = build_lookup_request(raw_cui)
    return await service.lookup_efactura(lookup)
