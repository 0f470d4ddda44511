"""Request context middleware for correlation and request IDs.

Every inbound lookup gets a correlation ID (taken from ``X-Correlation-ID``
when the caller sends one) and a request ID. Both are stored in contextvars,
bound to every Loguru record emitted while the request runs (including the
retry and fallback logs of the upstream calls) and echoed in the response
headers.
"""

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.core.constants import CORRELATION_ID_HEADER, REQUEST_ID_HEADER
from src.core.context import (
    RequestContext,
    generate_correlation_id,
    generate_request_id,
)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to manage request-scoped identifiers."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process the request with context management.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: Response with correlation and request ID headers.
        """
        correlation_id = (
            request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        )
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()

        RequestContext.set_correlation_id(correlation_id)
        RequestContext.set_request_id(request_id)

        try:
            with logger.contextualize(
                correlation_id=correlation_id, request_id=request_id
            ):
                response = await call_next(request)
        finally:
            RequestContext.clear()

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
