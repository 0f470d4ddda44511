"""Access logging for lookup requests.

One line when a lookup arrives and one when it is answered, at a level that
follows the status: client errors are warnings, upstream outages are errors.
Lookups can legitimately take tens of seconds (up to four attempts over five
API versions, with backoff in between), so the slow request threshold is
configured well above the usual web defaults.
"""

import time

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from src.core.config import LogConfig
from src.core.constants import MILLISECONDS_PER_SECOND

CLIENT_ERROR_STATUS = 400
SERVER_ERROR_STATUS = 500


def _level_for(status_code: int) -> str:
    if status_code >= SERVER_ERROR_STATUS:
        return "ERROR"
    if status_code >= CLIENT_ERROR_STATUS:
        return "WARNING"
    return "INFO"


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * MILLISECONDS_PER_SECOND, 2)


def client_address(request: Request) -> str:
    """First hop of ``X-Forwarded-For``, else the socket peer."""
    if forwarded := request.headers.get("x-forwarded-for"):
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request outside ``log_config.excluded_paths``.

    Args:
        app: The ASGI application.
        log_config: Logging configuration.
    """

    def __init__(self, app: ASGIApp, *, log_config: LogConfig) -> None:
        super().__init__(app)
        self.threshold_ms = log_config.slow_request_threshold_ms
        self.silent_paths = frozenset(log_config.excluded_paths)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Time the request and log its outcome.

        Raises:
            Exception: Whatever the application raised, after logging it.
        """
        if request.url.path in self.silent_paths:
            return await call_next(request)

        with logger.contextualize(
            method=request.method,
            path=request.url.path,
            client_host=client_address(request),
        ):
            logger.info("Request started")
            started = time.perf_counter()

            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error(
                    "Request failed",
                    duration_ms=_elapsed_ms(started),
                    error_type=type(exc).__name__,
                )
                raise

            elapsed = _elapsed_ms(started)
            logger.log(
                _level_for(response.status_code),
                "Request completed",
                status_code=response.status_code,
                duration_ms=elapsed,
            )
            if elapsed > self.threshold_ms:
                logger.warning(
                    "Slow request detected",
                    duration_ms=elapsed,
                    threshold_ms=self.threshold_ms,
                )

            return response
