"""Exception handlers turning every failure into an ``{error, details}`` body.

The status comes from the error taxonomy for lookup failures and from the
framework for routing errors. Every handler logs with the correlation ID.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from loguru import logger
from starlette.exceptions import HTTPException

from src.api.constants import (
    INTERNAL_ERROR,
    INTERNAL_ERROR_DETAILS,
    MALFORMED_REQUEST_DETAILS,
    MALFORMED_REQUEST_ERROR,
)
from src.api.schemas.errors import ErrorResponse
from src.api.utils.responses import ORJSONResponse
from src.core.config import get_settings
from src.core.context import RequestContext
from src.core.exceptions import AnafProxyError


def _error_response(status_code: int, error: str, details: str | None) -> Response:
    body = ErrorResponse(error=error, details=details)
    return ORJSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


async def anaf_proxy_error_handler(request: Request, exc: Exception) -> Response:
    """Handle AnafProxyError exceptions.

    Args:
        request: The failing request
        exc: The AnafProxyError exception to handle

    Returns:
        Response: ORJSONResponse with the mapped status and body

    Raises:
        TypeError: If exc is not an AnafProxyError instance
    """
    if not isinstance(exc, AnafProxyError):
        raise TypeError(f"Expected AnafProxyError, got {type(exc).__name__}")

    log = logger.error if exc.should_alert else logger.warning
    log(
        "Handling {exception_type}: {message}",
        exception_type=type(exc).__name__,
        message=exc.message,
        correlation_id=RequestContext.get_correlation_id(),
        request_method=request.method,
        request_path=str(request.url.path),
        error_code=exc.error_code,
        status_code=exc.status_code,
        fingerprint=exc.fingerprint,
        **exc.context,
    )

    return ORJSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def validation_error_handler(request: Request, exc: Exception) -> Response:
    """Handle bodies that are not a JSON object with a ``cui`` field.

    Args:
        request: The failing request
        exc: The schema validation failure

    Returns:
        Response: ORJSONResponse with status 400

    Raises:
        TypeError: If exc is not a RequestValidationError instance
    """
    if not isinstance(exc, RequestValidationError):
        raise TypeError(f"Expected RequestValidationError, got {type(exc).__name__}")

    logger.warning(
        "Request validation failed",
        correlation_id=RequestContext.get_correlation_id(),
        status_code=status.HTTP_400_BAD_REQUEST,
        path=str(request.url.path),
        validation_errors=[error.get("msg") for error in exc.errors()],
    )

    return _error_response(
        status.HTTP_400_BAD_REQUEST, MALFORMED_REQUEST_ERROR, MALFORMED_REQUEST_DETAILS
    )


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle Starlette HTTPException (unknown routes, wrong methods).

    Args:
        request: The failing request
        exc: The framework HTTP error

    Returns:
        Response: ORJSONResponse with the exception's status

    Raises:
        TypeError: If exc is not an HTTPException instance
    """
    if not isinstance(exc, HTTPException):
        raise TypeError(f"Expected HTTPException, got {type(exc).__name__}")

    logger.warning(
        "HTTP exception",
        correlation_id=RequestContext.get_correlation_id(),
        status=exc.status_code,
        method=request.method,
        path=str(request.url.path),
    )

    response = _error_response(exc.status_code, str(exc.detail), None)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle any exception nothing else caught.

    Outside production the exception type is named in ``details`` to ease
    debugging; the stack trace only goes to the logs.

    Args:
        request: The failing request
        exc: Whatever escaped the route

    Returns:
        Response: ORJSONResponse with status 500
    """
    logger.exception(
        "Unhandled exception: {exception_type}",
        exception_type=type(exc).__name__,
        correlation_id=RequestContext.get_correlation_id(),
        request_method=request.method,
        request_path=str(request.url.path),
    )

    details = INTERNAL_ERROR_DETAILS
    if get_settings().environment != "production":
        details = f"{INTERNAL_ERROR_DETAILS} ({type(exc).__name__})"

    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR, details
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the handlers to ``app``, most specific first.

    Args:
        app: The application being built
    """
    app.add_exception_handler(AnafProxyError, anaf_proxy_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")
