"""Failures produced at the ANAF transport boundary.

The upstream client never lets an ``httpx`` exception or a raw response
escape. It raises exactly one of three variants, which the fallback strategy,
the retry engine and the error taxonomy mapper all match on:

- ``TransportFailure``: no HTTP response at all (DNS, TLS, reset, timeout)
- ``HttpStatusError``: a response the upstream itself flagged as an error
  (non-2xx status, or the firewall rejection page)
- ``ApplicationError``: a well-formed answer whose ``cod`` is not 200
"""

import re
from enum import Enum
from src.core.types import LogContext, UpstreamBody
from src.infrastructure.constants import (
    FIREWALL_REJECTION_MARKERS,
    FIREWALL_SUPPORT_ID_PATTERN,
    UNKNOWN_SUPPORT_ID,
)

_SUPPORT_ID = re.compile(FIREWALL_SUPPORT_ID_PATTERN)


def is_firewall_page(body: UpstreamBody) -> bool:
    """Whether a response body is the F5 firewall rejection page."""
    return isinstance(body, str) and any(
        marker in body for marker in FIREWALL_REJECTION_MARKERS
    )


class TransportFailureKind(Enum):
    """How the connection to the upstream broke down."""

    RESET = "reset"
    ABORTED = "aborted"
    TIMED_OUT = "timed_out"
    OTHER = "other"


class UpstreamError(Exception):
    """Base class for failures reported by the ANAF transport boundary.

    Args:
        message: Description used in logs
        endpoint: The URL that was called
    """

    def __init__(self, message: str, endpoint: str | None = None) -> None:
        self.message = message
        self.endpoint = endpoint
        super().__init__(message)

    @property
    def http_status(self) -> int | None:
        """HTTP status the upstream answered with, if it answered at all."""
        return None

    def log_context(self) -> LogContext:
        """Fields describing this failure for structured logs."""
        return {"error_type": type(self).__name__, "endpoint": self.endpoint}


class TransportFailure(UpstreamError):
    """The request never produced an HTTP response."""

    def __init__(
        self,
        kind: TransportFailureKind,
        message: str,
        endpoint: str | None = None,
    ) -> None:
        self.kind = kind
        super().__init__(message, endpoint)

    @property
    def is_connection_failure(self) -> bool:
        """Whether the connection was reset, aborted or timed out."""
        return self.kind is not TransportFailureKind.OTHER

    def log_context(self) -> LogContext:
        return {**super().log_context(), "kind": self.kind.value}


class HttpStatusError(UpstreamError):
    """The upstream answered with an error response.

    Args:
        status: HTTP status code of the response
        body: Decoded JSON body, or the raw text when it is not JSON
        endpoint: The URL that was called
    """

    def __init__(
        self, status: int, body: UpstreamBody, endpoint: str | None = None
    ) -> None:
        self.status = status
        self.body = body
        super().__init__(f"ANAF responded with HTTP {status}", endpoint)

    @property
    def http_status(self) -> int:
        return self.status

    @property
    def is_firewall_rejection(self) -> bool:
        """Whether the body is the upstream firewall's rejection page."""
        return is_firewall_page(self.body)

    @property
    def firewall_support_id(self) -> str:
        """Support ID printed on the rejection page, or ``unknown``."""
        if isinstance(self.body, str):
            if match := _SUPPORT_ID.search(self.body):
                return match.group(1)
        return UNKNOWN_SUPPORT_ID

    @property
    def body_message(self) -> str | None:
        """The ``message`` field of a structured error body, if any."""
        if isinstance(self.body, dict):
            message = self.body.get("message")
            if message:
                return str(message)
        return None

    def log_context(self) -> LogContext:
        return {**super().log_context(), "status": self.status}


class ApplicationError(UpstreamError):
    """A well-formed answer that does not report success.

    This is the soft failure that sends the fallback strategy to the next
    API version.

    Args:
        code: The ``cod`` field of the answer, when present
        message: The ``message`` field of the answer, when present
        endpoint: The URL that was called
    """

    def __init__(
        self,
        code: int | None,
        message: str | None,
        endpoint: str | None = None,
    ) -> None:
        self.code = code
        self.upstream_message = message
        super().__init__(f"API returned code: {code}, message: {message}", endpoint)

    def log_context(self) -> LogContext:
        return {**super().log_context(), "code": self.code}
