"""Exceptions that reach the HTTP boundary of the proxy.

This module defines the exceptions that reach the API boundary. Every
failure a caller can observe is expressed as an ``AnafProxyError`` carrying
the HTTP status, a short localized ``error`` label and a longer ``details``
explanation.

Key components:
- **ErrorCode**: which taxonomy branch produced the failure
- **Severity**: whether the failure is routine or needs an operator
- **AnafProxyError**: Base exception with rich context and fingerprinting
- **ValidationError**: Invalid or missing caller input
- **LookupFailedError**: Upstream lookup failure already mapped to the
  caller-facing taxonomy

Failures coming from the ANAF web services themselves are modelled separately
in ``src.infrastructure.anaf.errors``; they never cross the API boundary
without being mapped to a ``LookupFailedError`` first.
"""

import hashlib
import traceback
from enum import Enum

from src.core.types import ErrorContext


class ErrorCode(Enum):
    """Standardized error codes for the proxy.

    Each code corresponds to one branch of the error taxonomy.
    """

    INTERNAL_ERROR = "INTERNAL_ERROR"
    """A bug or an unforeseen condition inside the proxy."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    """The CUI was missing or could not be normalized."""

    NOT_FOUND = "NOT_FOUND"
    """The upstream answered but holds no data for the CUI."""

    FIREWALL_BLOCKED = "FIREWALL_BLOCKED"
    """The upstream firewall rejected the request."""

    CONNECTION_FAILED = "CONNECTION_FAILED"
    """The connection to the upstream was reset, aborted or timed out."""

    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    """The upstream rejected the request with a client error."""

    RATE_LIMITED = "RATE_LIMITED"
    """The upstream asked us to slow down."""

    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    """The upstream could not serve the request."""


class Severity(Enum):
    """How urgently a failure needs attention.

    Handlers log LOW and MEDIUM failures as warnings and HIGH and CRITICAL
    ones as errors.
    """

    LOW = "LOW"
    """Caller input or expected lookup outcomes."""

    MEDIUM = "MEDIUM"
    """Upstream refused or degraded, nothing wrong on our side."""

    HIGH = "HIGH"
    """Upstream blocks us; needs attention from an operator."""

    CRITICAL = "CRITICAL"
    """Unexpected failures inside the proxy."""


class AnafProxyError(Exception):
    """Base exception class for all proxy exceptions.

    Args:
        error_code: Taxonomy branch, as an ErrorCode or a plain string
        message: Short human-readable label returned as ``error``
        details: Longer explanation returned as ``details``
        status_code: HTTP status code returned to the caller
        severity: How urgently the failure needs attention
        context: Structured fields added to the error log line
        cause: The exception this one was raised from
    """

    def __init__(
        self,
        error_code: str | ErrorCode,
        message: str,
        *,
        details: str | None = None,
        status_code: int = 500,
        severity: Severity = Severity.MEDIUM,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.error_code = (
            error_code.value if isinstance(error_code, ErrorCode) else error_code
        )
        self.message = message
        self.details = details
        self.status_code = status_code
        self.severity = severity
        self.context = context or {}
        self.cause = cause

        self.stack_trace = traceback.format_stack()[:-1]  # Exclude the constructor

        self.fingerprint = self._generate_fingerprint()

        super().__init__(message)
        if cause:
            self.__cause__ = cause

    def _generate_fingerprint(self) -> str:
        """Hash the error type, code and raising location into 16 hex chars."""
        max_frames = 5
        relevant_frames = self.stack_trace[-max_frames:]

        fingerprint_data = f"{self.__class__.__name__}:{self.error_code}"
        for frame in relevant_frames:
            if "site-packages" not in frame and "src/" in frame:
                lines = frame.strip().split("\n")
                if lines:
                    fingerprint_data += f":{lines[0]}"

        return hashlib.sha256(fingerprint_data.encode()).hexdigest()[:16]

    @property
    def is_expected(self) -> bool:
        """Whether this error is part of normal operation (LOW or MEDIUM)."""
        return self.severity in (Severity.LOW, Severity.MEDIUM)

    @property
    def should_alert(self) -> bool:
        """Whether this error should trigger alerts (HIGH or CRITICAL)."""
        return self.severity in (Severity.HIGH, Severity.CRITICAL)

    def to_payload(self) -> dict[str, str]:
        """Build the ``{error, details}`` body returned to the caller."""
        payload = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        context_str = f", context={self.context}" if self.context else ""
        return (
            f"{class_name}(error_code='{self.error_code}', "
            f"message='{self.message}', status_code={self.status_code}, "
            f"severity={self.severity.value}{context_str})"
        )


class ValidationError(AnafProxyError):
    """Exception raised when the CUI in the request is missing or invalid.

    Args:
        message: Short label returned as ``error``
        details: Longer explanation returned as ``details``
        context: Structured fields added to the error log line
    """

    def __init__(
        self,
        message: str,
        details: str | None = None,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(
            ErrorCode.VALIDATION_ERROR,
            message,
            details=details,
            status_code=400,
            severity=Severity.LOW,
            context=context,
        )


class LookupFailedError(AnafProxyError):
    """Exception raised when an upstream lookup cannot produce a result.

    Instances are built by the error taxonomy mapper, which already decided
    the status, the label and the details for the caller.

    Args:
        error_code: Taxonomy branch that produced this error
        message: Short localized label returned as ``error``
        details: Longer localized explanation returned as ``details``
        status_code: HTTP status code returned to the caller
        severity: Severity level of the error
        context: Structured fields added to the error log line
        cause: The upstream error that caused this failure
    """

    def __init__(
        self,
        error_code: str | ErrorCode,
        message: str,
        details: str,
        status_code: int,
        severity: Severity = Severity.MEDIUM,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            error_code,
            message,
            details=details,
            status_code=status_code,
            severity=severity,
            context=context,
            cause=cause,
        )
