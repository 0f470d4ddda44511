"""Mapping of upstream failures to the caller-facing error taxonomy.

Branches are evaluated in priority order against the final upstream error:

1. firewall rejection page → 403 with the support ID
2. connection reset, aborted or timed out → 503
3. upstream client error → 400 (company: structured ``message`` field;
   e-Factura: HTTP 400)
4. upstream 404 → 404
5. upstream 429 → 429
6. anything else → 503

Labels and details are in Romanian and are part of the public contract.
"""

from dataclasses import dataclass

from loguru import logger

from src.core.exceptions import ErrorCode, LookupFailedError, Severity
from src.infrastructure.anaf.errors import (
    HttpStatusError,
    TransportFailure,
    UpstreamError,
)

BAD_REQUEST_STATUS = 400
FORBIDDEN_STATUS = 403
NOT_FOUND_STATUS = 404
RATE_LIMITED_STATUS = 429
UNAVAILABLE_STATUS = 503

FIREWALL_ERROR = "Acces blocat de firewall"
FIREWALL_DETAILS = (
    "Cererea a fost blocată de firewall-ul ANAF. ID suport: {support_id}. "
    "Vă rugăm contactați administratorul."
)
CONNECTION_ERROR = "Eroare de conexiune"
CONNECTION_DETAILS = (
    "Nu s-a putut stabili conexiunea cu serverul ANAF după mai multe încercări. "
    "Vă rugăm încercați din nou mai târziu."
)
RATE_LIMITED_ERROR = "Prea multe cereri"
UNAVAILABLE_ERROR = "Serviciul ANAF temporar indisponibil"
UNAVAILABLE_DETAILS = "Vă rugăm să încercați mai târziu"


@dataclass(frozen=True, slots=True)
class Wording:
    """Label and details returned for one taxonomy branch."""

    error: str
    details: str


COMPANY_API_ERROR = "Eroare API ANAF"
COMPANY_NOT_FOUND = Wording("CUI invalid", "Numărul CUI introdus nu este valid")
COMPANY_RATE_LIMITED = Wording(
    RATE_LIMITED_ERROR, "Vă rugăm așteptați câteva momente înainte de a încerca din nou"
)
COMPANY_NO_DATA_ERROR = "Nu s-au găsit date"
COMPANY_NO_DATA_DETAILS = "Nu există informații pentru acest CUI"

EFACTURA_BAD_REQUEST = Wording(
    "Cerere invalidă",
    "Datele transmise nu sunt în formatul corect sau sunt prea multe CUI-uri "
    "în cerere.",
)
EFACTURA_NOT_FOUND = Wording(
    "CUI negăsit",
    "Nu s-au găsit date pentru CUI-ul specificat în registrul e-Factura.",
)
EFACTURA_RATE_LIMITED = Wording(
    RATE_LIMITED_ERROR,
    "Ați depășit limita de cereri permise (maxim 1 cerere pe secundă).",
)
EFACTURA_UNREGISTERED = Wording(
    "Nu s-au găsit date în registrul e-Factura",
    "Compania nu este înregistrată în sistemul e-Factura",
)
EFACTURA_NO_DATA = Wording(
    "Nu s-au găsit date",
    "Nu există informații pentru acest CUI în registrul e-Factura",
)


def _failure(
    code: ErrorCode,
    wording: Wording,
    status_code: int,
    cause: UpstreamError | None = None,
    severity: Severity = Severity.MEDIUM,
) -> LookupFailedError:
    context = cause.log_context() if cause is not None else None
    return LookupFailedError(
        code,
        wording.error,
        wording.details,
        status_code,
        severity=severity,
        context=context,
        cause=cause,
    )


def _common_branch(error: UpstreamError) -> LookupFailedError | None:
    """Branches 1 and 2, identical for both lookups."""
    if isinstance(error, HttpStatusError) and error.is_firewall_rejection:
        support_id = error.firewall_support_id
        logger.error("ANAF firewall rejected the request", support_id=support_id)
        return _failure(
            ErrorCode.FIREWALL_BLOCKED,
            Wording(FIREWALL_ERROR, FIREWALL_DETAILS.format(support_id=support_id)),
            FORBIDDEN_STATUS,
            error,
            Severity.HIGH,
        )
    if isinstance(error, TransportFailure) and error.is_connection_failure:
        return _failure(
            ErrorCode.CONNECTION_FAILED,
            Wording(CONNECTION_ERROR, CONNECTION_DETAILS),
            UNAVAILABLE_STATUS,
            error,
        )
    return None


def _unavailable(error: UpstreamError) -> LookupFailedError:
    return _failure(
        ErrorCode.UPSTREAM_UNAVAILABLE,
        Wording(UNAVAILABLE_ERROR, UNAVAILABLE_DETAILS),
        UNAVAILABLE_STATUS,
        error,
    )


def map_company_error(error: UpstreamError) -> LookupFailedError:
    """Map the final error of a VAT registry lookup.

    Args:
        error: The error the retry engine gave up with.

    Returns:
        LookupFailedError: The caller-facing failure.
    """
    if (failure := _common_branch(error)) is not None:
        return failure

    if isinstance(error, HttpStatusError) and (message := error.body_message):
        return _failure(
            ErrorCode.UPSTREAM_ERROR,
            Wording(COMPANY_API_ERROR, message),
            BAD_REQUEST_STATUS,
            error,
        )

    if error.http_status == NOT_FOUND_STATUS:
        return _failure(
            ErrorCode.NOT_FOUND, COMPANY_NOT_FOUND, NOT_FOUND_STATUS, error, Severity.LOW
        )
    if error.http_status == RATE_LIMITED_STATUS:
        return _failure(
            ErrorCode.RATE_LIMITED, COMPANY_RATE_LIMITED, RATE_LIMITED_STATUS, error
        )
    return _unavailable(error)


def map_efactura_error(error: UpstreamError) -> LookupFailedError:
    """Map the final error of an e-Factura registry lookup.

    Args:
        error: The error the retry engine gave up with.

    Returns:
        LookupFailedError: The caller-facing failure.
    """
    if (failure := _common_branch(error)) is not None:
        return failure

    if error.http_status == BAD_REQUEST_STATUS:
        return _failure(
            ErrorCode.UPSTREAM_ERROR, EFACTURA_BAD_REQUEST, BAD_REQUEST_STATUS, error
        )
    if error.http_status == NOT_FOUND_STATUS:
        return _failure(
            ErrorCode.NOT_FOUND, EFACTURA_NOT_FOUND, NOT_FOUND_STATUS, error, Severity.LOW
        )
    if error.http_status == RATE_LIMITED_STATUS:
        return _failure(
            ErrorCode.RATE_LIMITED, EFACTURA_RATE_LIMITED, RATE_LIMITED_STATUS, error
        )
    return _unavailable(error)


def company_no_data(message: str | None) -> LookupFailedError:
    """The answer was accepted but lists no company."""
    return _failure(
        ErrorCode.NOT_FOUND,
        Wording(COMPANY_NO_DATA_ERROR, message or COMPANY_NO_DATA_DETAILS),
        NOT_FOUND_STATUS,
        severity=Severity.LOW,
    )


def efactura_no_data(*, unregistered: bool) -> LookupFailedError:
    """The e-Factura answer lists no registry entry for the CUI."""
    wording = EFACTURA_UNREGISTERED if unregistered else EFACTURA_NO_DATA
    return _failure(
        ErrorCode.NOT_FOUND, wording, NOT_FOUND_STATUS, severity=Severity.LOW
    )
