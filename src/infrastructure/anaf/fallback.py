"""Version fallback across ANAF API candidates.

ANAF retires API versions without notice, so the VAT registry lookup walks
the known versions newest first until one of them answers with ``cod`` 200.

Each call to a candidate ends in one ``UpstreamOutcome``:

- ``Success``: the answer is accepted, stop here
- ``SoftFailure``: this candidate does not serve the lookup, try the next one
- ``HardFailure``: something definitive went wrong, abandon the remaining ones
"""

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from loguru import logger

from src.infrastructure.anaf.client import UpstreamCandidate, UpstreamResponse
from src.infrastructure.anaf.errors import (
    ApplicationError,
    HttpStatusError,
    UpstreamError,
    is_firewall_page,
)
from src.infrastructure.constants import APPLICATION_CODE_OK

NOT_FOUND_STATUS = 404


@dataclass(frozen=True, slots=True)
class Success:
    """An accepted answer."""

    payload: dict[str, Any]
    endpoint: str


@dataclass(frozen=True, slots=True)
class SoftFailure:
    """A failure that lets the next candidate be tried."""

    reason: UpstreamError


@dataclass(frozen=True, slots=True)
class HardFailure:
    """A failure that ends the fallback immediately."""

    error: UpstreamError


type UpstreamOutcome = Success | SoftFailure | HardFailure

type AcceptPredicate = Callable[[dict[str, Any]], bool]


def has_ok_code(payload: dict[str, Any]) -> bool:
    """Accept VAT registry answers whose ``cod`` is 200."""
    return payload.get("cod") == APPLICATION_CODE_OK


def accept_any(payload: dict[str, Any]) -> bool:
    """Accept any JSON object; the e-Factura API carries no ``cod`` field."""
    _ = payload
    return True


def is_success_status(status: int) -> bool:
    """Whether an HTTP status is in the 2xx range."""
    return 200 <= status < 300  # noqa: PLR2004


def outcome_of_error(error: UpstreamError) -> SoftFailure | HardFailure:
    """Decide whether a raised upstream error allows falling back.

    Only a 404 means "this version does not exist"; every other error is
    definitive for the whole candidate list.
    """
    if (
        isinstance(error, HttpStatusError)
        and error.status == NOT_FOUND_STATUS
        and not error.is_firewall_rejection
    ):
        return SoftFailure(error)
    return HardFailure(error)


def classify_response(
    response: UpstreamResponse, accept: AcceptPredicate
) -> UpstreamOutcome:
    """Judge a response the transport returned.

    Args:
        response: The decoded upstream response.
        accept: Predicate deciding whether a 2xx answer is a success.

    Returns:
        UpstreamOutcome: The outcome of this candidate.
    """
    body = response.body

    if not is_success_status(response.status) or is_firewall_page(body):
        return outcome_of_error(
            HttpStatusError(response.status, body, response.endpoint)
        )

    # A 2xx body that is not a JSON object is judged as an empty answer
    payload = body if isinstance(body, dict) else {}
    if accept(payload):
        return Success(payload, response.endpoint)
    return SoftFailure(
        ApplicationError(
            payload.get("cod"), payload.get("message"), response.endpoint
        )
    )


async def try_candidates(
    candidates: Sequence[UpstreamCandidate],
    attempt: Callable[[UpstreamCandidate], Awaitable[UpstreamOutcome]],
) -> Success:
    """Try each candidate in order until one succeeds.

    Args:
        candidates: Endpoints in the order they must be tried.
        attempt: Performs one call and reports its outcome.

    Returns:
        Success: The first accepted answer.

    Raises:
        UpstreamError: The hard failure that stopped the walk, or the last
            soft failure once every candidate has been tried.
        ValueError: If ``candidates`` is empty.
    """
    if not candidates:
        msg = "At least one upstream candidate is required"
        raise ValueError(msg)

    soft_failures: list[UpstreamError] = []

    for candidate in candidates:
        logger.debug("Trying API version: {}", candidate.version_tag)
        outcome = await attempt(candidate)

        match outcome:
            case Success():
                logger.info("Success with API version: {}", candidate.version_tag)
                return outcome
            case SoftFailure(reason=reason):
                logger.info(
                    "API version {} did not serve the lookup: {}",
                    candidate.version_tag,
                    reason.message,
                    version=candidate.version_tag,
                    **reason.log_context(),
                )
                soft_failures.append(reason)
            case HardFailure(error=error):
                logger.warning(
                    "Failed with API version {}: {}",
                    candidate.version_tag,
                    error.message,
                    version=candidate.version_tag,
                    **error.log_context(),
                )
                raise error

    raise soft_failures[-1]
