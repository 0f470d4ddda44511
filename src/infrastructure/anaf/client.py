"""Outbound calls to the ANAF web services.

ANAF sits behind an F5 firewall that rejects anything looking automated, so
each call mimics a browser and opens a fresh connection: no keep-alive, no
pooling, no redirects. Status codes are not interpreted here; the transport
returns every response in the [200, 600) range and leaves the decision to
``src.infrastructure.anaf.fallback``.
"""

from dataclasses import dataclass, field
from typing import Any, Final

import httpx
from loguru import logger

from src.core.config import UpstreamConfig
from src.core.types import UpstreamBody
from src.domain.lookup import LookupRequest
from src.infrastructure.anaf.errors import (
    HttpStatusError,
    TransportFailure,
    TransportFailureKind,
)

MIN_ACCEPTED_STATUS: Final[int] = 200
MAX_ACCEPTED_STATUS: Final[int] = 600


@dataclass(frozen=True, slots=True)
class UpstreamCandidate:
    """One endpoint worth trying for a lookup.

    Attributes:
        version_tag: API version label used in logs (``v8``, ``efactura``).
        endpoint_url: Full URL to POST to.
    """

    version_tag: str
    endpoint_url: str


def company_candidates(config: UpstreamConfig) -> list[UpstreamCandidate]:
    """VAT registry endpoints, newest API version first."""
    return [
        UpstreamCandidate(version, f"{config.company_base_url}/{version}/ws/tva")
        for version in config.company_versions
    ]


def efactura_candidates(config: UpstreamConfig) -> list[UpstreamCandidate]:
    """The single e-Factura registry endpoint."""
    return [UpstreamCandidate("efactura", config.efactura_url)]


@dataclass(frozen=True, slots=True)
class UpstreamRequest:
    """Everything needed to perform one outbound call."""

    url: str
    body: list[dict[str, Any]]
    headers: dict[str, str]
    timeout: float
    verify: bool
    method: str = "POST"
    follow_redirects: bool = False


@dataclass(frozen=True, slots=True)
class UpstreamResponse:
    """A response the upstream sent back, decoded but not yet judged."""

    status: int
    body: UpstreamBody
    endpoint: str
    headers: dict[str, str] = field(default_factory=dict)


def build_request(
    lookup: LookupRequest, endpoint_url: str, config: UpstreamConfig
) -> UpstreamRequest:
    """Describe the POST for one lookup against one endpoint.

    The body is always a one-element list even though ANAF accepts batches.

    Args:
        lookup: The normalized lookup.
        endpoint_url: Candidate endpoint.
        config: Upstream transport options.

    Returns:
        UpstreamRequest: The request descriptor.
    """
    logger.info(
        "Preparing request to ANAF API",
        endpoint=endpoint_url,
        cui=lookup.cui,
        date=lookup.date,
    )
    return UpstreamRequest(
        url=endpoint_url,
        body=[{"cui": int(lookup.cui, 10), "data": lookup.date}],
        headers={
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": config.user_agent,
            "Cache-Control": "no-cache",
            "Connection": "close",
        },
        timeout=config.timeout_seconds,
        verify=config.verify_tls,
    )


def _decode_body(response: httpx.Response) -> UpstreamBody:
    try:
        return response.json()
    except ValueError:
        return response.text


def _transport_failure(exc: httpx.TransportError, endpoint: str) -> TransportFailure:
    """Translate an httpx transport exception into our variant."""
    if isinstance(exc, httpx.TimeoutException):
        kind = TransportFailureKind.TIMED_OUT
    elif isinstance(exc, httpx.RemoteProtocolError | httpx.ReadError | httpx.WriteError):
        kind = TransportFailureKind.RESET
    elif isinstance(exc, httpx.CloseError):
        kind = TransportFailureKind.ABORTED
    else:
        kind = TransportFailureKind.OTHER
    return TransportFailure(kind, f"{type(exc).__name__}: {exc}", endpoint)


class AnafTransport:
    """Sends ``UpstreamRequest`` descriptors over HTTPS.

    A new ``httpx.AsyncClient`` is opened for every call so that no
    connection is ever reused.

    Args:
        transport: Optional httpx transport, used by tests to stub the upstream.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def send(self, request: UpstreamRequest) -> UpstreamResponse:
        """Perform the call.

        Args:
            request: The request descriptor.

        Returns:
            UpstreamResponse: Any response with a status in [200, 600).

        Raises:
            TransportFailure: If no HTTP response was received.
            HttpStatusError: If the status is outside [200, 600).
        """
        async with httpx.AsyncClient(
            transport=self._transport,
            verify=request.verify,
            timeout=request.timeout,
            follow_redirects=request.follow_redirects,
            limits=httpx.Limits(max_keepalive_connections=0),
        ) as client:
            try:
                response = await client.request(
                    request.method,
                    request.url,
                    json=request.body,
                    headers=request.headers,
                )
            except httpx.TransportError as exc:
                raise _transport_failure(exc, request.url) from exc

        body = _decode_body(response)
        if not MIN_ACCEPTED_STATUS <= response.status_code < MAX_ACCEPTED_STATUS:
            raise HttpStatusError(response.status_code, body, request.url)

        return UpstreamResponse(
            status=response.status_code,
            body=body,
            endpoint=request.url,
            headers=dict(response.headers),
        )
