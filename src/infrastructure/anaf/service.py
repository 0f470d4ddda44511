"""The two lookup pipelines: VAT registry (company) and e-Factura registry.

Both run the same way: the retry engine repeats a fallback walk over the
pipeline's candidates; each candidate call builds a request, sends it and
classifies the response. The final upstream error, if any, is mapped to a
``LookupFailedError`` here and nowhere else.
"""

from collections.abc import Sequence
from functools import partial

from loguru import logger

from src.core.config import UpstreamConfig
from src.core.observability import trace_operation
from src.domain.company import FormattedCompany, format_company
from src.domain.efactura import EFacturaResult, is_unregistered, shape_efactura
from src.domain.lookup import LookupRequest
from src.infrastructure.anaf.client import (
    AnafTransport,
    UpstreamCandidate,
    build_request,
    company_candidates,
    efactura_candidates,
)
from src.infrastructure.anaf.errors import UpstreamError
from src.infrastructure.anaf.fallback import (
    AcceptPredicate,
    Success,
    UpstreamOutcome,
    accept_any,
    classify_response,
    has_ok_code,
    outcome_of_error,
    try_candidates,
)
from src.infrastructure.anaf.retry import (
    JitterSource,
    RetryPolicy,
    Sleep,
    with_retry,
)
from src.infrastructure.anaf.taxonomy import (
    company_no_data,
    efactura_no_data,
    map_company_error,
    map_efactura_error,
)


class AnafLookupService:
    """Runs lookups against the ANAF web services.

    Args:
        transport: Sends the outbound requests.
        config: Upstream endpoints and transport options.
        policy: Backoff parameters.
        sleep: Optional sleep override forwarded to the retry engine.
        jitter: Optional jitter source forwarded to the retry engine.
    """

    def __init__(
        self,
        transport: AnafTransport,
        config: UpstreamConfig,
        policy: RetryPolicy,
        *,
        sleep: Sleep | None = None,
        jitter: JitterSource | None = None,
    ) -> None:
        self.transport = transport
        self.config = config
        self.policy = policy
        self._retry_overrides = {
            key: value
            for key, value in (("sleep", sleep), ("jitter", jitter))
            if value is not None
        }

    async def _attempt(
        self,
        lookup: LookupRequest,
        accept: AcceptPredicate,
        candidate: UpstreamCandidate,
    ) -> UpstreamOutcome:
        """Call one candidate and report the outcome."""
        request = build_request(lookup, candidate.endpoint_url, self.config)
        with trace_operation(
            "anaf.request", version=candidate.version_tag, cui=lookup.cui
        ):
            try:
                response = await self.transport.send(request)
            except UpstreamError as exc:
                return outcome_of_error(exc)
        return classify_response(response, accept)

    async def _run(
        self,
        lookup: LookupRequest,
        candidates: Sequence[UpstreamCandidate],
        accept: AcceptPredicate,
    ) -> Success:
        attempt = partial(self._attempt, lookup, accept)
        return await with_retry(
            lambda: try_candidates(candidates, attempt),
            self.policy,
            **self._retry_overrides,
        )

    async def lookup_company(self, lookup: LookupRequest) -> FormattedCompany:
        """Look the CUI up in the VAT payer registry.

        Args:
            lookup: The normalized lookup.

        Returns:
            FormattedCompany: The first company ANAF lists for the CUI.

        Raises:
            LookupFailedError: If no company could be returned.
        """
        with logger.contextualize(cui=lookup.cui, pipeline="company"):
            try:
                success = await self._run(
                    lookup, company_candidates(self.config), has_ok_code
                )
            except UpstreamError as exc:
                raise map_company_error(exc) from exc

            found = success.payload.get("found") or []
            if not found:
                logger.info(
                    "No data found in ANAF response",
                    code=success.payload.get("cod"),
                )
                raise company_no_data(success.payload.get("message"))

            return format_company(found[0])

    async def lookup_efactura(self, lookup: LookupRequest) -> EFacturaResult:
        """Look the CUI up in the e-Factura registry.

        Args:
            lookup: The normalized lookup.

        Returns:
            EFacturaResult: The registry entries for the CUI.

        Raises:
            LookupFailedError: If the registry holds no entry for the CUI.
        """
        with logger.contextualize(cui=lookup.cui, pipeline="efactura"):
            try:
                success = await self._run(
                    lookup, efactura_candidates(self.config), accept_any
                )
            except UpstreamError as exc:
                raise map_efactura_error(exc) from exc

            result = shape_efactura(success.payload)
            if result is None:
                logger.info("CUI not present in the e-Factura registry")
                raise efactura_no_data(unregistered=is_unregistered(success.payload))

            return result
