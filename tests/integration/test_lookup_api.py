"""Integration tests for the lookup endpoints."""

from collections.abc import Callable

import httpx
import pytest
from httpx import AsyncClient

from tests.upstream_stubs import (
    FIREWALL_PAGE,
    RecordingUpstream,
    company_payload,
    efactura_payload,
    raise_error,
    respond_json,
    respond_text,
)

type UseUpstream = Callable[[RecordingUpstream], RecordingUpstream]


@pytest.mark.integration
class TestLiveness:
    """Test the liveness probe."""

    @pytest.mark.parametrize("path", ["/test", "/api/test"])
    async def test_server_is_running(self, client: AsyncClient, path: str) -> None:
        """The probe answers without contacting ANAF."""
        response = await client.get(path)

        assert response.status_code == 200
        assert response.json() == {"message": "Server is running"}


@pytest.mark.integration
class TestCompanyEndpoint:
    """Test ``POST /company``."""

    async def test_success(
        self, client: AsyncClient, use_upstream: UseUpstream
    ) -> None:
        """A known CUI returns one flattened company."""
        upstream = use_upstream(RecordingUpstream(respond_json(company_payload())))

        response = await client.post("/company", json={"cui": "14399840"})

        assert response.status_code == 200
        assert response.json() == {
            "found": [
                {
                    "denumire": "ORACLE ROMANIA SRL",
                    "cui": 14399840,
                    "adresa": (
                        "MUNICIPIUL BUCUREŞTI, SECTOR 1, BD. DIMITRIE POMPEIU, NR.5-7"
                    ),
                    "nrRegCom": "J40/12345/2001",
                    "judet": "Bucuresti",
                    "localitate": "Sector 1",
                    "stare": "INREGISTRAT din data 05.02.2002",
                    "tva": "DA",
                }
            ]
        }
        assert upstream.paths == ["/PlatitorTvaRest/api/v8/ws/tva"]

    async def test_prefixed_cui_is_normalized(
        self, client: AsyncClient, use_upstream: UseUpstream
    ) -> None:
        """The RO prefix and separators never reach ANAF."""
        upstream = use_upstream(RecordingUpstream(respond_json(company_payload())))

        response = await client.post("/company", json={"cui": "RO 1439-9840"})

        assert response.status_code == 200
        sent = upstream.requests[0]
        assert b'"cui":14399840' in sent.content.replace(b" ", b"")

    async def test_legacy_prefix(
        self, client: AsyncClient, use_upstream: UseUpstream
    ) -> None:
        """The endpoint is also served under ``/api``."""
        use_upstream(RecordingUpstream(respond_json(company_payload())))

        response = await client.post("/api/company", json={"cui": 14399840})

        assert response.status_code == 200
        assert len(response.json()["found"]) == 1

    @pytest.mark.parametrize("body", [{}, {"cui": ""}, {"cui": None}])
    async def test_missing_cui(
        self, client: AsyncClient, use_upstream: UseUpstream, body: dict[str, object]
    ) -> None:
        """A missing CUI is rejected before any upstream call."""
        upstream = use_upstream(RecordingUpstream(respond_json(company_payload())))

        response = await client.post("/company", json=body)

        assert response.status_code == 400
        assert response.json() == {
            "error": "CUI is required",
            "details": "Câmpul cui lipsește din cerere",
        }
        assert upstream.requests == []

    async def test_cui_without_digits(self, client: AsyncClient) -> None:
        """A CUI with no digits is invalid."""
        response = await client.post("/company", json={"cui": "RO"})

        assert response.status_code == 400
        assert response.json()["error"] == "CUI invalid"

    async def test_malformed_body(self, client: AsyncClient) -> None:
        """A body that is not a JSON object is a bad request."""
        response = await client.post(
            "/company",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Cerere invalidă"

    async def test_version_fallback(
        self, client: AsyncClient, use_upstream: UseUpstream
    ) -> None:
        """Retired versions are skipped until one answers."""
        soft = respond_json({"cod": 404, "message": "Not found", "found": []})
        upstream = use_upstream(
            RecordingUpstream(soft, soft, soft, soft, respond_json(company_payload()))
        )

        response = await client.post("/company", json={"cui": "14399840"})

        assert response.status_code == 200
        assert [path.split("/")[3] for path in upstream.paths] == [
            "v8",
            "v7",
            "v6",
            "v5",
            "v4",
        ]

    async def test_firewall(
        self, client: AsyncClient, use_upstream: UseUpstream
    ) -> None:
        """A firewall rejection is a 403 naming the support ID."""
        use_upstream(RecordingUpstream(respond_text(FIREWALL_PAGE)))

        response = await client.post("/company", json={"cui": "14399840"})

        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "Acces blocat de firewall"
        assert "9876543210123456789" in body["details"]

    async def test_upstream_message(
        self, client: AsyncClient, use_upstream: UseUpstream
    ) -> None:
        """A structured upstream error message is passed on with 400."""
        use_upstream(RecordingUpstream(respond_json({"message": "CUI eronat"}, 400)))

        response = await client.post("/company", json={"cui": "14399840"})

        assert response.status_code == 400
        assert response.json() == {"error": "Eroare API ANAF", "details": "CUI eronat"}

    async def test_connection_failure(
        self, client: AsyncClient, use_upstream: UseUpstream
    ) -> None:
        """Persistent timeouts end in 503 after four attempts."""
        upstream = use_upstream(
            RecordingUpstream(raise_error(httpx.ReadTimeout("timed out")))
        )

        response = await client.post("/company", json={"cui": "14399840"})

        assert response.status_code == 503
        assert response.json()["error"] == "Eroare de conexiune"
        assert len(upstream.requests) == 4

    async def test_no_data(
        self, client: AsyncClient, use_upstream: UseUpstream
    ) -> None:
        """An accepted answer without companies is a 404."""
        use_upstream(
            RecordingUpstream(
                respond_json({"cod": 200, "message": "CUI inexistent", "found": []})
            )
        )

        response = await client.post("/company", json={"cui": "1"})

        assert response.status_code == 404
        assert response.json() == {
            "error": "Nu s-au găsit date",
            "details": "CUI inexistent",
        }


@pytest.mark.integration
class TestEfacturaEndpoint:
    """Test ``POST /efactura``."""

    async def test_success(
        self, client: AsyncClient, use_upstream: UseUpstream
    ) -> None:
        """Registry entries are returned unchanged."""
        upstream = use_upstream(RecordingUpstream(respond_json(efactura_payload())))

        response = await client.post("/efactura", json={"cui": "RO14399840"})

        assert response.status_code == 200
        assert response.json() == efactura_payload()
        assert upstream.paths == ["/api/registruroefactura/v1/interogare"]

    async def test_legacy_prefix(
        self, client: AsyncClient, use_upstream: UseUpstream
    ) -> None:
        """The endpoint is also served under ``/api``."""
        use_upstream(RecordingUpstream(respond_json(efactura_payload())))

        response = await client.post("/api/efactura", json={"cui": "14399840"})

        assert response.status_code == 200

    async def test_unregistered(
        self, client: AsyncClient, use_upstream: UseUpstream
    ) -> None:
        """A CUI outside the registry is a 404."""
        use_upstream(
            RecordingUpstream(respond_json({"found": [], "notFound": [14399840]}))
        )

        response = await client.post("/efactura", json={"cui": "14399840"})

        assert response.status_code == 404
        assert response.json()["error"] == "Nu s-au găsit date în registrul e-Factura"

    async def test_rate_limited(
        self, client: AsyncClient, use_upstream: UseUpstream
    ) -> None:
        """A persistent 429 is reported once the retries run out."""
        upstream = use_upstream(RecordingUpstream(respond_json({}, 429)))

        response = await client.post("/efactura", json={"cui": "14399840"})

        assert response.status_code == 429
        assert response.json()["error"] == "Prea multe cereri"
        assert len(upstream.requests) == 4

    async def test_missing_cui(self, client: AsyncClient) -> None:
        """Validation is shared with the company endpoint."""
        response = await client.post("/efactura", json={})

        assert response.status_code == 400
        assert response.json()["error"] == "CUI is required"


@pytest.mark.integration
class TestCrossCutting:
    """Test middleware behaviour visible to callers."""

    async def test_correlation_id_is_echoed(self, client: AsyncClient) -> None:
        """A caller-supplied correlation ID comes back unchanged."""
        response = await client.get("/test", headers={"X-Correlation-ID": "corr-1"})

        assert response.headers["X-Correlation-ID"] == "corr-1"
        assert response.headers["X-Request-ID"].startswith("req-")

    async def test_cors_allows_any_origin(self, client: AsyncClient) -> None:
        """Browsers from any origin may call the proxy."""
        response = await client.options(
            "/company",
            headers={
                "Origin": "https://app.example.com",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"

    async def test_unknown_route(self, client: AsyncClient) -> None:
        """Unknown paths use the error body shape."""
        response = await client.get("/nope")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}

    async def test_unexpected_exception(
        self, client: AsyncClient, use_upstream: UseUpstream
    ) -> None:
        """A bug inside the proxy is a 500 with the generic wording."""

        def explode(_request: httpx.Request) -> httpx.Response:
            msg = "bug"
            raise RuntimeError(msg)

        use_upstream(RecordingUpstream(explode))

        response = await client.post("/company", json={"cui": "14399840"})

        assert response.status_code == 500
        assert response.json()["error"] == "Eroare internă"
