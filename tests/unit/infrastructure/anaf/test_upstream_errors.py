"""Unit tests for the upstream failure variants."""

import pytest

from src.infrastructure.anaf.errors import (
    ApplicationError,
    HttpStatusError,
    TransportFailure,
    TransportFailureKind,
    UpstreamError,
    is_firewall_page,
)
from tests.upstream_stubs import FIREWALL_PAGE


@pytest.mark.unit
class TestFirewallDetection:
    """Test recognition of the firewall rejection page."""

    def test_rejection_page(self) -> None:
        """The F5 page is recognized."""
        assert is_firewall_page(FIREWALL_PAGE)

    @pytest.mark.parametrize(
        "body", ["<html>maintenance</html>", {"message": "support ID is: 1"}, None]
    )
    def test_other_bodies(self, body: object) -> None:
        """Only text bodies can be the rejection page."""
        assert not is_firewall_page(body)  # type: ignore[arg-type]

    def test_support_id_is_extracted(self) -> None:
        """The support ID printed on the page is exposed."""
        error = HttpStatusError(200, FIREWALL_PAGE)

        assert error.is_firewall_rejection
        assert error.firewall_support_id == "9876543210123456789"

    def test_support_id_defaults_to_unknown(self) -> None:
        """Without a support ID the placeholder is used."""
        error = HttpStatusError(403, "The requested URL was rejected.")

        assert error.is_firewall_rejection
        assert error.firewall_support_id == "unknown"


@pytest.mark.unit
class TestHttpStatusError:
    """Test the HTTP error variant."""

    def test_body_message(self) -> None:
        """A structured ``message`` field is exposed."""
        error = HttpStatusError(400, {"message": "Parametri invalizi"})

        assert error.body_message == "Parametri invalizi"
        assert error.http_status == 400

    @pytest.mark.parametrize("body", [{"message": ""}, {"cod": 400}, "text", None])
    def test_no_body_message(self, body: object) -> None:
        """Bodies without a usable message report None."""
        assert HttpStatusError(400, body).body_message is None  # type: ignore[arg-type]

    def test_log_context(self) -> None:
        """Log fields name the variant, endpoint and status."""
        error = HttpStatusError(503, None, "http://anaf.test")

        assert error.log_context() == {
            "error_type": "HttpStatusError",
            "endpoint": "http://anaf.test",
            "status": 503,
        }


@pytest.mark.unit
class TestOtherVariants:
    """Test the transport and application variants."""

    def test_transport_failure_has_no_status(self) -> None:
        """No HTTP response means no status."""
        error = TransportFailure(TransportFailureKind.RESET, "reset")

        assert isinstance(error, UpstreamError)
        assert error.http_status is None
        assert error.log_context()["kind"] == "reset"

    def test_application_error_message(self) -> None:
        """The application error carries ``cod`` and ``message``."""
        error = ApplicationError(404, "Not found")

        assert error.code == 404
        assert error.upstream_message == "Not found"
        assert error.http_status is None
        assert str(error) == "API returned code: 404, message: Not found"
