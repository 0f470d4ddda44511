"""Unit tests for the Loguru formatters and logging setup."""

import json
import logging
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any

import pytest
from pytest_mock import MockerFixture

from src.core.config import Settings
from src.core.logging import (
    InterceptHandler,
    _state,
    detect_environment,
    format_console_with_context,
    serialize_for_aws,
    serialize_for_gcp,
    serialize_for_json,
    setup_logging,
)


def _record(**extra: Any) -> dict[str, Any]:  # noqa: ANN401
    """Build the subset of a Loguru record the formatters read."""
    return {
        "time": datetime(2026, 10, 19, 12, 0, 0, 123000, tzinfo=UTC),
        "level": SimpleNamespace(name="INFO"),
        "message": "Success with API version: v8",
        "name": "src.infrastructure.anaf.fallback",
        "module": "fallback",
        "function": "try_candidates",
        "line": 42,
        "file": SimpleNamespace(path="src/infrastructure/anaf/fallback.py"),
        "extra": extra,
        "exception": None,
    }


@pytest.mark.unit
class TestConsoleFormatter:
    """Test the development formatter."""

    def test_priority_fields_come_first(self) -> None:
        """Correlation ID and CUI are shown before other fields."""
        formatted = format_console_with_context(
            _record(endpoint="http://anaf.test", cui="14399840", correlation_id="abcdefgh-123")
        )

        assert formatted.index("abcdefgh") < formatted.index("14399840")
        assert formatted.index("14399840") < formatted.index("endpoint=")
        assert "abcdefgh-123" not in formatted
        assert formatted.endswith("{message}\n")

    def test_braces_are_escaped(self) -> None:
        """Field values cannot inject format placeholders."""
        formatted = format_console_with_context(_record(body="{oops}"))

        assert "{{oops}}" in formatted

    def test_sensitive_fields_are_redacted(self) -> None:
        """Secrets never reach the console."""
        formatted = format_console_with_context(_record(token="hunter2"))

        assert "hunter2" not in formatted
        assert "token=[REDACTED]" in formatted

    def test_exception_placeholder(self) -> None:
        """Records with an exception get the traceback placeholder."""
        record = _record()
        record["exception"] = object()

        assert format_console_with_context(record).endswith("\n{exception}\n")


@pytest.mark.unit
class TestStructuredFormatters:
    """Test the JSON formatters."""

    def test_json(self) -> None:
        """Extras are merged into the top-level entry."""
        entry = json.loads(serialize_for_json(_record(cui="14399840", _private=1)))

        assert entry["message"] == "Success with API version: v8"
        assert entry["level"] == "INFO"
        assert entry["cui"] == "14399840"
        assert "_private" not in entry

    def test_gcp(self) -> None:
        """The correlation ID becomes the trace field."""
        entry = json.loads(serialize_for_gcp(_record(correlation_id="c-1", cui="1")))

        assert entry["severity"] == "INFO"
        assert entry["logging.googleapis.com/trace"] == "c-1"
        assert entry["jsonPayload"] == {"cui": "1"}
        assert entry["serviceContext"]["service"] == "ANAF Proxy"

    def test_aws(self) -> None:
        """Correlation and request IDs map to CloudWatch names."""
        entry = json.loads(
            serialize_for_aws(_record(correlation_id="c-1", request_id="req-1"))
        )

        assert entry["traceId"] == "c-1"
        assert entry["requestId"] == "req-1"


@pytest.mark.unit
class TestEnvironmentDetection:
    """Test formatter auto-detection."""

    @pytest.mark.parametrize(
        ("variable", "expected"),
        [("K_SERVICE", "gcp"), ("AWS_EXECUTION_ENV", "aws"), ("WEBSITE_INSTANCE_ID", "json")],
    )
    def test_cloud_markers(
        self, monkeypatch: pytest.MonkeyPatch, variable: str, expected: str
    ) -> None:
        """Each hosting platform is recognized by its marker variable."""
        for name in ("K_SERVICE", "AWS_EXECUTION_ENV", "WEBSITE_INSTANCE_ID"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv(variable, "1")

        assert detect_environment() == expected


@pytest.mark.unit
class TestSetupLogging:
    """Test the one-time Loguru configuration."""

    @pytest.fixture(autouse=True)
    def reset_state(self) -> Any:  # noqa: ANN401
        """Restore the configured flag around each test."""
        previous = _state.configured
        _state.configured = False
        yield
        _state.configured = previous

    def test_configures_once(self, mocker: MockerFixture) -> None:
        """A second call leaves the sinks alone."""
        mock_logger = mocker.patch("src.core.logging.logger")

        setup_logging(Settings())
        setup_logging(Settings())

        mock_logger.remove.assert_called_once()
        mock_logger.add.assert_called_once()
        assert _state.configured

    def test_quiets_http_client_loggers(self, mocker: MockerFixture) -> None:
        """httpx and httpcore only log warnings and above."""
        mocker.patch("src.core.logging.logger")

        setup_logging(Settings())

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING

    def test_intercept_handler_forwards(self, mocker: MockerFixture) -> None:
        """Standard library records are re-emitted through Loguru."""
        mock_logger = mocker.patch("src.core.logging.logger")
        record = logging.LogRecord("uvicorn", logging.INFO, __file__, 1, "hi", None, None)

        InterceptHandler().emit(record)

        mock_logger.opt.return_value.bind.return_value.log.assert_called_once()
