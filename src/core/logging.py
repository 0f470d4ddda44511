"""Loguru configuration for the proxy.

Every module logs through the shared Loguru ``logger`` with keyword extras
(``cui``, ``version``, ``attempt``, ``endpoint``...). This module decides how
those records are rendered and routes standard library records (uvicorn,
httpx, httpcore) into the same sink.

Renderers, selected by ``log_config.log_formatter_type``:

- ``console``: coloured single line with the extras inline (development)
- ``json``: one flat JSON object per line
- ``gcp``: Cloud Logging structured entry
- ``aws``: CloudWatch Logs Insights friendly entry
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Final, cast

from loguru import logger

from src.core.config import get_settings
from src.core.constants import REDACTED

if TYPE_CHECKING:
    from src.core.config import Settings

type Record = dict[str, Any]
type Renderer = Callable[[Record], str]


class _LoggingState:
    """Whether ``setup_logging`` already ran in this process."""

    def __init__(self) -> None:
        self.configured = False


_state = _LoggingState()

FALLBACK_CONSOLE_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | <cyan>{name}:{function}:{line}</cyan> | "
    "{message}\n"
)
SHORT_CORRELATION_ID: Final[int] = 8
MAX_EXTRA_LENGTH: Final[int] = 100

# Extras shown first, in this order, by the console renderer
PRIORITY_FIELDS: Final[tuple[str, ...]] = (
    "correlation_id",
    "request_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "cui",
    "version",
    "attempt",
)

STATUS_COLOURS: Final[dict[str, str]] = {
    "2": "green",
    "3": "yellow",
    "4": "red",
    "5": "red",
}

# Standard library loggers that are too chatty at INFO
NOISY_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore")
UVICORN_LOGGERS: Final[tuple[str, ...]] = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _escape(value: object) -> str:
    """Make a value safe to embed in a Loguru format string."""
    return str(value).replace("{", "{{").replace("}", "}}").replace("<", r"\<")


def _priority_part(field: str, value: object) -> str:
    text = str(value)
    if field == "correlation_id":
        text = text[:SHORT_CORRELATION_ID]
    elif field == "duration_ms":
        text = f"{text}ms"
    elif field == "status_code" and (colour := STATUS_COLOURS.get(text[:1])):
        return f"<{colour}>{_escape(text)}</{colour}>"
    return _escape(text)


def _extra_part(key: str, value: object) -> str:
    """Render ``key=value``, redacting sensitive keys and clipping long values."""
    text = str(value)
    if key in get_settings().log_config.sensitive_fields:
        text = REDACTED
    elif len(text) > MAX_EXTRA_LENGTH:
        text = f"{text[: MAX_EXTRA_LENGTH - 3]}..."
    return f"{_escape(key)}={_escape(text)}"


def _public_extra(record: Record) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.get("extra", {}).items()
        if not key.startswith("_")
    }


def format_console_with_context(record: Record) -> str:
    """Build the Loguru format string for one console record.

    Priority extras come first in yellow, the rest follow dimmed. The
    message itself stays a ``{message}`` placeholder so Loguru renders it.
    """
    try:
        extra = _public_extra(record)
        fields = [
            f"[<yellow>{_priority_part(name, extra[name])}</yellow>]"
            for name in PRIORITY_FIELDS
            if extra.get(name) is not None
        ]
        fields.extend(
            f"[<dim>{_extra_part(key, value)}</dim>]"
            for key, value in extra.items()
            if key not in PRIORITY_FIELDS and value is not None
        )

        head = " | ".join(
            [
                f"<green>{record['time'].strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]}</green>",
                f"<level>{record['level'].name: <8}</level>",
                f"<cyan>{record['name']}:{record['function']}:{record['line']}</cyan>",
            ]
        )
        line = head
        if fields:
            line += f" | {' '.join(fields)}"
        line += " | {message}"
        if record.get("exception"):
            line += "\n{exception}"
        return line + "\n"
    except (AttributeError, KeyError, TypeError, ValueError):
        return FALLBACK_CONSOLE_FORMAT


class InterceptHandler(logging.Handler):
    """Forward standard library records to Loguru.

    Installed on the root logger and on uvicorn's loggers so that access
    logs and library warnings share the proxy's format.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip the logging module's own frames to report the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        extra: dict[str, Any] = {}
        if record.name == "uvicorn.access" and hasattr(record, "scope"):
            scope = record.scope
            extra = {
                "method": scope.get("method", ""),
                "path": scope.get("path", ""),
                "client_host": (scope.get("client") or ["unknown"])[0],
            }

        logger.opt(depth=depth, exception=record.exc_info).bind(**extra).log(
            level, record.getMessage()
        )


def _exception_summary(record: Record, message_key: str) -> dict[str, Any] | None:
    exc = record.get("exception")
    if not exc:
        return None
    return {
        "type": exc.type.__name__ if exc.type else None,
        message_key: str(exc.value) if exc.value else None,
    }


def _dump(entry: dict[str, Any]) -> str:
    return json.dumps(entry, default=str, ensure_ascii=False) + "\n"


def serialize_for_json(record: Record) -> str:
    """Render a record as one flat JSON object."""
    entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
        **_public_extra(record),
    }
    if summary := _exception_summary(record, "value"):
        entry["exception"] = summary
    return _dump(entry)


def serialize_for_gcp(record: Record) -> str:
    """Render a record as a Cloud Logging structured entry.

    The correlation ID goes to the ``trace`` field so Cloud Logging groups
    all records of one lookup; the other extras land in ``jsonPayload``.
    """
    level = record["level"].name
    settings = get_settings()
    extra = _public_extra(record)

    entry: dict[str, Any] = {
        "severity": {"TRACE": "DEBUG", "SUCCESS": "INFO"}.get(level, level),
        "message": record["message"],
        "timestamp": record["time"].isoformat(),
        "serviceContext": {
            "service": settings.app_name,
            "version": settings.app_version,
        },
        "logging.googleapis.com/labels": {
            "module": record["module"],
            "function": record["function"],
            "line": str(record["line"]),
        },
    }
    if correlation_id := extra.pop("correlation_id", None):
        entry["logging.googleapis.com/trace"] = correlation_id
    if extra:
        entry["jsonPayload"] = extra
    if record.get("exception") or level in ("ERROR", "CRITICAL"):
        entry["logging.googleapis.com/sourceLocation"] = {
            "file": record["file"].path,
            "line": str(record["line"]),
            "function": record["function"],
        }
    return _dump(entry)


def serialize_for_aws(record: Record) -> str:
    """Render a record for CloudWatch Logs Insights."""
    extra = _public_extra(record)
    entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
    }
    if correlation_id := extra.pop("correlation_id", None):
        entry["traceId"] = correlation_id
    if request_id := extra.pop("request_id", None):
        entry["requestId"] = request_id
    for key, value in extra.items():
        entry.setdefault(key, value)
    if summary := _exception_summary(record, "message"):
        entry["error"] = summary
    return _dump(entry)


LOG_FORMATTERS: Final[dict[str, Renderer | None]] = {
    "console": None,
    "json": serialize_for_json,
    "gcp": serialize_for_gcp,
    "aws": serialize_for_aws,
}


def detect_environment() -> str:
    """Guess the renderer from the hosting platform's marker variables."""
    if os.getenv("K_SERVICE"):  # Cloud Run
        return "gcp"
    if os.getenv("AWS_EXECUTION_ENV"):  # Lambda, ECS
        return "aws"
    if os.getenv("WEBSITE_INSTANCE_ID"):  # Azure App Service
        return "json"
    return "console"


def _structured_sink(render: Renderer) -> Callable[[Any], None]:
    def sink(message: Any) -> None:  # noqa: ANN401
        sys.stdout.write(render(message.record))
        sys.stdout.flush()

    return sink


def setup_logging(settings: Settings) -> None:
    """Install the Loguru sink and the standard library bridge.

    Only the first call in a process has an effect.

    Args:
        settings: Application settings.
    """
    if _state.configured:
        return

    log_config = settings.log_config
    formatter_type = log_config.log_formatter_type or detect_environment()
    render = LOG_FORMATTERS.get(formatter_type)

    logger.remove()
    if render is None:
        logger.add(
            sys.stdout,
            format=cast("Any", format_console_with_context),
            level=log_config.log_level,
            colorize=True,
            enqueue=True,
            backtrace=settings.debug,
            diagnose=settings.debug,
        )
    else:
        logger.add(
            _structured_sink(render),
            level=log_config.log_level,
            enqueue=True,
            backtrace=False,
            diagnose=False,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in UVICORN_LOGGERS:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [InterceptHandler()]
        stdlib_logger.propagate = False
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.info(
        "Logging configured with {} formatter",
        formatter_type,
        log_level=log_config.log_level,
    )
    _state.configured = True
