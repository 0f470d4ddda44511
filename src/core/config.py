"""Settings for the ANAF proxy, read from the environment with pydantic-settings.

Top-level values map to plain variables (``API_PORT``, ``ENVIRONMENT``,
``DEBUG``). Nested groups use the ``__`` delimiter, for example
``RETRY_CONFIG__RETRIES=5`` or ``UPSTREAM_CONFIG__VERIFY_TLS=true``. A ``.env``
file in the working directory is read as well; real environment variables
win over it.

Groups:
- ``log_config``: Loguru renderer, level and request logging options
- ``observability_config``: OpenTelemetry tracing
- ``upstream_config``: ANAF endpoints and per-call transport options
- ``retry_config``: backoff policy around each lookup

When left unset, the log renderer and the trace exporter are derived from the
environment and the hosting platform.

The ``PORT`` variable set by hosting platforms is read by ``main.py`` and
takes precedence over ``API_PORT``.
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.infrastructure.constants import (
    BROWSER_USER_AGENT,
    COMPANY_API_BASE_URL,
    COMPANY_API_VERSIONS,
    EFACTURA_API_URL,
)

type FormatterType = Literal["console", "json", "gcp", "aws"]


def _blank_to_none(value: str | None) -> str | None:
    return None if value == "" else value


class LogConfig(BaseModel):
    """How records are rendered and which requests get logged."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum level written to the sink",
    )
    log_formatter_type: FormatterType | None = Field(
        default=None,
        description="Renderer; derived from the environment when unset",
    )
    excluded_paths: list[str] = Field(
        default_factory=lambda: ["/test", "/api/test"],
        description="Request paths the access log skips (liveness probes)",
    )
    slow_request_threshold_ms: int = Field(
        default=15000,
        gt=0,
        description=(
            "Requests slower than this are flagged (milliseconds). Upstream "
            "retries routinely take several seconds."
        ),
    )
    sensitive_fields: list[str] = Field(
        default_factory=lambda: ["password", "token", "secret", "authorization"],
        description="Extra keys whose values are replaced in console output",
    )


class ObservabilityConfig(BaseModel):
    """OpenTelemetry tracing options."""

    enable_tracing: bool = Field(
        default=False,
        description="Produce spans for inbound requests and upstream calls",
    )
    exporter_type: Literal["console", "otlp", "none"] = Field(
        default="console",
        description="Where spans go; production switches console to otlp",
    )
    exporter_endpoint: str | None = Field(
        default=None,
        description="OTLP collector address",
    )
    trace_sample_rate: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Fraction of traces kept",
    )

    @field_validator("exporter_endpoint", mode="before")
    @classmethod
    def blank_endpoint_is_unset(cls, v: str | None) -> str | None:
        """Treat ``OBSERVABILITY_CONFIG__EXPORTER_ENDPOINT=`` as unset."""
        return _blank_to_none(v)


class UpstreamConfig(BaseModel):
    """ANAF web service endpoints and transport options."""

    company_base_url: str = Field(
        default=COMPANY_API_BASE_URL,
        description="Base URL of the versioned VAT payer registry API",
    )
    company_versions: list[str] = Field(
        default_factory=lambda: list(COMPANY_API_VERSIONS),
        min_length=1,
        description="API versions to try, in order",
    )
    efactura_url: str = Field(
        default=EFACTURA_API_URL,
        description="e-Factura registry query endpoint",
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        le=300,
        description="Timeout for a single upstream call",
    )
    verify_tls: bool = Field(
        default=False,
        description="Verify the upstream TLS certificate",
    )
    user_agent: str = Field(
        default=BROWSER_USER_AGENT,
        description="User-Agent sent upstream",
    )

    @field_validator("company_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so version paths join cleanly."""
        return v.rstrip("/")


class RetryConfig(BaseModel):
    """Backoff policy for upstream calls."""

    retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries after the first attempt",
    )
    initial_delay_ms: float = Field(
        default=2000,
        ge=0,
        description="Wait before the first retry (milliseconds)",
    )
    max_delay_ms: float = Field(
        default=10000,
        ge=0,
        description="Upper bound for any single wait (milliseconds)",
    )
    multiplier: float = Field(
        default=1.5,
        ge=1.0,
        description="Growth factor applied to the wait after each retry",
    )
    jitter_ms: float = Field(
        default=1000,
        ge=0,
        description="Upper bound of the uniform random jitter (milliseconds)",
    )

    @model_validator(mode="after")
    def check_delay_bounds(self) -> "RetryConfig":
        """Ensure the initial delay never exceeds the cap."""
        if self.initial_delay_ms > self.max_delay_ms:
            msg = "initial_delay_ms must not exceed max_delay_ms"
            raise ValueError(msg)
        return self


class Settings(BaseSettings):
    """Every setting of the proxy."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        validate_default=True,
    )

    app_name: str = Field(default="ANAF Proxy", description="Service name in logs and docs")
    app_version: str = Field(default="1.0.0", description="Service version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment stage; selects logging and tracing defaults",
    )
    debug: bool = Field(default=False, description="Enable uvicorn reload and tracebacks")

    api_host: str = Field(default="0.0.0.0", description="Bind address")  # noqa: S104
    api_port: int = Field(default=3000, description="Bind port, unless PORT is set")
    docs_url: str | None = Field(default="/docs", description="Swagger UI path")
    redoc_url: str | None = Field(default=None, description="ReDoc path")
    openapi_url: str | None = Field(
        default="/openapi.json", description="OpenAPI document path"
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed by the CORS middleware",
    )

    log_config: LogConfig = Field(default_factory=LogConfig)
    observability_config: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig
    )
    upstream_config: UpstreamConfig = Field(default_factory=UpstreamConfig)
    retry_config: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator("docs_url", "redoc_url", "openapi_url", mode="before")
    @classmethod
    def blank_url_disables(cls, v: str | None) -> str | None:
        """An empty path turns the corresponding page off."""
        return _blank_to_none(v)

    def model_post_init(self, __context: object) -> None:
        """Fill in the defaults that depend on the environment."""
        super().model_post_init(__context)

        if self.log_config.log_formatter_type is None:
            self.log_config.log_formatter_type = self._default_formatter()

        if (
            self.environment == "production"
            and self.observability_config.exporter_type == "console"
        ):
            self.observability_config.exporter_type = "otlp"

    def _default_formatter(self) -> FormatterType:
        if os.getenv("K_SERVICE"):  # Cloud Run
            return "gcp"
        if os.getenv("AWS_EXECUTION_ENV"):  # Lambda, ECS
            return "aws"
        return "console" if self.environment == "development" else "json"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, built on first use."""
    return Settings()
