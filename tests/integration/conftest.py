"""Shared fixtures for integration tests.

The application is exercised through ``httpx.AsyncClient`` over
``ASGITransport``. The lookup service dependency is overridden with one that
talks to a scripted upstream and never sleeps between retries.
"""

from collections.abc import AsyncGenerator, Callable

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from src.api.main import create_app
from src.core.config import UpstreamConfig
from src.core.context import RequestContext
from src.infrastructure.anaf.client import AnafTransport
from src.infrastructure.anaf.dependencies import get_lookup_service
from src.infrastructure.anaf.retry import RetryPolicy
from src.infrastructure.anaf.service import AnafLookupService
from tests.upstream_stubs import RecordingUpstream, no_jitter, no_sleep


@pytest.fixture
def app() -> FastAPI:
    """A fresh application instance."""
    return create_app()


@pytest.fixture(autouse=True)
def clean_request_context() -> None:
    """Ensure no identifiers leak between tests."""
    RequestContext.clear()


@pytest.fixture
def use_upstream(app: FastAPI) -> Callable[[RecordingUpstream], RecordingUpstream]:
    """Route the app's lookups to a scripted upstream.

    Returns:
        Callable: Installs the given upstream and returns it for assertions.
    """

    def install(upstream: RecordingUpstream) -> RecordingUpstream:
        service = AnafLookupService(
            AnafTransport(upstream.transport()),
            UpstreamConfig(),
            RetryPolicy(),
            sleep=no_sleep,
            jitter=no_jitter,
        )
        app.dependency_overrides[get_lookup_service] = lambda: service
        return upstream

    return install


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client bound to the application."""
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as async_client:
        yield async_client
    app.dependency_overrides.clear()
