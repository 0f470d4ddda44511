"""Application factory for the ANAF proxy.

``create_app`` wires logging, tracing, exception handlers, middleware and the
lookup routes. The routes are mounted twice: at the root and under the
``/api`` prefix older frontends call.

Starlette runs middleware in reverse order of registration, so the stack seen
by a request is CORS, then request context, then request logging.
"""

from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from src.api.constants import LEGACY_API_PREFIX
from src.api.middleware.error_handler import register_exception_handlers
from src.api.middleware.request_context import RequestContextMiddleware
from src.api.middleware.request_logging import RequestLoggingMiddleware
from src.api.routes import router
from src.api.utils.responses import ORJSONResponse
from src.core.config import Settings, get_settings
from src.core.constants import CORRELATION_ID_HEADER, REQUEST_ID_HEADER
from src.core.logging import setup_logging
from src.core.observability import instrument_app, setup_tracing


def _upstream_lifespan(
    settings: Settings,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Build a lifespan that announces which upstream the proxy talks to."""

    @asynccontextmanager
    async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
        upstream = settings.upstream_config
        logger.info(
            "{} v{} ready",
            app_instance.title,
            app_instance.version,
            company_versions=",".join(upstream.company_versions),
            efactura_url=upstream.efactura_url,
            retries=settings.retry_config.retries,
        )
        yield
        logger.info("{} stopped", app_instance.title)

    return lifespan


def _add_middleware(application: FastAPI, settings: Settings) -> None:
    """Register middleware innermost first."""
    application.add_middleware(RequestLoggingMiddleware, log_config=settings.log_config)
    application.add_middleware(RequestContextMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[CORRELATION_ID_HEADER, REQUEST_ID_HEADER],
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the proxy application.

    Args:
        settings: Settings to use; defaults to ``get_settings()``.

    Returns:
        FastAPI: The wired application.
    """
    settings = settings or get_settings()

    setup_logging(settings)
    setup_tracing(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        default_response_class=ORJSONResponse,
        lifespan=_upstream_lifespan(settings),
    )

    register_exception_handlers(application)
    _add_middleware(application, settings)

    application.include_router(router)
    application.include_router(
        router, prefix=LEGACY_API_PREFIX, include_in_schema=False
    )

    instrument_app(application, settings)

    return application


app = create_app()
