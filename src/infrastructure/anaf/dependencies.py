"""FastAPI dependency injection for the ANAF lookup service.

Route handlers declare ``LookupService`` and receive a service built from the
current settings. Tests replace it through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends

from src.core.config import get_settings
from src.infrastructure.anaf.client import AnafTransport
from src.infrastructure.anaf.retry import RetryPolicy
from src.infrastructure.anaf.service import AnafLookupService


def get_lookup_service() -> AnafLookupService:
    """Provide a lookup service configured from settings.

    The service holds no connections, so building one per request is cheap
    and keeps requests fully independent.

    Returns:
        AnafLookupService: A ready-to-use service.
    """
    settings = get_settings()
    return AnafLookupService(
        AnafTransport(),
        settings.upstream_config,
        RetryPolicy.from_config(settings.retry_config),
    )


# Type alias for cleaner dependency injection
LookupService = Annotated[AnafLookupService, Depends(get_lookup_service)]
