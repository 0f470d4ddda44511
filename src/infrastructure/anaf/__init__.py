"""Client for the ANAF public web services.

Core components:
- **client**: request builder and per-call HTTPS transport
- **errors**: failure variants raised at the transport boundary
- **fallback**: ordered walk over API version candidates
- **retry**: bounded retry with exponential backoff and jitter
- **taxonomy**: mapping of upstream failures to caller-facing errors
- **service**: the company and e-Factura lookup pipelines
- **dependencies**: FastAPI dependency injection helpers
"""

from src.infrastructure.anaf.dependencies import LookupService, get_lookup_service
from src.infrastructure.anaf.retry import RetryPolicy
from src.infrastructure.anaf.service import AnafLookupService

__all__ = [
    "AnafLookupService",
    "LookupService",
    "RetryPolicy",
    "get_lookup_service",
]
