"""FastAPI middleware package for cross-cutting request/response concerns.

- **RequestContextMiddleware**: correlation and request IDs
- **RequestLoggingMiddleware**: request logging with timing
- **error_handler**: exception handlers rendering ``{error, details}`` bodies

CORS is handled by Starlette's ``CORSMiddleware``, registered outermost in
``src.api.main``.
"""
