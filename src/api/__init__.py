"""HTTP API layer built on FastAPI.

Key components:
- **main**: Application factory and lifecycle logging
- **routes**: The ``/company``, ``/efactura`` and ``/test`` endpoints
- **middleware**: Request context, request logging and exception handlers
- **schemas**: Pydantic models for bodies and error responses
- **utils**: orjson-backed response class

The API layer translates between HTTP and the lookup pipelines; it holds no
business rules of its own.
"""
