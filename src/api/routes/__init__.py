"""HTTP routes of the proxy."""

from src.api.routes.lookup import router

__all__ = ["router"]
