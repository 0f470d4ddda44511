"""Pydantic schema models for API request/response validation.

- **errors**: the ``{error, details}`` body returned by every failure
- **lookup**: request body and success bodies of the lookup endpoints
"""
