"""Utility modules for API-specific functionality.

- **responses**: orjson-backed default response class
"""
