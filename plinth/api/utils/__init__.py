"""Utility modules for API-specific functionality.

- **responses**: JSON response classes using orjson
"""
