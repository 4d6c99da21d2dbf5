"""Pydantic schema models documenting API responses."""
