"""Helpers shared by unit and integration tests."""

from typing import Any


def events(records: list[dict[str, Any]], name: str) -> list[dict[str, Any]]:
    """Records whose ``event`` extra equals ``name``."""
    return [record for record in records if record["extra"].get("event") == name]


def messages(records: list[dict[str, Any]]) -> list[str]:
    """Messages of the captured records."""
    return [record["message"] for record in records]
