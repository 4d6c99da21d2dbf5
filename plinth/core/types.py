"""Type aliases for dynamic data structures throughout the application.

This module centralizes type definitions for data that cannot be statically
typed, providing clear semantic meaning for request bodies, log context and
configuration sources.

All types defined here should be JSON-serializable to support logging,
API responses, and persistence layers.
"""

from collections.abc import Mapping
from typing import Any

# JSON-compatible type that represents any valid JSON value
# Used for API responses, request bodies, and serialization
type JsonValue = (
    dict[str, "JsonValue"] | list["JsonValue"] | str | int | float | bool | None
)

# Context dictionary for logging additional information
# Values must be JSON-serializable for structured logging
type LogContext = dict[str, Any]

# Flat key/value view of environment variables, .env entries and secrets
type ConfigSource = Mapping[str, str]
