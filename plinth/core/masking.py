"""Sensitive data masking for safe logging.

This module implements the redaction applied to every structured value before
it reaches a log sink: request bodies, error records and arbitrary log context.

Matching rules:
- A mapping key is sensitive when any configured field name occurs in it as a
  case-insensitive substring (``"userPassword"`` matches ``"password"``)
- The value of a sensitive key is replaced by the redaction marker whatever its
  type or nesting depth
- Sequences are masked element-wise, preserving order, length and type
- Pydantic models and dataclass instances are masked as mappings of their
  fields
- Scalars and ``None`` pass through unchanged

The transform is pure: inputs are never mutated and a new structure is returned.
Masking twice yields the same result as masking once, because the marker is a
plain string stored under a key that still matches. Inputs must be acyclic.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel

from plinth.core.constants import DEFAULT_SENSITIVE_FIELDS, MASKED


class Masker:
    """Recursive redaction of sensitive mapping keys.

    Args:
        sensitive_fields: Field-name substrings to redact. Blank entries are
            ignored.
        marker: Replacement value for sensitive entries.
    """

    def __init__(
        self,
        sensitive_fields: Iterable[str] = DEFAULT_SENSITIVE_FIELDS,
        marker: str = MASKED,
    ) -> None:
        self.sensitive_fields = tuple(
            field.strip().lower() for field in sensitive_fields if field.strip()
        )
        self.marker = marker

    def is_sensitive(self, key: object) -> bool:
        """Check if a mapping key names sensitive data.

        Args:
            key: The mapping key, compared through its string form.

        Returns:
            bool: True if any configured field occurs in the key.
        """
        key_lower = str(key).lower()
        return any(field in key_lower for field in self.sensitive_fields)

    def mask(self, value: Any) -> Any:  # noqa: ANN401 - arbitrary structured data
        """Return a masked copy of ``value``.

        Args:
            value: Mapping, sequence or scalar to mask.

        Returns:
            Any: A new structure with sensitive entries replaced.
        """
        if isinstance(value, Mapping):
            return {
                key: self.marker if self.is_sensitive(key) else self.mask(item)
                for key, item in value.items()
            }

        if isinstance(value, list):
            return [self.mask(item) for item in value]

        if isinstance(value, tuple):
            return tuple(self.mask(item) for item in value)

        if isinstance(value, (set, frozenset)):
            return [self.mask(item) for item in value]

        if isinstance(value, BaseModel):
            return self.mask(value.model_dump())

        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            fields = dataclasses.fields(value)
            return self.mask({field.name: getattr(value, field.name) for field in fields})

        return value


_default_masker = Masker()


def mask(value: Any, masker: Masker | None = None) -> Any:  # noqa: ANN401
    """Mask ``value`` with the given masker or the default field set.

    Args:
        value: Structured data to mask.
        masker: Masker to use. Defaults to the built-in sensitive fields.

    Returns:
        Any: The masked copy.
    """
    return (masker or _default_masker).mask(value)
