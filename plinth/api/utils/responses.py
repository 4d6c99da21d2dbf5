"""JSON response classes using orjson serialization.

``ORJSONResponse`` is the default response class of the application.
``ErrorRecordResponse`` keeps insertion order so error bodies always read
``status, message, code, target, timestamp, type, detail``.
"""

from typing import Any

import orjson
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ORJSONResponse(JSONResponse):
    """Response class using orjson with sorted keys for predictable output."""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:  # noqa: ANN401 - accepts any JSON-serializable content
        """Render the content as JSON using orjson.

        Args:
            content: The content to serialize to JSON.

        Returns:
            bytes: The JSON-encoded bytes.
        """
        if isinstance(content, BaseModel):
            content = content.model_dump(mode="json")

        return orjson.dumps(content, option=orjson.OPT_SORT_KEYS)


class ErrorRecordResponse(ORJSONResponse):
    """Error body response preserving the key order of the record."""

    def render(self, content: Any) -> bytes:  # noqa: ANN401
        return orjson.dumps(content)
