"""HTTP request/response logging.

Each request not matching an excluded path produces exactly two events sharing
its correlation ID:
- ``incoming``: method, path and the masked request body
- ``completed`` (status code and elapsed time) or ``failed`` (the masked
  error record, elapsed time and the stack trace, on the error channel)

Requests slower than the configured threshold also produce a warning.
The error boundary sits below this middleware and leaves the normalized
record on the request state, which selects the terminal event.
"""

import time

import orjson
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from plinth.api.constants import (
    ERROR_EXCEPTION_STATE,
    ERROR_RECORD_STATE,
    EVENT_COMPLETED,
    EVENT_FAILED,
    EVENT_INCOMING,
    JSON_CONTENT_TYPES,
    REQUEST_BODY_METHODS,
)
from plinth.core.config import LogConfig
from plinth.core.constants import MAX_LOGGED_BODY_LENGTH, MILLISECONDS_PER_SECOND
from plinth.core.context import RequestContext
from plinth.core.exceptions import ErrorRecord
from plinth.core.logging import get_logger
from plinth.core.types import JsonValue


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests and responses.

    Args:
        app: The ASGI application.
        log_config: Logging configuration.
    """

    def __init__(self, app: ASGIApp, *, log_config: LogConfig) -> None:
        super().__init__(app)
        self.log_config = log_config
        self.excluded_paths = tuple(path for path in log_config.excluded_paths if path)
        self.logger = get_logger("plinth.http")

    def is_excluded(self, path: str) -> bool:
        """Whether any excluded entry occurs in the path."""
        return any(excluded in path for excluded in self.excluded_paths)

    async def _read_body(self, request: Request) -> JsonValue:
        """Capture the request body for logging.

        JSON bodies are decoded so that masking reaches nested keys; other
        content is logged as truncated text.
        """
        if request.method not in REQUEST_BODY_METHODS:
            return None

        raw = await request.body()
        if not raw:
            return None

        content_type = request.headers.get("content-type", "").split(";")[0]
        if content_type.strip().lower() in JSON_CONTENT_TYPES:
            try:
                return orjson.loads(raw)  # type: ignore[no-any-return]
            except orjson.JSONDecodeError:
                pass

        text = raw[:MAX_LOGGED_BODY_LENGTH].decode("utf-8", errors="replace")
        if len(raw) > MAX_LOGGED_BODY_LENGTH:
            text += "..."
        return text

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process the request and log details.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: The response from the application.
        """
        path = request.url.path
        if self.is_excluded(path):
            return await call_next(request)

        method = request.method
        correlation_id = RequestContext.get_correlation_id()

        self.logger.log(
            "Incoming request",
            context={
                "event": EVENT_INCOMING,
                "method": method,
                "path": path,
                "body": await self._read_body(request),
                "correlation_id": correlation_id,
            },
        )

        start_time = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round(
            (time.perf_counter() - start_time) * MILLISECONDS_PER_SECOND, 2
        )

        record: ErrorRecord | None = getattr(request.state, ERROR_RECORD_STATE, None)
        if record is not None:
            self.logger.error(
                "Request failed",
                context={
                    "event": EVENT_FAILED,
                    "method": method,
                    "path": path,
                    "error": record.to_dict(),
                    "elapsed_ms": elapsed_ms,
                    "correlation_id": correlation_id,
                },
                exception=getattr(request.state, ERROR_EXCEPTION_STATE, None),
            )
        else:
            self.logger.log(
                "Request completed",
                context={
                    "event": EVENT_COMPLETED,
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "elapsed_ms": elapsed_ms,
                    "correlation_id": correlation_id,
                },
            )

        if elapsed_ms > self.log_config.slow_request_threshold_ms:
            self.logger.warn(
                "Slow request detected",
                context={
                    "method": method,
                    "path": path,
                    "elapsed_ms": elapsed_ms,
                    "threshold_ms": self.log_config.slow_request_threshold_ms,
                },
            )

        return response
