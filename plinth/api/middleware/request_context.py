"""Request context middleware for log correlation.

Every request gets a fresh correlation ID, stored in a context variable and
bound to Loguru for the request's lifetime, so the request's incoming event,
its terminal event and any nested log line share it. Client-supplied IDs are
ignored. The ID is echoed in the ``X-Correlation-ID`` response header.
"""

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from plinth.api.constants import CORRELATION_ID_HEADER
from plinth.core.context import RequestContext, generate_correlation_id


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Allocates and scopes the per-request correlation ID."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process the request with context management.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: Response with correlation ID header.
        """
        correlation_id = generate_correlation_id()

        # The context is reset on exit so no ID outlives its request
        with (
            RequestContext.scope(correlation_id),
            logger.contextualize(correlation_id=correlation_id),
        ):
            response = await call_next(request)

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
