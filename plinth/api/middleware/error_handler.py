"""Global exception boundary for the FastAPI application.

Every failure that reaches the HTTP layer passes through ``handle_exception``:
- taxonomy exceptions keep the ``ErrorRecord`` they carry
- Starlette ``HTTPException`` keeps its status and detail
- ``RequestValidationError`` becomes a 400 ``VALIDATION`` error naming the
  offending fields
- anything else becomes a 500 ``INTERNAL_SERVER_ERROR``

The handler records the normalized record and the exception on the request
scope, where the request logging middleware picks them up for the "failed"
event, and writes the record as the response body. It never raises.

Framework errors reach it through Starlette's exception handlers; everything
else through ``ErrorBoundaryMiddleware``.
"""

from collections.abc import Sequence
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from starlette.exceptions import HTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from plinth.api.constants import ERROR_EXCEPTION_STATE, ERROR_RECORD_STATE
from plinth.api.utils.responses import ErrorRecordResponse
from plinth.core.exceptions import (
    ErrorRecord,
    ExceptionKind,
    PlinthError,
    kind_for_status,
    normalize_exception,
)


def _field_name(loc: Sequence[Any]) -> str:
    """Turn a validation error location into a field name.

    The leading ``body``/``query``/``path`` segment is dropped unless it is the
    only one.
    """
    parts = [str(part) for part in loc[1:] if part != "__root__"] or [
        str(part) for part in loc
    ]
    return ".".join(parts)


def to_error_record(exc: object) -> ErrorRecord:
    """Normalize any raised value, including framework errors.

    Args:
        exc: The raised value.

    Returns:
        ErrorRecord: Exactly one record.
    """
    if isinstance(exc, RequestValidationError):
        errors = exc.errors()
        fields = [_field_name(error.get("loc", ())) for error in errors]
        detail = "; ".join(
            f"{_field_name(error.get('loc', ()))}: {error.get('msg', 'Invalid value')}"
            for error in errors
        )
        return ErrorRecord.create(
            fields, HTTPStatus.BAD_REQUEST, ExceptionKind.VALIDATION, detail
        )

    if isinstance(exc, HTTPException):
        return ErrorRecord.create(
            [],
            exc.status_code,
            kind_for_status(exc.status_code),
            str(exc.detail) if exc.detail is not None else "",
        )

    return normalize_exception(exc)


async def handle_exception(request: Request, exc: Exception) -> Response:
    """Convert an exception into the error response.

    Args:
        request: The request that failed.
        exc: The exception to handle.

    Returns:
        Response: JSON body in the canonical error record shape.
    """
    record = to_error_record(exc)
    setattr(request.state, ERROR_RECORD_STATE, record)
    setattr(request.state, ERROR_EXCEPTION_STATE, exc)

    headers = exc.headers if isinstance(exc, HTTPException) else None
    return ErrorRecordResponse(
        status_code=record.status,
        content=record.to_dict(),
        headers=headers,
    )


class ErrorBoundaryMiddleware:
    """Turns exceptions escaping the routing layer into error responses.

    Registered as the innermost middleware, so ``BaseHTTPMiddleware`` layers
    above it only ever see responses. An exception raised after the response
    has started cannot be converted and is re-raised.

    Args:
        app: The ASGI application to wrap.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                raise
            response = await handle_exception(Request(scope), exc)
            await response(scope, receive, send)


def register_exception_handlers(app: FastAPI) -> None:
    """Register the boundary for taxonomy, HTTP and validation errors.

    Other exceptions propagate out of the routing layer and are converted by
    ``ErrorBoundaryMiddleware``.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(PlinthError, handle_exception)
    app.add_exception_handler(RequestValidationError, handle_exception)
    app.add_exception_handler(HTTPException, handle_exception)
