"""Closed exception taxonomy with a canonical error record.

This module defines every failure shape the application can return to a client.
Each exception variant is pre-bound to exactly one HTTP status and one
``ExceptionKind`` and, when constructed, builds exactly one ``ErrorRecord``
that travels with it as its payload.

Key components:
- **ExceptionKind**: Closed enumeration of domain error categories
- **ErrorRecord**: Immutable, normalized failure payload
- **PlinthError**: Base exception carrying an ``ErrorRecord``
- **Variants**: NotFound, Unauthorized, Forbidden, BadRequest, Conflict,
  UnprocessableEntity and DatabaseOperation errors
- **normalize_exception**: Total conversion of any raised value into a record

The record's ``code`` and ``message`` are always derived from its status and
target, never supplied by the raising site, so every error reads the same way.
Feature code adds its own exceptions by building a record with
``ErrorRecord.create`` and passing it to ``PlinthError``.
"""

import traceback
from collections.abc import Iterable
from datetime import UTC, datetime
from enum import Enum
from http import HTTPStatus
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from sqlalchemy.exc import StatementError

from plinth.core.constants import UNEXPECTED_ERROR_DETAIL, UNKNOWN_STATUS_CODE
from plinth.core.logging import get_logger


class ExceptionKind(Enum):
    """Domain error categories exposed in the ``type`` field of error responses."""

    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    UNIQUE_VIOLATION = "UNIQUE_VIOLATION"
    UNPROCESSABLE_ENTITY = "UNPROCESSABLE_ENTITY"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


# Names newer Python releases changed; clients rely on the established ones
_STATUS_NAME_OVERRIDES = {
    HTTPStatus.REQUEST_ENTITY_TOO_LARGE.value: "PAYLOAD_TOO_LARGE",
    HTTPStatus.REQUESTED_RANGE_NOT_SATISFIABLE.value: (
        "REQUESTED_RANGE_NOT_SATISFIABLE"
    ),
    HTTPStatus.UNPROCESSABLE_ENTITY.value: "UNPROCESSABLE_ENTITY",
}

_KIND_BY_STATUS = {
    HTTPStatus.BAD_REQUEST.value: ExceptionKind.BAD_REQUEST,
    HTTPStatus.UNAUTHORIZED.value: ExceptionKind.UNAUTHORIZED,
    HTTPStatus.FORBIDDEN.value: ExceptionKind.FORBIDDEN,
    HTTPStatus.NOT_FOUND.value: ExceptionKind.NOT_FOUND,
    HTTPStatus.CONFLICT.value: ExceptionKind.CONFLICT,
    HTTPStatus.UNPROCESSABLE_ENTITY.value: ExceptionKind.UNPROCESSABLE_ENTITY,
    HTTPStatus.INTERNAL_SERVER_ERROR.value: ExceptionKind.INTERNAL_SERVER_ERROR,
}


def status_code_name(status: int) -> str:
    """Return the symbolic name of an HTTP status code.

    Args:
        status: Numeric HTTP status.

    Returns:
        str: The status name (``404`` -> ``"NOT_FOUND"``), or ``"UNKNOWN"``.
    """
    if status in _STATUS_NAME_OVERRIDES:
        return _STATUS_NAME_OVERRIDES[status]
    try:
        return HTTPStatus(status).name
    except ValueError:
        return UNKNOWN_STATUS_CODE


def kind_for_status(status: int) -> ExceptionKind:
    """Pick the exception kind for a status that has no dedicated variant.

    Args:
        status: Numeric HTTP status.

    Returns:
        ExceptionKind: Exact match if known, else BAD_REQUEST for client errors
            and INTERNAL_SERVER_ERROR for everything from 500 upwards.
    """
    if status in _KIND_BY_STATUS:
        return _KIND_BY_STATUS[status]
    if status >= HTTPStatus.INTERNAL_SERVER_ERROR:
        return ExceptionKind.INTERNAL_SERVER_ERROR
    return ExceptionKind.BAD_REQUEST


class ErrorRecord(BaseModel):
    """Canonical, immutable shape every failure is normalized to."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    status: int = Field(..., description="HTTP status code")
    type: ExceptionKind = Field(..., description="Domain error category")
    target: tuple[str, ...] = Field(
        default=(),
        description="Field names implicated in the failure",
    )
    detail: str = Field(default="", description="Explanation from the raising site")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Record creation instant (UTC)",
    )

    @field_validator("target", mode="before")
    @classmethod
    def clean_target(cls, v: object) -> tuple[str, ...]:
        """Stringify entries, dropping blanks and repeated names."""
        if v is None:
            return ()
        if isinstance(v, str):
            v = [v]
        cleaned: list[str] = []
        for entry in v:  # type: ignore[attr-defined]
            name = str(entry)
            if name.strip() and name not in cleaned:
                cleaned.append(name)
        return tuple(cleaned)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def code(self) -> str:
        """Machine-readable label derived from the status."""
        return status_code_name(self.status)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def message(self) -> str:
        """Human summary derived from the status and target."""
        error_name = self.code.replace("_", " ").lower()
        if self.target:
            return f"{error_name} error(s) in {', '.join(self.target)}"
        return f"{error_name} error(s)"

    @classmethod
    def create(
        cls,
        target: Iterable[object],
        status: int,
        kind: ExceptionKind,
        detail: str = "",
    ) -> "ErrorRecord":
        """Build a record; the only way exception variants obtain one.

        Args:
            target: Field names implicated in the failure.
            status: HTTP status code.
            kind: Domain error category.
            detail: Free-text explanation.

        Returns:
            ErrorRecord: The new record.
        """
        target = target if isinstance(target, str) else tuple(target)
        return cls(status=status, type=kind, target=target, detail=detail)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire shape used in error response bodies.

        Returns:
            dict[str, Any]: Keys in response order with JSON-ready values.
        """
        return {
            "status": self.status,
            "message": self.message,
            "code": self.code,
            "target": list(self.target),
            "timestamp": self.timestamp.isoformat(timespec="milliseconds").replace(
                "+00:00", "Z"
            ),
            "type": self.type.value,
            "detail": self.detail,
        }


class PlinthError(Exception):
    """Base exception for all application errors.

    Args:
        record: The normalized error payload.
        cause: The original exception that caused this error.
    """

    def __init__(self, record: ErrorRecord, cause: BaseException | None = None) -> None:
        self.record = record
        super().__init__(record.detail or record.message)
        if cause is not None:
            self.__cause__ = cause

    @property
    def status(self) -> int:
        """HTTP status of the payload."""
        return self.record.status

    @property
    def kind(self) -> ExceptionKind:
        """Exception kind of the payload."""
        return self.record.type

    def __str__(self) -> str:
        return f"[{self.record.code}] {self.record.detail or self.record.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(status={self.record.status}, "
            f"type={self.record.type.value}, target={list(self.record.target)}, "
            f"detail='{self.record.detail}')"
        )


class NotFoundError(PlinthError):
    """A resource looked up by identifier does not exist.

    Args:
        resource: Resource name, e.g. ``"User"``.
        identifier: The identifier that was looked up.
    """

    def __init__(self, resource: str, identifier: object) -> None:
        super().__init__(
            ErrorRecord.create(
                [str(identifier)],
                HTTPStatus.NOT_FOUND,
                ExceptionKind.NOT_FOUND,
                f"{resource} with identifier {identifier} not found",
            )
        )


class UnauthorizedError(PlinthError):
    """The caller is not authenticated."""

    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(
            ErrorRecord.create(
                [], HTTPStatus.UNAUTHORIZED, ExceptionKind.UNAUTHORIZED, detail
            )
        )


class ForbiddenError(PlinthError):
    """The caller is authenticated but may not access the resource."""

    def __init__(self, resource: str) -> None:
        super().__init__(
            ErrorRecord.create(
                [],
                HTTPStatus.FORBIDDEN,
                ExceptionKind.FORBIDDEN,
                f"You do not have permission to access {resource}",
            )
        )


class BadRequestError(PlinthError):
    """Client input was rejected.

    The kind is chosen by the caller, typically ``VALIDATION`` or
    ``UNIQUE_VIOLATION``.

    Args:
        fields: Names of the offending fields.
        kind: Exception kind reported to the client.
        detail: Explanation of the rejection.
    """

    def __init__(
        self,
        fields: Iterable[str],
        kind: ExceptionKind,
        detail: str = "",
    ) -> None:
        super().__init__(
            ErrorRecord.create(fields, HTTPStatus.BAD_REQUEST, kind, detail)
        )


class ConflictError(PlinthError):
    """The request conflicts with the current state of a resource."""

    def __init__(self, fields: Iterable[str] = (), detail: str = "") -> None:
        super().__init__(
            ErrorRecord.create(
                fields, HTTPStatus.CONFLICT, ExceptionKind.CONFLICT, detail
            )
        )


class UnprocessableEntityError(PlinthError):
    """Well-formed input that violates a business rule."""

    def __init__(self, fields: Iterable[str] = (), detail: str = "") -> None:
        super().__init__(
            ErrorRecord.create(
                fields,
                HTTPStatus.UNPROCESSABLE_ENTITY,
                ExceptionKind.UNPROCESSABLE_ENTITY,
                detail,
            )
        )


class DatabaseOperationError(PlinthError):
    """A database call failed in a way the caller could not translate.

    The failure is logged when the exception is constructed, so it is recorded
    even if the exception is later discarded.

    Args:
        error: The driver or ORM error.
        operation_name: Name of the failed operation, e.g. ``"create"``.
    """

    def __init__(self, error: BaseException, operation_name: str) -> None:
        message = driver_message(error)
        super().__init__(
            ErrorRecord.create(
                [],
                HTTPStatus.INTERNAL_SERVER_ERROR,
                ExceptionKind.INTERNAL_SERVER_ERROR,
                message,
            ),
            cause=error,
        )
        self.operation_name = operation_name
        # Frames only: the error's own text may carry the statement and parameters
        trace = "".join(traceback.format_tb(error.__traceback__)) or None
        get_logger(__name__).error(
            f"Database operation {operation_name} failed: {message}",
            trace=trace,
            context={
                "operation": operation_name,
                "error_type": type(error).__name__,
                "error": self.record.to_dict(),
            },
        )


def driver_message(error: BaseException) -> str:
    """Describe a database error without its SQL statement or bound parameters.

    SQLAlchemy renders ``[SQL: ...]`` and ``[parameters: ...]`` into the text of
    statement errors, so only the wrapped driver error is used for those.

    Args:
        error: The driver or ORM error.

    Returns:
        str: The driver's message, or a fixed detail when it has none.
    """
    if isinstance(error, StatementError) and error.orig is not None:
        return str(error.orig) or type(error.orig).__name__
    return str(error) or UNEXPECTED_ERROR_DETAIL


def normalize_exception(value: object) -> ErrorRecord:
    """Convert any raised value into an ``ErrorRecord``.

    Records carried by taxonomy exceptions are returned verbatim. Any other
    exception becomes an internal server error whose detail is its message.
    Values that are not exceptions at all get a fixed detail.

    Args:
        value: The raised value.

    Returns:
        ErrorRecord: Exactly one record, never raising.
    """
    record = getattr(value, "record", None)
    if isinstance(record, ErrorRecord):
        return record

    detail = UNEXPECTED_ERROR_DETAIL
    if isinstance(value, BaseException):
        detail = str(value) or UNEXPECTED_ERROR_DETAIL

    return ErrorRecord.create(
        [],
        HTTPStatus.INTERNAL_SERVER_ERROR,
        ExceptionKind.INTERNAL_SERVER_ERROR,
        detail,
    )


class ConfigurationError(Exception):
    """Startup configuration is missing or invalid.

    Raised while assembling infrastructure; never returned to HTTP clients.
    """
