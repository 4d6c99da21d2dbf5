"""Error response schema for OpenAPI documentation.

The body itself is produced by ``ErrorRecord.to_dict()``; this model mirrors
it so that route declarations can advertise the shape via ``responses=``.
"""

from pydantic import BaseModel, Field

from plinth.core.exceptions import ExceptionKind


class ErrorResponse(BaseModel):
    """Body returned for every failed request."""

    status: int = Field(..., description="HTTP status code", examples=[404])
    message: str = Field(
        ...,
        description="Summary derived from the status and target",
        examples=["not found error(s) in 42"],
    )
    code: str = Field(
        ...,
        description="Symbolic name of the HTTP status",
        examples=["NOT_FOUND"],
    )
    target: list[str] = Field(
        default_factory=list,
        description="Field names implicated in the failure",
        examples=[["42"]],
    )
    timestamp: str = Field(
        ...,
        description="ISO-8601 instant the error was recorded",
        examples=["2024-06-14T12:00:00.000Z"],
    )
    type: ExceptionKind = Field(
        ...,
        description="Domain error category",
        examples=[ExceptionKind.NOT_FOUND],
    )
    detail: str = Field(
        default="",
        description="Explanation from the raising site",
        examples=["User with identifier 42 not found"],
    )
