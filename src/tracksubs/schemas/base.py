"""Tagged action results shared by every procedure.

Every operation answers with one shape:
- ``{"status": "SUCCESS", "data": ...}`` when it succeeds
- ``{"status": "ERROR", "message": ..., "code": ...}`` when it fails

Failures never escape as raw exceptions past the HTTP boundary.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from tracksubs.core.exceptions import InvalidInputError

# Type variable for generic data payload
T = TypeVar("T")
SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ActionStatus(str, Enum):
    """Discriminator of an action result."""

    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class ActionResponse(BaseModel, Generic[T]):
    """Tagged result of a core operation.

    Usage:
        ActionResponse[SubscriptionResponse].success(subscription)
        ActionResponse.error("ALREADY_ADDED", code="TS6001")
    """

    model_config = ConfigDict(extra="forbid")

    status: ActionStatus = Field(
        ...,
        description="SUCCESS or ERROR",
    )
    data: T | None = Field(
        default=None,
        description="Response payload, present on SUCCESS",
    )
    message: str | None = Field(
        default=None,
        description="Short reason or generic message, present on ERROR",
    )
    code: str | None = Field(
        default=None,
        description="Machine-readable error code (e.g., TS5002)",
    )

    @classmethod
    def success(cls, data: T) -> ActionResponse[T]:
        """Build the SUCCESS variant."""
        return cls(status=ActionStatus.SUCCESS, data=data)

    @classmethod
    def error(cls, message: str, code: str | None = None) -> ActionResponse[T]:
        """Build the ERROR variant."""
        return cls(status=ActionStatus.ERROR, message=message, code=code)


class IdResponse(BaseModel):
    """Payload for operations that only report the affected id."""

    id: str = Field(
        ...,
        description="Affected resource ID",
    )


def parse_payload(schema: type[SchemaT], fields: SchemaT | Mapping[str, Any]) -> SchemaT:
    """Validate an untyped payload against ``schema``.

    Raises:
        InvalidInputError: Describing the first failing field.
    """
    if isinstance(fields, schema):
        return fields
    try:
        return schema.model_validate(fields)
    except PydanticValidationError as exc:
        errors = exc.errors()
        field = ".".join(str(part) for part in errors[0]["loc"]) or None
        raise InvalidInputError(
            errors[0]["msg"],
            field=field,
            details={"errors": len(errors)},
        ) from exc
