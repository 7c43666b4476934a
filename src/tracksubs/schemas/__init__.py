"""Pydantic schemas shared across API routes."""

from tracksubs.schemas.base import (
    ActionResponse,
    ActionStatus,
    IdResponse,
    parse_payload,
)

__all__ = [
    "ActionResponse",
    "ActionStatus",
    "IdResponse",
    "parse_payload",
]
