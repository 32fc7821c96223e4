"""Common enums, shared types, and utilities for debt tracker models."""

from enum import StrEnum
from typing import Annotated, Any

from bson import ObjectId
from pydantic import BeforeValidator, PlainSerializer


def _validate_object_id(value: Any) -> str:
    """Validate and convert ObjectId or string to string representation."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, str):
        return value
    raise ValueError(f"Invalid ObjectId value: {value}")


# Annotated type for MongoDB ObjectId fields.
# Accepts ObjectId or string on input, always serializes as string.
PyObjectId = Annotated[
    str,
    BeforeValidator(_validate_object_id),
    PlainSerializer(lambda v: str(v), return_type=str),
]


class MatchOutcome(StrEnum):
    """Result of looking for an order id in a message text."""
    MATCHED = "MATCHED"
    NO_MATCH = "NO_MATCH"
    MALFORMED = "MALFORMED"


class TimezoneStatus(StrEnum):
    """Result of resolving a user's timezone name."""
    RESOLVED = "RESOLVED"
    UNSET = "UNSET"
    INVALID = "INVALID"


class ReactionOutcome(StrEnum):
    """What the reaction dispatcher did with an inbound reaction."""
    IGNORED = "IGNORED"
    MARKED_PAID = "MARKED_PAID"
    NO_MATCHING_DEBT = "NO_MATCHING_DEBT"
    CANCELLED = "CANCELLED"
    NOTHING_TO_CANCEL = "NOTHING_TO_CANCEL"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    FAILED = "FAILED"
