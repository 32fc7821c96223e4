"""Pydantic models for the debt tracker."""

from debttracker.models.common import (
    MatchOutcome,
    PyObjectId,
    ReactionOutcome,
    TimezoneStatus,
)
from debttracker.models.debt import Debt, DebtResponse
from debttracker.models.reaction import ReactionEvent, ReactionResponse
from debttracker.models.user import User, UserUpdate

__all__ = [
    # Enums and types
    "MatchOutcome",
    "PyObjectId",
    "ReactionOutcome",
    "TimezoneStatus",
    # Debt models
    "Debt",
    "DebtResponse",
    # Reaction models
    "ReactionEvent",
    "ReactionResponse",
    # User models
    "User",
    "UserUpdate",
]
