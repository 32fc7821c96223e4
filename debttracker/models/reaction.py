"""Inbound reaction event model."""

from typing import Optional

from pydantic import BaseModel

from debttracker.models.common import ReactionOutcome


class ReactionEvent(BaseModel):
    """A reaction added to a chat message, as delivered by the platform.

    ``message_user_id`` is the author of the reacted-to message and
    ``from_user_id`` is the transport id of the user who reacted.
    """

    reaction: str
    from_user_id: str
    message_user_id: str
    message_text: Optional[str] = None
    channel: str = ""
    message_id: str = ""


class ReactionResponse(BaseModel):
    """Response for POST /api/reactions."""
    outcome: ReactionOutcome
