"""User directory model.

Maps the internal user id used on debts to the chat-platform identity
(transport id) and the user's timezone.
"""

from typing import Optional

from pydantic import BaseModel, Field


class User(BaseModel):
    """A chat participant that can lend or borrow."""

    model_config = {"populate_by_name": True}

    id: str = Field(alias="_id", min_length=1)
    full_name: str = ""
    transport_id: str = Field(min_length=1)
    timezone: Optional[str] = None

    def to_mongo_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="python")


class UserUpdate(BaseModel):
    """Request body for PUT /api/users/{user_id}."""
    full_name: str = ""
    transport_id: str = Field(..., min_length=1)
    timezone: Optional[str] = None
