"""User directory route handlers.

Endpoints:
    PUT /api/users/{user_id} -- Create or replace a user profile.
    GET /api/users/{user_id} -- Get a user profile.
"""

import logging

from fastapi import APIRouter, HTTPException, Path, status

from debttracker.dal.database import get_database
from debttracker.dal.users_dal import UserDAL
from debttracker.exceptions import StoreError, UserLookupError
from debttracker.models.common import TimezoneStatus
from debttracker.models.user import User, UserUpdate
from debttracker.services.timekeeping import resolve_timezone

logger = logging.getLogger("debttracker.routes.users")

router = APIRouter(prefix="/users", tags=["Users"])


@router.put(
    "/{user_id}",
    response_model=User,
    summary="Create or replace a user profile",
)
async def put_user(
    body: UserUpdate,
    user_id: str = Path(..., min_length=1),
) -> User:
    """Save the chat identity and timezone of a user."""
    if resolve_timezone(body.timezone).status == TimezoneStatus.INVALID:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown timezone {body.timezone!r}",
        )

    user = User(
        id=user_id,
        full_name=body.full_name,
        transport_id=body.transport_id,
        timezone=body.timezone,
    )
    try:
        return await UserDAL(get_database()).upsert(user)
    except StoreError as e:
        logger.error("Error saving user %s: %s", user_id, str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="User store unavailable",
        )


@router.get(
    "/{user_id}",
    response_model=User,
    summary="Get a user profile",
)
async def get_user(user_id: str = Path(..., min_length=1)) -> User:
    try:
        return await UserDAL(get_database()).get_user(user_id)
    except UserLookupError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
