"""User Data Access Layer -- the MongoDB-backed user directory."""

import logging

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from debttracker.exceptions import StoreError, UserLookupError
from debttracker.models.user import User

logger = logging.getLogger("debttracker.dal.users")

COLLECTION = "users"


class UserDAL:
    """Data access layer for the users collection."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db[COLLECTION]

    async def get_user(self, user_id: str) -> User:
        """Resolve a user by internal id.

        Raises:
            UserLookupError: The user is unknown or the lookup failed.
        """
        try:
            doc = await self._collection.find_one({"_id": user_id})
        except PyMongoError as e:
            raise UserLookupError(user_id, str(e)) from e
        if doc is None:
            raise UserLookupError(user_id)
        return User(**doc)

    async def upsert(self, user: User) -> User:
        """Insert or replace a user profile."""
        try:
            await self._collection.replace_one(
                {"_id": user.id}, user.to_mongo_dict(), upsert=True
            )
        except PyMongoError as e:
            raise StoreError(f"upsert user {user.id}: {e}") from e
        logger.info("Saved user %s (transport_id=%s)", user.id, user.transport_id)
        return user
