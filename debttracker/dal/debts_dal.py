"""Debt Data Access Layer -- MongoDB operations for the debts collection.

Every backend failure surfaces as StoreError. Removing a debt that is
already gone is not an error: the reminder worker and reaction handling
race on the same documents.
"""

import logging
from datetime import datetime

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError, PyMongoError

from debttracker.exceptions import DuplicateDebtError, StoreError
from debttracker.models.debt import Debt

logger = logging.getLogger("debttracker.dal.debts")

COLLECTION = "debts"


class DebtDAL:
    """Data access layer for the debts collection."""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db[COLLECTION]

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create(self, debt: Debt) -> Debt:
        """Insert a new debt document.

        Args:
            debt: A Debt model instance (id may be None).

        Returns:
            The Debt with its ``id`` populated.

        Raises:
            DuplicateDebtError: The borrower already owes for this order.
            StoreError: The insert failed.
        """
        try:
            result = await self._collection.insert_one(debt.to_mongo_dict())
        except DuplicateKeyError as e:
            raise DuplicateDebtError(debt.order_id, debt.borrower_id) from e
        except PyMongoError as e:
            raise StoreError(f"insert debt for order {debt.order_id}: {e}") from e
        debt.id = str(result.inserted_id)
        logger.info(
            "Created debt %s in order %s (%s owes %s to %s)",
            debt.id,
            debt.order_id,
            debt.borrower_id,
            debt.amount,
            debt.lender_id,
        )
        return debt

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def list_for_order(self, order_id: str) -> list[Debt]:
        """List all debts of an order in insertion order.

        ObjectIds are monotonic, so sorting on ``_id`` keeps the order in
        which the debts were created. Documents that do not decode as a
        Debt are logged and skipped; removing the order still deletes them.
        """
        debts: list[Debt] = []
        try:
            cursor = self._collection.find({"order_id": order_id}).sort("_id", 1)
            async for doc in cursor:
                doc["_id"] = str(doc["_id"])
                try:
                    debts.append(Debt(**doc))
                except ValidationError as e:
                    logger.error(
                        "Skipping unreadable debt %s in order %s: %s", doc["_id"], order_id, str(e)
                    )
        except PyMongoError as e:
            raise StoreError(f"list debts for order {order_id}: {e}") from e
        return debts

    async def list_open_orders(self) -> dict[str, datetime]:
        """Map every order with outstanding debts to its oldest debt's creation time."""
        orders: dict[str, datetime] = {}
        try:
            cursor = self._collection.find({}, {"order_id": 1, "created_at": 1}).sort("_id", 1)
            async for doc in cursor:
                started = doc.get("created_at")
                if doc.get("order_id") and isinstance(started, datetime):
                    orders.setdefault(doc["order_id"], started)
        except PyMongoError as e:
            raise StoreError(f"list open orders: {e}") from e
        return orders

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def remove(self, order_id: str, debt_id: str) -> bool:
        """Remove one debt of an order.

        Returns:
            True if a document was deleted, False if it was already gone.
        """
        if not ObjectId.is_valid(debt_id):
            return False
        try:
            result = await self._collection.delete_one(
                {"_id": ObjectId(debt_id), "order_id": order_id}
            )
        except PyMongoError as e:
            raise StoreError(f"remove debt {debt_id} in order {order_id}: {e}") from e
        if result.deleted_count == 0:
            logger.info("Debt %s in order %s was already removed", debt_id, order_id)
            return False
        logger.info("Removed debt %s in order %s", debt_id, order_id)
        return True

    async def remove_all_for_order(self, order_id: str) -> int:
        """Remove every debt of an order in one atomic delete.

        Returns:
            The number of debts removed by this call.
        """
        try:
            result = await self._collection.delete_many({"order_id": order_id})
        except PyMongoError as e:
            raise StoreError(f"remove debts for order {order_id}: {e}") from e
        if result.deleted_count > 0:
            logger.info("Removed %d debts in order %s", result.deleted_count, order_id)
        return result.deleted_count
