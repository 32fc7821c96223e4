"""MongoDB database connection management using Motor async driver.

Includes connection lifecycle and index management for the debts and
users collections.
"""

import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING

from debttracker.config import settings

logger = logging.getLogger("debttracker.dal.database")

# Global database client and database instances
_client: AsyncIOMotorClient | None = None
_database: AsyncIOMotorDatabase | None = None


async def connect_to_mongo() -> None:
    """Establish connection to MongoDB.

    Called during FastAPI application startup.
    """
    global _client, _database

    _client = AsyncIOMotorClient(
        settings.MONGO_URL,
        serverSelectionTimeoutMS=5000  # 5 second timeout
    )
    _database = _client[settings.DATABASE_NAME]

    # Verify connection by pinging the database
    await _client.admin.command("ping")
    logger.info("Connected to MongoDB: %s", settings.DATABASE_NAME)


async def close_mongo_connection() -> None:
    """Close MongoDB connection.

    Called during FastAPI application shutdown.
    """
    global _client, _database

    if _client:
        _client.close()
        logger.info("Closed MongoDB connection")
    _client = None
    _database = None


def get_database() -> AsyncIOMotorDatabase:
    """Get the MongoDB database instance.

    Returns:
        AsyncIOMotorDatabase: The database instance.

    Raises:
        RuntimeError: If database is not initialized.
    """
    if _database is None:
        raise RuntimeError(
            "Database not initialized. Call connect_to_mongo() first."
        )
    return _database


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create the indexes used by the debt tracker.

    This is idempotent -- MongoDB silently ignores indexes that already exist.

    Args:
        db: The Motor database instance to create indexes on.
    """
    logger.info("Ensuring indexes for all collections...")

    debts = db.debts

    # 1. Per-order listing in insertion order.
    await debts.create_index(
        [("order_id", ASCENDING), ("_id", ASCENDING)],
        name="idx_order_inserted",
    )

    # 2. A borrower owes at most one debt per order.
    await debts.create_index(
        [("order_id", ASCENDING), ("borrower_id", ASCENDING)],
        unique=True,
        name="uq_order_borrower",
    )

    # Users are keyed by their internal id (_id), nothing else to index
    # beyond the transport id lookups done by the platform integration.
    await db.users.create_index(
        [("transport_id", ASCENDING)],
        name="idx_transport_id",
    )

    logger.info("All indexes ensured successfully.")
