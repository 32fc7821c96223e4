"""Data Access Layer -- MongoDB repository classes and connection management."""

from debttracker.dal.database import (
    connect_to_mongo,
    close_mongo_connection,
    ensure_indexes,
    get_database,
)
from debttracker.dal.debts_dal import DebtDAL
from debttracker.dal.users_dal import UserDAL

__all__ = [
    # Connection management
    "connect_to_mongo",
    "close_mongo_connection",
    "ensure_indexes",
    "get_database",
    # DAL classes
    "DebtDAL",
    "UserDAL",
]
