"""Interfaces of the collaborators the debt tracking core depends on.

The MongoDB DALs and the Slack notifier implement these; tests substitute
in-memory fakes.
"""

from datetime import datetime
from typing import Protocol

from debttracker.models.debt import Debt
from debttracker.models.user import User


class DebtStore(Protocol):
    """Durable storage of debts, queryable by order id."""

    async def create(self, debt: Debt) -> Debt: ...

    async def list_for_order(self, order_id: str) -> list[Debt]: ...

    async def list_open_orders(self) -> dict[str, datetime]: ...

    async def remove(self, order_id: str, debt_id: str) -> bool: ...

    async def remove_all_for_order(self, order_id: str) -> int: ...


class UserDirectory(Protocol):
    """Resolves internal user ids to profiles. Raises UserLookupError."""

    async def get_user(self, user_id: str) -> User: ...


class Notifier(Protocol):
    """Sends chat messages. Failures are logged by the notifier, never raised."""

    async def send(
        self,
        transport_id: str,
        text: str,
        reaction_hint: str = "",
        thread_message_id: str = "",
    ) -> None: ...
