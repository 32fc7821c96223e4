"""Debt ledger -- the single source of truth for who owes what per order.

Orders have exactly one lender (the host). The host is never stored on
its own: it is the lender named by the order's remaining debts.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from debttracker.exceptions import DuplicateDebtError, MultipleLendersError, UserLookupError
from debttracker.models.debt import Debt
from debttracker.models.user import User
from debttracker.services.collaborators import DebtStore, Notifier, UserDirectory
from debttracker.services.messages import format_message

logger = logging.getLogger("debttracker.services.debt_ledger")

TIMEOUT_REASON = "timeout reached"
HOST_CANCEL_REASON = "host requested cancellation"


class DebtLedger:
    """Creates, lists and removes debts. Store failures raise StoreError."""

    def __init__(
        self,
        store: DebtStore,
        users: UserDirectory,
        notifier: Notifier,
    ) -> None:
        self._store = store
        self._users = users
        self._notifier = notifier

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_debt(
        self,
        amount: Decimal,
        order_id: str,
        initiated_transport: str,
        message_id: str,
        borrower: User,
        lender: User,
    ) -> Debt:
        """Record that ``borrower`` owes ``amount`` to ``lender`` for an order.

        Raises:
            pydantic.ValidationError: Non-positive amount or self-debt.
            MultipleLendersError: The order already has another lender.
            DuplicateDebtError: The borrower already owes for this order.
            StoreError: The debt could not be persisted.
        """
        debt = Debt(
            order_id=order_id,
            borrower_id=borrower.id,
            lender_id=lender.id,
            amount=amount,
            message_id=message_id,
            initiated_transport=initiated_transport,
        )

        for existing in await self._store.list_for_order(order_id):
            if existing.lender_id != lender.id:
                raise MultipleLendersError(order_id, existing.lender_id, lender.id)
            if existing.borrower_id == borrower.id:
                raise DuplicateDebtError(order_id, borrower.id)

        return await self._store.create(debt)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def list_debts_for_order(self, order_id: str) -> list[Debt]:
        """Debts of an order in creation order, empty when none are left."""
        return await self._store.list_for_order(order_id)

    async def host_for_order(self, order_id: str) -> Optional[str]:
        """Lender id of the order, or None if the order has no debts."""
        debts = await self._store.list_for_order(order_id)
        if not debts:
            return None
        return debts[0].lender_id

    async def list_open_orders(self) -> dict[str, datetime]:
        """Orders that still have debts, mapped to when tracking started (UTC)."""
        orders = await self._store.list_open_orders()
        return {
            order_id: started if started.tzinfo else started.replace(tzinfo=timezone.utc)
            for order_id, started in orders.items()
        }

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def remove_debt(self, order_id: str, debt_id: str) -> bool:
        """Remove one debt. Returns False if it was already removed."""
        return await self._store.remove(order_id, debt_id)

    async def cancel_order(self, order_id: str, reason: str) -> bool:
        """Remove every debt of an order and tell the lender why.

        Concurrent cancellations of the same order converge: the removal is
        a single delete, and only the call that actually removed debts
        notifies the lender.

        Returns:
            True if this call removed the order's debts.
        """
        debts = await self._store.list_for_order(order_id)
        if not debts:
            return False

        removed = await self._store.remove_all_for_order(order_id)
        if removed == 0:
            logger.info("Order %s was already cancelled", order_id)
            return False

        logger.info("Cancelled order %s (%d debts): %s", order_id, removed, reason)
        await self._notify_lender(
            debts[0],
            format_message("ORDER_CANCELLED", order_id=order_id, reason=reason),
        )
        return True

    async def _notify_lender(self, debt: Debt, text: str) -> None:
        """Message the lender, falling back to the thread the order started in."""
        try:
            lender = await self._users.get_user(debt.lender_id)
        except UserLookupError as e:
            logger.warning("Cannot notify lender of order %s directly: %s", debt.order_id, str(e))
            if debt.initiated_transport:
                await self._notifier.send(debt.initiated_transport, text, "", debt.message_id)
            return
        await self._notifier.send(lender.transport_id, text)
