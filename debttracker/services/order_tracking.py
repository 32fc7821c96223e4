"""Order tracking -- turns a finished rate split into debts and reminders.

The rate split itself happens upstream; this service receives the amount
each participant owes, records a debt for everyone except the lender and
starts the order's reminder worker.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from pydantic import ValidationError

from debttracker.exceptions import DebtTrackerError, UserLookupError
from debttracker.models.debt import Debt
from debttracker.services.collaborators import Notifier, UserDirectory
from debttracker.services.debt_ledger import DebtLedger
from debttracker.services.messages import format_message
from debttracker.services.tracking_config import TrackingConfig
from debttracker.tasks.debt_reminders import ReminderRegistry

logger = logging.getLogger("debttracker.services.order_tracking")


@dataclass
class TrackingResult:
    """What happened when an order was submitted for tracking."""
    lender_found: bool = True
    created: list[Debt] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    worker_started: bool = False


class OrderTrackingService:
    """Creates the debts of an order and starts reminding its borrowers."""

    def __init__(
        self,
        ledger: DebtLedger,
        users: UserDirectory,
        notifier: Notifier,
        config: TrackingConfig,
        registry: ReminderRegistry,
    ) -> None:
        self._ledger = ledger
        self._users = users
        self._notifier = notifier
        self._config = config
        self._registry = registry

    async def track_order(
        self,
        order_id: str,
        lender_id: str,
        amounts: dict[str, Decimal],
        initiated_transport: str,
        message_id: str = "",
    ) -> TrackingResult:
        """Record the debts of an order and start its reminder worker.

        Args:
            order_id: The order's identifier.
            lender_id: User id of the participant who paid for the order.
            amounts: Amount owed per participant user id; the lender's own
                share, if present, is ignored.
            initiated_transport: Channel the order was announced in.
            message_id: The rates message the debts refer to.

        Returns:
            A TrackingResult listing created debts and skipped user ids.
        """
        result = TrackingResult()

        try:
            lender = await self._users.get_user(lender_id)
        except UserLookupError as e:
            logger.warning("Not tracking order %s: %s", order_id, str(e))
            await self._notifier.send(
                initiated_transport,
                format_message("HOST_NOT_FOUND", lender_id=lender_id, order_id=order_id),
                "",
                message_id,
            )
            result.lender_found = False
            result.skipped = [user_id for user_id in amounts if user_id != lender_id]
            return result

        await self._notifier.send(
            initiated_transport,
            format_message(
                "TRACKING_STARTED",
                paid_reaction=self._config.mark_paid_reaction,
                cancel_reaction=self._config.host_cancel_reaction,
                lender=lender.transport_id,
                order_id=order_id,
            ),
            "",
            message_id,
        )

        for user_id, amount in amounts.items():
            if user_id == lender_id:
                continue

            try:
                borrower = await self._users.get_user(user_id)
            except UserLookupError:
                await self._notifier.send(
                    initiated_transport,
                    format_message("BORROWER_NOT_FOUND", user_id=user_id),
                    "",
                    message_id,
                )
                result.skipped.append(user_id)
                continue

            try:
                debt = await self._ledger.create_debt(
                    amount, order_id, initiated_transport, message_id, borrower, lender
                )
            except (DebtTrackerError, ValidationError) as e:
                logger.error("Error creating debt for user %r in order %r: %s", user_id, order_id, str(e))
                result.skipped.append(user_id)
                continue
            result.created.append(debt)

        if result.created:
            result.worker_started = self._registry.start(order_id)
        return result
