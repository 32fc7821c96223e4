"""Reaction dispatcher -- turns chat reactions into ledger changes.

Only two reactions on the bot's own messages mean anything:

* mark-paid: the reacting borrower's debt for the order is removed;
* host-cancel: the host stops tracking the whole order.

The order is identified by the order id embedded in the reacted-to message.
The platform must always receive a successful answer, otherwise it keeps
redelivering the event, so every failure is logged and reported to the
operator channel instead of raised.
"""

import logging

from debttracker.exceptions import OrderIdExtractionError, UserLookupError
from debttracker.models.common import MatchOutcome, ReactionOutcome
from debttracker.models.reaction import ReactionEvent
from debttracker.services.collaborators import Notifier, UserDirectory
from debttracker.services.debt_ledger import HOST_CANCEL_REASON, DebtLedger
from debttracker.services.messages import extract_order_id, format_message
from debttracker.services.tracking_config import TrackingConfig

logger = logging.getLogger("debttracker.services.reaction_dispatcher")


class ReactionDispatcher:
    """Stateless handler for inbound reaction events."""

    def __init__(
        self,
        ledger: DebtLedger,
        users: UserDirectory,
        notifier: Notifier,
        config: TrackingConfig,
    ) -> None:
        self._ledger = ledger
        self._users = users
        self._notifier = notifier
        self._config = config

    def _is_relevant(self, event: ReactionEvent) -> bool:
        # Reactions to any message are delivered, act only on the bot's own
        if not self._config.bot_user_id or event.message_user_id != self._config.bot_user_id:
            return False
        return event.reaction in (
            self._config.mark_paid_reaction,
            self._config.host_cancel_reaction,
        )

    async def handle_reaction(self, event: ReactionEvent) -> ReactionOutcome:
        """Apply a reaction event. Never raises."""
        if not self._is_relevant(event):
            return ReactionOutcome.IGNORED

        try:
            return await self._dispatch(event)
        except Exception as e:
            logger.exception(
                "Error handling :%s: reaction from %s", event.reaction, event.from_user_id
            )
            await self._report(
                f"Error handling :{event.reaction}: reaction from <@{event.from_user_id}>: {e}"
            )
            return ReactionOutcome.FAILED

    async def _report(self, text: str) -> None:
        if self._config.operator_channel:
            await self._notifier.send(self._config.operator_channel, text)

    async def _dispatch(self, event: ReactionEvent) -> ReactionOutcome:
        match = extract_order_id(event.message_text, self._config.order_id_pattern)
        if match.outcome == MatchOutcome.NO_MATCH:
            logger.info("Got reaction for a message without an order id, ignoring")
            return ReactionOutcome.IGNORED
        if match.outcome == MatchOutcome.MALFORMED:
            raise OrderIdExtractionError(match.detail)

        if event.reaction == self._config.mark_paid_reaction:
            return await self._mark_paid(match.order_id, event)
        return await self._host_cancel(match.order_id, event)

    # ------------------------------------------------------------------
    # Mark paid
    # ------------------------------------------------------------------

    async def _mark_paid(self, order_id: str, event: ReactionEvent) -> ReactionOutcome:
        """Remove the first debt of the order owed by the reacting user."""
        for debt in await self._ledger.list_debts_for_order(order_id):
            try:
                borrower = await self._users.get_user(debt.borrower_id)
            except UserLookupError as e:
                logger.warning("Skipping debt %s: %s", debt.id, str(e))
                continue
            if borrower.transport_id != event.from_user_id:
                continue

            if not await self._ledger.remove_debt(order_id, str(debt.id)):
                logger.info("Debt %s in order %s was removed concurrently", debt.id, order_id)
                return ReactionOutcome.NO_MATCHING_DEBT

            await self._notifier.send(
                borrower.transport_id,
                format_message("DEBT_REMOVED", order_id=order_id),
            )

            # Fall back to the thread of the original message if the lender is unknown
            recipient, thread = event.channel, debt.message_id
            try:
                lender = await self._users.get_user(debt.lender_id)
            except UserLookupError as e:
                logger.warning("Cannot notify lender of order %s directly: %s", order_id, str(e))
            else:
                recipient, thread = lender.transport_id, ""

            await self._notifier.send(
                recipient,
                format_message("MARKED_PAID", borrower=borrower.transport_id, order_id=order_id),
                "",
                thread,
            )
            logger.info("User %s marked debt %s in order %s as paid", borrower.id, debt.id, order_id)
            return ReactionOutcome.MARKED_PAID

        return ReactionOutcome.NO_MATCHING_DEBT

    # ------------------------------------------------------------------
    # Host cancel
    # ------------------------------------------------------------------

    async def _host_cancel(self, order_id: str, event: ReactionEvent) -> ReactionOutcome:
        host_id = await self._ledger.host_for_order(order_id)
        if host_id is None:
            return ReactionOutcome.NOTHING_TO_CANCEL

        host = await self._users.get_user(host_id)
        if host.transport_id != event.from_user_id:
            await self._notifier.send(
                event.from_user_id,
                format_message("HOST_ONLY", host=host.transport_id, order_id=order_id),
            )
            return ReactionOutcome.PERMISSION_DENIED

        if await self._ledger.cancel_order(order_id, HOST_CANCEL_REASON):
            return ReactionOutcome.CANCELLED
        return ReactionOutcome.NOTHING_TO_CANCEL
