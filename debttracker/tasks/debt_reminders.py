"""Background reminder workers, one per tracked order.

A worker wakes up every reminder interval, reminds each borrower that
still owes (outside their quiet hours), and stops once the order has no
debts left. If the order is still open when the maximum tracking duration
elapses, the worker cancels it.

Workers never hold debts between ticks: every tick re-reads the ledger, so
payments and host cancellations are picked up on the next wake-up.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from debttracker.exceptions import StoreError, UserLookupError
from debttracker.models.common import TimezoneStatus
from debttracker.models.debt import Debt
from debttracker.services.collaborators import Notifier, UserDirectory
from debttracker.services.debt_ledger import TIMEOUT_REASON, DebtLedger
from debttracker.services.messages import format_message
from debttracker.services.timekeeping import is_quiet_hour, localize, resolve_timezone
from debttracker.services.tracking_config import TrackingConfig

logger = logging.getLogger("debttracker.tasks.debt_reminders")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DebtReminderWorker:
    """Reminds the borrowers of one order until it is paid, cancelled or timed out."""

    def __init__(
        self,
        order_id: str,
        ledger: DebtLedger,
        users: UserDirectory,
        notifier: Notifier,
        config: TrackingConfig,
        clock: Clock = utc_now,
        maximum_duration: Optional[float] = None,
    ) -> None:
        self.order_id = order_id
        self._ledger = ledger
        self._users = users
        self._notifier = notifier
        self._config = config
        self._clock = clock
        self.maximum_duration = (
            config.maximum_duration if maximum_duration is None else maximum_duration
        )
        self.cycles = 0
        self.reminders_sent = 0
        self.timed_out = False

    async def run(self) -> None:
        """Tick until the order is settled or the deadline passes.

        Ticks are scheduled at fixed offsets from the start, so a slow tick
        never shifts later ones; a tick due exactly at the deadline still runs.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        interval = self._config.reminder_interval
        logger.info(
            "Reminder worker for order %s started (interval=%ss, duration=%ss)",
            self.order_id,
            interval,
            self.maximum_duration,
        )

        try:
            while True:
                next_tick = (self.cycles + 1) * interval
                if next_tick > self.maximum_duration:
                    await asyncio.sleep(max(0.0, started + self.maximum_duration - loop.time()))
                    await self._expire()
                    return

                await asyncio.sleep(max(0.0, started + next_tick - loop.time()))
                self.cycles += 1
                if not await self.remind_once():
                    logger.info("No debts left for order %s, reminder worker done", self.order_id)
                    return
        except asyncio.CancelledError:
            logger.info("Reminder worker for order %s stopped", self.order_id)

    async def remind_once(self) -> bool:
        """Run one reminder cycle.

        Returns:
            False when the order has no debts left, True otherwise (including
            when the ledger could not be read this time).
        """
        try:
            debts = await self._ledger.list_debts_for_order(self.order_id)
        except StoreError as e:
            logger.error("Error listing debts for order %s: %s", self.order_id, str(e))
            return True

        if not debts:
            return False

        lender_mention = await self._lender_mention(debts[0].lender_id)
        for debt in debts:
            try:
                if await self._remind(debt, lender_mention):
                    self.reminders_sent += 1
            except Exception as e:
                logger.error(
                    "Error reminding %s about debt %s in order %s: %s",
                    debt.borrower_id,
                    debt.id,
                    self.order_id,
                    str(e),
                )
        return True

    async def _lender_mention(self, lender_id: str) -> str:
        try:
            lender = await self._users.get_user(lender_id)
        except UserLookupError as e:
            logger.warning("Cannot resolve lender for reminders: %s", str(e))
            return lender_id
        return lender.transport_id

    async def _remind(self, debt: Debt, lender_mention: str) -> bool:
        """Remind one borrower. Returns False if skipped for quiet hours."""
        borrower = await self._users.get_user(debt.borrower_id)

        resolution = resolve_timezone(borrower.timezone)
        if resolution.status == TimezoneStatus.INVALID:
            logger.warning(
                "Invalid timezone %r for user %s, using the default: %s",
                borrower.timezone,
                borrower.id,
                resolution.detail,
            )
        local_now = localize(self._clock(), resolution, self._config.default_timezone)

        if is_quiet_hour(local_now.hour, self._config.quiet_hours_start, self._config.quiet_hours_end):
            logger.info(
                "Not reminding %r (%s) during quiet hours. Timezone at borrower: %s",
                borrower.full_name,
                borrower.id,
                borrower.timezone,
            )
            return False

        await self._notifier.send(
            borrower.transport_id,
            format_message(
                "REMINDER",
                amount=f"{debt.amount:.2f}",
                currency=self._config.currency,
                lender=lender_mention,
                order_id=debt.order_id,
                paid_reaction=self._config.mark_paid_reaction,
            ),
            reaction_hint=self._config.mark_paid_reaction,
        )
        return True

    async def _expire(self) -> None:
        self.timed_out = True
        try:
            await self._ledger.cancel_order(self.order_id, TIMEOUT_REASON)
        except StoreError as e:
            logger.error("Error cancelling timed out order %s: %s", self.order_id, str(e))


class ReminderRegistry:
    """Owns the running reminder workers, keyed by order id.

    At most one worker runs per order: starting an order that already has
    a live worker is refused.
    """

    def __init__(
        self,
        ledger: DebtLedger,
        users: UserDirectory,
        notifier: Notifier,
        config: TrackingConfig,
        clock: Clock = utc_now,
    ) -> None:
        self._ledger = ledger
        self._users = users
        self._notifier = notifier
        self._config = config
        self._clock = clock
        self._tasks: dict[str, asyncio.Task] = {}
        self._workers: dict[str, DebtReminderWorker] = {}

    def is_running(self, order_id: str) -> bool:
        task = self._tasks.get(order_id)
        return task is not None and not task.done()

    @property
    def active_orders(self) -> list[str]:
        return [order_id for order_id in self._tasks if self.is_running(order_id)]

    def get_worker(self, order_id: str) -> Optional[DebtReminderWorker]:
        """The running worker of an order, None once it has finished."""
        return self._workers.get(order_id)

    def start(self, order_id: str, maximum_duration: Optional[float] = None) -> bool:
        """Start the reminder worker of an order.

        Returns:
            False if the order already has a running worker.
        """
        if self.is_running(order_id):
            logger.warning("Reminder worker for order %s already running", order_id)
            return False

        worker = DebtReminderWorker(
            order_id,
            self._ledger,
            self._users,
            self._notifier,
            self._config,
            clock=self._clock,
            maximum_duration=maximum_duration,
        )
        task = asyncio.create_task(worker.run(), name=f"debt-reminders-{order_id}")
        task.add_done_callback(lambda t: self._on_done(order_id, t))
        self._tasks[order_id] = task
        self._workers[order_id] = worker
        logger.info("Reminder worker task created for order %s", order_id)
        return True

    def _on_done(self, order_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(order_id) is task:
            del self._tasks[order_id]
            self._workers.pop(order_id, None)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Reminder worker for order %s crashed: %s", order_id, task.exception()
            )

    async def stop(self, order_id: str) -> bool:
        """Stop an order's worker without touching its debts."""
        task = self._tasks.get(order_id)
        if task is None or task.done():
            return False
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return True

    async def stop_all(self) -> None:
        """Stop every running worker (application shutdown)."""
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Stopped %d reminder worker(s)", len(tasks))
        self._tasks.clear()
        self._workers.clear()

    async def resume_open_orders(self) -> int:
        """Restart workers for orders that still have debts after a restart.

        Each resumed worker keeps the deadline of the original tracking
        session; orders already past it are cancelled right away.

        Returns:
            The number of workers started.
        """
        orders = await self._ledger.list_open_orders()
        now = self._clock()
        resumed = 0
        for order_id, started_at in orders.items():
            remaining = self._config.maximum_duration - (now - started_at).total_seconds()
            if remaining <= 0:
                try:
                    await self._ledger.cancel_order(order_id, TIMEOUT_REASON)
                except StoreError as e:
                    logger.error("Error cancelling expired order %s: %s", order_id, str(e))
                continue
            if self.start(order_id, maximum_duration=remaining):
                resumed += 1

        if resumed:
            logger.info("Resumed %d reminder worker(s)", resumed)
        return resumed
