"""Unit tests for the reminder worker and its registry.

The worker runs with a 50 ms interval and a 175 ms maximum duration, so a
full tracking session fits in a fraction of a second.
"""

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from conftest import BORROWER_1, BORROWER_2, LENDER, NOON, ORDER_CHANNEL
from debttracker.exceptions import StoreError
from debttracker.models.user import User
from debttracker.services.debt_ledger import DebtLedger, TIMEOUT_REASON
from debttracker.tasks.debt_reminders import DebtReminderWorker, ReminderRegistry

ORDER_ID = "ABC123"


async def _track(ledger: DebtLedger, *borrowers: User) -> None:
    for borrower in borrowers or (BORROWER_1, BORROWER_2):
        await ledger.create_debt(Decimal("10.00"), ORDER_ID, ORDER_CHANNEL, "", borrower, LENDER)


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 3, 2, hour, minute, tzinfo=timezone.utc)


def _worker(ledger, users, notifier, config, now=NOON) -> DebtReminderWorker:
    return DebtReminderWorker(ORDER_ID, ledger, users, notifier, config, clock=lambda: now)


# ---------------------------------------------------------------------------
# Single reminder cycle
# ---------------------------------------------------------------------------

class TestRemindOnce:

    @pytest.mark.asyncio
    async def test_reminds_every_borrower(self, ledger, users, notifier, tracking_config):
        await _track(ledger)
        worker = _worker(ledger, users, notifier, tracking_config)

        assert await worker.remind_once() is True

        assert worker.reminders_sent == 2
        for borrower in (BORROWER_1, BORROWER_2):
            messages = notifier.to(borrower.transport_id)
            assert len(messages) == 1
            assert "10.00 nis" in messages[0].text
            assert f"<@{LENDER.transport_id}>" in messages[0].text
            assert f"order ID {ORDER_ID}" in messages[0].text
            assert messages[0].reaction_hint == tracking_config.mark_paid_reaction

    @pytest.mark.asyncio
    async def test_no_debts_means_done(self, ledger, users, notifier, tracking_config):
        worker = _worker(ledger, users, notifier, tracking_config)
        assert await worker.remind_once() is False
        assert notifier.sent == []

    @pytest.mark.parametrize(
        "hour, minute, sent",
        [(21, 0, False), (20, 59, True), (8, 59, False), (9, 0, True), (3, 0, False)],
    )
    @pytest.mark.asyncio
    async def test_quiet_hours_boundaries(self, ledger, users, notifier, tracking_config, hour, minute, sent):
        await _track(ledger, BORROWER_1)
        worker = _worker(ledger, users, notifier, tracking_config, now=_at(hour, minute))

        assert await worker.remind_once() is True

        assert (len(notifier.sent) == 1) is sent
        assert len(await ledger.list_debts_for_order(ORDER_ID)) == 1

    @pytest.mark.asyncio
    async def test_quiet_hours_use_borrower_timezone(self, ledger, users, notifier, tracking_config):
        await users.upsert(User(id="b1", transport_id="U_B1", timezone="Asia/Tokyo"))
        await _track(ledger, BORROWER_1)
        # 12:00 UTC is 21:00 in Tokyo
        worker = _worker(ledger, users, notifier, tracking_config, now=_at(12))

        await worker.remind_once()

        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_invalid_timezone_falls_back_to_default(self, ledger, users, notifier, tracking_config):
        await users.upsert(User(id="b1", transport_id="U_B1", timezone="Mars/Olympus_Mons"))
        await _track(ledger, BORROWER_1)
        worker = _worker(ledger, users, notifier, tracking_config, now=_at(12))

        await worker.remind_once()

        assert len(notifier.to("U_B1")) == 1

    @pytest.mark.asyncio
    async def test_timezone_region_name_falls_back_to_default(self, ledger, users, notifier, tracking_config):
        await users.upsert(User(id="b1", transport_id="U_B1", timezone="America"))
        await _track(ledger, BORROWER_1)
        worker = _worker(ledger, users, notifier, tracking_config, now=_at(12))

        await worker.remind_once()

        assert worker.reminders_sent == 1
        assert len(notifier.to("U_B1")) == 1

    @pytest.mark.asyncio
    async def test_one_unknown_borrower_does_not_block_others(self, ledger, users, notifier, tracking_config):
        ghost = User(id="ghost", transport_id="U_GHOST")
        await _track(ledger, ghost, BORROWER_2)
        worker = _worker(ledger, users, notifier, tracking_config)

        assert await worker.remind_once() is True

        assert worker.reminders_sent == 1
        assert len(notifier.to(BORROWER_2.transport_id)) == 1

    @pytest.mark.asyncio
    async def test_store_error_keeps_worker_alive(self, ledger, users, notifier, tracking_config, debt_dal):
        debt_dal.list_for_order = AsyncMock(side_effect=StoreError("backend down"))
        worker = _worker(ledger, users, notifier, tracking_config)
        assert await worker.remind_once() is True


# ---------------------------------------------------------------------------
# Full worker run
# ---------------------------------------------------------------------------

class TestWorkerRun:

    @pytest.mark.asyncio
    async def test_times_out_after_floor_duration_over_interval_cycles(self, ledger, users, notifier, tracking_config):
        await _track(ledger)
        worker = _worker(ledger, users, notifier, tracking_config)

        await asyncio.wait_for(worker.run(), timeout=5)

        # floor(0.175 / 0.05) == 3 cycles, two borrowers each
        assert worker.cycles == 3
        assert worker.reminders_sent == 6
        assert worker.timed_out is True
        assert await ledger.list_debts_for_order(ORDER_ID) == []
        cancellations = notifier.to(LENDER.transport_id)
        assert len(cancellations) == 1
        assert TIMEOUT_REASON in cancellations[0].text

    @pytest.mark.asyncio
    async def test_suppressed_cycles_still_count_towards_timeout(self, ledger, users, notifier, tracking_config):
        await _track(ledger)
        worker = _worker(ledger, users, notifier, tracking_config, now=_at(23))

        await asyncio.wait_for(worker.run(), timeout=5)

        assert worker.cycles == 3
        assert worker.reminders_sent == 0
        assert worker.timed_out is True
        assert await ledger.list_debts_for_order(ORDER_ID) == []

    @pytest.mark.asyncio
    async def test_stops_quietly_when_debts_cleared(self, ledger, users, notifier, tracking_config):
        await _track(ledger, BORROWER_1)
        config = replace(tracking_config, maximum_duration=10)
        worker = _worker(ledger, users, notifier, config)
        task = asyncio.create_task(worker.run())

        await asyncio.sleep(0.01)
        await ledger.cancel_order(ORDER_ID, "host requested cancellation")
        await asyncio.wait_for(task, timeout=5)

        assert worker.timed_out is False
        assert worker.cycles == 1
        assert worker.reminders_sent == 0
        # Only the host cancellation message, no reminder and no timeout notice
        assert len(notifier.sent) == 1

    @pytest.mark.asyncio
    async def test_unreadable_debt_does_not_stop_worker(self, ledger, users, notifier, tracking_config, mock_db):
        await _track(ledger, BORROWER_1)
        await mock_db["debts"].insert_one({"order_id": ORDER_ID, "borrower_id": "x"})
        worker = _worker(ledger, users, notifier, tracking_config)

        await asyncio.wait_for(worker.run(), timeout=5)

        assert worker.cycles == 3
        assert worker.reminders_sent == 3
        assert worker.timed_out is True
        assert await mock_db["debts"].count_documents({"order_id": ORDER_ID}) == 0

    @pytest.mark.asyncio
    async def test_interval_equal_to_duration_ticks_once(self, ledger, users, notifier, tracking_config):
        await _track(ledger, BORROWER_1)
        config = replace(tracking_config, reminder_interval=0.05, maximum_duration=0.05)
        worker = _worker(ledger, users, notifier, config)

        await asyncio.wait_for(worker.run(), timeout=5)

        assert worker.cycles == 1
        assert worker.timed_out is True


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestReminderRegistry:

    @pytest.mark.asyncio
    async def test_refuses_duplicate_start(self, registry: ReminderRegistry, ledger):
        await _track(ledger)
        assert registry.start(ORDER_ID) is True
        assert registry.start(ORDER_ID) is False
        assert registry.active_orders == [ORDER_ID]

    @pytest.mark.asyncio
    async def test_can_restart_after_worker_finished(self, registry: ReminderRegistry, ledger):
        await _track(ledger)
        registry.start(ORDER_ID)
        worker = registry.get_worker(ORDER_ID)
        await asyncio.sleep(0.3)

        assert not registry.is_running(ORDER_ID)
        assert worker.timed_out is True
        assert registry.start(ORDER_ID) is True
        assert registry.get_worker(ORDER_ID) is not worker

    @pytest.mark.asyncio
    async def test_finished_workers_are_released(self, registry: ReminderRegistry, ledger):
        order_ids = ["ORD1", "ORD2", "ORD3"]
        for order_id in order_ids:
            await ledger.create_debt(Decimal("5.00"), order_id, ORDER_CHANNEL, "", BORROWER_1, LENDER)
            registry.start(order_id)
        await asyncio.sleep(0.3)

        assert registry.active_orders == []
        assert all(registry.get_worker(order_id) is None for order_id in order_ids)

    @pytest.mark.asyncio
    async def test_stop_all_releases_workers(self, registry: ReminderRegistry, ledger):
        await _track(ledger)
        registry.start(ORDER_ID, maximum_duration=10)

        await registry.stop_all()

        assert registry.get_worker(ORDER_ID) is None

    @pytest.mark.asyncio
    async def test_stop_keeps_debts(self, registry: ReminderRegistry, ledger, notifier):
        await _track(ledger)
        registry.start(ORDER_ID, maximum_duration=10)

        assert await registry.stop(ORDER_ID) is True

        assert not registry.is_running(ORDER_ID)
        assert len(await ledger.list_debts_for_order(ORDER_ID)) == 2
        assert notifier.to(LENDER.transport_id) == []
        assert await registry.stop(ORDER_ID) is False

    @pytest.mark.asyncio
    async def test_stop_all(self, registry: ReminderRegistry, ledger):
        await _track(ledger)
        await ledger.create_debt(Decimal("3.00"), "XYZ789", ORDER_CHANNEL, "", BORROWER_1, LENDER)
        registry.start(ORDER_ID, maximum_duration=10)
        registry.start("XYZ789", maximum_duration=10)

        await registry.stop_all()

        assert registry.active_orders == []

    @pytest.mark.asyncio
    async def test_resume_keeps_original_deadline(self, ledger, users, notifier, tracking_config, debt_dal):
        await _track(ledger)
        debts = await ledger.list_debts_for_order(ORDER_ID)
        started = debts[0].created_at
        config = replace(tracking_config, maximum_duration=100)
        registry = ReminderRegistry(
            ledger, users, notifier, config, clock=lambda: started + timedelta(seconds=40)
        )
        try:
            assert await registry.resume_open_orders() == 1
            worker = registry.get_worker(ORDER_ID)
            assert worker.maximum_duration == pytest.approx(60, abs=1)
        finally:
            await registry.stop_all()

    @pytest.mark.asyncio
    async def test_resume_cancels_expired_orders(self, ledger, users, notifier, tracking_config):
        await _track(ledger)
        debts = await ledger.list_debts_for_order(ORDER_ID)
        registry = ReminderRegistry(
            ledger, users, notifier, tracking_config,
            clock=lambda: debts[0].created_at + timedelta(hours=1),
        )

        assert await registry.resume_open_orders() == 0

        assert not registry.is_running(ORDER_ID)
        assert await ledger.list_debts_for_order(ORDER_ID) == []
        assert TIMEOUT_REASON in notifier.to(LENDER.transport_id)[0].text
