"""Unit tests for OrderTrackingService."""

from decimal import Decimal

import pytest
import pytest_asyncio

from conftest import BORROWER_1, BORROWER_2, LENDER, ORDER_CHANNEL
from debttracker.services.order_tracking import OrderTrackingService

ORDER_ID = "ABC123"
MESSAGE_ID = "1700000000.000100"


@pytest_asyncio.fixture
async def service(ledger, users, notifier, tracking_config, registry) -> OrderTrackingService:
    return OrderTrackingService(ledger, users, notifier, tracking_config, registry)


class TestTrackOrder:

    @pytest.mark.asyncio
    async def test_creates_debts_except_lender_and_starts_worker(self, service, ledger, registry, notifier):
        result = await service.track_order(
            ORDER_ID,
            LENDER.id,
            {LENDER.id: Decimal("12.00"), BORROWER_1.id: Decimal("10.00"), BORROWER_2.id: Decimal("15.00")},
            ORDER_CHANNEL,
            MESSAGE_ID,
        )

        assert result.lender_found is True
        assert [d.borrower_id for d in result.created] == [BORROWER_1.id, BORROWER_2.id]
        assert result.skipped == []
        assert result.worker_started is True
        assert registry.is_running(ORDER_ID)

        debts = await ledger.list_debts_for_order(ORDER_ID)
        assert len(debts) == 2
        assert all(d.lender_id == LENDER.id for d in debts)

        announcement = notifier.to(ORDER_CHANNEL)
        assert len(announcement) == 1
        assert announcement[0].thread_message_id == MESSAGE_ID
        assert f"<@{LENDER.transport_id}>" in announcement[0].text

    @pytest.mark.asyncio
    async def test_unknown_lender_tracks_nothing(self, service, ledger, registry, notifier):
        result = await service.track_order(
            ORDER_ID, "ghost", {BORROWER_1.id: Decimal("10.00")}, ORDER_CHANNEL, MESSAGE_ID
        )

        assert result.lender_found is False
        assert result.created == []
        assert result.skipped == [BORROWER_1.id]
        assert result.worker_started is False
        assert not registry.is_running(ORDER_ID)
        assert await ledger.list_debts_for_order(ORDER_ID) == []
        assert "won't track debts" in notifier.to(ORDER_CHANNEL)[0].text

    @pytest.mark.asyncio
    async def test_unknown_borrower_skipped_and_announced(self, service, notifier):
        result = await service.track_order(
            ORDER_ID,
            LENDER.id,
            {"ghost": Decimal("8.00"), BORROWER_1.id: Decimal("10.00")},
            ORDER_CHANNEL,
            MESSAGE_ID,
        )

        assert result.skipped == ["ghost"]
        assert len(result.created) == 1
        assert any("ghost" in m.text for m in notifier.to(ORDER_CHANNEL))

    @pytest.mark.asyncio
    async def test_invalid_amount_skipped(self, service):
        result = await service.track_order(
            ORDER_ID,
            LENDER.id,
            {BORROWER_1.id: Decimal("0"), BORROWER_2.id: Decimal("15.00")},
            ORDER_CHANNEL,
        )
        assert result.skipped == [BORROWER_1.id]
        assert [d.borrower_id for d in result.created] == [BORROWER_2.id]

    @pytest.mark.asyncio
    async def test_only_lender_share_starts_no_worker(self, service, registry):
        result = await service.track_order(
            ORDER_ID, LENDER.id, {LENDER.id: Decimal("20.00")}, ORDER_CHANNEL
        )
        assert result.created == []
        assert result.worker_started is False
        assert not registry.is_running(ORDER_ID)

    @pytest.mark.asyncio
    async def test_second_submission_does_not_start_second_worker(self, service, registry):
        await service.track_order(ORDER_ID, LENDER.id, {BORROWER_1.id: Decimal("10.00")}, ORDER_CHANNEL)
        result = await service.track_order(ORDER_ID, LENDER.id, {BORROWER_2.id: Decimal("15.00")}, ORDER_CHANNEL)

        assert len(result.created) == 1
        assert result.worker_started is False
        assert registry.active_orders == [ORDER_ID]
