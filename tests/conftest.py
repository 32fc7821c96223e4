"""
Pytest configuration and fixtures for the debt tracker tests.

This module provides shared fixtures for testing the debt tracking core and
the FastAPI endpoints using mongomock-motor (no real MongoDB required), plus
a notifier that records messages instead of sending them.
"""

import os

# Keep the bot user id deterministic before any app imports
os.environ.setdefault("BOT_USER_ID", "UBOT")

from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from debttracker.dal.debts_dal import DebtDAL
from debttracker.dal.users_dal import UserDAL
from debttracker.models.user import User
from debttracker.services.debt_ledger import DebtLedger
from debttracker.services.reaction_dispatcher import ReactionDispatcher
from debttracker.services.tracking_config import TrackingConfig
from debttracker.tasks.debt_reminders import ReminderRegistry


BOT_ID = "UBOT"
OPERATOR_CHANNEL = "COPS"
ORDER_CHANNEL = "CORDERS"

LENDER = User(id="lender", full_name="Lena Lender", transport_id="U_L", timezone="UTC")
BORROWER_1 = User(id="b1", full_name="Bo One", transport_id="U_B1", timezone="UTC")
BORROWER_2 = User(id="b2", full_name="Bea Two", transport_id="U_B2", timezone="UTC")

# Noon UTC, well outside quiet hours
NOON = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@dataclass
class SentMessage:
    transport_id: str
    text: str
    reaction_hint: str = ""
    thread_message_id: str = ""


class RecordingNotifier:
    """Notifier fake that keeps every message it is asked to send."""

    def __init__(self) -> None:
        self.sent: list[SentMessage] = []

    async def send(
        self,
        transport_id: str,
        text: str,
        reaction_hint: str = "",
        thread_message_id: str = "",
    ) -> None:
        self.sent.append(SentMessage(transport_id, text, reaction_hint, thread_message_id))

    def to(self, transport_id: str) -> list[SentMessage]:
        return [m for m in self.sent if m.transport_id == transport_id]


@pytest.fixture
def anyio_backend():
    """Specify anyio backend for async tests."""
    return "asyncio"


@pytest_asyncio.fixture
async def mock_db():
    """In-memory MongoDB mock database.

    The database is ephemeral -- it disappears after each test.
    """
    client = AsyncMongoMockClient()
    db = client["debttracker_test"]
    yield db
    client.close()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def tracking_config() -> TrackingConfig:
    return TrackingConfig(
        reminder_interval=0.05,
        maximum_duration=0.175,
        bot_user_id=BOT_ID,
        operator_channel=OPERATOR_CHANNEL,
        default_timezone=ZoneInfo("UTC"),
    )


@pytest_asyncio.fixture
async def debt_dal(mock_db) -> DebtDAL:
    return DebtDAL(mock_db)


@pytest_asyncio.fixture
async def users(mock_db) -> UserDAL:
    """User directory seeded with a lender and two borrowers."""
    dal = UserDAL(mock_db)
    for user in (LENDER, BORROWER_1, BORROWER_2):
        await dal.upsert(user.model_copy())
    return dal


@pytest_asyncio.fixture
async def ledger(debt_dal, users, notifier) -> DebtLedger:
    return DebtLedger(debt_dal, users, notifier)


@pytest_asyncio.fixture
async def dispatcher(ledger, users, notifier, tracking_config) -> ReactionDispatcher:
    return ReactionDispatcher(ledger, users, notifier, tracking_config)


@pytest_asyncio.fixture
async def registry(ledger, users, notifier, tracking_config):
    registry = ReminderRegistry(ledger, users, notifier, tracking_config, clock=lambda: NOON)
    yield registry
    await registry.stop_all()
