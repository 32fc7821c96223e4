"""Order debt route handlers.

Endpoints:
    POST /api/orders/{order_id}/debts -- Track the debts of a split order.
    GET  /api/orders/{order_id}/debts -- List the order's outstanding debts.
"""

import logging
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, status
from pydantic import BaseModel, Field

from debttracker.dal.database import get_database
from debttracker.dal.debts_dal import DebtDAL
from debttracker.dal.users_dal import UserDAL
from debttracker.dependencies import get_notifier, get_reminder_registry, get_tracking_config
from debttracker.exceptions import StoreError
from debttracker.models.debt import DebtResponse
from debttracker.services.collaborators import Notifier
from debttracker.services.debt_ledger import DebtLedger
from debttracker.services.order_tracking import OrderTrackingService
from debttracker.services.tracking_config import TrackingConfig
from debttracker.tasks.debt_reminders import ReminderRegistry

logger = logging.getLogger("debttracker.routes.orders")

router = APIRouter(prefix="/orders/{order_id}", tags=["Orders"])

ORDER_ID_PATH = Path(..., pattern=r"^[A-Z0-9]+$", description="Uppercase alphanumeric order id.")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_ledger(notifier: Notifier) -> DebtLedger:
    """Build a DebtLedger wired to the current database."""
    db = get_database()
    return DebtLedger(DebtDAL(db), UserDAL(db), notifier)


# ---------------------------------------------------------------------------
# Pydantic request / response schemas
# ---------------------------------------------------------------------------

class TrackOrderRequest(BaseModel):
    """Request body for POST /api/orders/{order_id}/debts."""
    lender_id: str = Field(..., min_length=1, description="User id of the participant who paid.")
    amounts: dict[str, Annotated[Decimal, Field(gt=0)]] = Field(
        ..., min_length=1, description="Amount owed per participant user id."
    )
    initiated_transport: str = Field(..., min_length=1, description="Channel the order was announced in.")
    message_id: str = ""


class TrackOrderResponse(BaseModel):
    """Response for POST /api/orders/{order_id}/debts."""
    order_id: str
    lender_found: bool
    created: list[DebtResponse]
    skipped: list[str]
    worker_started: bool


class DebtListResponse(BaseModel):
    """Response for GET /api/orders/{order_id}/debts."""
    order_id: str
    host_id: str | None
    debts: list[DebtResponse]


# ---------------------------------------------------------------------------
# POST /api/orders/{order_id}/debts
# ---------------------------------------------------------------------------

@router.post(
    "/debts",
    response_model=TrackOrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Track the debts of a split order and start reminders",
)
async def track_order(
    body: TrackOrderRequest,
    order_id: str = ORDER_ID_PATH,
    notifier: Notifier = Depends(get_notifier),
    config: TrackingConfig = Depends(get_tracking_config),
    registry: ReminderRegistry = Depends(get_reminder_registry),
) -> TrackOrderResponse:
    """Create a debt for every participant except the lender."""
    db = get_database()
    users = UserDAL(db)
    service = OrderTrackingService(
        ledger=DebtLedger(DebtDAL(db), users, notifier),
        users=users,
        notifier=notifier,
        config=config,
        registry=registry,
    )
    result = await service.track_order(
        order_id=order_id,
        lender_id=body.lender_id,
        amounts=body.amounts,
        initiated_transport=body.initiated_transport,
        message_id=body.message_id,
    )
    return TrackOrderResponse(
        order_id=order_id,
        lender_found=result.lender_found,
        created=[DebtResponse.from_debt(d) for d in result.created],
        skipped=result.skipped,
        worker_started=result.worker_started,
    )


# ---------------------------------------------------------------------------
# GET /api/orders/{order_id}/debts
# ---------------------------------------------------------------------------

@router.get(
    "/debts",
    response_model=DebtListResponse,
    summary="List the outstanding debts of an order",
)
async def list_debts(
    order_id: str = ORDER_ID_PATH,
    notifier: Notifier = Depends(get_notifier),
) -> DebtListResponse:
    """List an order's debts in the order they were created."""
    ledger = _get_ledger(notifier)
    try:
        debts = await ledger.list_debts_for_order(order_id)
    except StoreError as e:
        logger.error("Error listing debts for order %s: %s", order_id, str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Debt store unavailable",
        )
    return DebtListResponse(
        order_id=order_id,
        host_id=debts[0].lender_id if debts else None,
        debts=[DebtResponse.from_debt(d) for d in debts],
    )
