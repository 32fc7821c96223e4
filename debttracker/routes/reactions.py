"""Reaction event route handler.

Endpoints:
    POST /api/reactions -- Apply a chat reaction (mark paid / host cancel).

Always answers 200 so the chat platform does not redeliver the event.
"""

import logging

from fastapi import APIRouter, Depends, status

from debttracker.dal.database import get_database
from debttracker.dal.debts_dal import DebtDAL
from debttracker.dal.users_dal import UserDAL
from debttracker.dependencies import get_notifier, get_tracking_config
from debttracker.models.common import ReactionOutcome
from debttracker.models.reaction import ReactionEvent, ReactionResponse
from debttracker.services.collaborators import Notifier
from debttracker.services.debt_ledger import DebtLedger
from debttracker.services.reaction_dispatcher import ReactionDispatcher
from debttracker.services.tracking_config import TrackingConfig

logger = logging.getLogger("debttracker.routes.reactions")

router = APIRouter(prefix="/reactions", tags=["Reactions"])


def _get_dispatcher(notifier: Notifier, config: TrackingConfig) -> ReactionDispatcher:
    """Build a ReactionDispatcher wired to the current database."""
    db = get_database()
    users = UserDAL(db)
    return ReactionDispatcher(
        ledger=DebtLedger(DebtDAL(db), users, notifier),
        users=users,
        notifier=notifier,
        config=config,
    )


@router.post(
    "",
    response_model=ReactionResponse,
    status_code=status.HTTP_200_OK,
    summary="Handle a reaction added to a chat message",
)
async def handle_reaction(
    event: ReactionEvent,
    notifier: Notifier = Depends(get_notifier),
    config: TrackingConfig = Depends(get_tracking_config),
) -> ReactionResponse:
    """Apply a reaction event to the debts of the order it refers to."""
    try:
        dispatcher = _get_dispatcher(notifier, config)
    except RuntimeError as e:
        logger.error("Cannot handle reaction: %s", str(e))
        return ReactionResponse(outcome=ReactionOutcome.FAILED)

    outcome = await dispatcher.handle_reaction(event)
    return ReactionResponse(outcome=outcome)
