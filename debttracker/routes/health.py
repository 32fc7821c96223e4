"""Health check endpoint.

Reports the database connection, whether the runtime objects were built at
startup, and how many orders currently have a reminder worker.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from debttracker.config import settings
from debttracker.dal.database import get_database
from debttracker.dependencies import get_optional_reminder_registry
from debttracker.tasks.debt_reminders import ReminderRegistry

logger = logging.getLogger("debttracker.routes.health")
router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(
    registry: Optional[ReminderRegistry] = Depends(get_optional_reminder_registry),
):
    """
    Always answers 200; a missing database or runtime marks the service
    as degraded in the body instead.

    Returns:
        dict: Status, version, per-component checks and the number of
        orders being reminded.
    """
    checks = {"database": "down", "reminders": "not_initialized"}

    try:
        await get_database().command("ping")
        checks["database"] = "ok"
    except Exception as e:
        logger.warning("Database health check failed: %s", str(e))

    active_orders: list[str] = []
    if registry is not None:
        checks["reminders"] = "ok"
        active_orders = registry.active_orders

    healthy = all(value == "ok" for value in checks.values())
    return {
        "status": "healthy" if healthy else "degraded",
        "version": settings.APP_VERSION,
        "checks": checks,
        "active_reminder_orders": len(active_orders),
    }
