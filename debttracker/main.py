"""
Debt tracker FastAPI application entry point.

Configures FastAPI, registers routes, and manages the lifecycle of the
MongoDB connection, the chat notifier and the per-order reminder workers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from debttracker.config import settings
from debttracker.dal.database import (
    close_mongo_connection,
    connect_to_mongo,
    ensure_indexes,
    get_database,
)
from debttracker.dal.debts_dal import DebtDAL
from debttracker.dal.users_dal import UserDAL
from debttracker.dependencies import init_runtime, reset_runtime
from debttracker.exceptions import StoreError
from debttracker.routes.health import router as health_router
from debttracker.routes.orders import router as orders_router
from debttracker.routes.reactions import router as reactions_router
from debttracker.routes.users import router as users_router
from debttracker.services.debt_ledger import DebtLedger
from debttracker.services.notifier import SlackNotifier
from debttracker.services.tracking_config import TrackingConfig
from debttracker.tasks.debt_reminders import ReminderRegistry

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("debttracker.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.
    Builds the runtime objects on startup and stops the workers on shutdown.
    """
    tracking_config = TrackingConfig.from_settings(settings)
    notifier = SlackNotifier(
        token=settings.SLACK_BOT_TOKEN,
        base_url=settings.SLACK_API_URL,
        timeout=settings.SLACK_TIMEOUT_SECONDS,
    )
    registry = None

    try:
        await connect_to_mongo()
        db = get_database()
        await ensure_indexes(db)

        users = UserDAL(db)
        registry = ReminderRegistry(
            ledger=DebtLedger(DebtDAL(db), users, notifier),
            users=users,
            notifier=notifier,
            config=tracking_config,
        )
        init_runtime(notifier, tracking_config, registry)
        logger.info("Debt tracker v%s started with database connection", settings.APP_VERSION)

        if settings.RESUME_ON_STARTUP:
            try:
                await registry.resume_open_orders()
            except StoreError as e:
                logger.error("Failed resuming reminder workers: %s", str(e))
    except Exception as e:
        # Allow the app to start even if MongoDB is not available
        logger.warning(
            "Failed to connect to MongoDB during startup: %s. "
            "Application will start but debt tracking will fail until restarted.",
            str(e)
        )

    yield

    # Shutdown: stop workers, then release the clients they use
    if registry is not None:
        await registry.stop_all()
    reset_runtime()
    await notifier.aclose()
    await close_mongo_connection()
    logger.info("Debt tracker shutdown complete")


app = FastAPI(
    title="Debt Tracker API",
    description="Group order debt tracking with chat reminders",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# Register routers
app.include_router(health_router)  # Health endpoint at root level
app.include_router(health_router, prefix="/api")
app.include_router(reactions_router, prefix="/api")
app.include_router(orders_router, prefix="/api")
app.include_router(users_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "debttracker.main:app",
        host="0.0.0.0",
        port=8000,
        log_level="info",
    )
