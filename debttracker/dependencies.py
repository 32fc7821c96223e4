"""FastAPI dependency-injection callables for the long-lived runtime objects.

The notifier, the tracking configuration and the reminder registry are
built once in the application lifespan and handed to routes through
``Depends()``. Tests replace them with ``app.dependency_overrides``.
"""

import logging
from typing import Optional

from fastapi import HTTPException, status

from debttracker.services.collaborators import Notifier
from debttracker.services.tracking_config import TrackingConfig
from debttracker.tasks.debt_reminders import ReminderRegistry

logger = logging.getLogger("debttracker.dependencies")

_notifier: Optional[Notifier] = None
_tracking_config: Optional[TrackingConfig] = None
_registry: Optional[ReminderRegistry] = None


def init_runtime(
    notifier: Notifier,
    tracking_config: TrackingConfig,
    registry: ReminderRegistry,
) -> None:
    """Install the runtime objects built at startup."""
    global _notifier, _tracking_config, _registry
    _notifier = notifier
    _tracking_config = tracking_config
    _registry = registry


def reset_runtime() -> None:
    global _notifier, _tracking_config, _registry
    _notifier = None
    _tracking_config = None
    _registry = None


def _unavailable(what: str) -> HTTPException:
    logger.error("%s requested before application startup completed", what)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"{what} not initialized",
    )


def get_notifier() -> Notifier:
    if _notifier is None:
        raise _unavailable("Notifier")
    return _notifier


def get_tracking_config() -> TrackingConfig:
    if _tracking_config is None:
        raise _unavailable("Tracking configuration")
    return _tracking_config


def get_reminder_registry() -> ReminderRegistry:
    if _registry is None:
        raise _unavailable("Reminder registry")
    return _registry


def get_optional_reminder_registry() -> Optional[ReminderRegistry]:
    """The reminder registry, or None before startup. Used by health checks."""
    return _registry
