"""Immutable debt tracking configuration, built once at startup."""

import re
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Optional

from debttracker.config import DEFAULT_ORDER_ID_PATTERN, Settings
from debttracker.models.common import TimezoneStatus
from debttracker.services.timekeeping import resolve_timezone


@dataclass(frozen=True)
class TrackingConfig:
    """Settings shared by the ledger, the reminder workers and the dispatcher.

    Intervals are in seconds.
    """
    reminder_interval: float
    maximum_duration: float
    quiet_hours_start: int = 21
    quiet_hours_end: int = 9
    mark_paid_reaction: str = "money_with_wings"
    host_cancel_reaction: str = "x"
    order_id_pattern: re.Pattern = field(
        default_factory=lambda: re.compile(DEFAULT_ORDER_ID_PATTERN)
    )
    bot_user_id: str = ""
    operator_channel: str = ""
    default_timezone: Optional[tzinfo] = None
    currency: str = "nis"

    @classmethod
    def from_settings(cls, settings: Settings) -> "TrackingConfig":
        """Build the tracking configuration from application settings.

        Raises:
            ValueError: The order id pattern does not compile, has no ``id``
                group, or the default timezone is unknown.
        """
        try:
            pattern = re.compile(settings.ORDER_ID_PATTERN)
        except re.error as e:
            raise ValueError(f"Invalid ORDER_ID_PATTERN: {e}") from e
        if "id" not in pattern.groupindex:
            raise ValueError("ORDER_ID_PATTERN must define an 'id' named group")

        resolution = resolve_timezone(settings.DEFAULT_TIMEZONE)
        if resolution.status == TimezoneStatus.INVALID:
            raise ValueError(
                f"Invalid DEFAULT_TIMEZONE {settings.DEFAULT_TIMEZONE!r}: {resolution.detail}"
            )

        return cls(
            reminder_interval=settings.DEBT_REMINDER_INTERVAL_SECONDS,
            maximum_duration=settings.DEBT_MAXIMUM_DURATION_SECONDS,
            quiet_hours_start=settings.QUIET_HOURS_START,
            quiet_hours_end=settings.QUIET_HOURS_END,
            mark_paid_reaction=settings.MARK_AS_PAID_REACTION,
            host_cancel_reaction=settings.HOST_CANCEL_REACTION,
            order_id_pattern=pattern,
            bot_user_id=settings.BOT_USER_ID,
            operator_channel=settings.OPERATOR_CHANNEL,
            default_timezone=resolution.zone,
            currency=settings.CURRENCY,
        )
