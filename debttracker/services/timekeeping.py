"""Timezone resolution and quiet hours."""

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from debttracker.models.common import TimezoneStatus


@dataclass(frozen=True)
class TimezoneResolution:
    """Tagged result of resolving an IANA timezone name."""
    status: TimezoneStatus
    zone: Optional[tzinfo] = None
    detail: str = ""


def resolve_timezone(name: Optional[str]) -> TimezoneResolution:
    """Resolve a timezone name such as ``Asia/Jerusalem``.

    Never raises: an empty name is ``UNSET`` and an unknown or malformed
    name is ``INVALID``. Callers decide which zone to fall back to.
    """
    if not name:
        return TimezoneResolution(TimezoneStatus.UNSET)
    try:
        return TimezoneResolution(TimezoneStatus.RESOLVED, zone=ZoneInfo(name))
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        return TimezoneResolution(TimezoneStatus.INVALID, detail=str(e))


def localize(now: datetime, resolution: TimezoneResolution, default_zone: Optional[tzinfo] = None) -> datetime:
    """Convert an aware ``now`` to the user's zone, else the default zone,
    else the system's local time."""
    if resolution.status == TimezoneStatus.RESOLVED:
        return now.astimezone(resolution.zone)
    if default_zone is not None:
        return now.astimezone(default_zone)
    return now.astimezone()


def is_quiet_hour(hour: int, start: int, end: int) -> bool:
    """Whether ``hour`` falls in the quiet window [start, end).

    The window wraps midnight when ``start > end`` (21 -> 9 covers
    21:00-08:59). Equal bounds mean there are no quiet hours.
    """
    if start == end:
        return False
    if start > end:
        return hour >= start or hour < end
    return start <= hour < end
