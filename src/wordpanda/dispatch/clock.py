"""Organization-local calendar helpers.

Every weekday, date and HH:MM decision is made in one fixed organization
timezone, never in server-local time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class LocalClock:
    """A single instant viewed in the organization timezone."""

    now: datetime

    @property
    def today(self) -> date:
        return self.now.date()

    @property
    def weekday(self) -> int:
        """0=Sunday .. 6=Saturday."""
        return (self.now.weekday() + 1) % 7

    @property
    def minute_of_day(self) -> int:
        return self.now.hour * 60 + self.now.minute


def local_clock(tz_name: str, now: datetime | None = None) -> LocalClock:
    """Convert ``now`` (default: current UTC time) into the organization timezone."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return LocalClock(now.astimezone(ZoneInfo(tz_name)))


def parse_hhmm(value: str) -> int:
    """Parse 'HH:MM' into minutes since midnight.

    Raises:
        ValueError: If the value is not a valid 24-hour time.
    """
    hours_str, sep, minutes_str = value.strip().partition(":")
    if not sep or not hours_str.isdigit() or not minutes_str.isdigit():
        msg = f"Invalid time (expected HH:MM): {value!r}"
        raise ValueError(msg)
    hours, minutes = int(hours_str), int(minutes_str)
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        msg = f"Invalid time (expected HH:MM): {value!r}"
        raise ValueError(msg)
    return hours * 60 + minutes


def within_window(now_minutes: int, target_minutes: int, tolerance: int) -> bool:
    """True if ``now`` is within ±tolerance of ``target`` on a circular 24h clock."""
    diff = abs(now_minutes - target_minutes) % MINUTES_PER_DAY
    return min(diff, MINUTES_PER_DAY - diff) <= tolerance
