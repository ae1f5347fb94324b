"""
Countdown to a phase boundary.

Stateless: every call recomputes from the target and the current instant,
so missed ticks and clock drift need no compensation.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 60 * SECONDS_PER_MINUTE
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR


@dataclass(frozen=True)
class Countdown:
    """Remaining time split into whole days, hours, minutes and seconds."""

    days: int
    hours: int
    minutes: int
    seconds: int

    @property
    def total_seconds(self) -> int:
        return (
            self.days * SECONDS_PER_DAY
            + self.hours * SECONDS_PER_HOUR
            + self.minutes * SECONDS_PER_MINUTE
            + self.seconds
        )


def remaining(target: datetime, now: datetime) -> Optional[Countdown]:
    """
    Time left until target.

    Args:
        target: Instant the countdown runs to
        now: Current instant

    Returns:
        Countdown, or None once the target has been reached (expired)
    """
    total = int((target - now).total_seconds())
    if total <= 0:
        return None
    days, rest = divmod(total, SECONDS_PER_DAY)
    hours, rest = divmod(rest, SECONDS_PER_HOUR)
    minutes, seconds = divmod(rest, SECONDS_PER_MINUTE)
    return Countdown(days=days, hours=hours, minutes=minutes, seconds=seconds)


def format_remaining(target: datetime, now: datetime) -> str:
    """Short label used by pool listings, e.g. "3d 4h", or "Ended"."""
    countdown = remaining(target, now)
    if countdown is None:
        return "Ended"
    return f"{countdown.days}d {countdown.hours}h"
