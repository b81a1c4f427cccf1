"""Reservation periods and elapsed-time arithmetic."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def period_end(now: datetime) -> datetime:
    """Default end of a regular reservation: the first instant after the
    half-year containing `now` (July 1 or January 1 of the next year, 00:00),
    in now's timezone. Always later than `now`.
    """
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if now.month <= 6:
        return midnight.replace(month=7, day=1)
    return midnight.replace(year=now.year + 1, month=1, day=1)


@dataclass(frozen=True)
class Duration:
    hours: int
    minutes: int
    seconds: int

    def __str__(self) -> str:
        return f"{self.hours}h {self.minutes}m {self.seconds}s"


def elapsed(start: datetime, end: datetime) -> Duration:
    """Split end - start into whole hours, minutes and seconds.

    Plain millisecond subtraction with floor division; hours are not capped
    at 24. Negative spans clamp to zero.
    """
    delta = end - start
    millis = max(0, delta.days * 86_400_000 + delta.seconds * 1000 + delta.microseconds // 1000)
    return Duration(
        hours=millis // 3_600_000,
        minutes=(millis % 3_600_000) // 60_000,
        seconds=(millis % 60_000) // 1000,
    )
