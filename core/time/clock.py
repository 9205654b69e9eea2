"""
Stockflow Core Time - Explicit Clock Protocol
===============================================
No date.today() inside engine logic.

The validator needs "today" for expiration checks and the
in-memory gateway stamps movement dates. Both receive a Clock
so tests can pin the calendar.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Protocol


# ══════════════════════════════════════════════════════════════
# CLOCK PROTOCOL
# ══════════════════════════════════════════════════════════════

class Clock(Protocol):
    """Injectable time source."""

    def now_utc(self) -> datetime:
        ...  # pragma: no cover

    def today(self) -> date:
        ...  # pragma: no cover


# ══════════════════════════════════════════════════════════════
# IMPLEMENTATIONS
# ══════════════════════════════════════════════════════════════

class SystemClock:
    """Production clock, real system time."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.now_utc().date()


class FixedClock:
    """
    Test clock pinned to one instant.

    Usage:
        clock = FixedClock(datetime(2026, 3, 1, tzinfo=timezone.utc))
        assert clock.today() == date(2026, 3, 1)
    """

    def __init__(self, fixed_dt: datetime) -> None:
        if fixed_dt.tzinfo is None:
            raise ValueError("FixedClock requires timezone-aware datetime.")
        self._fixed_dt = fixed_dt

    def now_utc(self) -> datetime:
        return self._fixed_dt

    def today(self) -> date:
        return self._fixed_dt.date()

    def advance(self, days: int = 0, seconds: float = 0) -> None:
        self._fixed_dt = self._fixed_dt + timedelta(days=days, seconds=seconds)


_default_clock: Clock = SystemClock()


def set_default_clock(clock: Clock) -> None:
    """Override the default clock (testing only)."""
    global _default_clock
    _default_clock = clock


def get_default_clock() -> Clock:
    return _default_clock
