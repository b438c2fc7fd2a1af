"""
Module: ledger_kernel.domain.clock
Responsibility: The single source of "now" and "today" for services.
    Aging buckets, overdue checks, reminder windows and settlement
    restoration all depend on the current date, so services take a Clock
    in their constructor instead of calling ``date.today()``.
Architecture position: Kernel > Domain.  SystemClock is the only place
    that reads the wall clock.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta, timezone

_NOON = time(12, tzinfo=timezone.utc)


class Clock(ABC):
    """Timezone-aware current time; ``today()`` is derived from it."""

    @abstractmethod
    def now(self) -> datetime: ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests and replays.

    Time only moves through ``advance``, ``advance_days``, ``tick`` or
    ``set_date``; repeated ``now()`` calls in between return the same value.
    Defaults to noon UTC on 2024-01-01.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time or datetime.combine(date(2024, 1, 1), _NOON)

    def now(self) -> datetime:
        return self._current

    def set_date(self, day: date) -> None:
        """Jump to noon UTC on ``day``."""
        self._current = datetime.combine(day, _NOON)

    def advance(self, seconds: int = 1) -> None:
        self._current += timedelta(seconds=seconds)

    def advance_days(self, days: int = 1) -> None:
        self._current += timedelta(days=days)

    def tick(self) -> datetime:
        """Move forward one second and return the new time."""
        self.advance(1)
        return self._current
