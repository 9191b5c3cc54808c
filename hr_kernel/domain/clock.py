"""
Clock -- injectable "now" for the payroll kernel.

Responsibility:
    Services ask a Clock for today's date (future-date checks, the absence
    horizon) and for the closing instant stamped on markers and payslips.
    Nothing else in the kernel reads the system time.

Architecture position:
    Kernel > Domain.  ``SystemClock`` is the only implementation that touches
    the real time; engines receive ``today`` as an argument instead.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone


class Clock(ABC):
    """
    Source of the current instant.

    Guarantees:
        - ``now()`` is timezone-aware UTC.
        - ``today()`` is the UTC calendar date of ``now()``.
    """

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """Clock frozen at a given instant until ``set_time()`` moves it."""

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._fixed_time

    def set_time(self, time: datetime) -> None:
        self._fixed_time = time
