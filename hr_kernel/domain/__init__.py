"""Pure kernel domain objects: clock and payroll month."""

from hr_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from hr_kernel.domain.month import MonthYear, is_weekend

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "MonthYear",
    "is_weekend",
]
