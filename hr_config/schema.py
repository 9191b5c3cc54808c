"""
Payroll rules schema (``hr_config.schema``).

Responsibility
--------------
Typed, frozen representation of the statutory payroll constants that the
engines consume.  Field defaults mirror ``sets/payroll_rules.yaml`` so pure
engine code and tests can run without touching the filesystem.

Invariants enforced
-------------------
* Every numeric rule is a ``Decimal``; no float ever reaches the engines.
* Divisors and multipliers are strictly positive, rates lie in [0, 1).
* ``overtime_threshold_hours`` is at least ``minimum_daily_hours``.  The two
  are distinct on purpose: a 7.5h day is neither penalized nor overtime.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class PayrollRules:
    """Statutory constants for one payroll regime."""

    monthly_hours_divisor: Decimal = Decimal("151.67")
    working_days_per_month: Decimal = Decimal("22")
    overtime_threshold_hours: Decimal = Decimal("8")
    minimum_daily_hours: Decimal = Decimal("7")
    overtime_multiplier: Decimal = Decimal("1.25")
    social_contribution_rate: Decimal = Decimal("0.23")
    default_break_hours: Decimal = Decimal("1")
    absence_max_future_months: int = 3
    holidays: frozenset[date] = field(
        default_factory=lambda: frozenset({date(2025, 5, 1)})
    )
    version: str = "builtin"

    def __post_init__(self) -> None:
        for name in (
            "monthly_hours_divisor",
            "working_days_per_month",
            "overtime_threshold_hours",
            "minimum_daily_hours",
            "overtime_multiplier",
        ):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                raise TypeError(f"{name} must be Decimal, got {type(value).__name__}")
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if not Decimal("0") <= self.social_contribution_rate < Decimal("1"):
            raise ValueError(
                f"social_contribution_rate must be in [0, 1), got {self.social_contribution_rate}"
            )
        if self.default_break_hours < 0:
            raise ValueError("default_break_hours must be >= 0")
        if self.absence_max_future_months < 0:
            raise ValueError("absence_max_future_months must be >= 0")
        if self.overtime_threshold_hours < self.minimum_daily_hours:
            raise ValueError(
                "overtime_threshold_hours must be >= minimum_daily_hours"
            )


DEFAULT_RULES = PayrollRules()
