"""
Absence classifier (``hr_engines.absence``).

Responsibility
--------------
Decides what an approved absence does to a payslip: paid leave accrues leave
days, every other type is deducted at the daily rate.  Also validates an
absence before it is recorded.

Architecture position
---------------------
**Engines layer** -- pure, zero I/O, zero clock reads.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from hr_kernel.domain.records import AbsenceRecord, AbsenceType, ContractTerms
from hr_kernel.exceptions import DateOutOfContractRangeError, FutureAbsenceError

CENT = Decimal("0.01")


def add_months(day: date, months: int) -> date:
    """Same day ``months`` later, clamped to the end of a shorter month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def covered_dates(absence: AbsenceRecord) -> tuple[date, ...]:
    return absence.covered_dates()


@dataclass(frozen=True)
class AbsenceClassification:
    """Payroll effect of one absence."""

    absence_id: object
    absence_type: AbsenceType
    days: int
    paid_leave_days: int
    deduction: Decimal
    justification_ref: str | None
    covered_dates: tuple[date, ...]


def classify_absence(
    absence: AbsenceRecord,
    base_salary: Decimal,
    working_days_per_month: Decimal = Decimal("22"),
) -> AbsenceClassification:
    """Paid leave accrues days; anything else costs days * base / 22, to the cent."""
    if absence.absence_type.is_paid:
        paid_days, deduction = absence.duration_days, Decimal("0.00")
    else:
        paid_days = 0
        deduction = (
            Decimal(absence.duration_days) * base_salary / working_days_per_month
        ).quantize(CENT, rounding=ROUND_HALF_UP)

    return AbsenceClassification(
        absence_id=absence.id,
        absence_type=absence.absence_type,
        days=absence.duration_days,
        paid_leave_days=paid_days,
        deduction=deduction,
        justification_ref=absence.justification_ref,
        covered_dates=absence.covered_dates(),
    )


def validate_absence(
    absence: AbsenceRecord,
    contract: ContractTerms,
    today: date,
    max_future_months: int = 3,
) -> AbsenceRecord:
    """
    Recording-time checks for an absence.

    Type and duration were already enforced when the record was built; this
    adds the forward horizon and the contract window.

    Raises:
        FutureAbsenceError: starts more than ``max_future_months`` ahead.
        DateOutOfContractRangeError: starts before the contract, or ends
            after a fixed-term contract ends.
    """
    latest = add_months(today, max_future_months)
    if absence.absence_date > latest:
        raise FutureAbsenceError(absence.absence_date, latest)

    contract.require_covers(absence.absence_date)
    if contract.end_date is not None and absence.last_day > contract.end_date:
        raise DateOutOfContractRangeError(
            absence.last_day, contract.start_date, contract.end_date
        )
    return absence
