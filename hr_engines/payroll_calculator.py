"""
Payroll calculator (``hr_engines.payroll_calculator``).

Responsibility
--------------
Turns one month of approved time entries and absences for one contract into
gross pay, net pay and deduction lines.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO clock reads.  The
payroll month and the holiday calendar are explicit inputs.

Invariants enforced
-------------------
* ``Decimal`` only.  Money is quantized to the cent (ROUND_HALF_UP) per
  component, hours to the thousandth at the end.
* ``normal_hours + overtime_hours == total_hours`` on every result.
* Per day: hours up to the overtime threshold are normal, the rest overtime.
  A day below the minimum costs the missing hours at the hourly rate.  A day
  between the two thresholds (e.g. 7.5h) is neither penalized nor overtime.
* Gross pay is floored at zero; social contributions are a flat rate of gross.
* Each unjustified working day deducts exactly one rounded daily rate, so one
  more unjustified day always raises deductions by that same amount.

Failure modes
-------------
* ``InvalidSalaryError`` -- base salary missing, unparseable or not positive.
* ``DateOutOfContractRangeError`` -- a supplied record lies outside the
  contract window.
* ``ValueError`` -- no period given and no time entry to derive it from.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Sequence

from hr_config.schema import DEFAULT_RULES, PayrollRules
from hr_engines.absence import AbsenceClassification, classify_absence
from hr_engines.time_entry import compute_worked_hours
from hr_engines.tracer import traced_engine
from hr_kernel.domain.month import MonthYear, is_weekend
from hr_kernel.domain.records import (
    AbsenceRecord,
    AbsenceType,
    Bonus,
    ContractTerms,
    TimeEntry,
)
from hr_kernel.exceptions import InvalidSalaryError
from hr_kernel.logging_config import get_logger

logger = get_logger("engines.payroll")

CENT = Decimal("0.01")
MILLI = Decimal("0.001")
ZERO = Decimal("0")

UNJUSTIFIED_ABSENCES_LABEL = "Unjustified absences"
MISSING_HOURS_PENALTY_LABEL = "Missing hours penalty"
SOCIAL_CONTRIBUTIONS_LABEL = "Social contributions"

_NON_NUMERIC = re.compile(r"[^0-9,.]")
_NUMERIC_PREFIX = re.compile(r"^\d*\.?\d*")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _hours(value: Decimal) -> Decimal:
    return value.quantize(MILLI, rounding=ROUND_HALF_UP)


def parse_base_salary(raw: object) -> Decimal:
    """
    Coerce a contract salary to a positive Decimal.

    Text keeps only digits, commas and dots; the first comma becomes the
    decimal point and the longest numeric prefix is read.  ``"3 035,50 EUR"``
    gives ``3035.50``.
    """
    if raw is None or isinstance(raw, bool):
        raise InvalidSalaryError(raw)
    if isinstance(raw, (int, float, Decimal)):
        try:
            value = Decimal(str(raw))
        except InvalidOperation:
            raise InvalidSalaryError(raw) from None
    elif isinstance(raw, str):
        cleaned = _NON_NUMERIC.sub("", raw).replace(",", ".", 1)
        prefix = _NUMERIC_PREFIX.match(cleaned).group(0)
        if prefix in ("", "."):
            raise InvalidSalaryError(raw)
        value = Decimal(prefix)
    else:
        raise InvalidSalaryError(raw)

    if not value.is_finite() or value <= 0:
        raise InvalidSalaryError(raw)
    return value


@dataclass(frozen=True)
class DeductionLine:
    label: str
    amount: Decimal


@dataclass(frozen=True)
class AbsenceLine:
    absence_type: AbsenceType
    days: int
    justification_ref: str | None = None


@dataclass(frozen=True)
class PayrollResult:
    """Everything a payslip needs, already rounded."""

    period: MonthYear
    base_salary: Decimal
    hourly_rate: Decimal
    normal_hours: Decimal
    overtime_hours: Decimal
    paid_leave_days: int
    absences: tuple[AbsenceLine, ...]
    working_days: int
    unjustified_days: int
    unjustified_dates: tuple[date, ...]
    salary_for_hours: Decimal
    overtime_pay: Decimal
    bonuses: tuple[Bonus, ...]
    bonus_total: Decimal
    absence_deductions: Decimal
    unjustified_deduction: Decimal
    missing_hours_penalty: Decimal
    gross_pay: Decimal
    social_contributions: Decimal
    net_pay: Decimal
    deductions: tuple[DeductionLine, ...]

    @property
    def total_hours(self) -> Decimal:
        return self.normal_hours + self.overtime_hours


def _resolve_period(period: MonthYear | None, entries: Sequence[TimeEntry]) -> MonthYear:
    if period is not None:
        return period
    if entries:
        return MonthYear.of(entries[0].entry_date)
    raise ValueError("calculate_payroll needs a period when there are no time entries")


def _check_contract_window(
    contract: ContractTerms,
    entries: Iterable[TimeEntry],
    absences: Iterable[AbsenceRecord],
) -> None:
    for entry in entries:
        contract.require_covers(entry.entry_date)
    for absence in absences:
        contract.require_covers(absence.absence_date)


def _hours_by_day(entries: Iterable[TimeEntry]) -> dict[date, Decimal]:
    per_day: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for entry in entries:
        per_day[entry.entry_date] += compute_worked_hours(entry)
    return dict(per_day)


@traced_engine("payroll", "1.0", fingerprint_fields=("period", "contract"))
def calculate_payroll(
    time_entries: Sequence[TimeEntry],
    absences: Sequence[AbsenceRecord],
    contract: ContractTerms,
    period: MonthYear | None = None,
    bonuses: Sequence[Bonus] = (),
    rules: PayrollRules = DEFAULT_RULES,
    holidays: frozenset[date] | None = None,
    covering_absences: Sequence[AbsenceRecord] = (),
) -> PayrollResult:
    """
    Compute one month of pay for one contract.

    Only APPROVED records count; pending or rejected ones are ignored.  The
    unjustified-day scan walks every day of ``period`` and skips weekends,
    ``holidays`` (``rules.holidays`` when omitted) and days outside the
    contract window.

    ``absences`` are priced in this month.  ``covering_absences`` were priced
    in an earlier month and only justify the days they run into this one.
    """
    base_salary = parse_base_salary(contract.base_salary)
    _check_contract_window(contract, time_entries, absences)

    month = _resolve_period(period, time_entries)
    holiday_set = rules.holidays if holidays is None else frozenset(holidays)
    hourly_rate = base_salary / rules.monthly_hours_divisor
    daily_rate = _money(base_salary / rules.working_days_per_month)

    approved_entries = [e for e in time_entries if e.is_approved]
    approved_absences = [a for a in absences if a.is_approved]

    # Hours: normal up to the threshold, overtime beyond, penalty under the floor
    normal = overtime = penalty = ZERO
    worked = _hours_by_day(approved_entries)
    for day in sorted(worked):
        hours = worked[day]
        normal += min(hours, rules.overtime_threshold_hours)
        overtime += max(hours - rules.overtime_threshold_hours, ZERO)
        if hours < rules.minimum_daily_hours:
            penalty += _money((rules.minimum_daily_hours - hours) * hourly_rate)

    # Absences
    classifications: list[AbsenceClassification] = [
        classify_absence(a, base_salary, rules.working_days_per_month)
        for a in approved_absences
    ]
    paid_leave_days = sum(c.paid_leave_days for c in classifications)
    absence_deductions = sum((c.deduction for c in classifications), ZERO)
    covered: set[date] = set()
    for c in classifications:
        covered.update(c.covered_dates)
    for a in covering_absences:
        if a.is_approved:
            covered.update(a.covered_dates())

    # Unjustified working days
    working_days = 0
    unjustified: list[date] = []
    for day in month.days():
        if day in holiday_set or is_weekend(day) or not contract.covers(day):
            continue
        working_days += 1
        if day not in worked and day not in covered:
            unjustified.append(day)
    unjustified_deduction = daily_rate * len(unjustified)

    overtime_pay = _money(overtime * hourly_rate * rules.overtime_multiplier)
    salary_for_hours = _money(normal * hourly_rate)
    bonus_list = tuple(bonuses)
    bonus_total = sum((b.amount for b in bonus_list), ZERO)

    gross = _money(
        max(
            salary_for_hours
            + overtime_pay
            + bonus_total
            - absence_deductions
            - unjustified_deduction
            - penalty,
            ZERO,
        )
    )
    social = _money(gross * rules.social_contribution_rate)
    net = _money(gross - social)

    lines = [DeductionLine(UNJUSTIFIED_ABSENCES_LABEL, unjustified_deduction)]
    lines.extend(
        DeductionLine(f"Absence {c.absence_type.label}", c.deduction)
        for c in classifications
        if not c.absence_type.is_paid
    )
    lines.append(DeductionLine(MISSING_HOURS_PENALTY_LABEL, penalty))
    lines.append(DeductionLine(SOCIAL_CONTRIBUTIONS_LABEL, social))

    result = PayrollResult(
        period=month,
        base_salary=base_salary,
        hourly_rate=_money(hourly_rate),
        normal_hours=_hours(normal),
        overtime_hours=_hours(overtime),
        paid_leave_days=paid_leave_days,
        absences=tuple(
            AbsenceLine(c.absence_type, c.days, c.justification_ref)
            for c in classifications
        ),
        working_days=working_days,
        unjustified_days=len(unjustified),
        unjustified_dates=tuple(unjustified),
        salary_for_hours=salary_for_hours,
        overtime_pay=overtime_pay,
        bonuses=bonus_list,
        bonus_total=bonus_total,
        absence_deductions=absence_deductions,
        unjustified_deduction=unjustified_deduction,
        missing_hours_penalty=penalty,
        gross_pay=gross,
        social_contributions=social,
        net_pay=net,
        deductions=tuple(line for line in lines if line.amount > 0),
    )

    logger.info(
        "payroll_calculated",
        extra={
            "period": month.label,
            "contract_id": str(contract.id),
            "normal_hours": result.normal_hours,
            "overtime_hours": result.overtime_hours,
            "working_days": working_days,
            "unjustified_days": result.unjustified_days,
            "gross_pay": gross,
            "net_pay": net,
        },
    )
    return result
