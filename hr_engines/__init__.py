"""
Module: hr_engines
Responsibility:
    Re-exports the pure payroll engines: time-entry normalizer, absence
    classifier and payroll calculator.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  May import hr_kernel.domain,
    hr_kernel.exceptions and hr_config.schema.  MUST NOT import hr_modules,
    hr_services or hr_api.

Invariants enforced:
    - Engines NEVER call ``datetime.now()`` or ``date.today()``.
    - Decimal-only arithmetic for hours and money.
    - Identical inputs always produce identical outputs.
"""

from hr_engines.absence import (
    AbsenceClassification,
    add_months,
    classify_absence,
    covered_dates,
    validate_absence,
)
from hr_engines.payroll_calculator import (
    AbsenceLine,
    DeductionLine,
    PayrollResult,
    calculate_payroll,
    parse_base_salary,
)
from hr_engines.time_entry import (
    compute_worked_hours,
    is_valid_time,
    normalize_time,
    span_hours,
    validate_time_entry,
)

__all__ = [
    "AbsenceClassification",
    "AbsenceLine",
    "DeductionLine",
    "PayrollResult",
    "add_months",
    "calculate_payroll",
    "classify_absence",
    "compute_worked_hours",
    "covered_dates",
    "is_valid_time",
    "normalize_time",
    "parse_base_salary",
    "span_hours",
    "validate_absence",
    "validate_time_entry",
]
