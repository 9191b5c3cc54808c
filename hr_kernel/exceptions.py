"""
Typed Exception Hierarchy for the HR payroll kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Payroll errors end up in three places: API responses, structured logs and
audit reviews of a closed month. Parsing message strings in any of those is
fragile, so every failure:
  1. has a TYPED exception class (catch by type, not message)
  2. carries a class-level CODE (machine-readable, API-safe)
  3. stores its context as ATTRIBUTES (survives logging and serialization)

    try:
        orchestrator.close_month(person_id, contract_id, "03/2025", actor_id)
    except PendingItemsExistError as e:
        notify_approver(e.month_year, e.pending_count)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    HRKernelError (base)
    |
    +-- InvalidInputError                     -> 400
    |   +-- MissingFieldsError
    |   +-- InvalidTimeFormatError
    |   +-- InvalidTimeError
    |   +-- InvalidBreakError
    |   +-- InvalidOvertimeError
    |   +-- FutureDateError
    |   +-- FutureAbsenceError
    |   +-- InvalidAbsenceError
    |   +-- InvalidMonthFormatError
    |   +-- InvalidMonthError
    |
    +-- NotFoundError                         -> 404
    |   +-- ContractNotFoundError
    |   +-- TimesheetNotFoundError
    |   +-- TimeEntryNotFoundError
    |   +-- AbsenceNotFoundError
    |   +-- PayslipNotFoundError
    |
    +-- ConflictError                         -> 409
    |   +-- MonthAlreadyClosedError
    |   +-- EntryAlreadyProcessedError
    |   +-- MonthClosedError
    |
    +-- PreconditionError                     -> 422
    |   +-- PendingItemsExistError
    |   +-- DateOutOfContractRangeError
    |   +-- InvalidSalaryError
    |   +-- MonthBeforeContractError
    |   +-- ContractPersonMismatchError
    |
    +-- ImmutabilityError                     -> 409
        +-- ImmutabilityViolationError

The HTTP statuses are applied by hr_api.errors; this module knows nothing
about HTTP.

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                        | When Raised
--------------|-----------------------------|---------------------------------------
Input         | MISSING_FIELDS              | Required record fields absent
              | INVALID_TIME_FORMAT         | Time not HH:mm (00:00-23:59)
              | INVALID_TIME                | Start equals end
              | INVALID_BREAK               | Break negative or longer than the span
              | INVALID_OVERTIME            | Declared overtime negative
              | FUTURE_DATE                 | Time entry dated after today
              | FUTURE_ABSENCE              | Absence beyond the forward horizon
              | INVALID_ABSENCE             | Unknown type or duration < 1
              | INVALID_MONTH_FORMAT        | Month not MM/YYYY
              | INVALID_MONTH               | Month outside 1..12
--------------|-----------------------------|---------------------------------------
Not found     | CONTRACT_NOT_FOUND          | No contract with this id
              | TIMESHEET_NOT_FOUND         | No timesheet for person/contract
              | TIME_ENTRY_NOT_FOUND        | No time entry with this id
              | ABSENCE_NOT_FOUND           | No absence with this id
              | PAYSLIP_NOT_FOUND           | No payslip with this id
--------------|-----------------------------|---------------------------------------
Conflict      | MONTH_ALREADY_CLOSED        | Closing a month twice
              | ALREADY_PROCESSED           | Approving/rejecting a non-pending record
              | MONTH_CLOSED                | Writing into a closed month
--------------|-----------------------------|---------------------------------------
Precondition  | PENDING_ITEMS_EXIST         | Unreviewed records in the month
              | DATE_OUT_OF_CONTRACT_RANGE  | Record outside the contract window
              | INVALID_SALARY              | Base salary not a positive number
              | MONTH_BEFORE_CONTRACT       | Month ends before the contract starts
              | CONTRACT_PERSON_MISMATCH    | Person is not the contract holder
--------------|-----------------------------|---------------------------------------
Immutability  | IMMUTABILITY_VIOLATION      | Updating a payslip or closed month
"""

from datetime import date
from typing import Any


class HRKernelError(Exception):
    """
    Base exception for all HR kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    identification.
    """

    code: str = "HR_KERNEL_ERROR"

    def to_dict(self) -> dict[str, Any]:
        """Code, message and structured fields, JSON-friendly."""
        details = {
            k: (v.isoformat() if isinstance(v, date) else v)
            for k, v in vars(self).items()
            if not k.startswith("_")
        }
        return {"code": self.code, "message": str(self), "details": details}


# Input validation


class InvalidInputError(HRKernelError):
    """Base exception for malformed or out-of-range input."""

    code: str = "INVALID_INPUT"


class MissingFieldsError(InvalidInputError):
    code: str = "MISSING_FIELDS"

    def __init__(self, fields: list[str]):
        self.fields = list(fields)
        super().__init__(f"Missing required fields: {', '.join(self.fields)}")


class InvalidTimeFormatError(InvalidInputError):
    """Time value does not match HH:mm within 00:00-23:59."""

    code: str = "INVALID_TIME_FORMAT"

    def __init__(self, field: str, value: str | None):
        self.field = field
        self.value = value
        super().__init__(f"Invalid time format for {field}: {value!r} (expected HH:mm)")


class InvalidTimeError(InvalidInputError):
    """Start and end of a time entry are identical."""

    code: str = "INVALID_TIME"

    def __init__(self, start_time: str, end_time: str):
        self.start_time = start_time
        self.end_time = end_time
        super().__init__(f"Start time {start_time} must differ from end time {end_time}")


class InvalidBreakError(InvalidInputError):
    code: str = "INVALID_BREAK"

    def __init__(self, break_hours: Any, span_hours: Any = None):
        self.break_hours = str(break_hours)
        self.span_hours = None if span_hours is None else str(span_hours)
        if span_hours is None:
            msg = f"Break must be a non-negative number of hours, got {break_hours}"
        else:
            msg = f"Break of {break_hours}h exceeds the worked span of {span_hours}h"
        super().__init__(msg)


class InvalidOvertimeError(InvalidInputError):
    code: str = "INVALID_OVERTIME"

    def __init__(self, overtime_hours: Any):
        self.overtime_hours = str(overtime_hours)
        super().__init__(f"Declared overtime must be >= 0, got {overtime_hours}")


class FutureDateError(InvalidInputError):
    """Time entry dated after the current day."""

    code: str = "FUTURE_DATE"

    def __init__(self, record_date: date, today: date):
        self.record_date = record_date
        self.today = today
        super().__init__(f"Date {record_date} is in the future (today is {today})")


class FutureAbsenceError(InvalidInputError):
    """Absence dated beyond the allowed forward horizon."""

    code: str = "FUTURE_ABSENCE"

    def __init__(self, absence_date: date, latest_allowed: date):
        self.absence_date = absence_date
        self.latest_allowed = latest_allowed
        super().__init__(
            f"Absence date {absence_date} is too far in the future "
            f"(latest allowed {latest_allowed})"
        )


class InvalidAbsenceError(InvalidInputError):
    code: str = "INVALID_ABSENCE"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid absence: {reason}")


class InvalidMonthFormatError(InvalidInputError):
    code: str = "INVALID_MONTH_FORMAT"

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Invalid month format {value!r} (expected MM/YYYY)")


class InvalidMonthError(InvalidInputError):
    code: str = "INVALID_MONTH"

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Invalid month {value!r} (month must be 1-12)")


# Lookups


class NotFoundError(HRKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class ContractNotFoundError(NotFoundError):
    code: str = "CONTRACT_NOT_FOUND"

    def __init__(self, contract_id: Any):
        self.contract_id = str(contract_id)
        super().__init__(f"Contract not found: {contract_id}")


class TimesheetNotFoundError(NotFoundError):
    code: str = "TIMESHEET_NOT_FOUND"

    def __init__(self, person_id: Any, contract_id: Any):
        self.person_id = str(person_id)
        self.contract_id = str(contract_id)
        super().__init__(
            f"No timesheet for person {person_id} on contract {contract_id}"
        )


class TimeEntryNotFoundError(NotFoundError):
    code: str = "TIME_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: Any):
        self.entry_id = str(entry_id)
        super().__init__(f"Time entry not found: {entry_id}")


class AbsenceNotFoundError(NotFoundError):
    code: str = "ABSENCE_NOT_FOUND"

    def __init__(self, absence_id: Any):
        self.absence_id = str(absence_id)
        super().__init__(f"Absence not found: {absence_id}")


class PayslipNotFoundError(NotFoundError):
    code: str = "PAYSLIP_NOT_FOUND"

    def __init__(self, payslip_id: Any):
        self.payslip_id = str(payslip_id)
        super().__init__(f"Payslip not found: {payslip_id}")


# State conflicts


class ConflictError(HRKernelError):
    """Base exception for requests that conflict with current state."""

    code: str = "CONFLICT"


class MonthAlreadyClosedError(ConflictError):
    """
    A closed-month marker already exists for this timesheet and month.

    Raised both by the pre-check and when the unique constraint on
    (timesheet_id, month_year) rejects a concurrent close.
    """

    code: str = "MONTH_ALREADY_CLOSED"

    def __init__(self, month_year: str, timesheet_id: Any = None):
        self.month_year = month_year
        self.timesheet_id = None if timesheet_id is None else str(timesheet_id)
        super().__init__(f"Month {month_year} is already closed")


class EntryAlreadyProcessedError(ConflictError):
    """Status transition attempted on a record that is no longer pending."""

    code: str = "ALREADY_PROCESSED"

    def __init__(
        self,
        record_type: str,
        record_id: Any,
        current_status: str,
        requested_status: str,
    ):
        self.record_type = record_type
        self.record_id = str(record_id)
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"{record_type} {record_id} is already {current_status}; "
            f"cannot move to {requested_status}"
        )


class MonthClosedError(ConflictError):
    """Write attempted on a record dated in a closed month."""

    code: str = "MONTH_CLOSED"

    def __init__(self, month_year: str, record_date: date):
        self.month_year = month_year
        self.record_date = record_date
        super().__init__(
            f"Month {month_year} is closed; cannot modify records dated {record_date}"
        )


# Business preconditions


class PreconditionError(HRKernelError):
    """Base exception for requests whose business preconditions fail."""

    code: str = "PRECONDITION_FAILED"


class PendingItemsExistError(PreconditionError):
    code: str = "PENDING_ITEMS_EXIST"

    def __init__(self, month_year: str, pending_entries: int, pending_absences: int):
        self.month_year = month_year
        self.pending_entries = pending_entries
        self.pending_absences = pending_absences
        self.pending_count = pending_entries + pending_absences
        super().__init__(
            f"{self.pending_count} item(s) pending validation in {month_year}"
        )


class DateOutOfContractRangeError(PreconditionError):
    code: str = "DATE_OUT_OF_CONTRACT_RANGE"

    def __init__(
        self, record_date: date, contract_start: date, contract_end: date | None
    ):
        self.record_date = record_date
        self.contract_start = contract_start
        self.contract_end = contract_end
        window = f"{contract_start} .. {contract_end or 'open'}"
        super().__init__(f"Date {record_date} is outside the contract window {window}")


class InvalidSalaryError(PreconditionError):
    code: str = "INVALID_SALARY"

    def __init__(self, raw_value: Any):
        self.raw_value = None if raw_value is None else str(raw_value)
        super().__init__(f"Invalid base salary: {raw_value!r}")


class MonthBeforeContractError(PreconditionError):
    code: str = "MONTH_BEFORE_CONTRACT"

    def __init__(self, month_year: str, contract_start: date):
        self.month_year = month_year
        self.contract_start = contract_start
        super().__init__(
            f"Month {month_year} ends before the contract starts on {contract_start}"
        )


class ContractPersonMismatchError(PreconditionError):
    """Records or a payslip requested for someone other than the contract holder."""

    code: str = "CONTRACT_PERSON_MISMATCH"

    def __init__(self, contract_id: Any, person_id: Any, holder_id: Any):
        self.contract_id = str(contract_id)
        self.person_id = str(person_id)
        self.holder_id = str(holder_id)
        super().__init__(
            f"Person {person_id} does not hold contract {contract_id}"
        )


# Immutability


class ImmutabilityError(HRKernelError):
    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Payslips and closed-month markers are immutable once written.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: Any, reason: str):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
