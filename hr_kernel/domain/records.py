"""
Timesheet records -- the value objects every layer agrees on.

Responsibility:
    Frozen DTOs for contract terms, time entries, absences and bonuses, plus
    the review-status state machine.  Engines compute on these, modules
    convert ORM rows to and from them.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - EntryStatus moves only pending -> approved and pending -> rejected.
    - AbsenceRecord is validated at construction: a known AbsenceType and an
      integral duration of at least one day.
    - TimeEntry break and declared overtime are non-negative Decimals.
    - Time strings are NOT validated here: stored rows may predate the format
      rule, so malformed times are tolerated and worked-hours computation
      fails closed on them.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum
from uuid import UUID, uuid4

from hr_kernel.exceptions import (
    ContractPersonMismatchError,
    DateOutOfContractRangeError,
    EntryAlreadyProcessedError,
    InvalidAbsenceError,
    InvalidBreakError,
    InvalidOvertimeError,
)


class EntryStatus(str, Enum):
    """Review status of a time entry or absence."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    def can_transition_to(self, target: "EntryStatus") -> bool:
        return target in _LEGAL_TRANSITIONS[self]

    def transition_to(
        self,
        target: "EntryStatus",
        *,
        record_type: str,
        record_id: UUID | str,
    ) -> "EntryStatus":
        """Return ``target`` or raise EntryAlreadyProcessedError."""
        if not self.can_transition_to(target):
            raise EntryAlreadyProcessedError(
                record_type=record_type,
                record_id=record_id,
                current_status=self.value,
                requested_status=target.value,
            )
        return target


_LEGAL_TRANSITIONS: dict[EntryStatus, frozenset[EntryStatus]] = {
    EntryStatus.PENDING: frozenset({EntryStatus.APPROVED, EntryStatus.REJECTED}),
    EntryStatus.APPROVED: frozenset(),
    EntryStatus.REJECTED: frozenset(),
}


class AbsenceType(str, Enum):
    ILLNESS = "illness"
    PAID_LEAVE = "paid_leave"
    UNPAID_LEAVE = "unpaid_leave"
    OTHER = "other"

    @classmethod
    def parse(cls, value: "AbsenceType | str") -> "AbsenceType":
        """Accept enum members, canonical values and the legacy French labels."""
        if isinstance(value, AbsenceType):
            return value
        key = str(value).strip().lower()
        try:
            return cls(key)
        except ValueError:
            pass
        if key in _LEGACY_ABSENCE_LABELS:
            return _LEGACY_ABSENCE_LABELS[key]
        raise InvalidAbsenceError(f"unknown absence type {value!r}")

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")

    @property
    def is_paid(self) -> bool:
        return self is AbsenceType.PAID_LEAVE


_LEGACY_ABSENCE_LABELS = {
    "maladie": AbsenceType.ILLNESS,
    "congé payé": AbsenceType.PAID_LEAVE,
    "conge paye": AbsenceType.PAID_LEAVE,
    "congé sans solde": AbsenceType.UNPAID_LEAVE,
    "conge sans solde": AbsenceType.UNPAID_LEAVE,
    "autre": AbsenceType.OTHER,
}


def _as_decimal(value, error_factory) -> Decimal:
    if isinstance(value, bool):
        raise error_factory(value)
    try:
        result = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise error_factory(value) from None
    if not result.is_finite() or result < 0:
        raise error_factory(value)
    return result


@dataclass(frozen=True)
class ContractTerms:
    """
    The slice of an employment contract that payroll needs.

    ``base_salary`` stays raw (free text or number); the calculator parses it
    so an invalid salary surfaces as INVALID_SALARY at closing time.
    """

    id: UUID
    person_id: UUID
    base_salary: str | Decimal | int | float | None
    start_date: date
    end_date: date | None = None
    organization_id: UUID | None = None

    def covers(self, day: date) -> bool:
        if day < self.start_date:
            return False
        return self.end_date is None or day <= self.end_date

    def require_covers(self, day: date) -> None:
        if not self.covers(day):
            raise DateOutOfContractRangeError(day, self.start_date, self.end_date)

    def require_held_by(self, person_id: UUID) -> None:
        if person_id != self.person_id:
            raise ContractPersonMismatchError(self.id, person_id, self.person_id)


@dataclass(frozen=True)
class TimeEntry:
    entry_date: date
    start_time: str | None
    end_time: str | None
    break_hours: Decimal = Decimal("1")
    overtime_hours: Decimal = Decimal("0")
    comments: str = ""
    status: EntryStatus = EntryStatus.PENDING
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "break_hours", _as_decimal(self.break_hours, InvalidBreakError))
        object.__setattr__(
            self, "overtime_hours", _as_decimal(self.overtime_hours, InvalidOvertimeError)
        )
        object.__setattr__(self, "status", EntryStatus(self.status))

    @property
    def is_approved(self) -> bool:
        return self.status is EntryStatus.APPROVED


@dataclass(frozen=True)
class AbsenceRecord:
    absence_date: date
    absence_type: AbsenceType
    duration_days: int = 1
    justification_ref: str | None = None
    comments: str = ""
    status: EntryStatus = EntryStatus.PENDING
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        object.__setattr__(self, "absence_type", AbsenceType.parse(self.absence_type))
        if isinstance(self.duration_days, bool) or not isinstance(self.duration_days, int):
            raise InvalidAbsenceError(
                f"duration_days must be an integer, got {self.duration_days!r}"
            )
        if self.duration_days < 1:
            raise InvalidAbsenceError(
                f"duration_days must be >= 1, got {self.duration_days}"
            )
        object.__setattr__(self, "status", EntryStatus(self.status))

    @property
    def is_approved(self) -> bool:
        return self.status is EntryStatus.APPROVED

    @property
    def last_day(self) -> date:
        return self.absence_date + timedelta(days=self.duration_days - 1)

    def covered_dates(self) -> tuple[date, ...]:
        return tuple(
            self.absence_date + timedelta(days=i) for i in range(self.duration_days)
        )


@dataclass(frozen=True)
class Bonus:
    label: str
    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", Decimal(str(self.amount)))
