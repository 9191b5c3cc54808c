"""
Timesheet Domain Models (``hr_modules.timesheet.models``).

Responsibility
--------------
Frozen dataclass value objects for the documents this module owns: the
timesheet aggregate, closed-month markers and payslips.  Record-level DTOs
(time entries, absences, contract terms) live in ``hr_kernel.domain.records``
because the engines compute on them.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``; edits produce a new instance.
* Hours and money are ``Decimal``.
* ``Payslip`` rejects construction when normal + overtime != total hours.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from hr_engines.payroll_calculator import AbsenceLine, DeductionLine, PayrollResult
from hr_kernel.domain.month import MonthYear
from hr_kernel.domain.records import (
    AbsenceRecord,
    Bonus,
    ContractTerms,
    EntryStatus,
    TimeEntry,
)


class MonthStatus(str, Enum):
    CLOSED = "closed"


@dataclass(frozen=True)
class ClosedMonth:
    """Marker that locks one month of one timesheet."""

    timesheet_id: UUID
    month_year: str
    closed_at: datetime
    closed_by: UUID
    time_entry_count: int
    absence_count: int
    status: MonthStatus = MonthStatus.CLOSED
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class Timesheet:
    """All records of one person on one contract."""

    person_id: UUID
    contract_id: UUID
    time_entries: tuple[TimeEntry, ...] = ()
    absences: tuple[AbsenceRecord, ...] = ()
    closed_months: tuple[ClosedMonth, ...] = ()
    id: UUID = field(default_factory=uuid4)

    # -- queries ------------------------------------------------------------

    def is_month_closed(self, month: MonthYear) -> bool:
        return any(m.month_year == month.label for m in self.closed_months)

    def entries_in(self, month: MonthYear) -> tuple[TimeEntry, ...]:
        return tuple(e for e in self.time_entries if month.contains(e.entry_date))

    def absences_in(self, month: MonthYear) -> tuple[AbsenceRecord, ...]:
        return tuple(a for a in self.absences if month.contains(a.absence_date))

    def absences_overlapping(self, month: MonthYear) -> tuple[AbsenceRecord, ...]:
        """Absences with at least one covered day in ``month``, wherever they start."""
        return tuple(
            a
            for a in self.absences
            if a.absence_date <= month.last_day and a.last_day >= month.first_day
        )

    def pending_in(self, month: MonthYear) -> tuple[int, int]:
        """(pending time entries, pending absences) touching ``month``."""
        entries = sum(1 for e in self.entries_in(month) if e.status is EntryStatus.PENDING)
        absences = sum(
            1 for a in self.absences_overlapping(month) if a.status is EntryStatus.PENDING
        )
        return entries, absences

    def pending_months(self) -> tuple[MonthYear, ...]:
        """Months still holding unreviewed records, oldest first."""
        months = {
            MonthYear.of(e.entry_date)
            for e in self.time_entries
            if e.status is EntryStatus.PENDING
        }
        for absence in self.absences:
            if absence.status is EntryStatus.PENDING:
                months.update(MonthYear.of(d) for d in absence.covered_dates())
        return tuple(sorted(months))

    def find_time_entry(self, entry_id: UUID) -> TimeEntry | None:
        return next((e for e in self.time_entries if e.id == entry_id), None)

    def find_absence(self, absence_id: UUID) -> AbsenceRecord | None:
        return next((a for a in self.absences if a.id == absence_id), None)

    # -- edits (return a new Timesheet) -----------------------------------

    def with_time_entry(self, entry: TimeEntry) -> "Timesheet":
        return replace(self, time_entries=self.time_entries + (entry,))

    def replacing_time_entry(self, entry: TimeEntry) -> "Timesheet":
        return replace(
            self,
            time_entries=tuple(entry if e.id == entry.id else e for e in self.time_entries),
        )

    def without_time_entry(self, entry_id: UUID) -> "Timesheet":
        return replace(
            self,
            time_entries=tuple(e for e in self.time_entries if e.id != entry_id),
        )

    def with_absence(self, absence: AbsenceRecord) -> "Timesheet":
        return replace(self, absences=self.absences + (absence,))

    def replacing_absence(self, absence: AbsenceRecord) -> "Timesheet":
        return replace(
            self,
            absences=tuple(absence if a.id == absence.id else a for a in self.absences),
        )


@dataclass(frozen=True)
class PayslipDetails:
    normal_hours: Decimal
    overtime_hours: Decimal
    paid_leave_days: int
    absences: tuple[AbsenceLine, ...]
    unjustified_days: int
    hourly_rate: Decimal
    bonuses: tuple[Bonus, ...]
    base_salary: Decimal


@dataclass(frozen=True)
class Payslip:
    """The immutable pay document produced by closing a month."""

    employee_id: UUID
    contract_id: UUID
    year: int
    month: int
    gross_pay: Decimal
    net_pay: Decimal
    total_hours: Decimal
    overtime_hours: Decimal
    deductions: tuple[DeductionLine, ...]
    details: PayslipDetails
    issued_at: datetime | None = None
    id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        if self.details.normal_hours + self.details.overtime_hours != self.total_hours:
            raise ValueError(
                f"Payslip hours mismatch: {self.details.normal_hours} + "
                f"{self.details.overtime_hours} != {self.total_hours}"
            )

    @property
    def month_year(self) -> str:
        return MonthYear(self.year, self.month).label

    @classmethod
    def from_result(
        cls,
        result: PayrollResult,
        employee_id: UUID,
        contract_id: UUID,
        issued_at: datetime | None = None,
    ) -> "Payslip":
        return cls(
            employee_id=employee_id,
            contract_id=contract_id,
            year=result.period.year,
            month=result.period.month,
            gross_pay=result.gross_pay,
            net_pay=result.net_pay,
            total_hours=result.total_hours,
            overtime_hours=result.overtime_hours,
            deductions=result.deductions,
            details=PayslipDetails(
                normal_hours=result.normal_hours,
                overtime_hours=result.overtime_hours,
                paid_leave_days=result.paid_leave_days,
                absences=result.absences,
                unjustified_days=result.unjustified_days,
                hourly_rate=result.hourly_rate,
                bonuses=result.bonuses,
                base_salary=result.base_salary,
            ),
            issued_at=issued_at,
        )


@dataclass(frozen=True)
class ContractOverview:
    """One contract of an organization with everything an approver reviews."""

    contract: ContractTerms
    timesheet: Timesheet | None
    payslips: tuple[Payslip, ...] = ()

    @property
    def pending_months(self) -> tuple[MonthYear, ...]:
        return self.timesheet.pending_months() if self.timesheet is not None else ()
