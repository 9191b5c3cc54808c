"""
HR Payroll API - Request and Response Schemas

Pydantic models for the timesheet and payslip endpoints.  JSON keys are
camelCase; Python attributes stay snake_case.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from hr_kernel.domain.records import AbsenceRecord, Bonus, TimeEntry
from hr_kernel.exceptions import MissingFieldsError
from hr_modules.timesheet.models import ClosedMonth, ContractOverview, Payslip, Timesheet
from hr_services import MonthCloseResult


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# REQUESTS
# =============================================================================

class TimeEntryIn(CamelModel):
    """
    A worked day.  Times are "H:MM" or "HH:MM".  Missing date or times are
    reported as 400 MISSING_FIELDS by the domain layer rather than as schema
    errors.
    """

    entry_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    break_hours: Optional[Decimal] = None
    overtime_hours: Decimal = Decimal("0")
    comments: str = ""

    def to_domain(self, default_break_hours: Decimal) -> TimeEntry:
        if self.entry_date is None:
            raise MissingFieldsError(["entryDate"])
        return TimeEntry(
            entry_date=self.entry_date,
            start_time=self.start_time,
            end_time=self.end_time,
            break_hours=(
                default_break_hours if self.break_hours is None else self.break_hours
            ),
            overtime_hours=self.overtime_hours,
            comments=self.comments,
        )


class AbsenceIn(CamelModel):
    absence_date: Optional[date] = None
    absence_type: Optional[str] = None
    duration_days: int = 1
    justification_ref: Optional[str] = None
    comments: str = ""

    def to_domain(self) -> AbsenceRecord:
        missing = [
            name
            for name, value in (("absenceDate", self.absence_date), ("absenceType", self.absence_type))
            if value is None
        ]
        if missing:
            raise MissingFieldsError(missing)
        return AbsenceRecord(
            absence_date=self.absence_date,
            absence_type=self.absence_type,
            duration_days=self.duration_days,
            justification_ref=self.justification_ref,
            comments=self.comments,
        )


class TimesheetRecordRequest(CamelModel):
    person_id: UUID
    contract_id: UUID
    time_entries: List[TimeEntryIn] = Field(default_factory=list)
    absences: List[AbsenceIn] = Field(default_factory=list)


class TimeEntryCreate(TimeEntryIn):
    person_id: UUID
    contract_id: UUID


class AbsenceCreate(AbsenceIn):
    person_id: UUID
    contract_id: UUID


class BonusIn(CamelModel):
    label: str
    amount: Decimal = Field(..., ge=0)

    def to_domain(self) -> Bonus:
        return Bonus(label=self.label, amount=self.amount)


class CloseMonthRequest(CamelModel):
    month_year: Optional[str] = None
    bonuses: List[BonusIn] = Field(default_factory=list)


# =============================================================================
# RESPONSES
# =============================================================================

class TimeEntryOut(CamelModel):
    id: UUID
    entry_date: date
    start_time: Optional[str]
    end_time: Optional[str]
    break_hours: Decimal
    overtime_hours: Decimal
    comments: str
    status: str

    @classmethod
    def of(cls, entry: TimeEntry) -> "TimeEntryOut":
        return cls(
            id=entry.id,
            entry_date=entry.entry_date,
            start_time=entry.start_time,
            end_time=entry.end_time,
            break_hours=entry.break_hours,
            overtime_hours=entry.overtime_hours,
            comments=entry.comments,
            status=entry.status.value,
        )


class AbsenceOut(CamelModel):
    id: UUID
    absence_date: date
    absence_type: str
    duration_days: int
    justification_ref: Optional[str]
    comments: str
    status: str

    @classmethod
    def of(cls, absence: AbsenceRecord) -> "AbsenceOut":
        return cls(
            id=absence.id,
            absence_date=absence.absence_date,
            absence_type=absence.absence_type.value,
            duration_days=absence.duration_days,
            justification_ref=absence.justification_ref,
            comments=absence.comments,
            status=absence.status.value,
        )


class ClosedMonthOut(CamelModel):
    month_year: str
    closed_at: datetime
    closed_by: UUID
    time_entry_count: int
    absence_count: int
    status: str

    @classmethod
    def of(cls, marker: ClosedMonth) -> "ClosedMonthOut":
        return cls(
            month_year=marker.month_year,
            closed_at=marker.closed_at,
            closed_by=marker.closed_by,
            time_entry_count=marker.time_entry_count,
            absence_count=marker.absence_count,
            status=marker.status.value,
        )


class TimesheetOut(CamelModel):
    id: UUID
    person_id: UUID
    contract_id: UUID
    time_entries: List[TimeEntryOut]
    absences: List[AbsenceOut]
    closed_months: List[ClosedMonthOut]

    @classmethod
    def of(cls, timesheet: Timesheet) -> "TimesheetOut":
        return cls(
            id=timesheet.id,
            person_id=timesheet.person_id,
            contract_id=timesheet.contract_id,
            time_entries=[TimeEntryOut.of(e) for e in timesheet.time_entries],
            absences=[AbsenceOut.of(a) for a in timesheet.absences],
            closed_months=[ClosedMonthOut.of(m) for m in timesheet.closed_months],
        )


class CloseMonthOut(CamelModel):
    message: str
    payslip_id: UUID
    timesheet_id: UUID
    month_year: str
    gross: Decimal
    net: Decimal
    normal_hours: Decimal
    overtime_hours: Decimal
    total_hours: Decimal
    unjustified_days: int
    time_entry_count: int
    absence_count: int
    closed_at: datetime
    closed_by: UUID

    @classmethod
    def of(cls, result: MonthCloseResult) -> "CloseMonthOut":
        return cls(
            message=f"Month {result.month_year} closed",
            payslip_id=result.payslip_id,
            timesheet_id=result.timesheet_id,
            month_year=result.month_year,
            gross=result.gross_pay,
            net=result.net_pay,
            normal_hours=result.normal_hours,
            overtime_hours=result.overtime_hours,
            total_hours=result.total_hours,
            unjustified_days=result.unjustified_days,
            time_entry_count=result.time_entry_count,
            absence_count=result.absence_count,
            closed_at=result.closed_at,
            closed_by=result.closed_by,
        )


class DeductionOut(CamelModel):
    label: str
    amount: Decimal


class BonusOut(CamelModel):
    label: str
    amount: Decimal


class AbsenceLineOut(CamelModel):
    absence_type: str
    days: int
    justification_ref: Optional[str]


class PayslipDetailsOut(CamelModel):
    normal_hours: Decimal
    overtime_hours: Decimal
    paid_leave_days: int
    absences: List[AbsenceLineOut]
    unjustified_days: int
    hourly_rate: Decimal
    bonuses: List[BonusOut]
    base_salary: Decimal


class PayslipOut(CamelModel):
    id: UUID
    employee_id: UUID
    contract_id: UUID
    year: int
    month: int
    month_year: str
    gross_pay: Decimal
    net_pay: Decimal
    total_hours: Decimal
    overtime_hours: Decimal
    deductions: List[DeductionOut]
    details: PayslipDetailsOut
    issued_at: Optional[datetime]

    @classmethod
    def of(cls, payslip: Payslip) -> "PayslipOut":
        details = payslip.details
        return cls(
            id=payslip.id,
            employee_id=payslip.employee_id,
            contract_id=payslip.contract_id,
            year=payslip.year,
            month=payslip.month,
            month_year=payslip.month_year,
            gross_pay=payslip.gross_pay,
            net_pay=payslip.net_pay,
            total_hours=payslip.total_hours,
            overtime_hours=payslip.overtime_hours,
            deductions=[DeductionOut(label=d.label, amount=d.amount) for d in payslip.deductions],
            details=PayslipDetailsOut(
                normal_hours=details.normal_hours,
                overtime_hours=details.overtime_hours,
                paid_leave_days=details.paid_leave_days,
                absences=[
                    AbsenceLineOut(
                        absence_type=line.absence_type.value,
                        days=line.days,
                        justification_ref=line.justification_ref,
                    )
                    for line in details.absences
                ],
                unjustified_days=details.unjustified_days,
                hourly_rate=details.hourly_rate,
                bonuses=[BonusOut(label=b.label, amount=b.amount) for b in details.bonuses],
                base_salary=details.base_salary,
            ),
            issued_at=payslip.issued_at,
        )


class ContractOverviewOut(CamelModel):
    contract_id: UUID
    person_id: UUID
    base_salary: Optional[str]
    start_date: date
    end_date: Optional[date]
    timesheet: Optional[TimesheetOut]
    pending_months: List[str]
    payslips: List[PayslipOut]

    @classmethod
    def of(cls, overview: ContractOverview) -> "ContractOverviewOut":
        contract = overview.contract
        return cls(
            contract_id=contract.id,
            person_id=contract.person_id,
            base_salary=None if contract.base_salary is None else str(contract.base_salary),
            start_date=contract.start_date,
            end_date=contract.end_date,
            timesheet=TimesheetOut.of(overview.timesheet) if overview.timesheet else None,
            pending_months=[m.label for m in overview.pending_months],
            payslips=[PayslipOut.of(p) for p in overview.payslips],
        )
