"""
Timesheet ORM Persistence Models (``hr_modules.timesheet.orm``).

Responsibility:
    SQLAlchemy models persisting contracts, timesheets, their records,
    closed-month markers and payslips.  Each class mirrors a DTO and provides
    ``to_dto()`` / ``from_dto()`` conversion.

Architecture position:
    **Modules layer** -- persistence companions to the DTOs.  Inherits from
    ``TrackedBase`` (id, created_at, updated_at, created_by_id, updated_by_id).

Invariants enforced:
    - Hours and money are Decimal (Numeric(38,9)); JSON payloads store them
      as strings.
    - Enum fields are stored as String containing the enum .value.
    - One timesheet per (person_id, contract_id)
      (uq_hr_timesheet_person_contract).
    - One closed-month marker per (timesheet_id, month_year)
      (uq_hr_closed_month).  This constraint is what makes concurrent closes
      of the same month collapse into a single success.
    - One payslip per (contract_id, employee_id, year, month)
      (uq_hr_payslip_period).

Audit relevance:
    created_by_id on a ClosedMonthModel is the actor who closed the month.
    Payslips and markers are guarded by ``hr_kernel.db.immutability``.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    JSON,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_kernel.db.base import Base, TrackedBase, UUIDString

# ---------------------------------------------------------------------------
# Contract <-> payslip references
# ---------------------------------------------------------------------------

contract_payslips = Table(
    "hr_contract_payslips",
    Base.metadata,
    Column("contract_id", UUIDString(), ForeignKey("hr_contracts.id"), primary_key=True),
    Column("payslip_id", UUIDString(), ForeignKey("hr_payslips.id"), primary_key=True),
)


# ---------------------------------------------------------------------------
# ContractModel
# ---------------------------------------------------------------------------


class ContractModel(TrackedBase):
    """
    ORM model for ``ContractTerms``.

    ``base_salary`` is kept as the raw text the admin flow captured; parsing
    happens in the payroll engine.
    """

    __tablename__ = "hr_contracts"

    person_id: Mapped[UUID] = mapped_column(nullable=False)
    organization_id: Mapped[UUID | None] = mapped_column(nullable=True)
    base_salary: Mapped[str | None] = mapped_column(String(100), nullable=True)
    start_date: Mapped[date] = mapped_column(nullable=False)
    end_date: Mapped[date | None] = mapped_column(nullable=True)

    payslips: Mapped[list["PayslipModel"]] = relationship(
        "PayslipModel",
        secondary=contract_payslips,
        lazy="select",
        order_by="PayslipModel.year, PayslipModel.month",
    )

    __table_args__ = (
        Index("idx_hr_contract_person", "person_id"),
        Index("idx_hr_contract_organization", "organization_id"),
    )

    def to_dto(self):
        from hr_kernel.domain.records import ContractTerms

        return ContractTerms(
            id=self.id,
            person_id=self.person_id,
            base_salary=self.base_salary,
            start_date=self.start_date,
            end_date=self.end_date,
            organization_id=self.organization_id,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "ContractModel":
        return cls(
            id=dto.id,
            person_id=dto.person_id,
            organization_id=dto.organization_id,
            base_salary=None if dto.base_salary is None else str(dto.base_salary),
            start_date=dto.start_date,
            end_date=dto.end_date,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return f"<ContractModel {self.id} person={self.person_id} from {self.start_date}>"


# ---------------------------------------------------------------------------
# TimesheetModel
# ---------------------------------------------------------------------------


class TimesheetModel(TrackedBase):
    """ORM model for ``Timesheet`` -- the records of one person on one contract."""

    __tablename__ = "hr_timesheets"

    person_id: Mapped[UUID] = mapped_column(nullable=False)
    contract_id: Mapped[UUID] = mapped_column(
        ForeignKey("hr_contracts.id"), nullable=False,
    )

    time_entries: Mapped[list["TimeEntryModel"]] = relationship(
        "TimeEntryModel",
        back_populates="timesheet",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="TimeEntryModel.entry_date",
    )
    absences: Mapped[list["AbsenceModel"]] = relationship(
        "AbsenceModel",
        back_populates="timesheet",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="AbsenceModel.absence_date",
    )
    closed_months: Mapped[list["ClosedMonthModel"]] = relationship(
        "ClosedMonthModel",
        lazy="select",
        order_by="ClosedMonthModel.month_year",
    )

    __table_args__ = (
        UniqueConstraint("person_id", "contract_id", name="uq_hr_timesheet_person_contract"),
        Index("idx_hr_timesheet_contract", "contract_id"),
    )

    def to_dto(self):
        from hr_modules.timesheet.models import Timesheet

        return Timesheet(
            id=self.id,
            person_id=self.person_id,
            contract_id=self.contract_id,
            time_entries=tuple(e.to_dto() for e in self.time_entries),
            absences=tuple(a.to_dto() for a in self.absences),
            closed_months=tuple(m.to_dto() for m in self.closed_months),
        )


# ---------------------------------------------------------------------------
# TimeEntryModel / AbsenceModel
# ---------------------------------------------------------------------------


class TimeEntryModel(TrackedBase):
    """
    ORM model for ``TimeEntry``.

    Times are stored as entered (String(16)) so legacy malformed values load
    and fail closed in the calculator instead of failing on read.
    """

    __tablename__ = "hr_time_entries"

    timesheet_id: Mapped[UUID] = mapped_column(
        ForeignKey("hr_timesheets.id"), nullable=False,
    )
    entry_date: Mapped[date] = mapped_column(nullable=False)
    start_time: Mapped[str | None] = mapped_column(String(16), nullable=True)
    end_time: Mapped[str | None] = mapped_column(String(16), nullable=True)
    break_hours: Mapped[Decimal] = mapped_column(default=Decimal("1"), nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    comments: Mapped[str] = mapped_column(Text, default="", nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)

    timesheet: Mapped["TimesheetModel"] = relationship(
        "TimesheetModel", back_populates="time_entries",
    )

    __table_args__ = (
        Index("idx_hr_time_entry_timesheet_date", "timesheet_id", "entry_date"),
        Index("idx_hr_time_entry_status", "status"),
    )

    def to_dto(self):
        from hr_kernel.domain.records import EntryStatus, TimeEntry

        return TimeEntry(
            id=self.id,
            entry_date=self.entry_date,
            start_time=self.start_time,
            end_time=self.end_time,
            break_hours=self.break_hours,
            overtime_hours=self.overtime_hours,
            comments=self.comments or "",
            status=EntryStatus(self.status),
        )

    @classmethod
    def from_dto(cls, dto, timesheet_id: UUID, created_by_id: UUID) -> "TimeEntryModel":
        model = cls(id=dto.id, timesheet_id=timesheet_id, created_by_id=created_by_id)
        model.apply(dto)
        return model

    def apply(self, dto) -> bool:
        """Copy DTO fields onto the row, touching only changed columns."""
        values = {
            "entry_date": dto.entry_date,
            "start_time": dto.start_time,
            "end_time": dto.end_time,
            "break_hours": dto.break_hours,
            "overtime_hours": dto.overtime_hours,
            "comments": dto.comments,
            "status": dto.status.value,
        }
        return _assign_changed(self, values)


class AbsenceModel(TrackedBase):
    """ORM model for ``AbsenceRecord``."""

    __tablename__ = "hr_absences"

    timesheet_id: Mapped[UUID] = mapped_column(
        ForeignKey("hr_timesheets.id"), nullable=False,
    )
    absence_date: Mapped[date] = mapped_column(nullable=False)
    absence_type: Mapped[str] = mapped_column(String(30), nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    justification_ref: Mapped[str | None] = mapped_column(String(500), nullable=True)
    comments: Mapped[str] = mapped_column(Text, default="", nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)

    timesheet: Mapped["TimesheetModel"] = relationship(
        "TimesheetModel", back_populates="absences",
    )

    __table_args__ = (
        Index("idx_hr_absence_timesheet_date", "timesheet_id", "absence_date"),
        Index("idx_hr_absence_status", "status"),
    )

    def to_dto(self):
        from hr_kernel.domain.records import AbsenceRecord, AbsenceType, EntryStatus

        return AbsenceRecord(
            id=self.id,
            absence_date=self.absence_date,
            absence_type=AbsenceType(self.absence_type),
            duration_days=int(self.duration_days),
            justification_ref=self.justification_ref,
            comments=self.comments or "",
            status=EntryStatus(self.status),
        )

    @classmethod
    def from_dto(cls, dto, timesheet_id: UUID, created_by_id: UUID) -> "AbsenceModel":
        model = cls(id=dto.id, timesheet_id=timesheet_id, created_by_id=created_by_id)
        model.apply(dto)
        return model

    def apply(self, dto) -> bool:
        values = {
            "absence_date": dto.absence_date,
            "absence_type": dto.absence_type.value,
            "duration_days": dto.duration_days,
            "justification_ref": dto.justification_ref,
            "comments": dto.comments,
            "status": dto.status.value,
        }
        return _assign_changed(self, values)


def _assign_changed(model, values: dict) -> bool:
    changed = False
    for key, value in values.items():
        if getattr(model, key, None) != value:
            setattr(model, key, value)
            changed = True
    return changed


# ---------------------------------------------------------------------------
# ClosedMonthModel
# ---------------------------------------------------------------------------


class ClosedMonthModel(TrackedBase):
    """
    ORM model for ``ClosedMonth``.

    Guarantees:
        - Unique per (timesheet_id, month_year).
        - Immutable once inserted (ORM listener).
    """

    __tablename__ = "hr_closed_months"

    timesheet_id: Mapped[UUID] = mapped_column(
        ForeignKey("hr_timesheets.id"), nullable=False,
    )
    month_year: Mapped[str] = mapped_column(String(7), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="closed", nullable=False)
    closed_at: Mapped[datetime] = mapped_column(nullable=False)
    time_entry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    absence_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    payslip_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("hr_payslips.id"), nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("timesheet_id", "month_year", name="uq_hr_closed_month"),
    )

    def to_dto(self):
        from hr_modules.timesheet.models import ClosedMonth, MonthStatus

        return ClosedMonth(
            id=self.id,
            timesheet_id=self.timesheet_id,
            month_year=self.month_year,
            closed_at=self.closed_at,
            closed_by=self.created_by_id,
            time_entry_count=int(self.time_entry_count),
            absence_count=int(self.absence_count),
            status=MonthStatus(self.status),
        )

    @classmethod
    def from_dto(cls, dto, payslip_id: UUID | None = None) -> "ClosedMonthModel":
        return cls(
            id=dto.id,
            timesheet_id=dto.timesheet_id,
            month_year=dto.month_year,
            status=dto.status.value,
            closed_at=dto.closed_at,
            time_entry_count=dto.time_entry_count,
            absence_count=dto.absence_count,
            payslip_id=payslip_id,
            created_by_id=dto.closed_by,
        )


# ---------------------------------------------------------------------------
# PayslipModel
# ---------------------------------------------------------------------------


class PayslipModel(TrackedBase):
    """
    ORM model for ``Payslip``.

    ``deductions`` and ``details`` are JSON documents; every Decimal inside
    them is serialized as a string so no precision is lost on round-trip.
    """

    __tablename__ = "hr_payslips"

    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    contract_id: Mapped[UUID] = mapped_column(
        ForeignKey("hr_contracts.id"), nullable=False,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    gross_pay: Mapped[Decimal] = mapped_column(nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(nullable=False)
    deductions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    issued_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "contract_id", "employee_id", "year", "month",
            name="uq_hr_payslip_period",
        ),
        Index("idx_hr_payslip_employee", "employee_id"),
    )

    def to_dto(self):
        from hr_engines.payroll_calculator import AbsenceLine, DeductionLine
        from hr_kernel.domain.records import AbsenceType, Bonus
        from hr_modules.timesheet.models import Payslip, PayslipDetails

        d = self.details
        return Payslip(
            id=self.id,
            employee_id=self.employee_id,
            contract_id=self.contract_id,
            year=int(self.year),
            month=int(self.month),
            gross_pay=_dec(self.gross_pay, "0.01"),
            net_pay=_dec(self.net_pay, "0.01"),
            total_hours=_dec(self.total_hours, "0.001"),
            overtime_hours=_dec(self.overtime_hours, "0.001"),
            deductions=tuple(
                DeductionLine(label=x["label"], amount=Decimal(x["amount"]))
                for x in self.deductions
            ),
            details=PayslipDetails(
                normal_hours=Decimal(d["normal_hours"]),
                overtime_hours=Decimal(d["overtime_hours"]),
                paid_leave_days=int(d["paid_leave_days"]),
                absences=tuple(
                    AbsenceLine(
                        absence_type=AbsenceType(a["type"]),
                        days=int(a["days"]),
                        justification_ref=a.get("justification_ref"),
                    )
                    for a in d["absences"]
                ),
                unjustified_days=int(d["unjustified_days"]),
                hourly_rate=Decimal(d["hourly_rate"]),
                bonuses=tuple(
                    Bonus(label=b["label"], amount=Decimal(b["amount"]))
                    for b in d["bonuses"]
                ),
                base_salary=Decimal(d["base_salary"]),
            ),
            issued_at=self.issued_at,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID) -> "PayslipModel":
        details = dto.details
        return cls(
            id=dto.id,
            employee_id=dto.employee_id,
            contract_id=dto.contract_id,
            year=dto.year,
            month=dto.month,
            gross_pay=dto.gross_pay,
            net_pay=dto.net_pay,
            total_hours=dto.total_hours,
            overtime_hours=dto.overtime_hours,
            deductions=[
                {"label": line.label, "amount": str(line.amount)}
                for line in dto.deductions
            ],
            details={
                "normal_hours": str(details.normal_hours),
                "overtime_hours": str(details.overtime_hours),
                "paid_leave_days": details.paid_leave_days,
                "absences": [
                    {
                        "type": a.absence_type.value,
                        "days": a.days,
                        "justification_ref": a.justification_ref,
                    }
                    for a in details.absences
                ],
                "unjustified_days": details.unjustified_days,
                "hourly_rate": str(details.hourly_rate),
                "bonuses": [
                    {"label": b.label, "amount": str(b.amount)} for b in details.bonuses
                ],
                "base_salary": str(details.base_salary),
            },
            issued_at=dto.issued_at,
            created_by_id=created_by_id,
        )


def _dec(value, quantum: str) -> Decimal:
    # Numeric(38, 9) comes back with nine places; restore the document scale
    return Decimal(value).quantize(Decimal(quantum))
