"""
Payroll persistence collaborator (``hr_modules.timesheet.store``).

Responsibility:
    The only component that touches timesheet, contract and payslip tables.
    Speaks DTOs on its public surface; ORM rows never leak out.

Architecture position:
    **Modules layer**.  ``PayrollStore`` is the protocol the service and the
    month-close orchestrator depend on; ``SqlAlchemyPayrollStore`` is the
    SQLAlchemy implementation.

Invariants enforced:
    - The store only flushes.  Callers own commit/rollback.
    - ``close_month_atomically`` writes payslip, marker and contract link
      inside the caller's transaction.  A unique-constraint violation on
      either the marker or the payslip surfaces as ``MonthAlreadyClosedError``
      and the caller's rollback discards the rest.
    - ``find_timesheet_for_update`` takes a row lock (SELECT ... FOR UPDATE)
      on PostgreSQL; SQLite ignores the lock clause.

Failure modes:
    - ``MonthAlreadyClosedError`` from ``close_month_atomically``.
    - ``TimesheetNotFoundError`` / ``ContractNotFoundError`` when a write
      targets a missing parent row.
    - ``ImmutabilityViolationError`` from the ORM listeners when a reviewed
      record, a payslip or a marker would change.
"""

from __future__ import annotations

from typing import Protocol, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hr_kernel.domain.records import AbsenceRecord, ContractTerms, TimeEntry
from hr_kernel.exceptions import (
    ContractNotFoundError,
    MonthAlreadyClosedError,
    PayslipNotFoundError,
    TimesheetNotFoundError,
)
from hr_kernel.logging_config import get_logger
from hr_modules.timesheet.models import ClosedMonth, Payslip, Timesheet
from hr_modules.timesheet.orm import (
    AbsenceModel,
    ClosedMonthModel,
    ContractModel,
    PayslipModel,
    TimeEntryModel,
    TimesheetModel,
)

logger = get_logger("modules.timesheet.store")


class PayrollStore(Protocol):
    def find_contract(self, contract_id: UUID) -> ContractTerms | None: ...

    def create_contract(self, contract: ContractTerms, actor_id: UUID) -> ContractTerms: ...

    def list_contracts(self, organization_id: UUID) -> list[ContractTerms]: ...

    def find_timesheet(self, person_id: UUID, contract_id: UUID) -> Timesheet | None: ...

    def find_timesheet_for_update(
        self, person_id: UUID, contract_id: UUID
    ) -> Timesheet | None: ...

    def find_timesheets_by_organization(self, organization_id: UUID) -> list[Timesheet]: ...

    def get_or_create_timesheet(
        self, person_id: UUID, contract_id: UUID, actor_id: UUID
    ) -> Timesheet: ...

    def save_timesheet(self, timesheet: Timesheet, actor_id: UUID) -> Timesheet: ...

    def find_time_entry(self, entry_id: UUID) -> tuple[Timesheet, TimeEntry] | None: ...

    def find_absence(self, absence_id: UUID) -> tuple[Timesheet, AbsenceRecord] | None: ...

    def create_payslip(self, payslip: Payslip, actor_id: UUID) -> Payslip: ...

    def append_payslip_ref(self, contract_id: UUID, payslip_id: UUID) -> None: ...

    def get_payslip(self, payslip_id: UUID) -> Payslip | None: ...

    def list_payslips(
        self, employee_id: UUID | None = None, contract_id: UUID | None = None
    ) -> list[Payslip]: ...

    def close_month_atomically(
        self, marker: ClosedMonth, payslip: Payslip, actor_id: UUID
    ) -> ClosedMonth: ...


class SqlAlchemyPayrollStore:
    """``PayrollStore`` backed by a SQLAlchemy session."""

    def __init__(self, session: Session):
        self._session = session

    # -- contracts ----------------------------------------------------------

    def find_contract(self, contract_id: UUID) -> ContractTerms | None:
        model = self._session.get(ContractModel, contract_id)
        return model.to_dto() if model is not None else None

    def create_contract(self, contract: ContractTerms, actor_id: UUID) -> ContractTerms:
        model = ContractModel.from_dto(contract, created_by_id=actor_id)
        self._session.add(model)
        self._session.flush()
        return model.to_dto()

    def list_contracts(self, organization_id: UUID) -> list[ContractTerms]:
        stmt = (
            select(ContractModel)
            .where(ContractModel.organization_id == organization_id)
            .order_by(ContractModel.start_date, ContractModel.id)
        )
        return [m.to_dto() for m in self._session.execute(stmt).scalars()]

    # -- timesheets ---------------------------------------------------------

    def _timesheet_model(
        self, person_id: UUID, contract_id: UUID, *, for_update: bool = False
    ) -> TimesheetModel | None:
        stmt = select(TimesheetModel).where(
            TimesheetModel.person_id == person_id,
            TimesheetModel.contract_id == contract_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self._session.execute(stmt).scalar_one_or_none()

    def find_timesheet(self, person_id: UUID, contract_id: UUID) -> Timesheet | None:
        model = self._timesheet_model(person_id, contract_id)
        return model.to_dto() if model is not None else None

    def find_timesheet_for_update(
        self, person_id: UUID, contract_id: UUID
    ) -> Timesheet | None:
        model = self._timesheet_model(person_id, contract_id, for_update=True)
        return model.to_dto() if model is not None else None

    def find_timesheets_by_organization(self, organization_id: UUID) -> list[Timesheet]:
        """Every timesheet on a contract of ``organization_id``."""
        stmt = (
            select(TimesheetModel)
            .join(ContractModel, TimesheetModel.contract_id == ContractModel.id)
            .where(ContractModel.organization_id == organization_id)
            .order_by(ContractModel.start_date, TimesheetModel.id)
        )
        return [m.to_dto() for m in self._session.execute(stmt).scalars()]

    def get_or_create_timesheet(
        self, person_id: UUID, contract_id: UUID, actor_id: UUID
    ) -> Timesheet:
        model = self._timesheet_model(person_id, contract_id)
        if model is None:
            if self._session.get(ContractModel, contract_id) is None:
                raise ContractNotFoundError(contract_id)
            model = TimesheetModel(
                person_id=person_id,
                contract_id=contract_id,
                created_by_id=actor_id,
            )
            self._session.add(model)
            self._session.flush()
            logger.info(
                "timesheet_created",
                extra={"timesheet_id": str(model.id), "contract_id": str(contract_id)},
            )
        return model.to_dto()

    def save_timesheet(self, timesheet: Timesheet, actor_id: UUID) -> Timesheet:
        """
        Make the stored records match ``timesheet``.

        Records are inserted, updated or removed to match the DTO.  Closed-month
        markers are never written here.
        """
        model = self._session.get(TimesheetModel, timesheet.id)
        if model is None:
            raise TimesheetNotFoundError(timesheet.person_id, timesheet.contract_id)

        _sync_children(
            model.time_entries, timesheet.time_entries, TimeEntryModel, model.id, actor_id
        )
        _sync_children(
            model.absences, timesheet.absences, AbsenceModel, model.id, actor_id
        )
        self._session.flush()
        return model.to_dto()

    def find_time_entry(self, entry_id: UUID) -> tuple[Timesheet, TimeEntry] | None:
        row = self._session.get(TimeEntryModel, entry_id)
        if row is None:
            return None
        return row.timesheet.to_dto(), row.to_dto()

    def find_absence(self, absence_id: UUID) -> tuple[Timesheet, AbsenceRecord] | None:
        row = self._session.get(AbsenceModel, absence_id)
        if row is None:
            return None
        return row.timesheet.to_dto(), row.to_dto()

    # -- payslips -----------------------------------------------------------

    def create_payslip(self, payslip: Payslip, actor_id: UUID) -> Payslip:
        model = PayslipModel.from_dto(payslip, created_by_id=actor_id)
        self._session.add(model)
        self._session.flush()
        return model.to_dto()

    def append_payslip_ref(self, contract_id: UUID, payslip_id: UUID) -> None:
        contract = self._session.get(ContractModel, contract_id)
        if contract is None:
            raise ContractNotFoundError(contract_id)
        payslip = self._session.get(PayslipModel, payslip_id)
        if payslip is None:
            raise PayslipNotFoundError(payslip_id)
        if payslip not in contract.payslips:
            contract.payslips.append(payslip)
        self._session.flush()

    def get_payslip(self, payslip_id: UUID) -> Payslip | None:
        model = self._session.get(PayslipModel, payslip_id)
        return model.to_dto() if model is not None else None

    def list_payslips(
        self, employee_id: UUID | None = None, contract_id: UUID | None = None
    ) -> list[Payslip]:
        stmt = select(PayslipModel)
        if employee_id is not None:
            stmt = stmt.where(PayslipModel.employee_id == employee_id)
        if contract_id is not None:
            stmt = stmt.where(PayslipModel.contract_id == contract_id)
        stmt = stmt.order_by(PayslipModel.year.desc(), PayslipModel.month.desc())
        return [m.to_dto() for m in self._session.execute(stmt).scalars()]

    # -- month closing ------------------------------------------------------

    def close_month_atomically(
        self, marker: ClosedMonth, payslip: Payslip, actor_id: UUID
    ) -> ClosedMonth:
        """
        Persist payslip, marker and contract reference in one transaction.

        The unique constraints decide races: the loser gets
        ``MonthAlreadyClosedError`` and the caller rolls back.
        """
        timesheet = self._session.get(TimesheetModel, marker.timesheet_id)
        if timesheet is None:
            raise TimesheetNotFoundError(payslip.employee_id, payslip.contract_id)

        marker_model = ClosedMonthModel.from_dto(marker, payslip_id=payslip.id)
        try:
            self.create_payslip(payslip, actor_id)
            timesheet.closed_months.append(marker_model)
            self.append_payslip_ref(payslip.contract_id, payslip.id)
        except IntegrityError as exc:
            logger.warning(
                "month_close_conflict",
                extra={
                    "timesheet_id": str(marker.timesheet_id),
                    "month_year": marker.month_year,
                    "db_error": type(exc.orig).__name__ if exc.orig else None,
                },
            )
            raise MonthAlreadyClosedError(marker.month_year, marker.timesheet_id) from exc

        return marker_model.to_dto()


def _sync_children(
    collection: list,
    dtos: Sequence,
    model_cls,
    timesheet_id: UUID,
    actor_id: UUID,
) -> None:
    existing = {row.id: row for row in collection}
    wanted = {dto.id for dto in dtos}

    for row_id, row in existing.items():
        if row_id not in wanted:
            collection.remove(row)

    for dto in dtos:
        row = existing.get(dto.id)
        if row is None:
            collection.append(
                model_cls.from_dto(dto, timesheet_id=timesheet_id, created_by_id=actor_id)
            )
        else:
            if row.apply(dto):
                row.updated_by_id = actor_id
