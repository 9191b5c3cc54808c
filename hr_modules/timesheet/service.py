"""
Timesheet Module Service (``hr_modules.timesheet.service``).

Responsibility
--------------
Records, edits and reviews time entries and absences, and serves timesheet and
payslip reads.  Validation is delegated to the pure engines in
``hr_engines``; persistence to ``PayrollStore``.

Architecture position
---------------------
**Modules layer** -- thin glue.  ``TimesheetService`` is the public entry
point for everything except month closing, which belongs to
``hr_services.month_close_orchestrator``.

Invariants enforced
-------------------
* Each public write method owns the transaction boundary (``commit`` on
  success, ``rollback`` and re-raise on any exception).
* New records always start ``pending``; reviews follow
  ``EntryStatus.transition_to``.
* Only pending records may be edited or deleted.
* No record may be written into a month that is already closed.

Failure modes
-------------
* ``InvalidInputError`` subclasses from engine validation.
* ``NotFoundError`` subclasses for unknown contract/timesheet/record ids.
* ``EntryAlreadyProcessedError`` for reviews of non-pending records.
* ``MonthClosedError`` for writes into a closed month.
* ``ContractPersonMismatchError`` when records are filed against someone
  else's contract.

Usage::

    service = TimesheetService(session, clock=clock)
    entry = service.record_time_entry(
        person_id, contract_id,
        TimeEntry(entry_date=date(2025, 3, 3), start_time="8:00", end_time="16:00"),
        actor_id=person_id,
    )
    service.approve_time_entry(entry.id, actor_id=manager_id)
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from hr_config import get_payroll_rules
from hr_config.schema import PayrollRules
from hr_engines.absence import validate_absence
from hr_engines.time_entry import validate_time_entry
from hr_kernel.domain.clock import Clock, SystemClock
from hr_kernel.domain.month import MonthYear
from hr_kernel.domain.records import (
    AbsenceRecord,
    ContractTerms,
    EntryStatus,
    TimeEntry,
)
from hr_kernel.exceptions import (
    AbsenceNotFoundError,
    ContractNotFoundError,
    EntryAlreadyProcessedError,
    MonthClosedError,
    PayslipNotFoundError,
    TimeEntryNotFoundError,
    TimesheetNotFoundError,
)
from hr_kernel.logging_config import LogContext, get_logger
from hr_modules.timesheet.models import ContractOverview, Payslip, Timesheet
from hr_modules.timesheet.store import PayrollStore, SqlAlchemyPayrollStore

logger = get_logger("modules.timesheet.service")


class TimesheetService:
    """
    Recording and review of timesheet records.

    Transaction boundary: every write method commits on success and rolls
    back on failure.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        rules: PayrollRules | None = None,
        store: PayrollStore | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._rules = rules or get_payroll_rules()
        self._store = store or SqlAlchemyPayrollStore(session)

    # =========================================================================
    # Contracts (admin collaborator)
    # =========================================================================

    def create_contract(self, contract: ContractTerms, actor_id: UUID) -> ContractTerms:
        try:
            created = self._store.create_contract(contract, actor_id)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise
        logger.info("contract_registered", extra={"contract_id": str(created.id)})
        return created

    def _contract(self, contract_id: UUID) -> ContractTerms:
        contract = self._store.find_contract(contract_id)
        if contract is None:
            raise ContractNotFoundError(contract_id)
        return contract

    @staticmethod
    def _ensure_month_open(timesheet: Timesheet, day: date) -> None:
        month = MonthYear.of(day)
        if timesheet.is_month_closed(month):
            raise MonthClosedError(month.label, day)

    # =========================================================================
    # Recording
    # =========================================================================

    def record(
        self,
        person_id: UUID,
        contract_id: UUID,
        actor_id: UUID,
        time_entries: Sequence[TimeEntry] = (),
        absences: Sequence[AbsenceRecord] = (),
    ) -> Timesheet:
        """
        Validate and append pending records in one transaction.

        The timesheet is created on first use.  Either every record is
        stored or none is.
        """
        with LogContext.bind(actor_id=actor_id, contract_id=contract_id):
            try:
                contract = self._contract(contract_id)
                contract.require_held_by(person_id)
                today = self._clock.today()
                entries = [
                    validate_time_entry(replace(e, status=EntryStatus.PENDING), contract, today)
                    for e in time_entries
                ]
                leaves = [
                    validate_absence(
                        replace(a, status=EntryStatus.PENDING),
                        contract,
                        today,
                        self._rules.absence_max_future_months,
                    )
                    for a in absences
                ]
                timesheet = self._store.get_or_create_timesheet(
                    person_id, contract_id, actor_id
                )
                for entry in entries:
                    self._ensure_month_open(timesheet, entry.entry_date)
                    timesheet = timesheet.with_time_entry(entry)
                for absence in leaves:
                    self._ensure_month_open(timesheet, absence.absence_date)
                    timesheet = timesheet.with_absence(absence)
                saved = self._store.save_timesheet(timesheet, actor_id)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "timesheet_records_added",
                extra={
                    "timesheet_id": str(saved.id),
                    "time_entry_ids": [str(e.id) for e in entries],
                    "absence_ids": [str(a.id) for a in leaves],
                },
            )
            return saved

    def record_time_entry(
        self,
        person_id: UUID,
        contract_id: UUID,
        entry: TimeEntry,
        actor_id: UUID,
    ) -> TimeEntry:
        """Validate and append one pending time entry."""
        timesheet = self.record(person_id, contract_id, actor_id, time_entries=(entry,))
        return timesheet.find_time_entry(entry.id)

    def record_absence(
        self,
        person_id: UUID,
        contract_id: UUID,
        absence: AbsenceRecord,
        actor_id: UUID,
    ) -> AbsenceRecord:
        """Validate and append one pending absence."""
        timesheet = self.record(person_id, contract_id, actor_id, absences=(absence,))
        return timesheet.find_absence(absence.id)

    # =========================================================================
    # Time entries
    # =========================================================================

    def _load_entry(self, entry_id: UUID) -> tuple[Timesheet, TimeEntry]:
        found = self._store.find_time_entry(entry_id)
        if found is None:
            raise TimeEntryNotFoundError(entry_id)
        return found

    def update_time_entry(
        self,
        entry_id: UUID,
        revised: TimeEntry,
        actor_id: UUID,
    ) -> TimeEntry:
        """Replace the fields of a pending entry; id and status are kept."""
        with LogContext.bind(actor_id=actor_id):
            try:
                timesheet, current = self._load_entry(entry_id)
                if current.status is not EntryStatus.PENDING:
                    raise EntryAlreadyProcessedError(
                        "TimeEntry", entry_id, current.status.value, "updated"
                    )
                contract = self._contract(timesheet.contract_id)
                updated = validate_time_entry(
                    replace(revised, id=current.id, status=EntryStatus.PENDING),
                    contract,
                    self._clock.today(),
                )
                self._ensure_month_open(timesheet, current.entry_date)
                self._ensure_month_open(timesheet, updated.entry_date)
                self._store.save_timesheet(timesheet.replacing_time_entry(updated), actor_id)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info("time_entry_updated", extra={"entry_id": str(entry_id)})
            return updated

    def delete_time_entry(self, entry_id: UUID, actor_id: UUID) -> None:
        with LogContext.bind(actor_id=actor_id):
            try:
                timesheet, current = self._load_entry(entry_id)
                if current.status is not EntryStatus.PENDING:
                    raise EntryAlreadyProcessedError(
                        "TimeEntry", entry_id, current.status.value, "deleted"
                    )
                self._ensure_month_open(timesheet, current.entry_date)
                self._store.save_timesheet(timesheet.without_time_entry(entry_id), actor_id)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info("time_entry_deleted", extra={"entry_id": str(entry_id)})

    def approve_time_entry(self, entry_id: UUID, actor_id: UUID) -> TimeEntry:
        """
        pending -> approved.

        The entry is re-validated against today's date and the contract
        window, since both may have shifted since it was recorded.
        """
        return self._review_time_entry(entry_id, EntryStatus.APPROVED, actor_id)

    def reject_time_entry(self, entry_id: UUID, actor_id: UUID) -> TimeEntry:
        return self._review_time_entry(entry_id, EntryStatus.REJECTED, actor_id)

    def _review_time_entry(
        self, entry_id: UUID, target: EntryStatus, actor_id: UUID
    ) -> TimeEntry:
        with LogContext.bind(actor_id=actor_id):
            try:
                timesheet, current = self._load_entry(entry_id)
                status = current.status.transition_to(
                    target, record_type="TimeEntry", record_id=entry_id
                )
                reviewed = current
                if target is EntryStatus.APPROVED:
                    reviewed = validate_time_entry(
                        current,
                        self._contract(timesheet.contract_id),
                        self._clock.today(),
                    )
                reviewed = replace(reviewed, status=status)
                self._ensure_month_open(timesheet, current.entry_date)
                self._store.save_timesheet(timesheet.replacing_time_entry(reviewed), actor_id)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "time_entry_reviewed",
                extra={"entry_id": str(entry_id), "status": status.value},
            )
            return reviewed

    # =========================================================================
    # Absences
    # =========================================================================

    def approve_absence(self, absence_id: UUID, actor_id: UUID) -> AbsenceRecord:
        """pending -> approved, after re-checking the horizon and the contract window."""
        return self._review_absence(absence_id, EntryStatus.APPROVED, actor_id)

    def reject_absence(self, absence_id: UUID, actor_id: UUID) -> AbsenceRecord:
        return self._review_absence(absence_id, EntryStatus.REJECTED, actor_id)

    def _review_absence(
        self, absence_id: UUID, target: EntryStatus, actor_id: UUID
    ) -> AbsenceRecord:
        with LogContext.bind(actor_id=actor_id):
            try:
                found = self._store.find_absence(absence_id)
                if found is None:
                    raise AbsenceNotFoundError(absence_id)
                timesheet, current = found
                status = current.status.transition_to(
                    target, record_type="Absence", record_id=absence_id
                )
                if target is EntryStatus.APPROVED:
                    validate_absence(
                        current,
                        self._contract(timesheet.contract_id),
                        self._clock.today(),
                        self._rules.absence_max_future_months,
                    )
                reviewed = replace(current, status=status)
                self._ensure_month_open(timesheet, current.absence_date)
                self._store.save_timesheet(timesheet.replacing_absence(reviewed), actor_id)
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "absence_reviewed",
                extra={"absence_id": str(absence_id), "status": status.value},
            )
            return reviewed

    # =========================================================================
    # Reads
    # =========================================================================

    def get_timesheet(self, person_id: UUID, contract_id: UUID) -> Timesheet:
        timesheet = self._store.find_timesheet(person_id, contract_id)
        if timesheet is None:
            raise TimesheetNotFoundError(person_id, contract_id)
        return timesheet

    def organization_overview(self, organization_id: UUID) -> list[ContractOverview]:
        """
        Every contract of an organization with its timesheet and payslips.

        Approvers use this to find the pending records that block a month
        close.  An unknown organization yields an empty list.
        """
        timesheets = {
            (t.contract_id, t.person_id): t
            for t in self._store.find_timesheets_by_organization(organization_id)
        }
        return [
            ContractOverview(
                contract=contract,
                timesheet=timesheets.get((contract.id, contract.person_id)),
                payslips=tuple(self._store.list_payslips(contract_id=contract.id)),
            )
            for contract in self._store.list_contracts(organization_id)
        ]

    def list_payslips(
        self,
        employee_id: UUID | None = None,
        contract_id: UUID | None = None,
    ) -> list[Payslip]:
        return self._store.list_payslips(employee_id=employee_id, contract_id=contract_id)

    def get_payslip(self, payslip_id: UUID) -> Payslip:
        payslip = self._store.get_payslip(payslip_id)
        if payslip is None:
            raise PayslipNotFoundError(payslip_id)
        return payslip
