"""
hr_services.month_close_orchestrator -- Month-closing state transition.

Responsibility:
    Close one payroll month for one (person, contract): check every
    precondition, price the month with the payroll engine, and persist the
    closed-month marker, the payslip and the contract reference as one
    atomic unit.

Architecture position:
    Services -- stateful orchestration over engines + modules.  Owns the
    transaction boundary for the close.

Invariants enforced:
    - Preconditions are checked in a fixed order and the first failure wins:
      month format, contract, contract holder, timesheet, month vs contract
      start, already closed, pending items, salary.
    - Only APPROVED records dated in the month are priced.  An approved
      absence that started in an earlier month is not priced again but still
      justifies the days it runs into this one.
    - A pending absence overlapping the month blocks the close.
    - At most one marker per (timesheet, month): the timesheet row is read
      FOR UPDATE, and the unique constraint settles any race that slips past
      the pre-check.  The losing close rolls back entirely and reports
      MONTH_ALREADY_CLOSED; no second payslip is ever written.

Failure modes:
    - InvalidMonthFormatError / InvalidMonthError       (400)
    - ContractNotFoundError / TimesheetNotFoundError     (404)
    - ContractPersonMismatchError                        (422)
    - MonthBeforeContractError                           (422)
    - MonthAlreadyClosedError                            (409)
    - PendingItemsExistError                             (422)
    - InvalidSalaryError                                 (422)
    Nothing is written on any failure.  Nothing is retried.

Audit relevance:
    ``month_close_started`` / ``month_closed`` / ``month_close_failed`` log
    records carry the month, timesheet, actor and payslip identifiers.  The
    marker's created_by_id records who closed the month.
"""

from __future__ import annotations

from typing import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from hr_config import get_payroll_rules
from hr_config.schema import PayrollRules
from hr_engines.payroll_calculator import calculate_payroll, parse_base_salary
from hr_kernel.domain.clock import Clock, SystemClock
from hr_kernel.domain.month import MonthYear
from hr_kernel.domain.records import Bonus
from hr_kernel.exceptions import (
    ContractNotFoundError,
    HRKernelError,
    MonthAlreadyClosedError,
    MonthBeforeContractError,
    PendingItemsExistError,
    TimesheetNotFoundError,
)
from hr_kernel.logging_config import LogContext, get_logger
from hr_modules.timesheet.models import ClosedMonth, Payslip
from hr_modules.timesheet.store import PayrollStore, SqlAlchemyPayrollStore
from hr_services._close_types import MonthCloseResult

logger = get_logger("services.month_close")


class MonthCloseOrchestrator:
    """
    Closes payroll months.

    Usage::

        orchestrator = MonthCloseOrchestrator(session, clock=clock)
        result = orchestrator.close_month(person_id, contract_id, "03/2025", actor_id)
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

    def close_month(
        self,
        person_id: UUID,
        contract_id: UUID,
        month_year: str,
        actor_id: UUID,
        bonuses: Sequence[Bonus] = (),
    ) -> MonthCloseResult:
        with LogContext.bind(
            actor_id=actor_id, contract_id=contract_id, month_year=month_year
        ):
            logger.info("month_close_started", extra={"person_id": str(person_id)})
            try:
                result = self._close(person_id, contract_id, month_year, actor_id, bonuses)
                self._session.commit()
            except HRKernelError as exc:
                self._session.rollback()
                logger.warning(
                    "month_close_failed",
                    extra={"error_code": exc.code, "reason": str(exc)},
                )
                raise
            except Exception:
                self._session.rollback()
                logger.exception("month_close_crashed")
                raise

            logger.info(
                "month_closed",
                extra={
                    "payslip_id": str(result.payslip_id),
                    "timesheet_id": str(result.timesheet_id),
                    "gross_pay": result.gross_pay,
                    "net_pay": result.net_pay,
                    "unjustified_days": result.unjustified_days,
                },
            )
            return result

    def _close(
        self,
        person_id: UUID,
        contract_id: UUID,
        month_year: str,
        actor_id: UUID,
        bonuses: Sequence[Bonus],
    ) -> MonthCloseResult:
        month = MonthYear.parse(month_year)

        contract = self._store.find_contract(contract_id)
        if contract is None:
            raise ContractNotFoundError(contract_id)
        contract.require_held_by(person_id)

        timesheet = self._store.find_timesheet_for_update(person_id, contract_id)
        if timesheet is None:
            raise TimesheetNotFoundError(person_id, contract_id)

        if month.last_day < contract.start_date:
            raise MonthBeforeContractError(month.label, contract.start_date)

        if timesheet.is_month_closed(month):
            raise MonthAlreadyClosedError(month.label, timesheet.id)

        pending_entries, pending_absences = timesheet.pending_in(month)
        if pending_entries or pending_absences:
            raise PendingItemsExistError(month.label, pending_entries, pending_absences)

        parse_base_salary(contract.base_salary)

        entries = tuple(e for e in timesheet.entries_in(month) if e.is_approved)
        absences = tuple(a for a in timesheet.absences_in(month) if a.is_approved)
        spill_over = tuple(
            a
            for a in timesheet.absences_overlapping(month)
            if a.is_approved and not month.contains(a.absence_date)
        )

        payroll = calculate_payroll(
            entries,
            absences,
            contract,
            period=month,
            bonuses=bonuses,
            rules=self._rules,
            covering_absences=spill_over,
        )

        closed_at = self._clock.now()
        payslip = Payslip.from_result(
            payroll,
            employee_id=person_id,
            contract_id=contract_id,
            issued_at=closed_at,
        )
        marker = ClosedMonth(
            timesheet_id=timesheet.id,
            month_year=month.label,
            closed_at=closed_at,
            closed_by=actor_id,
            time_entry_count=len(entries),
            absence_count=len(absences),
        )
        self._store.close_month_atomically(marker, payslip, actor_id)

        return MonthCloseResult(
            payslip_id=payslip.id,
            timesheet_id=timesheet.id,
            month_year=month.label,
            gross_pay=payroll.gross_pay,
            net_pay=payroll.net_pay,
            normal_hours=payroll.normal_hours,
            overtime_hours=payroll.overtime_hours,
            unjustified_days=payroll.unjustified_days,
            time_entry_count=len(entries),
            absence_count=len(absences),
            closed_at=closed_at,
            closed_by=actor_id,
        )
