"""
Tests for MonthCloseOrchestrator.

Covers:
- A successful close and the payslip it writes
- Every precondition and the order they are checked in
- Absences running in from an earlier month
- Exactly one close per month
- Audit log records
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from hr_kernel.domain.records import AbsenceRecord, Bonus, TimeEntry
from hr_kernel.exceptions import (
    ContractNotFoundError,
    ContractPersonMismatchError,
    InvalidMonthError,
    InvalidMonthFormatError,
    InvalidSalaryError,
    MonthAlreadyClosedError,
    MonthBeforeContractError,
    PendingItemsExistError,
    TimesheetNotFoundError,
)
from hr_modules.timesheet.service import TimesheetService

REVIEWER_ID = uuid4()


def _record_approved(service: TimesheetService, person_id, contract_id, day, end="16:00"):
    entry = service.record_time_entry(
        person_id,
        contract_id,
        TimeEntry(entry_date=day, start_time="08:00", end_time=end),
        actor_id=person_id,
    )
    return service.approve_time_entry(entry.id, REVIEWER_ID)


@pytest.fixture
def one_day_contract(create_contract):
    """Contract covering only Monday 2025-03-03."""
    return create_contract(start_date=date(2025, 3, 3), end_date=date(2025, 3, 3))


class TestSuccessfulClose:
    def test_figures(self, orchestrator, timesheet_service, person_id, one_day_contract):
        _record_approved(timesheet_service, person_id, one_day_contract.id, date(2025, 3, 3))

        result = orchestrator.close_month(
            person_id, one_day_contract.id, "03/2025", REVIEWER_ID
        )

        assert result.month_year == "03/2025"
        assert result.normal_hours == Decimal("7.000")
        assert result.overtime_hours == Decimal("0.000")
        assert result.total_hours == Decimal("7.000")
        # 7h * (3035 / 151.67), less 23% social contributions
        assert result.gross_pay == Decimal("140.07")
        assert result.net_pay == Decimal("107.85")
        assert result.unjustified_days == 0
        assert result.time_entry_count == 1
        assert result.absence_count == 0
        assert result.closed_by == REVIEWER_ID

    def test_payslip_persisted(self, orchestrator, timesheet_service, person_id, one_day_contract):
        _record_approved(
            timesheet_service, person_id, one_day_contract.id, date(2025, 3, 3), end="18:00"
        )

        result = orchestrator.close_month(
            person_id,
            one_day_contract.id,
            "3/2025",
            REVIEWER_ID,
            bonuses=[Bonus(label="Attendance", amount=Decimal("50"))],
        )
        payslip = timesheet_service.get_payslip(result.payslip_id)

        assert (payslip.year, payslip.month) == (2025, 3)
        assert payslip.employee_id == person_id
        assert payslip.contract_id == one_day_contract.id
        assert payslip.gross_pay == Decimal("235.09")
        assert payslip.details.normal_hours + payslip.details.overtime_hours == payslip.total_hours
        assert payslip.details.bonuses[0].label == "Attendance"
        assert payslip.issued_at == result.closed_at

    def test_timesheet_carries_marker(
        self, orchestrator, timesheet_service, person_id, one_day_contract
    ):
        _record_approved(timesheet_service, person_id, one_day_contract.id, date(2025, 3, 3))

        orchestrator.close_month(person_id, one_day_contract.id, "03/2025", REVIEWER_ID)

        timesheet = timesheet_service.get_timesheet(person_id, one_day_contract.id)
        [marker] = timesheet.closed_months
        assert marker.month_year == "03/2025"
        assert marker.closed_by == REVIEWER_ID
        assert marker.time_entry_count == 1

    def test_rejected_records_ignored(
        self, orchestrator, timesheet_service, person_id, one_day_contract
    ):
        _record_approved(timesheet_service, person_id, one_day_contract.id, date(2025, 3, 3))
        extra = timesheet_service.record_time_entry(
            person_id,
            one_day_contract.id,
            TimeEntry(entry_date=date(2025, 3, 3), start_time="17:00", end_time="22:00"),
            person_id,
        )
        timesheet_service.reject_time_entry(extra.id, REVIEWER_ID)

        result = orchestrator.close_month(
            person_id, one_day_contract.id, "03/2025", REVIEWER_ID
        )

        assert result.total_hours == Decimal("7.000")
        assert result.time_entry_count == 1

    def test_approved_absence_counted(
        self, orchestrator, timesheet_service, person_id, contract
    ):
        _record_approved(timesheet_service, person_id, contract.id, date(2025, 3, 3))
        absence = timesheet_service.record_absence(
            person_id,
            contract.id,
            AbsenceRecord(absence_date=date(2025, 3, 4), absence_type="paid_leave"),
            person_id,
        )
        timesheet_service.approve_absence(absence.id, REVIEWER_ID)

        result = orchestrator.close_month(person_id, contract.id, "03/2025", REVIEWER_ID)

        # 21 working days in March, one worked and one on paid leave
        assert result.unjustified_days == 19
        assert result.absence_count == 1
        assert result.gross_pay == Decimal("0.00")


class TestSingleClose:
    def test_second_close_refused(
        self, orchestrator, timesheet_service, person_id, one_day_contract
    ):
        _record_approved(timesheet_service, person_id, one_day_contract.id, date(2025, 3, 3))
        orchestrator.close_month(person_id, one_day_contract.id, "03/2025", REVIEWER_ID)

        with pytest.raises(MonthAlreadyClosedError) as exc_info:
            orchestrator.close_month(person_id, one_day_contract.id, "3/2025", REVIEWER_ID)

        assert exc_info.value.code == "MONTH_ALREADY_CLOSED"
        assert len(timesheet_service.list_payslips(contract_id=one_day_contract.id)) == 1

    def test_other_month_still_closable(
        self, orchestrator, timesheet_service, person_id, contract
    ):
        _record_approved(timesheet_service, person_id, contract.id, date(2025, 3, 3))
        orchestrator.close_month(person_id, contract.id, "03/2025", REVIEWER_ID)

        result = orchestrator.close_month(person_id, contract.id, "02/2025", REVIEWER_ID)

        assert result.time_entry_count == 0
        assert len(timesheet_service.list_payslips(contract_id=contract.id)) == 2


class TestPreconditions:
    @pytest.mark.parametrize("raw", ["2025-03", "March", ""])
    def test_bad_format(self, orchestrator, person_id, contract, raw):
        with pytest.raises(InvalidMonthFormatError):
            orchestrator.close_month(person_id, contract.id, raw, REVIEWER_ID)

    def test_month_out_of_range(self, orchestrator, person_id, contract):
        with pytest.raises(InvalidMonthError):
            orchestrator.close_month(person_id, contract.id, "13/2025", REVIEWER_ID)

    def test_unknown_contract(self, orchestrator, person_id):
        with pytest.raises(ContractNotFoundError):
            orchestrator.close_month(person_id, uuid4(), "03/2025", REVIEWER_ID)

    def test_someone_elses_contract(self, orchestrator, contract):
        stranger = uuid4()

        with pytest.raises(ContractPersonMismatchError):
            orchestrator.close_month(stranger, contract.id, "03/2025", REVIEWER_ID)

    def test_no_timesheet(self, orchestrator, person_id, contract):
        with pytest.raises(TimesheetNotFoundError):
            orchestrator.close_month(person_id, contract.id, "03/2025", REVIEWER_ID)

    def test_month_before_contract(
        self, orchestrator, timesheet_service, person_id, create_contract
    ):
        march_contract = create_contract(start_date=date(2025, 3, 1))
        _record_approved(timesheet_service, person_id, march_contract.id, date(2025, 3, 3))

        with pytest.raises(MonthBeforeContractError):
            orchestrator.close_month(person_id, march_contract.id, "02/2025", REVIEWER_ID)

    def test_contract_starting_mid_month_closable(
        self, orchestrator, timesheet_service, person_id, create_contract
    ):
        mid_march = create_contract(start_date=date(2025, 3, 17))
        _record_approved(timesheet_service, person_id, mid_march.id, date(2025, 3, 17))

        result = orchestrator.close_month(person_id, mid_march.id, "03/2025", REVIEWER_ID)

        # 17th..31st: eleven working days, one worked
        assert result.unjustified_days == 10

    def test_pending_items(self, orchestrator, timesheet_service, person_id, contract):
        timesheet_service.record_time_entry(
            person_id,
            contract.id,
            TimeEntry(entry_date=date(2025, 3, 3), start_time="08:00", end_time="16:00"),
            person_id,
        )
        timesheet_service.record_absence(
            person_id,
            contract.id,
            AbsenceRecord(absence_date=date(2025, 3, 4), absence_type="illness"),
            person_id,
        )

        with pytest.raises(PendingItemsExistError) as exc_info:
            orchestrator.close_month(person_id, contract.id, "03/2025", REVIEWER_ID)

        assert exc_info.value.pending_entries == 1
        assert exc_info.value.pending_absences == 1
        assert timesheet_service.list_payslips(contract_id=contract.id) == []

    def test_pending_in_other_month_ignored(
        self, orchestrator, timesheet_service, person_id, contract
    ):
        _record_approved(timesheet_service, person_id, contract.id, date(2025, 3, 3))
        timesheet_service.record_time_entry(
            person_id,
            contract.id,
            TimeEntry(entry_date=date(2025, 4, 1), start_time="08:00", end_time="16:00"),
            person_id,
        )

        result = orchestrator.close_month(person_id, contract.id, "03/2025", REVIEWER_ID)
        assert result.time_entry_count == 1

    def test_invalid_salary(self, orchestrator, timesheet_service, person_id, create_contract):
        unpaid = create_contract(base_salary="to be agreed")
        _record_approved(timesheet_service, person_id, unpaid.id, date(2025, 3, 3))

        with pytest.raises(InvalidSalaryError):
            orchestrator.close_month(person_id, unpaid.id, "03/2025", REVIEWER_ID)

class TestAbsencesFromEarlierMonth:
    def _record_absence(self, service, person_id, contract_id, absence_type, approve=True):
        # Friday 2025-02-28 through Tuesday 2025-03-04
        absence = service.record_absence(
            person_id,
            contract_id,
            AbsenceRecord(
                absence_date=date(2025, 2, 28), absence_type=absence_type, duration_days=5
            ),
            person_id,
        )
        if approve:
            service.approve_absence(absence.id, REVIEWER_ID)
        return absence

    def test_paid_leave_covers_following_month(
        self, orchestrator, timesheet_service, person_id, contract
    ):
        self._record_absence(timesheet_service, person_id, contract.id, "paid_leave")
        _record_approved(timesheet_service, person_id, contract.id, date(2025, 3, 5))

        result = orchestrator.close_month(person_id, contract.id, "03/2025", REVIEWER_ID)

        # 21 working days, 3rd and 4th on leave, 5th worked
        assert result.unjustified_days == 18
        assert result.absence_count == 0

    def test_unpaid_absence_not_charged_twice(
        self, orchestrator, timesheet_service, person_id, contract
    ):
        self._record_absence(timesheet_service, person_id, contract.id, "unpaid_leave")
        _record_approved(timesheet_service, person_id, contract.id, date(2025, 2, 27))
        _record_approved(timesheet_service, person_id, contract.id, date(2025, 3, 5))

        february = orchestrator.close_month(person_id, contract.id, "02/2025", REVIEWER_ID)
        march = orchestrator.close_month(person_id, contract.id, "03/2025", REVIEWER_ID)

        february_slip = timesheet_service.get_payslip(february.payslip_id)
        march_slip = timesheet_service.get_payslip(march.payslip_id)
        assert february_slip.details.absences[0].days == 5
        assert march_slip.details.absences == ()
        assert march.unjustified_days == 18
        assert not [d for d in march_slip.deductions if d.label.startswith("Absence ")]

    def test_pending_absence_blocks_following_month(
        self, orchestrator, timesheet_service, person_id, contract
    ):
        self._record_absence(
            timesheet_service, person_id, contract.id, "illness", approve=False
        )
        _record_approved(timesheet_service, person_id, contract.id, date(2025, 3, 5))

        with pytest.raises(PendingItemsExistError) as exc_info:
            orchestrator.close_month(person_id, contract.id, "03/2025", REVIEWER_ID)

        assert exc_info.value.pending_absences == 1
        assert exc_info.value.pending_entries == 0



class TestPreconditionOrder:
    def test_format_checked_before_contract(self, orchestrator, person_id):
        with pytest.raises(InvalidMonthFormatError):
            orchestrator.close_month(person_id, uuid4(), "2025/03", REVIEWER_ID)

    def test_timesheet_checked_before_contract_start(
        self, orchestrator, person_id, create_contract
    ):
        march_contract = create_contract(start_date=date(2025, 3, 1))

        with pytest.raises(TimesheetNotFoundError):
            orchestrator.close_month(person_id, march_contract.id, "02/2025", REVIEWER_ID)

    def test_pending_checked_before_salary(
        self, orchestrator, timesheet_service, person_id, create_contract
    ):
        unpaid = create_contract(base_salary=None)
        timesheet_service.record_time_entry(
            person_id,
            unpaid.id,
            TimeEntry(entry_date=date(2025, 3, 3), start_time="08:00", end_time="16:00"),
            person_id,
        )

        with pytest.raises(PendingItemsExistError):
            orchestrator.close_month(person_id, unpaid.id, "03/2025", REVIEWER_ID)


class TestAuditLogging:
    def test_success_logged(
        self, orchestrator, timesheet_service, person_id, one_day_contract, captured_logs
    ):
        _record_approved(timesheet_service, person_id, one_day_contract.id, date(2025, 3, 3))

        result = orchestrator.close_month(
            person_id, one_day_contract.id, "03/2025", REVIEWER_ID
        )

        records = {r["message"]: r for r in captured_logs()}
        assert "month_close_started" in records
        closed = records["month_closed"]
        assert closed["payslip_id"] == str(result.payslip_id)
        assert closed["actor_id"] == str(REVIEWER_ID)
        assert closed["month_year"] == "03/2025"
        assert closed["gross_pay"] == "140.07"

    def test_failure_logged(self, orchestrator, person_id, contract, captured_logs):
        with pytest.raises(TimesheetNotFoundError):
            orchestrator.close_month(person_id, contract.id, "03/2025", REVIEWER_ID)

        failed = [r for r in captured_logs() if r["message"] == "month_close_failed"]
        assert len(failed) == 1
        assert failed[0]["level"] == "WARNING"
        assert failed[0]["error_code"] == "TIMESHEET_NOT_FOUND"
