"""
Tests for the payroll calculator.

Covers:
- Normal/overtime split and the missing-hours penalty
- Unjustified working days (weekends, holidays, contract window, absences)
- Absence deductions, bonuses and the zero floor on gross pay
- Salary parsing
- Engine trace emission
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from hr_config.schema import DEFAULT_RULES
from hr_engines.payroll_calculator import (
    MISSING_HOURS_PENALTY_LABEL,
    SOCIAL_CONTRIBUTIONS_LABEL,
    UNJUSTIFIED_ABSENCES_LABEL,
    DeductionLine,
    calculate_payroll,
    parse_base_salary,
)
from hr_kernel.domain.month import MonthYear, is_weekend
from hr_kernel.domain.records import (
    AbsenceRecord,
    Bonus,
    ContractTerms,
    EntryStatus,
    TimeEntry,
)
from hr_kernel.exceptions import DateOutOfContractRangeError, InvalidSalaryError

MARCH = MonthYear(2025, 3)
MAY = MonthYear(2025, 5)
MARCH_WORKING_DAYS = [d for d in MARCH.days() if not is_weekend(d)]
DAILY_RATE = Decimal("137.95")  # 3035 / 22


def _contract(base="3035", start=date(2025, 1, 1), end=None):
    return ContractTerms(
        id=uuid4(), person_id=uuid4(), base_salary=base, start_date=start, end_date=end
    )


def _one_day_contract(day=date(2025, 3, 3)):
    """Only ``day`` is a working day in the month for this contract."""
    return _contract(start=day, end=day)


def _worked(day, start="08:00", end="16:00", break_hours="1", status=EntryStatus.APPROVED):
    return TimeEntry(
        entry_date=day, start_time=start, end_time=end, break_hours=break_hours, status=status
    )


def _absent(day, kind="illness", days=1, status=EntryStatus.APPROVED):
    return AbsenceRecord(absence_date=day, absence_type=kind, duration_days=days, status=status)


class TestHoursSplit:
    def test_seven_hour_day(self):
        result = calculate_payroll([_worked(date(2025, 3, 3))], [], _one_day_contract(), MARCH)

        assert result.normal_hours == Decimal("7.000")
        assert result.overtime_hours == Decimal("0.000")
        assert result.missing_hours_penalty == Decimal("0")
        assert result.unjustified_days == 0

    def test_overtime_beyond_eight_hours(self):
        result = calculate_payroll(
            [_worked(date(2025, 3, 3), end="18:00")], [], _one_day_contract(), MARCH
        )

        assert result.normal_hours == Decimal("8.000")
        assert result.overtime_hours == Decimal("1.000")
        # 1h * (3035 / 151.67) * 1.25
        assert result.overtime_pay == Decimal("25.01")
        assert result.salary_for_hours == Decimal("160.08")
        assert result.gross_pay == Decimal("185.09")
        assert result.social_contributions == Decimal("42.57")
        assert result.net_pay == Decimal("142.52")

    def test_short_day_penalized(self):
        result = calculate_payroll(
            [_worked(date(2025, 3, 3), end="15:00")], [], _one_day_contract(), MARCH
        )

        assert result.normal_hours == Decimal("6.000")
        assert result.missing_hours_penalty == Decimal("20.01")
        assert result.gross_pay == Decimal("120.06") - Decimal("20.01")

    def test_day_between_floor_and_threshold_neither_penalized_nor_overtime(self):
        result = calculate_payroll(
            [_worked(date(2025, 3, 3), end="16:30")], [], _one_day_contract(), MARCH
        )

        assert result.normal_hours == Decimal("7.500")
        assert result.overtime_hours == Decimal("0.000")
        assert result.missing_hours_penalty == Decimal("0")

    def test_entries_on_same_day_summed_before_split(self):
        entries = [
            _worked(date(2025, 3, 3), start="08:00", end="13:00", break_hours="0"),
            _worked(date(2025, 3, 3), start="14:00", end="19:00", break_hours="0"),
        ]
        result = calculate_payroll(entries, [], _one_day_contract(), MARCH)

        assert result.normal_hours == Decimal("8.000")
        assert result.overtime_hours == Decimal("2.000")

    def test_hours_identity(self):
        entries = [_worked(d, end="18:30") for d in MARCH_WORKING_DAYS[:5]]
        result = calculate_payroll(entries, [], _contract(), MARCH)

        assert result.normal_hours + result.overtime_hours == result.total_hours

    def test_pending_and_rejected_entries_ignored(self):
        entries = [
            _worked(date(2025, 3, 3), status=EntryStatus.PENDING),
            _worked(date(2025, 3, 3), status=EntryStatus.REJECTED),
        ]
        result = calculate_payroll(entries, [], _one_day_contract(), MARCH)

        assert result.total_hours == Decimal("0")
        assert result.unjustified_days == 1


class TestFullMonth:
    def test_every_working_day_at_seven_hours(self):
        entries = [_worked(d) for d in MARCH_WORKING_DAYS]
        result = calculate_payroll(entries, [], _contract(), MARCH)

        assert len(MARCH_WORKING_DAYS) == 21
        assert result.working_days == 21
        assert result.unjustified_days == 0
        assert result.normal_hours == Decimal("147.000")
        assert result.gross_pay == Decimal("2941.55")
        assert result.social_contributions == Decimal("676.56")
        assert result.net_pay == Decimal("2264.99")
        assert result.deductions == (
            DeductionLine(SOCIAL_CONTRIBUTIONS_LABEL, Decimal("676.56")),
        )

    def test_empty_month_floors_gross_at_zero(self):
        result = calculate_payroll([], [], _contract(), MARCH)

        assert result.unjustified_days == 21
        assert result.unjustified_deduction == DAILY_RATE * 21
        assert result.gross_pay == Decimal("0.00")
        assert result.net_pay == Decimal("0.00")

    def test_period_required_without_entries(self):
        with pytest.raises(ValueError):
            calculate_payroll([], [], _contract())

    def test_period_derived_from_first_entry(self):
        result = calculate_payroll([_worked(date(2025, 3, 3))], [], _one_day_contract())
        assert result.period == MARCH


class TestUnjustifiedDays:
    def test_missing_weekday_counted(self):
        result = calculate_payroll([], [], _one_day_contract(), MARCH)

        assert result.unjustified_days == 1
        assert result.unjustified_dates == (date(2025, 3, 3),)
        assert result.unjustified_deduction == DAILY_RATE

    def test_weekends_never_counted(self):
        saturday = date(2025, 3, 1)
        result = calculate_payroll(
            [], [], _contract(start=saturday, end=date(2025, 3, 2)), MARCH
        )
        assert result.working_days == 0
        assert result.unjustified_days == 0

    def test_holidays_skipped(self):
        default = calculate_payroll([], [], _contract(), MAY)
        no_holidays = calculate_payroll([], [], _contract(), MAY, holidays=frozenset())

        assert date(2025, 5, 1) in DEFAULT_RULES.holidays
        assert default.working_days == 21
        assert no_holidays.working_days == 22

    def test_days_outside_contract_skipped(self):
        contract = _contract(start=date(2025, 3, 17), end=date(2025, 3, 21))
        result = calculate_payroll([], [], contract, MARCH)

        assert result.working_days == 5

    def test_approved_absence_covers_its_days(self):
        contract = _contract(start=date(2025, 3, 3), end=date(2025, 3, 7))
        result = calculate_payroll(
            [], [_absent(date(2025, 3, 3), kind="paid_leave", days=5)], contract, MARCH
        )

        assert result.unjustified_days == 0
        assert result.paid_leave_days == 5

    def test_pending_absence_does_not_cover(self):
        result = calculate_payroll(
            [],
            [_absent(date(2025, 3, 3), status=EntryStatus.PENDING)],
            _one_day_contract(),
            MARCH,
        )
        assert result.unjustified_days == 1

    @settings(max_examples=25, deadline=None)
    @given(st.integers(min_value=0, max_value=20))
    def test_one_more_unjustified_day_costs_one_daily_rate(self, worked_days):
        contract = _contract()
        more_worked = calculate_payroll(
            [_worked(d) for d in MARCH_WORKING_DAYS[: worked_days + 1]], [], contract, MARCH
        )
        less_worked = calculate_payroll(
            [_worked(d) for d in MARCH_WORKING_DAYS[:worked_days]], [], contract, MARCH
        )

        assert less_worked.unjustified_days == more_worked.unjustified_days + 1
        assert (
            less_worked.unjustified_deduction - more_worked.unjustified_deduction
            == DAILY_RATE
        )
        assert less_worked.gross_pay <= more_worked.gross_pay


class TestAbsencesAndBonuses:
    def test_unpaid_absence_deduction_line(self):
        contract = _contract(start=date(2025, 3, 3), end=date(2025, 3, 4))
        result = calculate_payroll(
            [], [_absent(date(2025, 3, 3), kind="unpaid_leave", days=2)], contract, MARCH
        )

        labels = {line.label: line.amount for line in result.deductions}
        assert labels["Absence unpaid leave"] == Decimal("275.91")
        assert UNJUSTIFIED_ABSENCES_LABEL not in labels
        assert result.absence_deductions == Decimal("275.91")

    def test_zero_amount_lines_omitted(self):
        result = calculate_payroll([_worked(date(2025, 3, 3))], [], _one_day_contract(), MARCH)

        labels = [line.label for line in result.deductions]
        assert MISSING_HOURS_PENALTY_LABEL not in labels
        assert UNJUSTIFIED_ABSENCES_LABEL not in labels
        assert SOCIAL_CONTRIBUTIONS_LABEL in labels

    def test_covering_absence_justifies_without_pricing(self):
        # Runs from Friday 2025-02-28 into Monday 3rd and Tuesday 4th
        spill_over = _absent(date(2025, 2, 28), kind="unpaid_leave", days=5)
        result = calculate_payroll(
            [_worked(date(2025, 3, 5))],
            [],
            _contract(),
            MARCH,
            covering_absences=[spill_over],
        )

        assert result.unjustified_days == len(MARCH_WORKING_DAYS) - 3
        assert date(2025, 3, 3) not in result.unjustified_dates
        assert result.absence_deductions == Decimal("0")
        assert result.absences == ()

    def test_pending_covering_absence_ignored(self):
        pending = _absent(date(2025, 2, 28), days=5, status=EntryStatus.PENDING)
        result = calculate_payroll(
            [_worked(date(2025, 3, 5))], [], _contract(), MARCH, covering_absences=[pending]
        )

        assert result.unjustified_days == len(MARCH_WORKING_DAYS) - 1

    def test_bonus_added_to_gross(self):
        bonus = Bonus(label="Referral", amount="100")
        base = calculate_payroll([_worked(date(2025, 3, 3))], [], _one_day_contract(), MARCH)
        with_bonus = calculate_payroll(
            [_worked(date(2025, 3, 3))], [], _one_day_contract(), MARCH, bonuses=[bonus]
        )

        assert with_bonus.gross_pay - base.gross_pay == Decimal("100")
        assert with_bonus.bonuses == (bonus,)

    def test_record_outside_contract_rejected(self):
        with pytest.raises(DateOutOfContractRangeError):
            calculate_payroll(
                [_worked(date(2025, 3, 3))], [], _contract(start=date(2025, 3, 4)), MARCH
            )


class TestParseBaseSalary:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("3035", Decimal("3035")),
            ("3 035,50 EUR", Decimal("3035.50")),
            ("2500.75", Decimal("2500.75")),
            (3035, Decimal("3035")),
            (Decimal("1999.99"), Decimal("1999.99")),
        ],
    )
    def test_accepted(self, raw, expected):
        assert parse_base_salary(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "abc", "0", -5, True, "EUR"])
    def test_rejected(self, raw):
        with pytest.raises(InvalidSalaryError):
            parse_base_salary(raw)

    def test_contract_with_invalid_salary(self):
        with pytest.raises(InvalidSalaryError):
            calculate_payroll([], [], _contract(base="n/a"), MARCH)


class TestTrace:
    def test_engine_trace_emitted(self, captured_logs):
        calculate_payroll([], [], _contract(), period=MARCH)

        traces = [r for r in captured_logs() if r["message"] == "HR_ENGINE_TRACE"]
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "payroll"
        assert len(traces[0]["input_fingerprint"]) == 16
