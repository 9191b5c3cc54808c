"""
Timesheet module: recording, review and persistence of time entries,
absences, closed-month markers and payslips.
"""

from hr_modules.timesheet.models import (
    ClosedMonth,
    ContractOverview,
    MonthStatus,
    Payslip,
    PayslipDetails,
    Timesheet,
)
from hr_modules.timesheet.service import TimesheetService
from hr_modules.timesheet.store import PayrollStore, SqlAlchemyPayrollStore

__all__ = [
    "ClosedMonth",
    "ContractOverview",
    "MonthStatus",
    "Payslip",
    "PayslipDetails",
    "PayrollStore",
    "SqlAlchemyPayrollStore",
    "Timesheet",
    "TimesheetService",
]
