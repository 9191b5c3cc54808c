"""
hr_services._close_types -- Month close DTOs for the close orchestrator.

Responsibility:
    Frozen result types returned by ``MonthCloseOrchestrator``.  They live in
    hr_services because the orchestrator producing them lives here; the API
    layer imports them to build responses.

Invariants enforced:
    - All DTOs are frozen.
    - ``MonthCloseResult.total_hours == normal_hours + overtime_hours``.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class MonthCloseResult:
    """Outcome of a successful month close."""

    payslip_id: UUID
    timesheet_id: UUID
    month_year: str
    gross_pay: Decimal
    net_pay: Decimal
    normal_hours: Decimal
    overtime_hours: Decimal
    unjustified_days: int
    time_entry_count: int
    absence_count: int
    closed_at: datetime
    closed_by: UUID

    @property
    def total_hours(self) -> Decimal:
        return self.normal_hours + self.overtime_hours
