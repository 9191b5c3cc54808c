"""
HR Payroll API - Timesheet Router

Recording, editing and review of time entries and absences, and the
month-closing action that turns a month's approved records into a payslip.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status

from hr_api.dependencies import get_actor_id, get_close_orchestrator, get_timesheet_service
from hr_api.schemas import (
    AbsenceCreate,
    AbsenceOut,
    CloseMonthOut,
    CloseMonthRequest,
    ContractOverviewOut,
    TimeEntryCreate,
    TimeEntryIn,
    TimeEntryOut,
    TimesheetOut,
    TimesheetRecordRequest,
)
from hr_kernel.exceptions import MissingFieldsError
from hr_modules.timesheet.service import TimesheetService
from hr_services import MonthCloseOrchestrator

router = APIRouter(prefix="/timesheets", tags=["Timesheets"])


def _default_break(request: Request):
    return request.app.state.rules.default_break_hours


@router.post("", response_model=TimesheetOut, status_code=status.HTTP_201_CREATED)
def record_timesheet(
    body: TimesheetRecordRequest,
    request: Request,
    actor_id: UUID = Depends(get_actor_id),
    service: TimesheetService = Depends(get_timesheet_service),
):
    """Add time entries and absences in one go; all are stored or none."""
    if not body.time_entries and not body.absences:
        raise MissingFieldsError(["timeEntries", "absences"])
    timesheet = service.record(
        body.person_id,
        body.contract_id,
        actor_id,
        time_entries=[e.to_domain(_default_break(request)) for e in body.time_entries],
        absences=[a.to_domain() for a in body.absences],
    )
    return TimesheetOut.of(timesheet)


@router.get("", response_model=TimesheetOut)
def get_timesheet(
    person_id: UUID = Query(..., alias="personId"),
    contract_id: UUID = Query(..., alias="contractId"),
    service: TimesheetService = Depends(get_timesheet_service),
):
    return TimesheetOut.of(service.get_timesheet(person_id, contract_id))


@router.get("/organization/{organization_id}", response_model=List[ContractOverviewOut])
def organization_overview(
    organization_id: UUID,
    service: TimesheetService = Depends(get_timesheet_service),
):
    """Every contract of the organization with its records, pending months and payslips."""
    return [ContractOverviewOut.of(o) for o in service.organization_overview(organization_id)]


# =============================================================================
# TIME ENTRIES
# =============================================================================

@router.post("/entries", response_model=TimeEntryOut, status_code=status.HTTP_201_CREATED)
def record_time_entry(
    body: TimeEntryCreate,
    request: Request,
    actor_id: UUID = Depends(get_actor_id),
    service: TimesheetService = Depends(get_timesheet_service),
):
    entry = service.record_time_entry(
        body.person_id, body.contract_id, body.to_domain(_default_break(request)), actor_id
    )
    return TimeEntryOut.of(entry)


@router.put("/entries/{entry_id}", response_model=TimeEntryOut)
def update_time_entry(
    entry_id: UUID,
    body: TimeEntryIn,
    request: Request,
    actor_id: UUID = Depends(get_actor_id),
    service: TimesheetService = Depends(get_timesheet_service),
):
    updated = service.update_time_entry(
        entry_id, body.to_domain(_default_break(request)), actor_id
    )
    return TimeEntryOut.of(updated)


@router.delete("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_time_entry(
    entry_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    service: TimesheetService = Depends(get_timesheet_service),
):
    service.delete_time_entry(entry_id, actor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/entries/{entry_id}/validate", response_model=TimeEntryOut)
def validate_time_entry(
    entry_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    service: TimesheetService = Depends(get_timesheet_service),
):
    return TimeEntryOut.of(service.approve_time_entry(entry_id, actor_id))


@router.patch("/entries/{entry_id}/reject", response_model=TimeEntryOut)
def reject_time_entry(
    entry_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    service: TimesheetService = Depends(get_timesheet_service),
):
    return TimeEntryOut.of(service.reject_time_entry(entry_id, actor_id))


# =============================================================================
# ABSENCES
# =============================================================================

@router.post("/absences", response_model=AbsenceOut, status_code=status.HTTP_201_CREATED)
def record_absence(
    body: AbsenceCreate,
    actor_id: UUID = Depends(get_actor_id),
    service: TimesheetService = Depends(get_timesheet_service),
):
    absence = service.record_absence(
        body.person_id, body.contract_id, body.to_domain(), actor_id
    )
    return AbsenceOut.of(absence)


@router.patch("/absences/{absence_id}/validate", response_model=AbsenceOut)
def validate_absence(
    absence_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    service: TimesheetService = Depends(get_timesheet_service),
):
    return AbsenceOut.of(service.approve_absence(absence_id, actor_id))


@router.patch("/absences/{absence_id}/reject", response_model=AbsenceOut)
def reject_absence(
    absence_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    service: TimesheetService = Depends(get_timesheet_service),
):
    return AbsenceOut.of(service.reject_absence(absence_id, actor_id))


# =============================================================================
# MONTH CLOSING
# =============================================================================

@router.patch("/close-month/{person_id}/{contract_id}", response_model=CloseMonthOut)
def close_month(
    person_id: UUID,
    contract_id: UUID,
    body: CloseMonthRequest,
    actor_id: UUID = Depends(get_actor_id),
    orchestrator: MonthCloseOrchestrator = Depends(get_close_orchestrator),
):
    """
    Close ``monthYear`` ("MM/YYYY") for one employee and contract.

    Every time entry and absence dated in the month must already be
    reviewed.  The response carries the new payslip id and its headline
    figures.
    """
    if not body.month_year:
        raise MissingFieldsError(["monthYear"])
    result = orchestrator.close_month(
        person_id,
        contract_id,
        body.month_year,
        actor_id,
        bonuses=[b.to_domain() for b in body.bonuses],
    )
    return CloseMonthOut.of(result)
