"""
HR Payroll API - Payslip Router

Read access to issued payslips.  Payslips are written only by month closing.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from hr_api.dependencies import PayslipRenderer, get_pdf_renderer, get_timesheet_service
from hr_api.schemas import PayslipOut
from hr_modules.timesheet.service import TimesheetService

router = APIRouter(prefix="/payslips", tags=["Payslips"])


@router.get("", response_model=List[PayslipOut])
def list_payslips(
    employee_id: Optional[UUID] = Query(None, alias="employeeId"),
    contract_id: Optional[UUID] = Query(None, alias="contractId"),
    service: TimesheetService = Depends(get_timesheet_service),
):
    """Most recent period first."""
    payslips = service.list_payslips(employee_id=employee_id, contract_id=contract_id)
    return [PayslipOut.of(p) for p in payslips]


@router.get("/{payslip_id}", response_model=PayslipOut)
def get_payslip(
    payslip_id: UUID,
    service: TimesheetService = Depends(get_timesheet_service),
):
    return PayslipOut.of(service.get_payslip(payslip_id))


@router.get("/{payslip_id}/pdf")
def get_payslip_pdf(
    payslip_id: UUID,
    service: TimesheetService = Depends(get_timesheet_service),
    renderer: Optional[PayslipRenderer] = Depends(get_pdf_renderer),
):
    if renderer is None:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="PDF rendering is not configured",
        )
    payslip = service.get_payslip(payslip_id)
    filename = f"payslip-{payslip.year}-{payslip.month:02d}.pdf"
    return Response(
        content=renderer.render(payslip),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
