"""
HR Payroll API - FastAPI Dependencies

Per-request database sessions, the acting user, and the service objects
built on top of them.  Everything comes from ``app.state`` so tests can run
the app against their own session factory and clock.
"""

from typing import Generator, Protocol
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from hr_modules.timesheet.models import Payslip
from hr_modules.timesheet.service import TimesheetService
from hr_services import MonthCloseOrchestrator


class PayslipRenderer(Protocol):
    """Turns a stored payslip into a PDF document."""

    def render(self, payslip: Payslip) -> bytes:
        ...


def get_db(request: Request) -> Generator[Session, None, None]:
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def get_actor_id(x_actor_id: UUID = Header(..., alias="X-Actor-Id")) -> UUID:
    """The user performing the request, as forwarded by the gateway."""
    return x_actor_id


def get_timesheet_service(
    request: Request, session: Session = Depends(get_db)
) -> TimesheetService:
    return TimesheetService(
        session, clock=request.app.state.clock, rules=request.app.state.rules
    )


def get_close_orchestrator(
    request: Request, session: Session = Depends(get_db)
) -> MonthCloseOrchestrator:
    return MonthCloseOrchestrator(
        session, clock=request.app.state.clock, rules=request.app.state.rules
    )


def get_pdf_renderer(request: Request) -> PayslipRenderer | None:
    return request.app.state.pdf_renderer
