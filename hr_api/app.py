"""
HR Payroll API - Application Factory

Builds the FastAPI application.  Collaborators (session factory, clock,
payroll rules, PDF renderer) are injected; anything left out is resolved
from the environment:

* ``DATABASE_URL``  database used when no session factory is given
  (default ``sqlite:///hr_payroll.db``)
* ``HR_DEBUG``      when truthy, 500 responses include the exception text
* ``HR_PAYROLL_RULES``  see ``hr_config.get_payroll_rules``

Run with::

    uvicorn hr_api.app:create_app --factory
"""

import os
import uuid

from fastapi import FastAPI, Request
from sqlalchemy.orm import Session, sessionmaker

from hr_api.dependencies import PayslipRenderer
from hr_api.errors import setup_exception_handlers
from hr_api.routers import payslips, timesheets
from hr_config import get_payroll_rules
from hr_config.schema import PayrollRules
from hr_kernel import __version__
from hr_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from hr_kernel.domain.clock import Clock, SystemClock
from hr_kernel.logging_config import LogContext, configure_logging, get_logger

logger = get_logger("api.app")

_DEFAULT_DATABASE_URL = "sqlite:///hr_payroll.db"
_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _debug_from_env() -> bool:
    return os.environ.get("HR_DEBUG", "").strip().lower() in _TRUTHY


def create_app(
    session_factory: sessionmaker[Session] | None = None,
    clock: Clock | None = None,
    rules: PayrollRules | None = None,
    pdf_renderer: PayslipRenderer | None = None,
    debug: bool | None = None,
) -> FastAPI:
    configure_logging()

    if session_factory is None:
        init_engine_from_url(os.environ.get("DATABASE_URL", _DEFAULT_DATABASE_URL))
        create_tables()
        session_factory = get_session_factory()

    app = FastAPI(
        title="HR Payroll Kernel",
        description="Timesheets, absences, month closing and payslips",
        version=__version__,
    )
    app.state.session_factory = session_factory
    app.state.clock = clock or SystemClock()
    app.state.rules = rules or get_payroll_rules()
    app.state.pdf_renderer = pdf_renderer
    app.state.debug = _debug_from_env() if debug is None else debug

    setup_exception_handlers(app)

    @app.middleware("http")
    async def bind_correlation_id(request: Request, call_next):
        correlation_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        with LogContext.bind(correlation_id=correlation_id):
            response = await call_next(request)
        response.headers["X-Request-Id"] = correlation_id
        return response

    app.include_router(timesheets.router)
    app.include_router(payslips.router)

    logger.info(
        "api_created",
        extra={"rules_version": app.state.rules.version, "debug": app.state.debug},
    )
    return app
