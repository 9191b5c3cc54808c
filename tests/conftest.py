"""
Pytest fixtures for the payroll kernel test suite.

Provides:
- Structured-logging setup and a captured_logs helper
- A fresh database per test (SQLite in memory unless DATABASE_URL is set)
- A deterministic clock, the bundled payroll rules and contract factories

Environment Variables:
- DATABASE_URL: run the DB-backed tests against another database, e.g.
  postgresql+psycopg://hr:hr@localhost/hr_payroll_test
"""

import json
import logging
import os
from datetime import UTC, date, datetime
from io import StringIO
from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy.orm import Session

from hr_config import get_payroll_rules
from hr_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from hr_kernel.domain.clock import DeterministicClock
from hr_kernel.domain.records import ContractTerms, EntryStatus, TimeEntry
from hr_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from hr_modules.timesheet.service import TimesheetService
from hr_services import MonthCloseOrchestrator

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

DEFAULT_DATABASE_URL = "sqlite://"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture hr_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, orchestrator):
            orchestrator.close_month(...)
            logs = captured_logs()
            assert any(r["message"] == "month_closed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("hr_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


@pytest.fixture
def db_engine():
    """Fresh schema per test; dropped afterwards."""
    engine = init_engine_from_url(get_database_url())
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    sess = get_session()
    yield sess
    sess.close()


@pytest.fixture
def session_factory(db_engine):
    return get_session_factory()


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    """Today is 2025-04-15, so March 2025 is entirely in the past."""
    return DeterministicClock(datetime(2025, 4, 15, 9, 0, 0, tzinfo=UTC))


@pytest.fixture
def rules():
    return get_payroll_rules()


@pytest.fixture
def test_actor_id():
    return TEST_ACTOR_ID


@pytest.fixture
def person_id():
    return uuid4()


@pytest.fixture
def timesheet_service(session, clock, rules) -> TimesheetService:
    return TimesheetService(session, clock=clock, rules=rules)


@pytest.fixture
def orchestrator(session, clock, rules) -> MonthCloseOrchestrator:
    return MonthCloseOrchestrator(session, clock=clock, rules=rules)


@pytest.fixture
def create_contract(timesheet_service, person_id):
    """
    Factory registering a contract for ``person_id``.

    Defaults: base salary "3035", open-ended, starting 2025-01-01.
    """

    def _create(
        base_salary="3035",
        start_date=date(2025, 1, 1),
        end_date=None,
        person=None,
        organization_id=None,
    ) -> ContractTerms:
        return timesheet_service.create_contract(
            ContractTerms(
                id=uuid4(),
                person_id=person or person_id,
                base_salary=base_salary,
                start_date=start_date,
                end_date=end_date,
                organization_id=organization_id,
            ),
            actor_id=TEST_ACTOR_ID,
        )

    return _create


@pytest.fixture
def contract(create_contract) -> ContractTerms:
    return create_contract()


@pytest.fixture
def approved_entry(timesheet_service, person_id, contract):
    """Factory recording a time entry and approving it."""

    def _record(day: date, start="08:00", end="16:00", break_hours="1") -> TimeEntry:
        entry = timesheet_service.record_time_entry(
            person_id,
            contract.id,
            TimeEntry(entry_date=day, start_time=start, end_time=end, break_hours=break_hours),
            actor_id=person_id,
        )
        approved = timesheet_service.approve_time_entry(entry.id, actor_id=TEST_ACTOR_ID)
        assert approved.status is EntryStatus.APPROVED
        return approved

    return _record
