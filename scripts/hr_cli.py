#!/usr/bin/env python3
"""
Operator command line for the payroll kernel.

Usage:
    python scripts/hr_cli.py init-db [--reset]
    python scripts/hr_cli.py register-contract PERSON_ID BASE_SALARY START [--end END]
    python scripts/hr_cli.py close-month PERSON_ID CONTRACT_ID MM/YYYY --actor ACTOR_ID
    python scripts/hr_cli.py payslips [--employee ID] [--contract ID]

Every command takes ``--db-url`` (default: ``DATABASE_URL`` or
``sqlite:///hr_payroll.db``).  Kernel errors are printed with their code and
the command exits 1.
"""

import argparse
import os
import sys
from datetime import date
from pathlib import Path
from uuid import UUID, uuid4

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from hr_kernel.db.engine import (  # noqa: E402
    create_tables,
    drop_tables,
    init_engine_from_url,
    session_scope,
)
from hr_kernel.domain.records import ContractTerms  # noqa: E402
from hr_kernel.exceptions import HRKernelError  # noqa: E402
from hr_modules.timesheet.service import TimesheetService  # noqa: E402
from hr_services import MonthCloseOrchestrator  # noqa: E402

DB_URL = os.environ.get("DATABASE_URL", "sqlite:///hr_payroll.db")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Payroll kernel operator commands")
    p.add_argument("--db-url", default=DB_URL, help=f"Database URL (default: {DB_URL!r})")
    sub = p.add_subparsers(dest="command", required=True)

    init_db = sub.add_parser("init-db", help="Create the schema")
    init_db.add_argument("--reset", action="store_true", help="Drop every table first")

    contract = sub.add_parser("register-contract", help="Register an employment contract")
    contract.add_argument("person_id", type=UUID)
    contract.add_argument("base_salary")
    contract.add_argument("start", type=date.fromisoformat)
    contract.add_argument("--end", type=date.fromisoformat, default=None)
    contract.add_argument("--organization", type=UUID, default=None)
    contract.add_argument("--actor", type=UUID, default=None)

    close = sub.add_parser("close-month", help="Close a month and issue its payslip")
    close.add_argument("person_id", type=UUID)
    close.add_argument("contract_id", type=UUID)
    close.add_argument("month_year", help="MM/YYYY")
    close.add_argument("--actor", type=UUID, required=True)

    payslips = sub.add_parser("payslips", help="List issued payslips")
    payslips.add_argument("--employee", type=UUID, default=None)
    payslips.add_argument("--contract", type=UUID, default=None)

    return p.parse_args(argv)


def _init_db(args: argparse.Namespace) -> int:
    if args.reset:
        print("  Dropping tables...")
        drop_tables()
    create_tables()
    print("  Schema ready.")
    return 0


def _register_contract(args: argparse.Namespace) -> int:
    with session_scope() as session:
        contract = TimesheetService(session).create_contract(
            ContractTerms(
                id=uuid4(),
                person_id=args.person_id,
                base_salary=args.base_salary,
                start_date=args.start,
                end_date=args.end,
                organization_id=args.organization,
            ),
            actor_id=args.actor or args.person_id,
        )
    print(f"  contract_id: {contract.id}")
    return 0


def _close_month(args: argparse.Namespace) -> int:
    with session_scope() as session:
        result = MonthCloseOrchestrator(session).close_month(
            args.person_id, args.contract_id, args.month_year, args.actor
        )
    print(f"  Month {result.month_year} closed")
    print(f"  payslip_id:       {result.payslip_id}")
    print(f"  gross:            {result.gross_pay}")
    print(f"  net:              {result.net_pay}")
    print(f"  normal hours:     {result.normal_hours}")
    print(f"  overtime hours:   {result.overtime_hours}")
    print(f"  unjustified days: {result.unjustified_days}")
    return 0


def _list_payslips(args: argparse.Namespace) -> int:
    with session_scope() as session:
        payslips = TimesheetService(session).list_payslips(
            employee_id=args.employee, contract_id=args.contract
        )
    if not payslips:
        print("  No payslips.")
    for p in payslips:
        print(f"  {p.month_year}  gross {p.gross_pay:>12}  net {p.net_pay:>12}  {p.id}")
    return 0


_COMMANDS = {
    "init-db": _init_db,
    "register-contract": _register_contract,
    "close-month": _close_month,
    "payslips": _list_payslips,
}


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    init_engine_from_url(args.db_url, echo=False)
    if args.command != "init-db":
        create_tables()
    try:
        return _COMMANDS[args.command](args)
    except HRKernelError as exc:
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
