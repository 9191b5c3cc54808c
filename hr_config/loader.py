"""
Payroll rules loader (``hr_config.loader``).

Responsibility
--------------
Reads a YAML rules file and parses it into a frozen ``PayrollRules``.  Runtime
callers go through ``hr_config.get_payroll_rules()``; this module is the
parsing toolkit behind it.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``payroll`` section  -> ``KeyError``.
* Non-numeric value or invalid date  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from hr_config.schema import PayrollRules


def load_yaml_file(path: Path) -> dict[str, Any]:
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_decimal(name: str, value: Any) -> Decimal:
    # str() first so YAML floats like 0.23 keep their literal digits
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"{name}: cannot parse decimal from {value!r}") from exc


def parse_payroll_rules(data: dict[str, Any]) -> PayrollRules:
    """
    Parse the ``payroll`` section of a rules document.

    Raises:
        KeyError: if the ``payroll`` section is absent.
        ValueError: on unparseable values or failed rule validation.
    """
    section = data["payroll"]
    defaults = PayrollRules()

    def dec(key: str, current: Decimal) -> Decimal:
        return parse_decimal(key, section[key]) if key in section else current

    holidays_raw = section.get("holidays")
    holidays = (
        frozenset(parse_date(h) for h in holidays_raw)
        if holidays_raw is not None
        else defaults.holidays
    )

    return PayrollRules(
        monthly_hours_divisor=dec("monthly_hours_divisor", defaults.monthly_hours_divisor),
        working_days_per_month=dec("working_days_per_month", defaults.working_days_per_month),
        overtime_threshold_hours=dec("overtime_threshold_hours", defaults.overtime_threshold_hours),
        minimum_daily_hours=dec("minimum_daily_hours", defaults.minimum_daily_hours),
        overtime_multiplier=dec("overtime_multiplier", defaults.overtime_multiplier),
        social_contribution_rate=dec("social_contribution_rate", defaults.social_contribution_rate),
        default_break_hours=dec("default_break_hours", defaults.default_break_hours),
        absence_max_future_months=int(
            section.get("absence_max_future_months", defaults.absence_max_future_months)
        ),
        holidays=holidays,
        version=str(data.get("version", "unversioned")),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of a rules document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
