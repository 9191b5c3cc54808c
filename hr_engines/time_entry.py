"""
Time-entry normalizer (``hr_engines.time_entry``).

Responsibility
--------------
* Normalize loosely typed clock times to ``HH:mm``.
* Compute the hours worked by a single time entry.
* Validate a time entry before it is recorded.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO database, ZERO
clock reads.  "Today" is an explicit parameter.

Invariants enforced
-------------------
* A shift whose end is at or before its start crosses midnight.
* Worked hours are never negative.
* ``compute_worked_hours`` fails closed: a missing or malformed time yields
  zero hours and a warning, never an exception.  ``validate_time_entry`` is
  the strict counterpart used at recording time.
"""

from __future__ import annotations

import re
from dataclasses import replace
from datetime import date
from decimal import Decimal

from hr_kernel.domain.records import ContractTerms, TimeEntry
from hr_kernel.exceptions import (
    FutureDateError,
    InvalidBreakError,
    InvalidTimeError,
    InvalidTimeFormatError,
    MissingFieldsError,
)
from hr_kernel.logging_config import get_logger

logger = get_logger("engines.time_entry")

TIME_PATTERN = re.compile(r"^(0?[0-9]|1[0-9]|2[0-3]):[0-5][0-9]$")

_MINUTES_PER_DAY = 24 * 60
_SIXTY = Decimal("60")


def normalize_time(raw: str | None) -> str | None:
    """
    Left-pad hour and minute to two digits.

    ``"8:5"`` -> ``"08:05"``.  Anything that is not two integers separated by
    a colon is returned unchanged so validation can report it.
    """
    if not raw or not isinstance(raw, str):
        return raw
    parts = raw.split(":")
    if len(parts) < 2:
        return raw
    hours, minutes = parts[0].strip(), parts[1].strip()
    if not (hours.isdigit() and minutes.isdigit()):
        return raw
    return f"{int(hours):02d}:{int(minutes):02d}"


def is_valid_time(value: str | None) -> bool:
    return isinstance(value, str) and TIME_PATTERN.match(value) is not None


def _minutes_of_day(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def span_minutes(start_time: str, end_time: str) -> int:
    """Minutes from start to end, crossing midnight when end <= start."""
    start = _minutes_of_day(start_time)
    end = _minutes_of_day(end_time)
    if end <= start:
        end += _MINUTES_PER_DAY
    return end - start


def span_hours(start_time: str, end_time: str) -> Decimal:
    return Decimal(span_minutes(start_time, end_time)) / _SIXTY


def compute_worked_hours(entry: TimeEntry) -> Decimal:
    """
    Hours worked by one entry: span minus break, clamped at zero.

    A break longer than the span is ignored rather than producing a negative
    day; the inconsistency is logged.
    """
    if not entry.start_time or not entry.end_time:
        logger.warning(
            "worked_hours_open_entry",
            extra={"entry_id": str(entry.id), "entry_date": entry.entry_date},
        )
        return Decimal("0")

    start = normalize_time(entry.start_time)
    end = normalize_time(entry.end_time)
    if not (is_valid_time(start) and is_valid_time(end)):
        logger.warning(
            "worked_hours_invalid_time",
            extra={
                "entry_id": str(entry.id),
                "start_time": entry.start_time,
                "end_time": entry.end_time,
            },
        )
        return Decimal("0")

    total_minutes = Decimal(span_minutes(start, end))
    break_minutes = entry.break_hours * _SIXTY
    if break_minutes > total_minutes:
        logger.warning(
            "worked_hours_break_ignored",
            extra={
                "entry_id": str(entry.id),
                "break_hours": entry.break_hours,
                "span_hours": total_minutes / _SIXTY,
            },
        )
        break_minutes = Decimal("0")

    return max((total_minutes - break_minutes) / _SIXTY, Decimal("0"))


def validate_time_entry(
    entry: TimeEntry,
    contract: ContractTerms,
    today: date,
) -> TimeEntry:
    """
    Strict recording-time checks. Returns the entry with normalized times.

    Raises:
        MissingFieldsError: start or end time absent.
        FutureDateError: entry dated after ``today``.
        InvalidTimeFormatError: a time is not HH:mm.
        InvalidTimeError: start equals end.
        InvalidBreakError: break exceeds the worked span.
        DateOutOfContractRangeError: date outside the contract window.
    """
    missing = [name for name in ("start_time", "end_time") if not getattr(entry, name)]
    if missing:
        raise MissingFieldsError(missing)

    if entry.entry_date > today:
        raise FutureDateError(entry.entry_date, today)

    start = normalize_time(entry.start_time)
    end = normalize_time(entry.end_time)
    if not is_valid_time(start):
        raise InvalidTimeFormatError("start_time", entry.start_time)
    if not is_valid_time(end):
        raise InvalidTimeFormatError("end_time", entry.end_time)
    if start == end:
        raise InvalidTimeError(start, end)

    span = span_hours(start, end)
    if entry.break_hours > span:
        raise InvalidBreakError(entry.break_hours, span)

    contract.require_covers(entry.entry_date)

    return replace(entry, start_time=start, end_time=end)
