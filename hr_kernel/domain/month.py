"""
MonthYear -- the payroll month value object.

Responsibility:
    Parses and validates the "MM/YYYY" identifier used to close a month and
    answers calendar questions about it (first/last day, every day, weekday
    membership).

Invariants enforced:
    - Only strings matching ``^\\d{1,2}/\\d{4}$`` with a month in 1..12 are
      accepted.
    - ``label`` is always zero-padded ("3/2025" -> "03/2025"), so a month has
      exactly one stored identifier.

Failure modes:
    - InvalidMonthFormatError for anything that is not MM/YYYY.
    - InvalidMonthError for a month outside 1..12.
"""

import calendar
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator

from hr_kernel.exceptions import InvalidMonthError, InvalidMonthFormatError

_MONTH_YEAR_RE = re.compile(r"^(\d{1,2})/(\d{4})$")


@dataclass(frozen=True, order=True)
class MonthYear:
    """A calendar month. Ordered by (year, month)."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise InvalidMonthError(self.month)
        if self.year < 1:
            raise InvalidMonthFormatError(self.year)

    @classmethod
    def parse(cls, value: str) -> "MonthYear":
        if not isinstance(value, str):
            raise InvalidMonthFormatError(value)
        match = _MONTH_YEAR_RE.match(value.strip())
        if match is None:
            raise InvalidMonthFormatError(value)
        month, year = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise InvalidMonthError(value)
        return cls(year=year, month=month)

    @classmethod
    def of(cls, day: date) -> "MonthYear":
        return cls(year=day.year, month=day.month)

    @property
    def label(self) -> str:
        return f"{self.month:02d}/{self.year}"

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def days(self) -> Iterator[date]:
        day = self.first_day
        while day.month == self.month:
            yield day
            day += timedelta(days=1)

    def contains(self, day: date) -> bool:
        return day.year == self.year and day.month == self.month

    def __str__(self) -> str:
        return self.label


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5
