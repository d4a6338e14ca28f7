"""
Quarter resolution for the Revenue Analytics engine.

Turns a (quarter, year) request into the calendar windows every view needs:
the quarter's own date range and months, the previous quarter, the same
quarter a year earlier, and the trailing six months used by trend charts.

Quarter boundaries are fixed calendar days (Q1 always ends on 03-31).
Month ranges are computed from the calendar, so February is leap-aware.
"""

import calendar
from dataclasses import dataclass
from datetime import date

from .errors import InvalidQuarterError

QUARTER_LABELS: tuple[str, ...] = ('Q1', 'Q2', 'Q3', 'Q4')

# (start month, start day) .. (end month, end day) per quarter
_QUARTER_BOUNDS: dict[str, tuple[tuple[int, int], tuple[int, int]]] = {
    'Q1': ((1, 1), (3, 31)),
    'Q2': ((4, 1), (6, 30)),
    'Q3': ((7, 1), (9, 30)),
    'Q4': ((10, 1), (12, 31)),
}

TRAILING_MONTHS = 6


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-day range."""

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class Quarter:
    """A validated (quarter, year) pair."""

    label: str
    year: int

    @property
    def index(self) -> int:
        """1-based quarter number."""
        return QUARTER_LABELS.index(self.label) + 1

    @property
    def display(self) -> str:
        return f'{self.label} {self.year}'

    @property
    def date_range(self) -> DateRange:
        (start_month, start_day), (end_month, end_day) = _QUARTER_BOUNDS[self.label]
        return DateRange(
            start=date(self.year, start_month, start_day),
            end=date(self.year, end_month, end_day),
        )

    @property
    def months(self) -> list[str]:
        """The quarter's three months as ``YYYY-MM``, in order."""
        first = (self.index - 1) * 3 + 1
        return [f'{self.year}-{m:02d}' for m in range(first, first + 3)]

    @property
    def end_month(self) -> int:
        return self.index * 3

    def previous(self) -> 'Quarter':
        """The immediately preceding quarter."""
        if self.label == 'Q1':
            return Quarter('Q4', self.year - 1)
        return Quarter(QUARTER_LABELS[self.index - 2], self.year)

    def year_ago(self) -> 'Quarter':
        """The same quarter one year earlier."""
        return Quarter(self.label, self.year - 1)

    def trailing_months(self, count: int = TRAILING_MONTHS) -> list[str]:
        """``count`` months ending with this quarter's last month, oldest first."""
        months = []
        for offset in range(count - 1, -1, -1):
            month = self.end_month - offset
            year = self.year
            while month <= 0:
                month += 12
                year -= 1
            months.append(f'{year}-{month:02d}')
        return months


@dataclass(frozen=True)
class QuarterWindow:
    """Every date range a view needs for one request, resolved once."""

    quarter: Quarter
    current: DateRange
    previous: DateRange
    year_ago: DateRange
    months: list[str]
    trailing_months: list[str]

    @property
    def label(self) -> str:
        return self.quarter.display

    @property
    def reference_date(self) -> date:
        """Point-in-time reference for pipeline and risk state: the quarter's last day."""
        return self.current.end


def parse_quarter(quarter: str, year: int | str) -> Quarter:
    """
    Validate a raw (quarter, year) request.

    Args:
        quarter: Exactly one of ``Q1``..``Q4``
        year: Four-digit year as int or a string of four ASCII digits

    Returns:
        Validated Quarter

    Raises:
        InvalidQuarterError: If either value is not recognized
    """
    if quarter not in QUARTER_LABELS:
        raise InvalidQuarterError(
            f'Unrecognized quarter {quarter!r}; expected one of {", ".join(QUARTER_LABELS)}',
            context={'quarter': quarter, 'year': year},
        )

    if isinstance(year, bool):
        parsed_year = None
    elif isinstance(year, int):
        parsed_year = year
    elif isinstance(year, str) and year.isascii() and year.isdigit():
        parsed_year = int(year)
    else:
        parsed_year = None

    if parsed_year is None or not 1000 <= parsed_year <= 9999:
        raise InvalidQuarterError(
            f'Unrecognized year {year!r}; expected a four-digit year',
            context={'quarter': quarter, 'year': year},
        )

    return Quarter(quarter, parsed_year)


def resolve_window(quarter: Quarter) -> QuarterWindow:
    """Resolve all date ranges for a quarter."""
    return QuarterWindow(
        quarter=quarter,
        current=quarter.date_range,
        previous=quarter.previous().date_range,
        year_ago=quarter.year_ago().date_range,
        months=quarter.months,
        trailing_months=quarter.trailing_months(),
    )


def month_range(month: str) -> DateRange:
    """First to last calendar day of a ``YYYY-MM`` month."""
    year_str, month_str = month.split('-')
    year, month_num = int(year_str), int(month_str)
    last_day = calendar.monthrange(year, month_num)[1]
    return DateRange(start=date(year, month_num, 1), end=date(year, month_num, last_day))
