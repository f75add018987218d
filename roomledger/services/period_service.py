"""Billing period calendar.

Months are handled as absolute indexes (year * 12 + month - 1) so ranges that
cross a year boundary compare and iterate like plain integers.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any

from roomledger.models.charge import ChargeFrequency
from roomledger.services.frequency_service import MONTHS_PER_YEAR, parse_frequency

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


@dataclass(frozen=True)
class Period:
    """One billing unit: a single month, or a 12-month span for yearly billing.

    Attributes:
        month: Month (1-12), or the first month of a span
        year: Calendar year of ``month``
        label: Display label, e.g. "March 2025" or "2025 Annual (Jan-Dec)"
        month_end: Inclusive last month of a span; None for a single month
    """

    month: int | None
    year: int
    label: str
    month_end: int | None = None

    @property
    def is_span(self) -> bool:
        return self.month is not None and self.month_end is not None

    @property
    def end_year(self) -> int:
        """Calendar year of the last covered month."""
        if self.is_span and self.month_end < self.month:
            return self.year + 1
        return self.year

    def months(self) -> list[tuple[int, int]]:
        """All (month, year) pairs covered, in order."""
        if self.month is None:
            return [(month, self.year) for month in range(1, MONTHS_PER_YEAR + 1)]
        first = month_index(self.month, self.year)
        last = month_index(self.month_end, self.end_year) if self.is_span else first
        return [from_month_index(index) for index in range(first, last + 1)]


def month_name(month: int) -> str:
    """Full English month name for 1-12."""
    if not 1 <= month <= MONTHS_PER_YEAR:
        raise ValueError(f"month must be between 1 and 12, got {month}")
    return MONTH_NAMES[month - 1]


def month_index(month: int, year: int) -> int:
    return year * MONTHS_PER_YEAR + month - 1


def from_month_index(index: int) -> tuple[int, int]:
    """Inverse of month_index, returns (month, year)."""
    year, offset = divmod(index, MONTHS_PER_YEAR)
    return offset + 1, year


def monthly_period(month: int, year: int) -> Period:
    return Period(month=month, year=year, label=f"{month_name(month)} {year}")


def annual_label(start_month: int, start_year: int) -> str:
    """Label of the 12-month span starting at start_month/start_year."""
    if start_month == 1:
        return f"{start_year} Annual (Jan-Dec)"
    end_month, end_year = from_month_index(month_index(start_month, start_year) + MONTHS_PER_YEAR - 1)
    return f"{month_name(start_month)} {start_year} - {month_name(end_month)} {end_year}"


def yearly_period(start_month: int, start_year: int) -> Period:
    end_month, _ = from_month_index(month_index(start_month, start_year) + MONTHS_PER_YEAR - 1)
    return Period(
        month=start_month,
        year=start_year,
        label=annual_label(start_month, start_year),
        month_end=end_month,
    )


def enumerate_periods(
    start_month: int,
    start_year: int,
    end_month: int,
    end_year: int,
    frequency: Any,
) -> list[Period]:
    """Enumerate billing periods from start to end inclusive.

    Monthly yields every month; yearly yields one calendar-year span
    (Jan-Dec) per year from start_year to end_year. A start after the end
    yields nothing.

    Raises:
        InvalidFrequencyError: If frequency is not monthly or yearly
    """
    frequency = parse_frequency(frequency)
    if frequency is ChargeFrequency.YEARLY:
        return [yearly_period(1, year) for year in range(start_year, end_year + 1)]

    first = month_index(start_month, start_year)
    last = month_index(end_month, end_year)
    return [monthly_period(*from_month_index(index)) for index in range(first, last + 1)]


def yearly_cycles(tenancy_start: date, today: date) -> list[Period]:
    """12-month spans anchored on the tenancy start month, up to today.

    A cycle is due from its first month, so a cycle starting in the current
    month is included.
    """
    first = month_index(tenancy_start.month, tenancy_start.year)
    current = month_index(today.month, today.year)
    return [
        yearly_period(*from_month_index(index))
        for index in range(first, current + 1, MONTHS_PER_YEAR)
    ]


def cycle_containing(tenancy_start: date, today: date) -> Period:
    """Anniversary cycle that contains today (the first cycle if today precedes the tenancy)."""
    first = month_index(tenancy_start.month, tenancy_start.year)
    elapsed = max(month_index(today.month, today.year) - first, 0)
    start_index = first + (elapsed // MONTHS_PER_YEAR) * MONTHS_PER_YEAR
    return yearly_period(*from_month_index(start_index))


def current_period(
    frequency: Any,
    today: date | None = None,
    tenancy_start: date | None = None,
) -> Period:
    """Period a payment made today settles by default.

    Monthly: the current month. Yearly without a tenancy date: the calendar
    year. Yearly with a tenancy date: the anniversary cycle containing today.
    """
    frequency = parse_frequency(frequency)
    today = today or date.today()
    if frequency is ChargeFrequency.MONTHLY:
        return monthly_period(today.month, today.year)
    if tenancy_start is None:
        return yearly_period(1, today.year)
    return cycle_containing(tenancy_start, today)


__all__ = [
    "MONTH_NAMES",
    "Period",
    "annual_label",
    "current_period",
    "cycle_containing",
    "enumerate_periods",
    "from_month_index",
    "month_index",
    "month_name",
    "monthly_period",
    "yearly_cycles",
    "yearly_period",
]
