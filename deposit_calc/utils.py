"""Utility functions for the deposit calculator.

This module provides helpers for parsing user input into Python data types,
for rounding money the way banks do and for the calendar arithmetic the
interest engine relies on: month ends, calendar quarter ends, Indian
financial-year (1 April to 31 March) boundaries and exclusive day counts.
All helpers are pure and work on ``datetime.date`` values.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext
from typing import Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

DateLike = Union[date, datetime, str]
Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")

# months whose last day closes a calendar quarter
QUARTER_END_MONTHS = (3, 6, 9, 12)


def parse_date(value: DateLike) -> date:
    """Parse an ISO ``YYYY-MM-DD`` string (or date/datetime) into a ``date``.

    A time component such as ``2024-09-19T00:00:00`` is ignored.

    Raises
    ------
    ValueError
        If the value cannot be interpreted as a calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip().split("T")[0])
    except Exception as exc:
        raise ValueError(f"Invalid date: {value}") from exc


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.replace(",", "").strip()
        return Decimal(cleaned)
    except (InvalidOperation, AttributeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc


def to_decimal(value: Number) -> Decimal:
    """Coerce ints, floats and strings to ``Decimal`` without float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value}")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    return decimal_from_str(value)


def round2(value: Decimal) -> Decimal:
    """Round half away from zero to two decimal places (bank rounding)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def month_end(year: int, month_index: int) -> date:
    """Return the last calendar day of a month.

    ``month_index`` is zero-based (0 = January) and may overflow into the
    following years, so ``month_end(2024, 14)`` is 31 March 2025.
    """
    year += month_index // 12
    month = month_index % 12 + 1
    return date(year, month, calendar.monthrange(year, month)[1])


def next_month_end(dt: date) -> date:
    """Return the first month end strictly after ``dt``."""
    end = month_end(dt.year, dt.month - 1)
    if end > dt:
        return end
    return month_end(dt.year, dt.month)


def next_calendar_quarter_end(dt: date) -> date:
    """Return the first of 31 Mar, 30 Jun, 30 Sep, 31 Dec strictly after ``dt``.

    Quarters are calendar aligned, not anniversary aligned: a deposit opened
    on 1 June has its first quarter end on 30 June.
    """
    for month in QUARTER_END_MONTHS:
        end = month_end(dt.year, month - 1)
        if end > dt:
            return end
    return month_end(dt.year + 1, 2)


def financial_year_end(year: int) -> date:
    """Return 31 March of ``year``."""
    return date(year, 3, 31)


def next_financial_year_end(dt: date) -> date:
    """Return the first 31 March strictly after ``dt``."""
    end = financial_year_end(dt.year)
    if end > dt:
        return end
    return financial_year_end(dt.year + 1)


def financial_year_label(dt: date) -> str:
    """Return the Indian financial year label of a date, e.g. ``FY2024-25``."""
    if dt.month >= 4:
        return f"FY{dt.year}-{str(dt.year + 1)[-2:]}"
    return f"FY{dt.year - 1}-{str(dt.year)[-2:]}"


def is_financial_year_end(dt: date) -> bool:
    return dt.month == 3 and dt.day == 31


def is_month_end(dt: date) -> bool:
    return dt.day == calendar.monthrange(dt.year, dt.month)[1]


def is_quarter_end(dt: date) -> bool:
    return dt.month in QUARTER_END_MONTHS and is_month_end(dt)


def days_between_exclusive(start: DateLike, end: DateLike) -> int:
    """Return the number of days from ``start`` to ``end``, not counting ``end``.

    No ``+1`` adjustment is made: 2024-09-19 to 2025-12-07 is 444 days. A
    negative span is a caller error and raises ``ValueError``.
    """
    start_date = parse_date(start)
    end_date = parse_date(end)
    days = (end_date - start_date).days
    if days < 0:
        raise ValueError(f"End date {end_date} is before start date {start_date}")
    return days
