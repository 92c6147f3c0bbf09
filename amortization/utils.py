"""Utility functions for the amortization tracker.

This module provides helpers for parsing user input into Python data types and
for calendar arithmetic, including adding months to a date and pinning a date
to the first day of its month. It uses Python's ``datetime`` and ``calendar``
modules to calculate month offsets.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
import calendar


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a ``date`` object.

    Raises
    ------
    ValueError
        If the string is not a valid calendar date.
    """
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def first_of_month(dt: date) -> date:
    return dt.replace(day=1)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and surrounding whitespace. It raises
    ``ValueError`` if conversion fails or the value is not finite.
    """
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def parse_amount(value: str) -> Decimal:
    """Parse a money amount with optional suffixes.

    Accepts plain numbers ("213100") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000).
    """
    cleaned = str(value).strip().lower().replace(",", "")
    factor = Decimal(1)
    if cleaned.endswith("k"):
        factor = Decimal(1_000)
        cleaned = cleaned[:-1]
    elif cleaned.endswith("m"):
        factor = Decimal(1_000_000)
        cleaned = cleaned[:-1]
    try:
        return decimal_from_str(cleaned) * factor
    except ValueError as exc:
        raise ValueError(f"Invalid amount: {value}") from exc
