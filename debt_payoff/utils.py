"""Utility functions for the debt payoff engine.

This module provides helpers for turning loosely typed input (backend rows,
CLI strings) into ``Decimal`` amounts and ``date`` objects, for rounding money
and for month arithmetic. Malformed numbers are treated as "no information"
and resolved to zero rather than raised, so one bad field never stops a
simulation.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Any, Callable, Dict, Optional

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_amount(value: Any) -> Decimal:
    """Convert ``value`` into a non-negative, finite ``Decimal``.

    ``None``, unparsable strings, NaN, infinities and negative numbers all
    resolve to ``Decimal("0")``.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, float):
            amount = Decimal(repr(value))
        else:
            amount = Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, ValueError):
        return ZERO
    if not amount.is_finite() or amount < 0:
        return ZERO
    return amount


def round_money(value: Decimal, large_threshold: Decimal = Decimal("1000000")) -> Decimal:
    """Round ``value`` half-up to cents.

    Values above ``large_threshold`` are rounded through integer cents, which
    keeps working where ``quantize`` would exceed the context precision.
    """
    if not value.is_finite():
        return ZERO
    if abs(value) > large_threshold:
        cents = (value * HUNDRED).to_integral_value(rounding=ROUND_HALF_UP)
        return cents / HUNDRED
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_date(value: Any) -> date:
    """Parse ``YYYY-MM-DD`` or ``YYYY-MM`` text (or a date/datetime) into a ``date``.

    ISO timestamps such as ``2024-03-05T10:00:00Z`` are accepted as well; the
    time component is dropped.

    Raises
    ------
    ValueError
        If the value cannot be interpreted as a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        text = str(value).strip()
        head = text.split("T")[0].split(" ")[0]
        parts = head.split("-")
        if len(parts) < 2:
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        day = int(parts[2]) if len(parts) > 2 else 1
        return date(year, month, day)
    except Exception as exc:
        raise ValueError(f"Invalid date string: {value}") from exc


def parse_optional_date(value: Any) -> Optional[date]:
    if value in (None, ""):
        return None
    try:
        return parse_date(value)
    except ValueError:
        return None


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from ``start`` to ``end`` (days ignored)."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def same_month(a: date, b: date) -> bool:
    return a.year == b.year and a.month == b.month


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.replace(",", "")
        result = Decimal(cleaned)
    except Exception as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


Observer = Callable[[str, Dict[str, Any]], None]


def notify(observer: Optional[Observer], event: str, **payload: Any) -> None:
    """Forward an engine event to the caller-supplied observer, if any."""
    if observer is not None:
        observer(event, payload)
