"""Closed-form payoff estimate for a single debt.

Used where a card or list needs a quick answer for one debt without running
the full simulation. The number of months comes from the standard
number-of-payments formula::

    n = ln(P / (P - B * i)) / ln(1 + i)

rounded up, where ``P`` is the monthly payment, ``B`` the balance and ``i``
the monthly rate. Zero-rate and interest-included debts divide the balance
by the payment instead, and gold loans with a maturity date read the
calendar. A payment that does not exceed the monthly interest never pays the
debt off and is reported as ``months=None`` ("Never").
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP
from typing import Any, Optional

from .data_models import Debt, PayoffDetails
from .engine import gold_loan_months
from .interest import monthly_rate, principal_from_total
from .settings import DEFAULT_SETTINGS, EngineSettings
from .utils import ZERO, to_amount

NEVER = "Never"


def _ceil(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_CEILING))


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def format_payoff_time(months: Optional[int]) -> str:
    """Render a month count as ``"N months"`` or ``"Y years and N months"``."""
    if months is None:
        return NEVER
    years, remainder = divmod(months, 12)
    if years == 0:
        return _plural(remainder, "month")
    return f"{_plural(years, 'year')} and {_plural(remainder, 'month')}"


def months_to_payoff(debt: Debt, today: Optional[date] = None) -> Optional[int]:
    """Closed-form months to clear ``debt`` paying its minimum, or ``None`` for never."""
    if debt.is_schedule_driven:
        return gold_loan_months(debt, today)
    balance = debt.balance
    payment = debt.minimum_payment
    if balance <= 0:
        return 0
    if payment <= 0:
        return None
    if debt.interest_included or debt.interest_rate == 0:
        return _ceil(balance / payment)
    rate = monthly_rate(debt.interest_rate)
    if payment <= balance * rate:
        return None
    months = (payment / (payment - balance * rate)).ln() / (1 + rate).ln()
    return _ceil(months)


def payoff_details(
    debt: Debt,
    total_paid: Any = ZERO,
    today: Optional[date] = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> PayoffDetails:
    """Months to payoff, a display string and percentage paid so far for one debt.

    Progress is ``total_paid / (balance + total_paid) * 100``; for
    interest-included debts the balance is replaced by the back-calculated
    principal.
    """
    paid = to_amount(total_paid)
    months = months_to_payoff(debt, today)

    effective_balance = debt.balance
    if debt.interest_included:
        remaining = debt.metadata.remaining_months or months or 0
        rate = debt.metadata.original_rate if debt.metadata.original_rate is not None else debt.interest_rate
        principal = principal_from_total(debt.balance, rate, remaining, settings)
        if principal > 0:
            effective_balance = principal

    original = effective_balance + paid
    progress = paid / original * 100 if original > 0 else ZERO
    return PayoffDetails(
        months=months,
        formatted_time=format_payoff_time(months),
        progress_percentage=progress.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP),
    )
