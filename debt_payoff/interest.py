"""Interest model for the debt payoff engine.

Monthly interest is simple: ``balance * rate / 100 / 12`` rounded to cents.
Two sanity guards sit on top of it. A single month's interest is capped at a
fraction of the balance, and a long-horizon total is capped at a multiple of
the starting balance. Both guards exist to stop corrupted upstream data (a
rate typed as 2000 instead of 20) from producing meaningless numbers; they log
a warning and notify the observer instead of raising.
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_CEILING
from typing import Any, Optional

from .data_models import Debt
from .settings import DEFAULT_SETTINGS, EngineSettings
from .utils import ZERO, Observer, notify, round_money, to_amount

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = Decimal(12)
PERCENT = Decimal(100)


def monthly_rate(annual_rate_percent: Any) -> Decimal:
    """Return the monthly rate as a fraction (``20`` percent -> ``0.01666...``)."""
    return to_amount(annual_rate_percent) / PERCENT / MONTHS_PER_YEAR


def monthly_interest(
    balance: Any,
    annual_rate_percent: Any,
    settings: EngineSettings = DEFAULT_SETTINGS,
    observer: Optional[Observer] = None,
) -> Decimal:
    """Interest accrued on ``balance`` over one month.

    Non-positive, NaN or otherwise invalid inputs yield zero.
    """
    amount = to_amount(balance)
    rate = to_amount(annual_rate_percent)
    if amount <= 0 or rate <= 0:
        return ZERO
    interest = round_money(amount * rate / PERCENT / MONTHS_PER_YEAR, settings.large_number_threshold)
    ceiling = amount * settings.max_monthly_interest_fraction
    if interest > ceiling:
        capped = round_money(ceiling, settings.large_number_threshold)
        logger.warning(
            "Monthly interest %s on balance %s at %s%% exceeds %s of the balance; capping at %s",
            interest, amount, rate, settings.max_monthly_interest_fraction, capped,
        )
        notify(observer, "interest_capped", balance=amount, rate=rate, interest=interest, capped=capped)
        return capped
    return interest


def total_interest_over_horizon(
    balance: Any,
    annual_rate_percent: Any,
    months: Any,
    monthly_payment: Any = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
    observer: Optional[Observer] = None,
) -> Decimal:
    """Interest accrued on ``balance`` compounded monthly over ``months``.

    When ``monthly_payment`` is given, it is paid after each month's accrual
    and the loop stops once the balance is cleared. The number of months is
    bounded by ``settings.horizon_months``. The running total is
    capped at ``settings.max_total_interest_multiple`` times the starting
    balance.
    """
    principal = to_amount(balance)
    rate = to_amount(annual_rate_percent)
    horizon = min(int(to_amount(months)), settings.horizon_months)
    if principal <= 0 or rate <= 0 or horizon <= 0:
        return ZERO
    payment = to_amount(monthly_payment) if monthly_payment is not None else None
    limit = principal * settings.max_total_interest_multiple

    current = principal
    total = ZERO
    for _ in range(horizon):
        interest = monthly_interest(current, rate, settings, observer)
        total += interest
        current += interest
        if total > limit:
            capped = round_money(limit, settings.large_number_threshold)
            logger.warning(
                "Total interest on %s at %s%% over %s months exceeds %sx the balance; capping at %s",
                principal, rate, horizon, settings.max_total_interest_multiple, capped,
            )
            notify(observer, "interest_capped", balance=principal, rate=rate, interest=total, capped=capped)
            return capped
        if payment is not None:
            current = max(ZERO, current - min(payment, current))
            if current <= settings.payoff_epsilon:
                break
    return round_money(total, settings.large_number_threshold)


def principal_from_total(
    total_amount: Any,
    annual_rate_percent: Any,
    remaining_months: Any,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> Decimal:
    """Back-calculate the principal of a loan whose total already includes interest.

    Uses simple interest: ``P = T / (1 + i * n)`` with ``i`` the monthly rate
    and ``n`` the remaining months.
    """
    total = to_amount(total_amount)
    months = to_amount(remaining_months)
    rate = monthly_rate(annual_rate_percent)
    if rate == 0 or months == 0:
        return total
    return round_money(total / (1 + rate * months), settings.large_number_threshold)


def is_debt_payable(debt: Debt, settings: EngineSettings = DEFAULT_SETTINGS) -> bool:
    """Whether paying only the minimum ever clears the debt."""
    if debt.balance <= 0:
        return True
    if debt.interest_included or debt.interest_rate == 0:
        return debt.minimum_payment > 0
    return debt.minimum_payment > monthly_interest(debt.balance, debt.interest_rate, settings)


def minimum_viable_payment(debt: Debt, settings: EngineSettings = DEFAULT_SETTINGS) -> Decimal:
    """Smallest whole-unit monthly payment that makes progress against the debt."""
    if debt.interest_rate == 0 or debt.interest_included:
        return max(debt.minimum_payment, Decimal(1))
    interest = monthly_interest(debt.balance, debt.interest_rate, settings)
    return (interest + 1).to_integral_value(rounding=ROUND_CEILING)
