"""Baseline versus accelerated payoff comparison.

The baseline run pays exactly the sum of minimum payments with no lump sums;
the accelerated run uses the user's budget and funding ledger. Both runs use
the same strategy and start date, so with a budget equal to the minimums and
no fundings they are identical. Savings are clamped at zero.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Union

from .data_models import STATUS_INSUFFICIENT_BUDGET, Debt, OneTimeFunding, TimelineComparison
from .engine import DuplicateDebtError, required_minimums, simulate
from .settings import DEFAULT_SETTINGS, EngineSettings
from .strategies import Strategy
from .utils import ZERO, Observer, notify

logger = logging.getLogger(__name__)


def compare(
    debts: Iterable[Debt],
    monthly_budget: Union[Decimal, int, float, str],
    strategy: Union[str, Strategy],
    fundings: Iterable[OneTimeFunding] = (),
    start_date: Optional[date] = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
    observer: Optional[Observer] = None,
) -> TimelineComparison:
    """Compare paying only minimums with paying ``monthly_budget`` plus fundings.

    An empty debt list, or one with duplicate ids, yields a zero comparison
    dated ``start_date``.
    """
    start = start_date or date.today()
    items = list(debts)
    if not items:
        return TimelineComparison(0, 0, ZERO, ZERO, 0, ZERO, start)

    minimums = required_minimums(items, start, settings)
    try:
        baseline = simulate(items, minimums, strategy, (), start, settings, observer)
    except DuplicateDebtError as exc:
        logger.warning("Cannot compare timelines: %s", exc)
        notify(observer, "duplicate_debt_ids", error=str(exc))
        return TimelineComparison(0, 0, ZERO, ZERO, 0, ZERO, start)
    accelerated = simulate(items, monthly_budget, strategy, list(fundings), start, settings, observer)

    if accelerated.status == STATUS_INSUFFICIENT_BUDGET:
        # nothing was simulated, so there is nothing to compare against
        months_saved = 0
        interest_saved = ZERO
    else:
        months_saved = max(0, baseline.months - accelerated.months)
        interest_saved = max(ZERO, baseline.total_interest - accelerated.total_interest)

    logger.debug(
        "Baseline %s months / %s interest, accelerated %s months / %s interest",
        baseline.months, baseline.total_interest, accelerated.months, accelerated.total_interest,
    )
    return TimelineComparison(
        baseline_months=baseline.months,
        accelerated_months=accelerated.months,
        baseline_interest=baseline.total_interest,
        accelerated_interest=accelerated.total_interest,
        months_saved=months_saved,
        interest_saved=interest_saved,
        payoff_date=accelerated.final_payoff_date,
        per_debt_first_month_payments=accelerated.per_debt_payments,
        baseline=baseline,
        accelerated=accelerated,
    )
