"""One-time funding ledger.

Fundings are sparse, dated lump sums. Only unapplied fundings dated on or
after the simulation start take part in a forward-looking run, and each one
adds to the payment pool of the calendar month it falls in, once.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from .data_models import OneTimeFunding
from .utils import ZERO, add_months, same_month


def eligible_fundings(fundings: Iterable[OneTimeFunding], today: date) -> List[OneTimeFunding]:
    """Unapplied fundings dated on or after ``today``. Undated fundings are skipped."""
    return [f for f in fundings if not f.is_applied and f.payment_date is not None and f.payment_date >= today]


def fundings_in_month(
    fundings: Iterable[OneTimeFunding], month_index: int, start_date: date
) -> List[OneTimeFunding]:
    """Eligible fundings whose calendar month is ``start_date + month_index`` months."""
    target = add_months(start_date, month_index)
    return [f for f in eligible_fundings(fundings, start_date) if same_month(f.payment_date, target)]


def total_funding(fundings: Iterable[OneTimeFunding]) -> Decimal:
    return sum((f.amount for f in fundings), ZERO)


def sort_fundings_by_date(fundings: Iterable[OneTimeFunding]) -> List[OneTimeFunding]:
    # undated fundings last
    return sorted(fundings, key=lambda f: (f.payment_date is None, f.payment_date or date.min))


def prepare_ledger(fundings: Iterable[OneTimeFunding], start_date: date) -> Dict[Tuple[int, int], Decimal]:
    """Group eligible funding totals by ``(year, month)`` for quick lookup during a run."""
    mapping: Dict[Tuple[int, int], Decimal] = {}
    for funding in eligible_fundings(fundings, start_date):
        key = (funding.payment_date.year, funding.payment_date.month)
        mapping[key] = mapping.get(key, ZERO) + funding.amount
    return mapping
