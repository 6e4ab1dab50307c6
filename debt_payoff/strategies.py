"""Debt prioritisation strategies.

A strategy decides which debt receives any money left over once every
minimum payment is covered. The set is closed: avalanche, snowball and
balance-ratio. Every strategy puts gold loans ahead of regular loans and sorts
each group with its own rule. Sorting is stable, so debts with equal keys keep
their input order and ranking an already ranked list changes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Tuple, Union

from .data_models import Debt
from .utils import ZERO

AVALANCHE = "avalanche"
SNOWBALL = "snowball"
BALANCE_RATIO = "balance-ratio"

SortKey = Callable[[Debt], Decimal]


class UnknownStrategyError(ValueError):
    """Raised when a strategy id is not one of the known strategies."""


@dataclass(frozen=True)
class Strategy:
    id: str
    name: str
    description: str


STRATEGIES: Dict[str, Strategy] = {
    AVALANCHE: Strategy(AVALANCHE, "Avalanche Method", "Pay off debts with highest interest rate first"),
    SNOWBALL: Strategy(SNOWBALL, "Snowball Method", "Pay off smallest debts first"),
    BALANCE_RATIO: Strategy(BALANCE_RATIO, "Balance Ratio", "Balance between interest rate and debt size"),
}


def get_strategy(strategy_id: str) -> Strategy:
    try:
        return STRATEGIES[strategy_id]
    except KeyError:
        raise UnknownStrategyError(
            f"Unknown strategy {strategy_id!r}; expected one of {', '.join(STRATEGIES)}"
        ) from None


def _rate_to_balance(debt: Debt) -> Decimal:
    if debt.balance <= 0:
        return ZERO
    return debt.interest_rate / debt.balance


def _gold_weight(debt: Debt) -> Decimal:
    # rate scaled by the number of minimum payments the balance represents
    if debt.minimum_payment <= 0:
        return ZERO
    return debt.interest_rate * (debt.balance / debt.minimum_payment)


# (key, descending) for regular loans and for gold loans
_RULES: Dict[str, Tuple[Tuple[SortKey, bool], Tuple[SortKey, bool]]] = {
    AVALANCHE: ((lambda d: d.interest_rate, True), (lambda d: d.interest_rate, True)),
    SNOWBALL: ((lambda d: d.balance, False), (lambda d: d.balance, False)),
    BALANCE_RATIO: ((_rate_to_balance, True), (_gold_weight, True)),
}


def _ordered(debts: List[Debt], key: SortKey, descending: bool) -> List[Debt]:
    # negate rather than reverse=True so that ties keep their input order
    if descending:
        return sorted(debts, key=lambda d: -key(d))
    return sorted(debts, key=key)


def rank(debts: Iterable[Debt], strategy: Union[str, Strategy]) -> List[Debt]:
    """Return ``debts`` in payment priority order for ``strategy``.

    ``strategy`` is a :class:`Strategy` or its id. The input is not modified.
    An empty input yields an empty list.
    """
    strategy_id = strategy.id if isinstance(strategy, Strategy) else strategy
    get_strategy(strategy_id)
    regular_rule, gold_rule = _RULES[strategy_id]
    items = list(debts)
    gold = [d for d in items if d.is_gold_loan]
    regular = [d for d in items if not d.is_gold_loan]
    return _ordered(gold, *gold_rule) + _ordered(regular, *regular_rule)
