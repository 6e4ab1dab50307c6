"""Core simulation engine for the debt payoff calculator.

This module advances a set of debts month by month under a fixed monthly
budget, a prioritisation strategy and a ledger of one-time fundings. Each
simulated month runs the same steps in the same order:

1. re-rank the remaining debts with the strategy;
2. build the payment pool: budget, plus minimums released by debts paid off
   last month, plus fundings dated in this calendar month;
3. reserve the minimum payment of schedule-driven gold loans;
4. accrue interest on each debt and pay its minimum if the pool covers it;
5. spend what is left on the top-ranked debt, cascading down the ranking
   once that debt is cleared;
6. sweep paid-off debts and release their minimums for next month.

A run ends when every debt is paid (``done``) or the horizon is reached
(``capped``). A budget below the sum of minimums is reported as
``insufficient_budget`` without simulating. All balances live in a map owned
by the run; input ``Debt`` records are never modified.

The module also provides the single-debt amortization schedule and the
calendar lookup used for gold loans with a fixed maturity date.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Union

from .data_models import (
    STATUS_CAPPED,
    STATUS_DONE,
    STATUS_INSUFFICIENT_BUDGET,
    AmortizationEntry,
    Debt,
    DebtPayment,
    DebtPayoffSummary,
    MonthSnapshot,
    OneTimeFunding,
    RedistributionRecord,
    SimulationResult,
)
from .funding import prepare_ledger
from .interest import monthly_interest, principal_from_total
from .settings import DEFAULT_SETTINGS, EngineSettings
from .strategies import Strategy, get_strategy, rank
from .utils import ZERO, Observer, add_months, months_between, notify, round_money, to_amount

logger = logging.getLogger(__name__)


class DuplicateDebtError(ValueError):
    """Raised when two debts in one simulation share an id."""


def gold_loan_months(debt: Debt, today: Optional[date] = None) -> Optional[int]:
    """Months until a gold loan's fixed maturity date, floored at zero.

    Returns ``None`` for debts that are not schedule-driven.
    """
    if not debt.is_schedule_driven:
        return None
    today = today or date.today()
    return max(0, months_between(today, debt.final_payoff_date))


def _check_unique_ids(debts: List[Debt]) -> None:
    seen = set()
    for debt in debts:
        if debt.id in seen:
            raise DuplicateDebtError(f"Duplicate debt id {debt.id!r}")
        seen.add(debt.id)


def required_minimums(
    debts: Iterable[Debt], start_date: date, settings: EngineSettings = DEFAULT_SETTINGS
) -> Decimal:
    """Sum of the minimum payments a month must cover at ``start_date``.

    Debts already at or below the payoff tolerance and gold loans that have
    matured owe nothing.
    """
    total = ZERO
    for debt in debts:
        if debt.is_schedule_driven:
            if gold_loan_months(debt, start_date) > 0:
                total += debt.minimum_payment
        elif debt.balance > settings.payoff_epsilon:
            total += debt.minimum_payment
    return total


def _record_first_month(payments: Dict[str, Decimal], debt_id: str, amount: Decimal) -> None:
    payments[debt_id] = payments.get(debt_id, ZERO) + amount


def simulate(
    debts: Iterable[Debt],
    monthly_budget: Union[Decimal, int, float, str],
    strategy: Union[str, Strategy],
    fundings: Iterable[OneTimeFunding] = (),
    start_date: Optional[date] = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
    observer: Optional[Observer] = None,
) -> SimulationResult:
    """Simulate paying off ``debts`` month by month.

    Parameters
    ----------
    debts: Iterable[Debt]
        Snapshot of the debts to pay off. Ids must be unique.
    monthly_budget: Decimal
        Total amount available every month, minimums included.
    strategy: str | Strategy
        Strategy (or strategy id) deciding who receives surplus money.
    fundings: Iterable[OneTimeFunding]
        One-time lump sums. Applied or past-dated fundings are ignored.
    start_date: date
        Calendar date of month 0. Defaults to today.
    settings: EngineSettings
        Horizon, payoff tolerance and sanity limits.
    observer: callable
        Optional ``observer(event, payload)`` hook for engine events.

    Returns
    -------
    SimulationResult
        Months to payoff (or the horizon cap), total interest, first-month
        allocation, redistribution history, per-debt outcomes and the
        month-by-month timeline.
    """
    start = start_date or date.today()
    strategy_id = strategy.id if isinstance(strategy, Strategy) else get_strategy(strategy).id
    items = list(debts)
    _check_unique_ids(items)
    budget = to_amount(monthly_budget)
    horizon = settings.horizon_months
    epsilon = settings.payoff_epsilon

    if not items:
        return SimulationResult(STATUS_DONE, 0, ZERO, start, start)

    balances: Dict[str, Decimal] = {d.id: d.balance for d in items}
    interest_by_debt: Dict[str, Decimal] = {d.id: ZERO for d in items}
    received: Dict[str, List[RedistributionRecord]] = {d.id: [] for d in items}
    results: Dict[str, DebtPayoffSummary] = {}

    scheduled = [d for d in items if d.is_schedule_driven]
    maturities = {d.id: gold_loan_months(d, start) for d in scheduled}
    active: List[Debt] = []
    for debt in items:
        if debt.is_schedule_driven:
            continue
        if debt.balance <= epsilon:
            balances[debt.id] = ZERO
            results[debt.id] = DebtPayoffSummary(debt.id, 0, start)
        else:
            active.append(debt)

    required = required_minimums(items, start, settings)
    if budget < required:
        logger.warning(
            "Monthly budget %s is below the required minimum payments %s; debts are not payable",
            budget, required,
        )
        notify(observer, "budget_insufficient", budget=budget, required=required)
        for debt in items:
            results.setdefault(debt.id, DebtPayoffSummary(debt.id, None, None))
        return SimulationResult(
            status=STATUS_INSUFFICIENT_BUDGET,
            months=horizon,
            total_interest=ZERO,
            start_date=start,
            final_payoff_date=add_months(start, horizon),
            debt_results=results,
        )

    ledger = prepare_ledger(fundings, start)
    first_month: Dict[str, Decimal] = {}
    history: List[RedistributionRecord] = []
    timeline: List[MonthSnapshot] = []
    total_interest = ZERO
    unallocated = ZERO
    released = ZERO
    month = 0

    while active and month < horizon:
        ranked = rank(active, strategy_id)
        current = add_months(start, month)
        funding = ledger.get((current.year, current.month), ZERO)
        available = budget + released + funding
        released = ZERO
        month_interest = ZERO
        paid = ZERO

        for debt in scheduled:
            if maturities[debt.id] > month:
                reserved = min(debt.minimum_payment, available)
                available -= reserved
                paid += reserved
                if month == 0 and reserved > 0:
                    _record_first_month(first_month, debt.id, reserved)

        # minimum payments, in priority order
        for debt in ranked:
            balance = balances[debt.id]
            interest = ZERO
            if not debt.interest_included:
                interest = monthly_interest(balance, debt.interest_rate, settings, observer)
            balance += interest
            month_interest += interest
            interest_by_debt[debt.id] += interest
            due = min(debt.minimum_payment, balance)
            if available >= due:
                balance -= due
                available -= due
                paid += due
                if month == 0 and due > 0:
                    _record_first_month(first_month, debt.id, due)
            balances[debt.id] = max(ZERO, balance)

        # surplus goes to the top-ranked debt, then down the ranking
        for debt in ranked:
            if available <= 0:
                break
            balance = balances[debt.id]
            if balance <= 0:
                continue
            extra = min(available, balance)
            balances[debt.id] = max(ZERO, balance - extra)
            available -= extra
            paid += extra
            if month == 0:
                _record_first_month(first_month, debt.id, extra)
        if available > 0:
            unallocated += available

        total_interest += month_interest
        survivors = [d for d in ranked if balances[d.id] > epsilon]
        next_in_line = rank(survivors, strategy_id)[0].id if survivors else None
        finished = [d for d in ranked if balances[d.id] <= epsilon]
        finished += [d for d in scheduled if maturities[d.id] == month + 1]

        for debt in finished:
            balances[debt.id] = ZERO
            released += debt.minimum_payment
            if not debt.is_schedule_driven:
                results[debt.id] = DebtPayoffSummary(debt.id, month + 1, add_months(start, month + 1))
            notify(observer, "debt_paid_off", debt_id=debt.id, month=month + 1)
            if next_in_line is not None:
                record = RedistributionRecord(debt.id, next_in_line, debt.minimum_payment, month + 1)
                history.append(record)
                received[next_in_line].append(record)

        timeline.append(
            MonthSnapshot(
                month=month + 1,
                date=current,
                balances={
                    d.id: (ZERO if d.is_schedule_driven and maturities[d.id] <= month + 1 else balances[d.id])
                    for d in items
                },
                interest=month_interest,
                paid=paid,
                funding=funding,
            )
        )
        active = survivors
        month += 1

    for debt in scheduled:
        maturity = maturities[debt.id]
        payoff_date = max(start, debt.final_payoff_date)
        results[debt.id] = DebtPayoffSummary(debt.id, maturity, payoff_date)

    latest_maturity = max(maturities.values(), default=0)
    if active or latest_maturity > horizon:
        status = STATUS_CAPPED
        months = horizon
        for debt in active:
            results[debt.id] = DebtPayoffSummary(debt.id, None, None)
        logger.warning(
            "Payoff did not converge within %s months; %s debt(s) remain", horizon, len(active)
        )
        notify(observer, "horizon_reached", months=horizon, remaining=[d.id for d in active])
    else:
        status = STATUS_DONE
        months = max(month, latest_maturity)

    for debt_id, summary in results.items():
        summary.total_interest = round_money(interest_by_debt[debt_id], settings.large_number_threshold)
        summary.redistribution_history = received[debt_id]

    result = SimulationResult(
        status=status,
        months=months,
        total_interest=round_money(total_interest, settings.large_number_threshold),
        start_date=start,
        final_payoff_date=add_months(start, months),
        per_debt_payments=[DebtPayment(debt_id, amount) for debt_id, amount in first_month.items()],
        redistribution_history=history,
        debt_results={d.id: results[d.id] for d in items},
        timeline=timeline,
        unallocated=unallocated,
    )
    logger.debug(
        "Simulated %s debts with %s strategy: status=%s months=%s interest=%s",
        len(items), strategy_id, result.status, result.months, result.total_interest,
    )
    return result


def amortization_schedule(
    debt: Debt,
    monthly_payment: Optional[Union[Decimal, int, float, str]] = None,
    start_date: Optional[date] = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> List[AmortizationEntry]:
    """Build the month-by-month schedule for paying off a single debt.

    The payment defaults to the debt's minimum payment. Interest-included
    debts with a known number of remaining months amortise their
    back-calculated principal at the original rate; without that information
    the embedded interest is taken as-is and no further interest accrues.

    Returns an empty list when the debt is already cleared or the payment
    cannot cover the monthly interest.
    """
    payment = debt.minimum_payment if monthly_payment is None else to_amount(monthly_payment)
    balance = debt.balance
    rate = debt.interest_rate
    if debt.interest_included:
        original_rate = debt.metadata.original_rate if debt.metadata.original_rate is not None else rate
        if debt.metadata.remaining_months:
            balance = principal_from_total(balance, original_rate, debt.metadata.remaining_months, settings)
            rate = original_rate
        else:
            rate = ZERO

    schedule: List[AmortizationEntry] = []
    if payment <= 0 or balance <= settings.payoff_epsilon:
        return schedule

    current_date = start_date or date.today()
    period = 1
    while balance > settings.payoff_epsilon and period <= settings.horizon_months:
        interest = monthly_interest(balance, rate, settings)
        if payment <= interest:
            logger.info("Payment %s cannot cover monthly interest %s for debt %s", payment, interest, debt.id)
            return []
        amount = min(payment, balance + interest)
        principal = amount - interest
        ending = max(ZERO, round_money(balance - principal, settings.large_number_threshold))
        schedule.append(
            AmortizationEntry(
                period=period,
                date=current_date,
                starting_balance=balance,
                payment=amount,
                principal=principal,
                interest=interest,
                ending_balance=ending,
            )
        )
        balance = ending
        current_date = add_months(current_date, 1)
        period += 1
    return schedule
