"""Output helpers for the command-line interface.

The engine returns raw numbers and dates; these functions turn them into
simple tabular text for the terminal. Nothing here is used by the engine
itself.
"""

from __future__ import annotations

from typing import Iterable, List

from .data_models import AmortizationEntry, Debt, SimulationResult, TimelineComparison


def _months(result_months: int, converged: bool) -> str:
    return f"{result_months}" if converged else f"{result_months} (not paid off)"


def print_simulation(result: SimulationResult) -> None:
    """Print the outcome of a single scenario run."""
    print("Simulation")
    print("-" * 72)
    print(f"Status             : {result.status}")
    print(f"Months             : {_months(result.months, result.converged)}")
    print(f"Total interest     : {result.total_interest:.2f}")
    print(f"Start date         : {result.start_date.isoformat()}")
    print(f"Payoff date        : {result.final_payoff_date.isoformat()}")
    if result.unallocated:
        print(f"Unallocated        : {result.unallocated:.2f}")
    if result.per_debt_payments:
        print("First month payments:")
        for payment in result.per_debt_payments:
            print(f"  {payment.debt_id:20s} {payment.amount:12.2f}")
    if result.debt_results:
        print("Per debt:")
        for summary in result.debt_results.values():
            months = "Never" if summary.months is None else str(summary.months)
            print(f"  {summary.debt_id:20s} {months:>8s} months  interest {summary.total_interest:.2f}")
    for record in result.redistribution_history:
        print(
            f"  month {record.month}: {record.amount:.2f} released from {record.from_debt_id}"
            f" to {record.to_debt_id}"
        )
    print("-" * 72)


def print_comparison(comparison: TimelineComparison) -> None:
    """Print baseline and accelerated metrics side by side."""
    print("Comparison")
    print("=" * 72)
    print(f"{'Metric':20s} {'Baseline':>15s} {'Accelerated':>15s} {'Saved':>15s}")
    print(
        f"{'months':20s} {comparison.baseline_months:15d} {comparison.accelerated_months:15d}"
        f" {comparison.months_saved:15d}"
    )
    print(
        f"{'interest':20s} {comparison.baseline_interest:15.2f} {comparison.accelerated_interest:15.2f}"
        f" {comparison.interest_saved:15.2f}"
    )
    print(f"Payoff date        : {comparison.payoff_date.isoformat()}")
    print("=" * 72)


def print_details(rows: Iterable[tuple]) -> None:
    """Print ``(debt, PayoffDetails)`` pairs."""
    print(f"{'Debt':20s} {'Months':>8s} {'Time':>28s} {'Progress':>9s}")
    for debt, details in rows:
        months = "-" if details.months is None else str(details.months)
        label = debt.name or debt.id
        print(f"{label:20s} {months:>8s} {details.formatted_time:>28s} {details.progress_percentage:>8}%")


def print_ranking(debts: List[Debt]) -> None:
    for position, debt in enumerate(debts, start=1):
        gold = " (gold)" if debt.is_gold_loan else ""
        print(f"{position:3d}. {debt.id}{gold}  balance {debt.balance:.2f}  rate {debt.interest_rate}%")


def print_schedule(schedule: Iterable[AmortizationEntry]) -> None:
    """Print an amortization schedule as a simple table."""
    headers = ["Period", "Date", "StartBal", "Payment", "Principal", "Interest", "EndBal"]
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.period),
            entry.date.strftime("%Y-%m"),
            f"{entry.starting_balance:.2f}",
            f"{entry.payment:.2f}",
            f"{entry.principal:.2f}",
            f"{entry.interest:.2f}",
            f"{entry.ending_balance:.2f}",
        ]
        print("\t".join(row))
