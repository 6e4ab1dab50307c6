"""Command-line interface for the debt payoff engine.

This module uses the ``click`` library to implement a multi-command
interface. Debts and one-time fundings are read either from a JSON snapshot
file (``{"debts": [...], "fundings": [...]}`` in the backend's record shape)
or from a debt store database. Results can be printed to the terminal or
exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

import click

from .data_models import AmortizationEntry, Debt, OneTimeFunding, to_jsonable
from .debt_store import create_store_from_env
from .engine import amortization_schedule, simulate
from .formatter import print_comparison, print_details, print_ranking, print_schedule, print_simulation
from .payoff_details import payoff_details
from .settings import EngineSettings
from .strategies import STRATEGIES, rank
from .timeline import compare as compare_timelines
from .utils import decimal_from_str, parse_date


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("5000") and shorthand with ``k``/``m`` suffixes
    (e.g., "5k" meaning 5_000).
    """
    value = value.strip().lower().replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        amount = decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")
    if amount < 0:
        raise click.BadParameter(f"Amount must not be negative: {value}")
    return amount


def parse_start_date(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return parse_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def load_snapshot(path: Path) -> Tuple[List[Debt], List[OneTimeFunding]]:
    """Read debts and fundings from a JSON snapshot file."""
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise click.BadParameter(f"Cannot read snapshot {path}: {exc}")
    if isinstance(data, list):
        data = {"debts": data}
    try:
        debts = [Debt.from_record(record) for record in data.get("debts", [])]
        fundings = [OneTimeFunding.from_record(record) for record in data.get("fundings", [])]
    except (KeyError, ValueError) as exc:
        raise click.BadParameter(f"Invalid snapshot record: {exc}")
    return debts, fundings


def load_inputs(
    input_path: Optional[str], database_url: Optional[str], user_id: Optional[str], today: date
) -> Tuple[List[Debt], List[OneTimeFunding]]:
    if input_path:
        return load_snapshot(Path(input_path))
    if not user_id:
        raise click.BadParameter("Provide --input FILE or --user-id (with an optional --database-url)")
    store = create_store_from_env(database_url)
    return store.list_debts(user_id), store.list_pending_fundings(user_id, today)


def write_json(path: Path, payload: Any) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(to_jsonable(payload), f, indent=2)


def export_schedule_to_csv(path: Path, schedule: List[AmortizationEntry]) -> None:
    """Export an amortization schedule to a CSV file."""
    header = ["Period", "Date", "Starting_Balance", "Payment", "Principal", "Interest", "Ending_Balance"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in schedule:
            writer.writerow(
                [
                    e.period,
                    e.date.isoformat(),
                    float(e.starting_balance),
                    float(e.payment),
                    float(e.principal),
                    float(e.interest),
                    float(e.ending_balance),
                ]
            )


def source_options(command: Callable) -> Callable:
    """Options shared by every command that reads debts."""
    command = click.option("--user-id", "user_id", help="Load debts for this user from the debt store")(command)
    command = click.option(
        "--database-url", "database_url", help="Debt store URL (defaults to DEBT_PAYOFF_DATABASE_URL)"
    )(command)
    command = click.option("--input", "-i", "input_path", type=str, help="JSON snapshot of debts and fundings")(
        command
    )
    return command


strategy_option = click.option(
    "--strategy",
    "-s",
    "strategy",
    type=click.Choice(list(STRATEGIES)),
    default="avalanche",
    help="Prioritisation strategy",
)


@click.group()
def cli() -> None:
    """Simulate debt payoff plans and compare strategies."""
    pass


@cli.command("rank")
@source_options
@strategy_option
def rank_command(
    input_path: Optional[str], database_url: Optional[str], user_id: Optional[str], strategy: str
) -> None:
    """Print debts in payment priority order."""
    debts, _ = load_inputs(input_path, database_url, user_id, date.today())
    print_ranking(rank(debts, strategy))


@cli.command("simulate")
@source_options
@strategy_option
@click.option("--budget", "-b", "budget", required=True, help="Total monthly payment budget")
@click.option("--start-date", "start_date", help="Simulation start date (YYYY-MM-DD)")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def simulate_command(
    input_path: Optional[str],
    database_url: Optional[str],
    user_id: Optional[str],
    strategy: str,
    budget: str,
    start_date: Optional[str],
    output: Optional[str],
) -> None:
    """Run one payoff scenario at the given monthly budget."""
    start = parse_start_date(start_date)
    debts, fundings = load_inputs(input_path, database_url, user_id, start)
    try:
        result = simulate(debts, parse_amount(budget), strategy, fundings, start, EngineSettings.from_env())
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Simulation export must use .json extension")
        write_json(path, result)
        click.echo(f"Simulation exported to {path}")
    else:
        print_simulation(result)


@cli.command("compare")
@source_options
@strategy_option
@click.option("--budget", "-b", "budget", required=True, help="Total monthly payment budget")
@click.option("--start-date", "start_date", help="Simulation start date (YYYY-MM-DD)")
@click.option("--save", "save", is_flag=True, help="Store the comparison for --user-id")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def compare_command(
    input_path: Optional[str],
    database_url: Optional[str],
    user_id: Optional[str],
    strategy: str,
    budget: str,
    start_date: Optional[str],
    save: bool,
    output: Optional[str],
) -> None:
    """Compare paying only minimums with paying the full budget plus fundings."""
    start = parse_start_date(start_date)
    debts, fundings = load_inputs(input_path, database_url, user_id, start)
    amount = parse_amount(budget)
    try:
        comparison = compare_timelines(debts, amount, strategy, fundings, start, EngineSettings.from_env())
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    if save:
        if not user_id:
            raise click.BadParameter("--save requires --user-id")
        create_store_from_env(database_url).save_comparison(user_id, strategy, amount, comparison)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Comparison export must use .json extension")
        payload = to_jsonable(comparison)
        payload.pop("baseline", None)
        payload.pop("accelerated", None)
        write_json(path, payload)
        click.echo(f"Comparison exported to {path}")
    else:
        print_comparison(comparison)


@cli.command("details")
@source_options
@click.option("--paid", "paid", default="0", help="Amount already paid towards each debt")
def details_command(
    input_path: Optional[str], database_url: Optional[str], user_id: Optional[str], paid: str
) -> None:
    """Print closed-form payoff estimates for each debt."""
    today = date.today()
    debts, _ = load_inputs(input_path, database_url, user_id, today)
    total_paid = parse_amount(paid)
    print_details((debt, payoff_details(debt, total_paid, today)) for debt in debts)


@cli.command("schedule")
@source_options
@click.option("--debt-id", "debt_id", required=True, help="Debt to build the schedule for")
@click.option("--payment", "payment", help="Monthly payment (defaults to the minimum payment)")
@click.option("--start-date", "start_date", help="First payment date (YYYY-MM-DD)")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule_command(
    input_path: Optional[str],
    database_url: Optional[str],
    user_id: Optional[str],
    debt_id: str,
    payment: Optional[str],
    start_date: Optional[str],
    output: Optional[str],
) -> None:
    """Compute and print the amortization schedule for one debt."""
    start = parse_start_date(start_date)
    debts, _ = load_inputs(input_path, database_url, user_id, start)
    matches = [d for d in debts if d.id == debt_id]
    if not matches:
        raise click.BadParameter(f"No debt with id {debt_id}")
    monthly_payment = parse_amount(payment) if payment else None
    entries = amortization_schedule(matches[0], monthly_payment, start, EngineSettings.from_env())
    if not entries:
        click.echo("This payment never pays the debt off.")
        return
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            write_json(path, entries)
        elif path.suffix.lower() == ".csv":
            export_schedule_to_csv(path, entries)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
    else:
        max_rows = 120
        if len(entries) > max_rows:
            click.echo(f"Schedule has {len(entries)} rows; showing first {max_rows} rows.")
            print_schedule(entries[:max_rows])
        else:
            print_schedule(entries)


if __name__ == "__main__":
    cli()
