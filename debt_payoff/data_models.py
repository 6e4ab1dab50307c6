"""Data models for the debt payoff engine.

This module defines dataclasses for the records the engine reads (debts and
scheduled one-time fundings, as supplied by the debt-record store) and for the
values it produces (simulation results, comparisons, single-debt estimates and
amortization rows). Input records normalise their numeric fields on
construction so that a malformed value degrades to zero instead of poisoning
the arithmetic downstream.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from .utils import ZERO, parse_optional_date, to_amount

logger = logging.getLogger(__name__)

STATUS_DONE = "done"
STATUS_CAPPED = "capped"
STATUS_INSUFFICIENT_BUDGET = "insufficient_budget"


@dataclass
class DebtMetadata:
    """Extra flags attached to a debt record.

    Attributes
    ----------
    interest_included: bool
        ``True`` when the stated balance already embeds precomputed interest,
        so the true principal must be derived rather than read.
    original_rate: Decimal | None
        The annual rate (percent) the embedded interest was computed with.
    remaining_months: int | None
        Number of instalments left on an interest-included loan, if known.
    """

    interest_included: bool = False
    original_rate: Optional[Decimal] = None
    remaining_months: Optional[int] = None

    def __post_init__(self) -> None:
        self.interest_included = bool(self.interest_included)
        if self.original_rate is not None:
            self.original_rate = to_amount(self.original_rate)
        if self.remaining_months is not None:
            months = int(to_amount(self.remaining_months))
            self.remaining_months = months if months > 0 else None

    @classmethod
    def from_record(cls, record: Optional[Mapping[str, Any]]) -> "DebtMetadata":
        if not record:
            return cls()
        return cls(
            interest_included=record.get("interest_included", False),
            original_rate=record.get("original_rate"),
            remaining_months=record.get("remaining_months"),
        )


@dataclass
class Debt:
    """A single liability as seen by the simulation.

    ``balance`` and ``minimum_payment`` are monetary amounts; ``interest_rate``
    is the annual rate in percent (``20`` means 20 %). The simulation never
    mutates a ``Debt``; balances change only inside a run's own state.
    """

    id: str
    balance: Decimal
    interest_rate: Decimal
    minimum_payment: Decimal
    name: str = ""
    currency_code: str = ""
    is_gold_loan: bool = False
    final_payoff_date: Optional[date] = None
    metadata: DebtMetadata = field(default_factory=DebtMetadata)

    def __post_init__(self) -> None:
        self.id = str(self.id)
        self.balance = to_amount(self.balance)
        self.interest_rate = to_amount(self.interest_rate)
        self.minimum_payment = to_amount(self.minimum_payment)
        self.is_gold_loan = bool(self.is_gold_loan)
        self.final_payoff_date = parse_optional_date(self.final_payoff_date)
        if self.metadata is None:
            self.metadata = DebtMetadata()
        elif isinstance(self.metadata, Mapping):
            self.metadata = DebtMetadata.from_record(self.metadata)

    @property
    def interest_included(self) -> bool:
        return self.metadata.interest_included

    @property
    def is_schedule_driven(self) -> bool:
        """Gold loans with a maturity date pay off on schedule, not by amortization."""
        return self.is_gold_loan and self.final_payoff_date is not None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Debt":
        """Build a debt from a backend row (snake_case keys)."""
        return cls(
            id=record["id"],
            balance=record.get("balance"),
            interest_rate=record.get("interest_rate"),
            minimum_payment=record.get("minimum_payment"),
            name=record.get("name") or "",
            currency_code=record.get("currency_code") or record.get("currency_symbol") or "",
            is_gold_loan=record.get("is_gold_loan", False),
            final_payoff_date=record.get("final_payment_date") or record.get("final_payoff_date"),
            metadata=DebtMetadata.from_record(record.get("metadata")),
        )


@dataclass
class OneTimeFunding:
    """A scheduled lump-sum payment.

    Attributes
    ----------
    id: str
        Identifier of the funding record.
    amount: Decimal
        The lump sum added to the payment pool in the month it falls due.
    payment_date: date
        The calendar date the lump sum becomes available. ``None`` when the
        record carries no usable date; such a funding is never applied.
    is_applied: bool
        ``True`` once the funding has been consumed by a settlement; applied
        fundings never take part in forward-looking simulations.
    """

    id: str
    amount: Decimal
    payment_date: Optional[date]
    is_applied: bool = False
    currency_code: str = ""
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        self.id = str(self.id)
        self.amount = to_amount(self.amount)
        parsed = parse_optional_date(self.payment_date)
        if parsed is None:
            logger.warning(
                "Funding %s has no valid payment date (%r); it will be ignored", self.id, self.payment_date
            )
        self.payment_date = parsed
        self.is_applied = bool(self.is_applied)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "OneTimeFunding":
        return cls(
            id=record["id"],
            amount=record.get("amount"),
            payment_date=record.get("payment_date"),
            is_applied=record.get("is_applied", False),
            currency_code=record.get("currency_code") or record.get("currency_symbol") or "",
            notes=record.get("notes"),
        )


@dataclass
class DebtPayment:
    """Amount allocated to one debt in the first simulated month."""

    debt_id: str
    amount: Decimal


@dataclass
class RedistributionRecord:
    """A paid-off debt's minimum payment released to the next debt in line."""

    from_debt_id: str
    to_debt_id: Optional[str]
    amount: Decimal
    month: int


@dataclass
class MonthSnapshot:
    """State at the end of one simulated month.

    ``month`` is 1-based; ``balances`` holds every tracked debt, including
    those already paid off (at zero).
    """

    month: int
    date: date
    balances: Dict[str, Decimal]
    interest: Decimal
    paid: Decimal
    funding: Decimal


@dataclass
class DebtPayoffSummary:
    """Per-debt outcome of a multi-debt run. ``months`` is ``None`` if never paid off."""

    debt_id: str
    months: Optional[int]
    payoff_date: Optional[date]
    total_interest: Decimal = ZERO
    redistribution_history: List[RedistributionRecord] = field(default_factory=list)


@dataclass
class SimulationResult:
    """Outcome of one scenario run.

    ``months`` equals the horizon cap when ``status`` is ``"capped"`` or
    ``"insufficient_budget"``; use :attr:`converged` to tell a real payoff
    from a capped run.
    """

    status: str
    months: int
    total_interest: Decimal
    start_date: date
    final_payoff_date: date
    per_debt_payments: List[DebtPayment] = field(default_factory=list)
    redistribution_history: List[RedistributionRecord] = field(default_factory=list)
    debt_results: Dict[str, DebtPayoffSummary] = field(default_factory=dict)
    timeline: List[MonthSnapshot] = field(default_factory=list)
    unallocated: Decimal = ZERO

    @property
    def converged(self) -> bool:
        return self.status == STATUS_DONE


@dataclass
class TimelineComparison:
    """Baseline (minimum payments only) versus accelerated scenario."""

    baseline_months: int
    accelerated_months: int
    baseline_interest: Decimal
    accelerated_interest: Decimal
    months_saved: int
    interest_saved: Decimal
    payoff_date: date
    per_debt_first_month_payments: List[DebtPayment] = field(default_factory=list)
    baseline: Optional[SimulationResult] = None
    accelerated: Optional[SimulationResult] = None


@dataclass
class PayoffDetails:
    """Closed-form payoff estimate for a single debt. ``months`` is ``None`` for "Never"."""

    months: Optional[int]
    formatted_time: str
    progress_percentage: Decimal


@dataclass
class AmortizationEntry:
    """One row of a single-debt amortization schedule."""

    period: int
    date: date
    starting_balance: Decimal
    payment: Decimal
    principal: Decimal
    interest: Decimal
    ending_balance: Decimal


def to_jsonable(value: Any) -> Any:
    """Convert dataclasses, Decimals and dates into JSON-friendly values."""
    if hasattr(value, "__dataclass_fields__"):
        return to_jsonable(asdict(value))
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    return value
