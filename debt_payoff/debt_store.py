"""Persistence layer for debt records, one-time fundings and saved comparisons.

The simulation core only ever sees immutable snapshots; this store is the
collaborator that supplies them and keeps whatever the caller decides to
persist. It defaults to SQLite for local use but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL).
"""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, Numeric, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

from .data_models import Debt, DebtMetadata, OneTimeFunding, TimelineComparison, to_jsonable
from .settings import database_url_from_env

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///debt_payoff.sqlite3"


class DebtModel(Base):
    __tablename__ = "debts"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False, default="")
    balance = Column(Numeric(18, 2), nullable=False)
    interest_rate = Column(Numeric(9, 4), nullable=False)
    minimum_payment = Column(Numeric(18, 2), nullable=False)
    currency_code = Column(String(8), nullable=False, default="")
    is_gold_loan = Column(Boolean, nullable=False, default=False)
    final_payment_date = Column(Date, nullable=True)
    metadata_json = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default="active")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class OneTimeFundingModel(Base):
    __tablename__ = "one_time_fundings"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), index=True, nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    payment_date = Column(Date, nullable=True)
    is_applied = Column(Boolean, nullable=False, default=False)
    currency_code = Column(String(8), nullable=False, default="")
    notes = Column(Text, nullable=True)


class CalculationResultModel(Base):
    __tablename__ = "calculation_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), index=True, nullable=False)
    strategy_id = Column(String(32), nullable=False)
    monthly_budget = Column(Numeric(18, 2), nullable=False)
    result_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class DebtStore:
    """Database-backed source of debt snapshots."""

    def __init__(self, url: str, *, max_results_per_user: int = 10) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_results_per_user = max_results_per_user

    # debts

    def add_debt(self, user_id: str, debt: Debt, status: str = "active") -> None:
        meta = debt.metadata
        row = DebtModel(
            id=debt.id,
            user_id=user_id,
            name=debt.name,
            balance=debt.balance,
            interest_rate=debt.interest_rate,
            minimum_payment=debt.minimum_payment,
            currency_code=debt.currency_code,
            is_gold_loan=debt.is_gold_loan,
            final_payment_date=debt.final_payoff_date,
            metadata_json=json.dumps(
                {
                    "interest_included": meta.interest_included,
                    "original_rate": None if meta.original_rate is None else str(meta.original_rate),
                    "remaining_months": meta.remaining_months,
                }
            ),
            status=status,
        )
        with self._session_factory() as session:
            session.merge(row)
            session.commit()

    def list_debts(self, user_id: str, include_paid: bool = False) -> List[Debt]:
        if not user_id:
            return []
        query = select(DebtModel).where(DebtModel.user_id == user_id)
        if not include_paid:
            query = query.where(DebtModel.status == "active")
        with self._session_factory() as session:
            rows: Iterable[DebtModel] = session.execute(
                query.order_by(DebtModel.created_at.asc(), DebtModel.id.asc())
            ).scalars()
            return [self._to_debt(row) for row in rows]

    def remove_debt(self, user_id: str, debt_id: str) -> None:
        with self._session_factory() as session:
            row = session.get(DebtModel, debt_id)
            if row and row.user_id == user_id:
                session.delete(row)
                session.commit()

    # one-time fundings

    def add_funding(self, user_id: str, funding: OneTimeFunding) -> None:
        row = OneTimeFundingModel(
            id=funding.id,
            user_id=user_id,
            amount=funding.amount,
            payment_date=funding.payment_date,
            is_applied=funding.is_applied,
            currency_code=funding.currency_code,
            notes=funding.notes,
        )
        with self._session_factory() as session:
            session.merge(row)
            session.commit()

    def list_pending_fundings(self, user_id: str, today: Optional[date] = None) -> List[OneTimeFunding]:
        """Unapplied fundings dated on or after ``today``, oldest first."""
        if not user_id:
            return []
        today = today or date.today()
        with self._session_factory() as session:
            rows: Iterable[OneTimeFundingModel] = session.execute(
                select(OneTimeFundingModel)
                .where(OneTimeFundingModel.user_id == user_id)
                .where(OneTimeFundingModel.is_applied.is_(False))
                .where(OneTimeFundingModel.payment_date >= today)
                .order_by(OneTimeFundingModel.payment_date.asc())
            ).scalars()
            return [self._to_funding(row) for row in rows]

    def mark_funding_applied(self, user_id: str, funding_id: str) -> bool:
        with self._session_factory() as session:
            row = session.get(OneTimeFundingModel, funding_id)
            if not row or row.user_id != user_id:
                return False
            row.is_applied = True
            session.commit()
            return True

    # saved comparisons

    def save_comparison(
        self, user_id: str, strategy_id: str, monthly_budget: Any, comparison: TimelineComparison
    ) -> None:
        if not user_id:
            return
        summary = to_jsonable(comparison)
        # the full runs are large and reproducible from the inputs
        summary.pop("baseline", None)
        summary.pop("accelerated", None)
        row = CalculationResultModel(
            user_id=user_id,
            strategy_id=strategy_id,
            monthly_budget=monthly_budget,
            result_json=json.dumps(summary),
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
        self._trim_user(user_id)

    def list_comparisons(self, user_id: str) -> List[Dict[str, Any]]:
        if not user_id:
            return []
        with self._session_factory() as session:
            rows: Iterable[CalculationResultModel] = session.execute(
                select(CalculationResultModel)
                .where(CalculationResultModel.user_id == user_id)
                .order_by(CalculationResultModel.id.asc())
            ).scalars()
            return [
                {
                    "id": row.id,
                    "strategy_id": row.strategy_id,
                    "monthly_budget": float(row.monthly_budget),
                    "result": json.loads(row.result_json),
                    "created_at": row.created_at.isoformat(),
                }
                for row in rows
            ]

    def _trim_user(self, user_id: str) -> None:
        if not self._max_results_per_user or self._max_results_per_user < 0:
            return
        with self._session_factory() as session:
            rows = session.execute(
                select(CalculationResultModel)
                .where(CalculationResultModel.user_id == user_id)
                .order_by(CalculationResultModel.id.desc())
            ).scalars().all()
            if len(rows) <= self._max_results_per_user:
                return
            for row in rows[self._max_results_per_user :]:
                session.delete(row)
            session.commit()

    @staticmethod
    def _to_debt(row: DebtModel) -> Debt:
        meta = json.loads(row.metadata_json) if row.metadata_json else {}
        return Debt(
            id=row.id,
            balance=row.balance,
            interest_rate=row.interest_rate,
            minimum_payment=row.minimum_payment,
            name=row.name,
            currency_code=row.currency_code,
            is_gold_loan=row.is_gold_loan,
            final_payoff_date=row.final_payment_date,
            metadata=DebtMetadata.from_record(meta),
        )

    @staticmethod
    def _to_funding(row: OneTimeFundingModel) -> OneTimeFunding:
        return OneTimeFunding(
            id=row.id,
            amount=row.amount,
            payment_date=row.payment_date,
            is_applied=row.is_applied,
            currency_code=row.currency_code,
            notes=row.notes,
        )


def create_store_from_env(url: Optional[str] = None) -> DebtStore:
    return DebtStore(url or database_url_from_env() or DEFAULT_DATABASE_URL)
