from datetime import date
from decimal import Decimal

import pytest

from debt_payoff.data_models import Debt, OneTimeFunding
from debt_payoff.debt_store import DebtStore
from debt_payoff.timeline import compare


@pytest.fixture
def store(tmp_path):
    return DebtStore(f"sqlite:///{tmp_path / 'debts.sqlite3'}", max_results_per_user=2)


def test_debts_round_trip_through_the_store(store):
    debt = Debt(
        id="phone",
        balance="1100",
        interest_rate="10",
        minimum_payment="100",
        name="Phone plan",
        currency_code="USD",
        metadata={"interest_included": True, "original_rate": "10", "remaining_months": 12},
    )
    store.add_debt("alice", debt)
    [loaded] = store.list_debts("alice")
    assert loaded.id == "phone"
    assert loaded.name == "Phone plan"
    assert loaded.balance == Decimal("1100")
    assert loaded.minimum_payment == Decimal("100")
    assert loaded.interest_included
    assert loaded.metadata.original_rate == Decimal("10")
    assert loaded.metadata.remaining_months == 12


def test_gold_loan_keeps_its_maturity_date(store):
    gold = Debt("gold", "5000", "9", "500", is_gold_loan=True, final_payoff_date="2025-03-31")
    store.add_debt("alice", gold)
    [loaded] = store.list_debts("alice")
    assert loaded.is_schedule_driven
    assert loaded.final_payoff_date == date(2025, 3, 31)


def test_paid_debts_and_other_users_are_excluded(store):
    store.add_debt("alice", Debt("card", "900", "20", "45"))
    store.add_debt("alice", Debt("old", "0", "5", "10"), status="paid")
    store.add_debt("bob", Debt("bobs-loan", "5000", "7", "100"))
    assert [d.id for d in store.list_debts("alice")] == ["card"]
    assert {d.id for d in store.list_debts("alice", include_paid=True)} == {"card", "old"}
    assert store.list_debts("") == []


def test_remove_debt_only_for_owner(store):
    store.add_debt("alice", Debt("card", "900", "20", "45"))
    store.remove_debt("bob", "card")
    assert [d.id for d in store.list_debts("alice")] == ["card"]
    store.remove_debt("alice", "card")
    assert store.list_debts("alice") == []


def test_pending_fundings_skip_applied_and_past_entries(store):
    store.add_funding("alice", OneTimeFunding("march", "200", "2024-03-01"))
    store.add_funding("alice", OneTimeFunding("feb", "500", "2024-02-10"))
    store.add_funding("alice", OneTimeFunding("past", "100", "2023-12-01"))
    store.add_funding("alice", OneTimeFunding("done", "300", "2024-02-20", is_applied=True))
    pending = store.list_pending_fundings("alice", date(2024, 1, 15))
    assert [f.id for f in pending] == ["feb", "march"]
    assert pending[0].amount == Decimal("500")


def test_mark_funding_applied(store):
    store.add_funding("alice", OneTimeFunding("bonus", "500", "2024-02-10"))
    assert not store.mark_funding_applied("bob", "bonus")
    assert not store.mark_funding_applied("alice", "missing")
    assert store.mark_funding_applied("alice", "bonus")
    assert store.list_pending_fundings("alice", date(2024, 1, 1)) == []


def test_saved_comparisons_are_trimmed_per_user(store):
    debts = [Debt("card", "1000", "20", "50")]
    for budget in ("60", "80", "100"):
        comparison = compare(debts, budget, "avalanche", start_date=date(2024, 1, 1))
        store.save_comparison("alice", "avalanche", Decimal(budget), comparison)

    saved = store.list_comparisons("alice")
    assert [row["monthly_budget"] for row in saved] == [80.0, 100.0]
    assert "baseline" not in saved[0]["result"]
    assert saved[-1]["result"]["payoff_date"] == comparison.payoff_date.isoformat()
    assert store.list_comparisons("bob") == []


def test_undated_funding_is_stored_but_never_pending(store):
    store.add_funding("alice", OneTimeFunding.from_record({"id": "someday", "amount": 400, "payment_date": None}))
    store.add_funding("alice", OneTimeFunding("feb", "500", "2024-02-10"))
    assert [f.id for f in store.list_pending_fundings("alice", date(2024, 1, 1))] == ["feb"]
