from datetime import date
from decimal import Decimal

import pytest

from debt_payoff.data_models import Debt, OneTimeFunding
from debt_payoff.engine import (
    DuplicateDebtError,
    amortization_schedule,
    gold_loan_months,
    required_minimums,
    simulate,
)
from debt_payoff.settings import EngineSettings
from debt_payoff.strategies import UnknownStrategyError

START = date(2024, 1, 1)


def make_debt(debt_id, balance, rate, minimum, **kwargs):
    return Debt(id=debt_id, balance=balance, interest_rate=rate, minimum_payment=minimum, **kwargs)


def payments(result):
    return {p.debt_id: p.amount for p in result.per_debt_payments}


def test_single_zero_rate_debt_paid_by_minimums():
    result = simulate([make_debt("loan", "1000", "0", "100")], "100", "avalanche", start_date=START)
    assert result.status == "done"
    assert result.converged
    assert result.months == 10
    assert result.total_interest == Decimal("0")
    assert result.final_payoff_date == date(2024, 11, 1)
    assert result.debt_results["loan"].months == 10
    assert len(result.timeline) == 10


def test_extra_budget_accelerates_payoff():
    result = simulate([make_debt("loan", "1000", "0", "100")], "250", "avalanche", start_date=START)
    assert result.months == 4
    assert payments(result) == {"loan": Decimal("250")}


def test_released_minimum_is_redistributed_to_next_debt():
    debts = [make_debt("a", "300", "0", "100"), make_debt("b", "1000", "0", "100")]
    result = simulate(debts, "200", "avalanche", start_date=START)

    assert result.months == 6
    assert result.debt_results["a"].months == 3
    assert result.debt_results["b"].months == 6
    assert len(result.redistribution_history) == 1
    record = result.redistribution_history[0]
    assert (record.from_debt_id, record.to_debt_id, record.amount, record.month) == ("a", "b", Decimal("100"), 3)
    assert result.debt_results["b"].redistribution_history == [record]


def test_released_amounts_match_minimums_of_debts_paid_before_the_last():
    debts = [
        make_debt("small", "200", "18", "40"),
        make_debt("medium", "900", "12", "60"),
        make_debt("large", "3000", "6", "90"),
    ]
    result = simulate(debts, "300", "snowball", start_date=START)
    assert result.converged
    released = sum((r.amount for r in result.redistribution_history), Decimal("0"))
    assert released == Decimal("100")  # small then medium; nothing follows large
    assert [r.from_debt_id for r in result.redistribution_history] == ["small", "medium"]


def test_surplus_cascades_down_the_ranking():
    debts = [make_debt("a", "100", "0", "10"), make_debt("b", "1000", "0", "10")]
    result = simulate(debts, "500", "snowball", start_date=START)
    assert payments(result) == {"a": Decimal("100"), "b": Decimal("400")}
    assert result.months == 3
    assert result.unallocated == Decimal("410")


def test_funding_is_added_in_its_month_only():
    debt = make_debt("loan", "1000", "0", "100")
    fundings = [OneTimeFunding("bonus", "500", "2024-01-10")]
    result = simulate([debt], "100", "avalanche", fundings, start_date=START)
    assert result.months == 5
    assert result.timeline[0].funding == Decimal("500")
    assert all(m.funding == 0 for m in result.timeline[1:])


def test_applied_funding_is_ignored():
    debt = make_debt("loan", "1000", "0", "100")
    fundings = [OneTimeFunding("bonus", "500", "2024-01-10", is_applied=True)]
    assert simulate([debt], "100", "avalanche", fundings, start_date=START).months == 10


def test_unpayable_debt_hits_the_horizon():
    events = []
    result = simulate(
        [make_debt("card", "1000", "24", "10")],
        "10",
        "avalanche",
        start_date=START,
        settings=EngineSettings(horizon_months=120),
        observer=lambda event, payload: events.append(event),
    )
    assert result.status == "capped"
    assert not result.converged
    assert result.months == 120
    assert result.debt_results["card"].months is None
    assert result.timeline[-1].balances["card"] > Decimal("1000")
    assert "horizon_reached" in events


def test_insufficient_budget_is_reported_without_simulating():
    events = []
    debts = [make_debt("a", "1000", "10", "100"), make_debt("b", "500", "10", "100")]
    result = simulate(debts, "150", "avalanche", start_date=START, observer=lambda e, p: events.append((e, p)))
    assert result.status == "insufficient_budget"
    assert result.months == 1200
    assert result.total_interest == Decimal("0")
    assert result.timeline == []
    assert result.debt_results["a"].months is None
    assert events == [("budget_insufficient", {"budget": Decimal("150"), "required": Decimal("200")})]


def test_balances_never_negative():
    debts = [
        make_debt("card", "2500", "22.9", "75"),
        make_debt("loan", "12000", "8.5", "250"),
        make_debt("store", "430", "0", "25"),
    ]
    fundings = [OneTimeFunding("tax", "1500", "2024-04-15"), OneTimeFunding("gift", "300", "2025-12-24")]
    result = simulate(debts, "600", "balance-ratio", fundings, start_date=START)
    assert result.converged
    for month in result.timeline:
        assert all(balance >= 0 for balance in month.balances.values())
    assert result.timeline[-1].balances == {"card": 0, "loan": 0, "store": 0}


def test_total_interest_matches_timeline_and_per_debt_totals():
    debts = [make_debt("card", "2000", "19.99", "60"), make_debt("loan", "5000", "9", "120")]
    result = simulate(debts, "400", "avalanche", start_date=START)
    from_timeline = sum((m.interest for m in result.timeline), Decimal("0"))
    per_debt = sum((r.total_interest for r in result.debt_results.values()), Decimal("0"))
    assert result.total_interest == from_timeline
    assert result.total_interest == per_debt
    assert result.total_interest > 0


def test_simulation_is_deterministic_and_does_not_modify_inputs():
    debts = [make_debt("card", "2000", "19.99", "60"), make_debt("loan", "5000", "9", "120")]
    first = simulate(debts, "400", "snowball", start_date=START)
    second = simulate(debts, "400", "snowball", start_date=START)
    assert first == second
    assert debts[0].balance == Decimal("2000")
    assert debts[1].balance == Decimal("5000")


def test_duplicate_ids_are_rejected():
    debts = [make_debt("same", "100", "0", "10"), make_debt("same", "200", "0", "10")]
    with pytest.raises(DuplicateDebtError):
        simulate(debts, "100", "avalanche", start_date=START)


def test_unknown_strategy_is_rejected():
    with pytest.raises(UnknownStrategyError):
        simulate([make_debt("a", "100", "0", "10")], "100", "cheapest-first", start_date=START)


def test_empty_and_already_paid_debts():
    empty = simulate([], "100", "avalanche", start_date=START)
    assert (empty.status, empty.months, empty.final_payoff_date) == ("done", 0, START)

    paid = simulate([make_debt("old", "0", "10", "50")], "0", "avalanche", start_date=START)
    assert paid.status == "done"
    assert paid.months == 0
    assert paid.debt_results["old"].months == 0


def test_interest_included_debt_accrues_no_interest():
    debt = make_debt("phone", "1200", "12", "100", metadata={"interest_included": True})
    result = simulate([debt], "100", "avalanche", start_date=START)
    assert result.months == 12
    assert result.total_interest == Decimal("0")


def test_gold_loan_minimum_is_reserved_until_maturity():
    gold = make_debt("gold", "5000", "0", "500", is_gold_loan=True, final_payoff_date="2024-04-15")
    regular = make_debt("card", "1000", "0", "100")
    result = simulate([gold, regular], "700", "avalanche", start_date=START)

    assert payments(result) == {"gold": Decimal("500"), "card": Decimal("200")}
    assert result.debt_results["gold"].months == 3
    assert result.debt_results["gold"].payoff_date == date(2024, 4, 15)
    assert result.debt_results["card"].months == 4
    assert result.months == 4
    record = result.redistribution_history[0]
    assert (record.from_debt_id, record.to_debt_id, record.amount, record.month) == (
        "gold", "card", Decimal("500"), 3,
    )


def test_gold_loan_maturing_after_other_debts_sets_the_months():
    gold = make_debt("gold", "5000", "0", "500", is_gold_loan=True, final_payoff_date="2025-01-01")
    regular = make_debt("card", "300", "0", "100")
    result = simulate([gold, regular], "600", "snowball", start_date=START)
    assert result.debt_results["card"].months == 3
    assert result.months == 12
    assert result.final_payoff_date == date(2025, 1, 1)


def test_budget_must_cover_gold_loan_minimums():
    gold = make_debt("gold", "5000", "0", "500", is_gold_loan=True, final_payoff_date="2024-06-01")
    regular = make_debt("card", "1000", "0", "100")
    result = simulate([gold, regular], "550", "avalanche", start_date=START)
    assert result.status == "insufficient_budget"


def test_observer_receives_payoff_events():
    events = []
    debts = [make_debt("a", "300", "0", "100"), make_debt("b", "1000", "0", "100")]
    simulate(debts, "200", "avalanche", start_date=START, observer=lambda e, p: events.append((e, p)))
    paid_off = [p for e, p in events if e == "debt_paid_off"]
    assert paid_off == [{"debt_id": "a", "month": 3}, {"debt_id": "b", "month": 6}]


def test_gold_loan_months():
    gold = make_debt("gold", "5000", "0", "500", is_gold_loan=True, final_payoff_date="2025-01-20")
    assert gold_loan_months(gold, date(2024, 1, 5)) == 12
    assert gold_loan_months(gold, date(2026, 1, 5)) == 0
    assert gold_loan_months(make_debt("card", "100", "10", "10"), date(2024, 1, 5)) is None


def test_amortization_schedule_zero_rate():
    schedule = amortization_schedule(make_debt("loan", "300", "0", "100"), start_date=START)
    assert [e.period for e in schedule] == [1, 2, 3]
    assert [e.date for e in schedule] == [date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1)]
    assert schedule[-1].ending_balance == Decimal("0")


def test_amortization_schedule_final_payment_includes_interest():
    schedule = amortization_schedule(make_debt("loan", "1000", "12", "50"), "1010", START)
    assert len(schedule) == 1
    entry = schedule[0]
    assert (entry.payment, entry.principal, entry.interest, entry.ending_balance) == (
        Decimal("1010.00"), Decimal("1000.00"), Decimal("10.00"), Decimal("0.00"),
    )


def test_amortization_schedule_empty_when_payment_cannot_cover_interest():
    assert amortization_schedule(make_debt("card", "1000", "24", "10"), start_date=START) == []


def test_amortization_schedule_interest_included_uses_principal():
    debt = make_debt(
        "phone", "1100", "10", "100",
        metadata={"interest_included": True, "original_rate": "10", "remaining_months": 12},
    )
    schedule = amortization_schedule(debt, start_date=START)
    assert schedule[0].starting_balance == Decimal("1000.00")
    assert schedule[0].interest == Decimal("8.33")


def test_zero_minimum_debt_gets_no_first_month_payment():
    debts = [make_debt("promo", "100", "0", "0"), make_debt("loan", "1000", "0", "100")]
    result = simulate(debts, "100", "avalanche", start_date=START)
    assert payments(result) == {"loan": Decimal("100")}


def test_required_minimums_skip_cleared_debts_and_matured_gold_loans():
    debts = [
        make_debt("card", "1000", "20", "50"),
        make_debt("old", "0.01", "10", "500"),
        make_debt("matured", "5000", "10", "300", is_gold_loan=True, final_payoff_date="2023-06-01"),
        make_debt("gold", "5000", "10", "200", is_gold_loan=True, final_payoff_date="2024-06-01"),
    ]
    assert required_minimums(debts, START) == Decimal("250")
