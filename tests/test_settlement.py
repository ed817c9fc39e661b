"""
Tests for the settlement core

Test strategy:
1. Calibration scenarios with hand-computed balances and payments
2. Properties every valid expense set must satisfy (conservation,
   no self-payments, idempotence)
3. Boundary cases (self-pay, empty split, non-positive amounts)
"""

import pytest
from decimal import Decimal

from tripsplit.models.expense import Balance, Expense, SettlementEdge
from tripsplit.settlement import (
    SETTLEMENT_EPSILON,
    BalanceAggregator,
    InvalidExpense,
    SettlementError,
    SettlementFacade,
    SettlementPlanner,
    total_net,
)


EPS = Decimal("0.01")


def expense(payer, amount, split, **kwargs):
    return Expense(payer=payer, amount=Decimal(str(amount)), split_between=split, **kwargs)


def nets(balances):
    return {b.person: b.net for b in balances}


def edge_tuples(edges):
    return [(e.debtor, e.creditor, e.amount) for e in edges]


class TestBalanceAggregator:
    """Tests for BalanceAggregator.aggregate."""

    def test_two_way_split(self):
        """A pays 100 split with B: A is owed 50, B owes 50."""
        balances = BalanceAggregator().aggregate(
            [expense("A", 100, ["A", "B"])], ["A", "B"]
        )
        assert nets(balances) == {"A": Decimal("50"), "B": Decimal("-50")}

    def test_three_way_split(self):
        """A pays 90 split three ways: shares of 30 each."""
        balances = BalanceAggregator().aggregate(
            [expense("A", 90, ["A", "B", "C"])], ["A", "B", "C"]
        )
        assert nets(balances) == {
            "A": Decimal("60"),
            "B": Decimal("-30"),
            "C": Decimal("-30"),
        }

    def test_payer_outside_split_gets_full_amount(self):
        """A payer not in the split is credited the whole amount."""
        balances = BalanceAggregator().aggregate(
            [expense("A", 60, ["B", "C"])], ["A", "B", "C"]
        )
        assert nets(balances) == {
            "A": Decimal("60"),
            "B": Decimal("-30"),
            "C": Decimal("-30"),
        }

    def test_self_pay_nets_to_zero(self):
        """An expense split only with the payer changes nothing."""
        balances = BalanceAggregator().aggregate(
            [expense("A", 40, ["A"])], ["A", "B"]
        )
        assert nets(balances) == {"A": Decimal("0"), "B": Decimal("0")}

    def test_unknown_participants_are_registered(self):
        """Names only present in expenses still get a balance."""
        balances = BalanceAggregator().aggregate(
            [expense("Zoe", 30, ["Zoe", "Yan"])], []
        )
        assert [b.person for b in balances] == ["Zoe", "Yan"]
        assert nets(balances) == {"Zoe": Decimal("15"), "Yan": Decimal("-15")}

    def test_roster_member_without_expenses_is_settled(self):
        """Roster members with no expenses appear with a zero net."""
        balances = BalanceAggregator().aggregate(
            [expense("A", 10, ["A", "B"])], ["A", "B", "C"]
        )
        assert nets(balances)["C"] == Decimal("0")

    def test_canonical_order_roster_then_payers_then_members(self):
        """Order is roster, then every payer, then split members."""
        balances = BalanceAggregator().aggregate(
            [
                expense("B", 30, ["A", "D"]),
                expense("E", 30, ["F", "B"]),
            ],
            ["C"],
        )
        assert [b.person for b in balances] == ["C", "B", "E", "A", "D", "F"]

    def test_each_participant_appears_once(self):
        """No duplicate balances even when names repeat everywhere."""
        balances = BalanceAggregator().aggregate(
            [
                expense("A", 10, ["A", "B"]),
                expense("B", 10, ["A", "B"]),
                expense("A", 10, ["B"]),
            ],
            ["A", "B", "A"],
        )
        assert [b.person for b in balances] == ["A", "B"]

    def test_member_listed_twice_pays_two_shares(self):
        """A name repeated in the split is debited once per listing."""
        balances = BalanceAggregator().aggregate(
            [expense("A", 90, ["A", "B", "B"])], ["A", "B"]
        )
        assert nets(balances) == {"A": Decimal("60"), "B": Decimal("-60")}
        assert total_net(balances) == 0

    def test_empty_split_raises(self):
        """An empty split cannot be divided."""
        with pytest.raises(InvalidExpense) as exc_info:
            BalanceAggregator().aggregate([expense("A", 10, [])], ["A"])
        assert "split_between" in exc_info.value.reason

    def test_zero_amount_raises(self):
        """Amounts must be strictly positive."""
        with pytest.raises(InvalidExpense):
            BalanceAggregator().aggregate([expense("A", 0, ["A", "B"])], ["A", "B"])

    def test_negative_amount_raises(self):
        """Negative amounts are rejected."""
        with pytest.raises(InvalidExpense):
            BalanceAggregator().aggregate([expense("A", -5, ["A", "B"])], ["A", "B"])

    def test_invalid_expense_carries_expense_id(self):
        """The offending expense is identified on the error."""
        bad = expense("A", 10, [])
        with pytest.raises(InvalidExpense) as exc_info:
            BalanceAggregator().aggregate([expense("A", 10, ["A"]), bad], ["A"])
        assert exc_info.value.expense_id == bad.id
        assert isinstance(exc_info.value, SettlementError)

    def test_conservation_with_uneven_shares(self):
        """Total net stays at zero even when shares don't divide evenly."""
        balances = BalanceAggregator().aggregate(
            [
                expense("A", 100, ["A", "B", "C"]),
                expense("B", 10, ["B", "C"]),
                expense("C", "7.77", ["A", "B", "C"]),
            ],
            ["A", "B", "C"],
        )
        assert abs(total_net(balances)) < EPS

    def test_aggregate_is_idempotent(self):
        """Same inputs, same outputs, same order."""
        expenses = [expense("A", 100, ["A", "B", "C"]), expense("C", 20, ["B"])]
        aggregator = BalanceAggregator()
        assert aggregator.aggregate(expenses, ["A"]) == aggregator.aggregate(expenses, ["A"])


class TestSettlementPlanner:
    """Tests for the greedy SettlementPlanner."""

    def test_two_way_settlement(self):
        """B pays A 50."""
        balances = BalanceAggregator().aggregate(
            [expense("A", 100, ["A", "B"])], ["A", "B"]
        )
        plan = SettlementPlanner(EPS).plan(balances)
        assert edge_tuples(plan.settlements) == [("B", "A", Decimal("50"))]

    def test_three_way_settlement_in_participant_order(self):
        """B then C each pay A 30."""
        balances = BalanceAggregator().aggregate(
            [expense("A", 90, ["A", "B", "C"])], ["A", "B", "C"]
        )
        plan = SettlementPlanner(EPS).plan(balances)
        assert edge_tuples(plan.settlements) == [
            ("B", "A", Decimal("30")),
            ("C", "A", Decimal("30")),
        ]

    def test_greedy_order_is_debtor_major_creditor_minor(self):
        """Debtors pay creditors in balance order, splitting across creditors."""
        balances = [
            Balance(person="A", net=Decimal("30")),
            Balance(person="B", net=Decimal("20")),
            Balance(person="C", net=Decimal("-25")),
            Balance(person="D", net=Decimal("-25")),
        ]
        edges = SettlementPlanner(EPS).plan_edges(balances)
        assert edge_tuples(edges) == [
            ("C", "A", Decimal("25")),
            ("D", "A", Decimal("5")),
            ("D", "B", Decimal("20")),
        ]

    def test_order_dependence_is_preserved(self):
        """Reordering the balances changes the plan (no optimization)."""
        balances = [
            Balance(person="B", net=Decimal("20")),
            Balance(person="A", net=Decimal("30")),
            Balance(person="C", net=Decimal("-25")),
            Balance(person="D", net=Decimal("-25")),
        ]
        edges = SettlementPlanner(EPS).plan_edges(balances)
        assert edge_tuples(edges) == [
            ("C", "B", Decimal("20")),
            ("C", "A", Decimal("5")),
            ("D", "A", Decimal("25")),
        ]

    def test_settled_group_has_no_edges(self):
        """Everybody even: nothing to pay."""
        balances = BalanceAggregator().aggregate(
            [expense("A", 50, ["A", "B"]), expense("B", 50, ["A", "B"])],
            ["A", "B"],
        )
        assert SettlementPlanner(EPS).plan(balances).settlements == []

    def test_balances_within_epsilon_are_ignored(self):
        """Sub-cent residue never produces a payment."""
        balances = [
            Balance(person="A", net=Decimal("0.005")),
            Balance(person="B", net=Decimal("-0.005")),
        ]
        assert SettlementPlanner(EPS).plan_edges(balances) == []

    def test_owes_and_owed_by_are_populated(self):
        """Returned balances list the payments on both sides."""
        balances = BalanceAggregator().aggregate(
            [expense("A", 90, ["A", "B", "C"])], ["A", "B", "C"]
        )
        plan = SettlementPlanner(EPS).plan(balances)
        a, b, c = plan.balances

        assert [(o.from_, o.amount) for o in a.owed_by] == [
            ("B", Decimal("30")),
            ("C", Decimal("30")),
        ]
        assert a.owes == []
        assert [(o.to, o.amount) for o in b.owes] == [("A", Decimal("30"))]
        assert [(o.to, o.amount) for o in c.owes] == [("A", Decimal("30"))]

    def test_input_balances_are_not_modified(self):
        """Planning works on copies; nets and lists stay untouched."""
        balances = BalanceAggregator().aggregate(
            [expense("A", 100, ["A", "B"])], ["A", "B"]
        )
        before = [b.model_copy(deep=True) for b in balances]
        plan = SettlementPlanner(EPS).plan(balances)

        assert balances == before
        assert [b.net for b in plan.balances] == [b.net for b in balances]

    def test_settlement_conservation(self):
        """Each debtor pays exactly |net|; each creditor receives net."""
        balances = BalanceAggregator().aggregate(
            [
                expense("A", 100, ["A", "B", "C", "D"]),
                expense("B", 45, ["B", "C", "D"]),
                expense("D", "12.34", ["A", "C"]),
            ],
            ["A", "B", "C", "D"],
        )
        edges = SettlementPlanner(EPS).plan_edges(balances)

        for balance in balances:
            paid = sum((e.amount for e in edges if e.debtor == balance.person), Decimal("0"))
            received = sum((e.amount for e in edges if e.creditor == balance.person), Decimal("0"))
            if balance.net < -EPS:
                assert abs(paid - (-balance.net)) < EPS
                assert received == 0
            elif balance.net > EPS:
                assert abs(received - balance.net) < EPS
                assert paid == 0

    def test_no_self_edges_and_no_tiny_edges(self):
        """Edges always connect two different people with amount > epsilon."""
        balances = BalanceAggregator().aggregate(
            [
                expense("A", 100, ["A", "B", "C"]),
                expense("C", 33, ["A", "B", "C"]),
                expense("B", 1, ["B"]),
            ],
            [],
        )
        for edge in SettlementPlanner(EPS).plan_edges(balances):
            assert edge.debtor != edge.creditor
            assert edge.amount > EPS

    def test_self_edge_model_is_rejected(self):
        """SettlementEdge refuses debtor == creditor."""
        with pytest.raises(ValueError):
            SettlementEdge(debtor="A", creditor="A", amount=Decimal("1"))

    def test_plan_is_idempotent(self):
        """Planning the same balances twice gives identical plans."""
        balances = BalanceAggregator().aggregate(
            [expense("A", 100, ["A", "B", "C"]), expense("B", 70, ["C", "A"])],
            ["A", "B", "C"],
        )
        planner = SettlementPlanner(EPS)
        assert planner.plan(balances) == planner.plan(balances)

    def test_default_epsilon(self):
        """Planner defaults to one cent."""
        assert SettlementPlanner().epsilon == SETTLEMENT_EPSILON == Decimal("0.01")


class TestSettlementFacade:
    """Tests for SettlementFacade.summarize."""

    def test_summary_two_way(self):
        """Scenario: A pays 100 for A and B."""
        summary = SettlementFacade(epsilon=EPS).summarize(
            [expense("A", 100, ["A", "B"])], ["A", "B"]
        )
        assert nets(summary.balances) == {"A": Decimal("50"), "B": Decimal("-50")}
        assert edge_tuples(summary.settlements) == [("B", "A", Decimal("50"))]
        assert summary.total_spent == Decimal("100")
        assert summary.total_outstanding == Decimal("50")
        assert summary.settled_count == 0
        assert summary.is_all_settled is False

    def test_summary_three_way(self):
        """Scenario: A pays 90 split three ways."""
        summary = SettlementFacade(epsilon=EPS).summarize(
            [expense("A", 90, ["A", "B", "C"])], ["A", "B", "C"]
        )
        assert summary.total_spent == Decimal("90")
        assert summary.total_outstanding == Decimal("60")
        assert edge_tuples(summary.settlements) == [
            ("B", "A", Decimal("30")),
            ("C", "A", Decimal("30")),
        ]

    def test_summary_already_settled(self):
        """Scenario: A and B each pay 50 for both."""
        summary = SettlementFacade(epsilon=EPS).summarize(
            [expense("A", 50, ["A", "B"]), expense("B", 50, ["A", "B"])],
            ["A", "B"],
        )
        assert summary.settlements == []
        assert summary.settled_count == 2
        assert summary.total_outstanding == Decimal("0")
        assert summary.is_all_settled is True

    def test_summary_self_pay(self):
        """Self-paid expenses count as spent but create no debt."""
        summary = SettlementFacade(epsilon=EPS).summarize(
            [expense("A", 25, ["A"])], ["A"]
        )
        assert summary.total_spent == Decimal("25")
        assert summary.settlements == []
        assert summary.settled_count == 1

    def test_summary_empty_trip(self):
        """No expenses: everyone is settled."""
        summary = SettlementFacade(epsilon=EPS).summarize([], ["A", "B", "C"])
        assert summary.total_spent == Decimal("0")
        assert summary.settled_count == 3
        assert summary.settlements == []

    def test_outstanding_uses_unplanned_balances(self):
        """Planning does not reduce what is reported as outstanding."""
        summary = SettlementFacade(epsilon=EPS).summarize(
            [expense("A", 120, ["A", "B", "C"]), expense("B", 30, ["C"])],
            ["A", "B", "C"],
        )
        owed = sum((-b.net for b in summary.balances if b.net < 0), Decimal("0"))
        assert summary.total_outstanding == owed
        assert summary.total_outstanding == sum(
            (e.amount for e in summary.settlements), Decimal("0")
        )

    def test_summary_propagates_invalid_expense(self):
        """Invalid expenses surface unchanged."""
        with pytest.raises(InvalidExpense):
            SettlementFacade(epsilon=EPS).summarize([expense("A", 10, [])], ["A"])

    def test_settlements_for_person(self):
        """Edges can be filtered per participant."""
        summary = SettlementFacade(epsilon=EPS).summarize(
            [expense("A", 90, ["A", "B", "C"])], ["A", "B", "C"]
        )
        assert len(summary.settlements_for("A")) == 2
        assert edge_tuples(summary.settlements_for("C")) == [("C", "A", Decimal("30"))]

    def test_epsilon_from_settings(self):
        """Without an explicit tolerance the configured one is used."""
        assert SettlementFacade().epsilon == Decimal("0.01")

    def test_summarize_is_idempotent(self):
        """Two calls on the same snapshot are identical."""
        facade = SettlementFacade(epsilon=EPS)
        expenses = [expense("A", 100, ["A", "B", "C"]), expense("B", 40, ["A", "C"])]
        assert facade.summarize(expenses, ["A", "B", "C"]) == facade.summarize(
            expenses, ["A", "B", "C"]
        )


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
