"""
Settlement Planning

Turns net balances into directed payment suggestions.

ALGORITHM: single-pass greedy match. Debtors are visited in balance
order; each one pays creditors, also in balance order, until its debt is
covered. This does NOT minimize the number of transactions, and the
result depends on the input order. Both are part of the contract:
callers and stored expectations rely on this exact ordering.

Creditor balances are drawn down on a private working copy. The input
balances are never modified; the plan carries new Balance objects whose
owes / owed_by lists match the emitted edges.
"""

from collections.abc import Sequence
from decimal import Decimal

from tripsplit.models.expense import (
    Balance,
    OwedFrom,
    OwedTo,
    SettlementEdge,
    SettlementPlan,
)
from tripsplit.settlement.aggregator import SETTLEMENT_EPSILON


class SettlementPlanner:
    """Greedy debtor-to-creditor matcher."""

    def __init__(self, epsilon: Decimal = SETTLEMENT_EPSILON):
        self._epsilon = epsilon

    @property
    def epsilon(self) -> Decimal:
        return self._epsilon

    def plan_edges(self, balances: Sequence[Balance]) -> list[SettlementEdge]:
        """Settlement edges only, debtor-major then creditor-minor."""
        eps = self._epsilon

        creditors = [b for b in balances if b.net > eps]
        debtors = [b for b in balances if b.net < -eps]
        working = [creditor.net for creditor in creditors]

        edges: list[SettlementEdge] = []
        for debtor in debtors:
            remaining = -debtor.net
            for idx, creditor in enumerate(creditors):
                if remaining > eps and working[idx] > eps:
                    payment = min(remaining, working[idx])
                    edges.append(SettlementEdge(
                        debtor=debtor.person,
                        creditor=creditor.person,
                        amount=payment,
                    ))
                    remaining -= payment
                    working[idx] -= payment

        return edges

    def plan(self, balances: Sequence[Balance]) -> SettlementPlan:
        """
        Compute the settlement edges and annotate the balances with them.

        Returns:
            SettlementPlan whose balances are copies (same order, same net)
            with owes / owed_by populated, and whose settlements are the
            edges in generation order.
        """
        edges = self.plan_edges(balances)

        owes: dict[str, list[OwedTo]] = {}
        owed_by: dict[str, list[OwedFrom]] = {}
        for edge in edges:
            owes.setdefault(edge.debtor, []).append(
                OwedTo(to=edge.creditor, amount=edge.amount)
            )
            owed_by.setdefault(edge.creditor, []).append(
                OwedFrom(from_=edge.debtor, amount=edge.amount)
            )

        annotated = [
            balance.model_copy(update={
                "owes": owes.get(balance.person, []),
                "owed_by": owed_by.get(balance.person, []),
            })
            for balance in balances
        ]

        return SettlementPlan(balances=annotated, settlements=edges)
