"""
Settlement Facade

Single entry point for callers: expenses and roster in, balances,
settlement plan and summary numbers out.

Pure composition of BalanceAggregator and SettlementPlanner. No I/O,
no caching, no state between calls.
"""

from collections.abc import Sequence
from decimal import Decimal
from typing import Optional

from tripsplit.models.expense import Balance, Expense, SettlementSummary
from tripsplit.settlement.aggregator import BalanceAggregator
from tripsplit.settlement.planner import SettlementPlanner


class SettlementFacade:
    """
    Computes everything the balances screen shows for one trip.

    Summary statistics are taken from the aggregator's balances, which the
    planner never alters:
    - total_spent: sum of all expense amounts
    - total_outstanding: sum of what debtors owe (equals what creditors
      are owed, since money is conserved)
    - settled_count: participants whose |net| is below epsilon
    """

    def __init__(
        self,
        epsilon: Optional[Decimal] = None,
        aggregator: Optional[BalanceAggregator] = None,
    ):
        if epsilon is None:
            # Settings are only read when no tolerance is passed in
            from tripsplit.config import get_settings
            epsilon = get_settings().app.settlement_epsilon
        self._epsilon = epsilon
        self._aggregator = aggregator or BalanceAggregator()
        self._planner = SettlementPlanner(epsilon)

    @property
    def epsilon(self) -> Decimal:
        return self._epsilon

    def summarize(
        self,
        expenses: Sequence[Expense],
        participants: Sequence[str],
    ) -> SettlementSummary:
        """
        Aggregate, plan and summarize.

        Raises:
            InvalidExpense: Propagated from the aggregator.
        """
        balances = self._aggregator.aggregate(expenses, participants)
        plan = self._planner.plan(balances)

        return SettlementSummary(
            balances=plan.balances,
            settlements=plan.settlements,
            total_spent=self.total_spent(expenses),
            total_outstanding=self.total_outstanding(balances),
            settled_count=self.settled_count(balances),
        )

    @staticmethod
    def total_spent(expenses: Sequence[Expense]) -> Decimal:
        return sum((expense.amount for expense in expenses), Decimal("0"))

    @staticmethod
    def total_outstanding(balances: Sequence[Balance]) -> Decimal:
        return sum(
            (max(Decimal("0"), -balance.net) for balance in balances),
            Decimal("0"),
        )

    def settled_count(self, balances: Sequence[Balance]) -> int:
        return sum(1 for balance in balances if balance.is_settled(self._epsilon))
