"""Settlement computation package: balances, greedy plan, summary."""

from tripsplit.settlement.aggregator import (
    SETTLEMENT_EPSILON,
    BalanceAggregator,
    InvalidExpense,
    SettlementError,
    total_net,
)
from tripsplit.settlement.facade import SettlementFacade
from tripsplit.settlement.planner import SettlementPlanner

__all__ = [
    "SETTLEMENT_EPSILON",
    "BalanceAggregator",
    "InvalidExpense",
    "SettlementError",
    "SettlementFacade",
    "SettlementPlanner",
    "total_net",
]
