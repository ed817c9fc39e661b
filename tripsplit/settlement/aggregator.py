"""
Balance Aggregation

Reduces a list of expenses and a participant roster into one net
balance per participant.

For each expense the payer is credited the full amount and every member
of the split is debited an equal share. A payer who is also in the split
therefore nets amount - share; a payer outside the split nets the full
amount.

POLICY: Names that appear only inside expenses (as payer or split member)
are registered automatically with a zero balance. There is no
"unknown participant" error.

Participants are matched by display name at the boundary. Internally each
name gets an arena index so the arithmetic never depends on string keys.
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal
from typing import Optional
from uuid import UUID

from tripsplit.models.expense import Balance, Expense


SETTLEMENT_EPSILON = Decimal("0.01")


class SettlementError(Exception):
    """Base exception for settlement computation errors."""
    pass


class InvalidExpense(SettlementError):
    """An expense cannot be split (empty split or non-positive amount)."""

    def __init__(self, expense_id: Optional[UUID], reason: str):
        self.expense_id = expense_id
        self.reason = reason
        super().__init__(f"Invalid expense {expense_id}: {reason}")


class _ParticipantArena:
    """Maps display names to stable indices in first-appearance order."""

    def __init__(self):
        self._index: dict[str, int] = {}
        self._names: list[str] = []

    def register(self, name: str) -> int:
        idx = self._index.get(name)
        if idx is None:
            idx = len(self._names)
            self._index[name] = idx
            self._names.append(name)
        return idx

    def register_all(self, names: Iterable[str]) -> None:
        for name in names:
            self.register(name)

    def __getitem__(self, name: str) -> int:
        return self._index[name]

    def __len__(self) -> int:
        return len(self._names)

    @property
    def names(self) -> list[str]:
        return list(self._names)


class BalanceAggregator:
    """
    Computes net balances from expenses.

    Stateless: every call works only on its arguments, so one instance
    can be shared between concurrent callers.
    """

    @staticmethod
    def validate_expense(expense: Expense) -> None:
        """Raise InvalidExpense if the expense cannot be split."""
        if not expense.split_between:
            raise InvalidExpense(expense.id, "split_between must not be empty")
        if expense.amount <= 0:
            raise InvalidExpense(
                expense.id,
                f"amount must be greater than zero (got {expense.amount})",
            )

    def aggregate(
        self,
        expenses: Sequence[Expense],
        participants: Sequence[str],
    ) -> list[Balance]:
        """
        Compute one Balance per participant.

        Order: roster first, then every payer, then every split member,
        each name at its first appearance.

        Raises:
            InvalidExpense: If any expense has an empty split or amount <= 0.
                            Nothing is computed in that case.
        """
        for expense in expenses:
            self.validate_expense(expense)

        arena = _ParticipantArena()
        arena.register_all(participants)
        arena.register_all(expense.payer for expense in expenses)
        for expense in expenses:
            arena.register_all(expense.split_between)

        nets = [Decimal("0")] * len(arena)

        for expense in expenses:
            share = expense.amount / len(expense.split_between)
            nets[arena[expense.payer]] += expense.amount
            for member in expense.split_between:
                nets[arena[member]] -= share

        return [
            Balance(person=name, net=net)
            for name, net in zip(arena.names, nets)
        ]


def total_net(balances: Iterable[Balance]) -> Decimal:
    """Sum of all nets; zero (within epsilon) for any valid expense set."""
    return sum((balance.net for balance in balances), Decimal("0"))
