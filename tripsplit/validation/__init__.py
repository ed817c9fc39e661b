"""Expense validation package."""

from tripsplit.validation.validator import ExpenseValidator

__all__ = ["ExpenseValidator"]
