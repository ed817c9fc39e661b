"""
Data Models Package

This package contains all Pydantic models used in TripSplit.
All data flowing through the system must conform to these schemas.
"""

from tripsplit.models.expense import (
    Balance,
    Expense,
    ExpenseCategory,
    ExpenseDraft,
    NotificationResult,
    OwedFrom,
    OwedTo,
    Participant,
    PaymentRequest,
    SettlementEdge,
    SettlementPlan,
    SettlementSummary,
    Trip,
    ValidationIssue,
    ValidationResult,
)
from tripsplit.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Trip and expense models
    "Balance",
    "Expense",
    "ExpenseCategory",
    "ExpenseDraft",
    "NotificationResult",
    "OwedFrom",
    "OwedTo",
    "Participant",
    "PaymentRequest",
    "SettlementEdge",
    "SettlementPlan",
    "SettlementSummary",
    "Trip",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
