"""
Audit Models for TripSplit

An audit event is written whenever the state of a trip changes or a
settlement is shown. Events answer three questions after the fact:
what did the balances screen say, who entered which expense, and why
did a payment request not arrive.

The audit log is append-only.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """What happened."""
    # Settlement
    SETTLEMENT_COMPUTED = "settlement_computed"
    SETTLEMENT_FAILED = "settlement_failed"

    # Expense entry
    EXPENSE_VALIDATION_FAILED = "expense_validation_failed"
    EXPENSE_SAVED = "expense_saved"
    EXPENSE_DELETED = "expense_deleted"
    PARTICIPANT_ADDED = "participant_added"

    # Payment requests
    PAYMENT_REQUEST_SENT = "payment_request_sent"
    PAYMENT_REQUEST_FAILED = "payment_request_failed"

    # Infrastructure
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Column order of the audit worksheet
AUDIT_ROW_FIELDS = (
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details",
    "error_message",
    "is_user_action",
)


class AuditEvent(BaseModel):
    """
    One entry of the audit trail.

    entity_type / entity_id point at the trip, expense or participant the
    event is about. Events produced by the same user action share a
    correlation_id.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    entity_type: Optional[str] = Field(
        default=None,
        description="'trip', 'expense' or 'participant'"
    )
    entity_id: Optional[UUID] = None
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Triggered directly by someone using the app"
    )

    def to_log_dict(self) -> dict:
        """Flat, JSON-safe mapping for structlog."""
        return self.model_dump(mode="json")

    def to_sheets_row(self) -> list:
        """Cells in AUDIT_ROW_FIELDS order; empty strings for missing values."""
        data = self.to_log_dict()
        row = []
        for name in AUDIT_ROW_FIELDS:
            value = data[name]
            if name == "details":
                row.append(json.dumps(value) if value else "")
            elif name == "is_user_action":
                row.append(str(value))
            else:
                row.append("" if value is None else value)
        return row


class AuditEventBuilder:
    """
    Factory methods, one per event type, so callers never assemble
    descriptions and details by hand.
    """

    @staticmethod
    def settlement_computed(
        trip_id: UUID,
        expense_count: int,
        settlement_count: int,
        total_spent: str,
        total_outstanding: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_COMPUTED,
            entity_type="trip",
            entity_id=trip_id,
            correlation_id=correlation_id,
            description=(
                f"Settlement computed: {settlement_count} payments "
                f"from {expense_count} expenses"
            ),
            details={
                "expense_count": expense_count,
                "settlement_count": settlement_count,
                "total_spent": total_spent,
                "total_outstanding": total_outstanding,
            },
        )

    @staticmethod
    def settlement_failed(
        trip_id: UUID,
        expense_id: Optional[UUID],
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="trip",
            entity_id=trip_id,
            correlation_id=correlation_id,
            description="Settlement failed: invalid expense",
            error_message=reason,
            details={
                "expense_id": str(expense_id) if expense_id else None,
            },
        )

    @staticmethod
    def expense_validation_failed(
        trip_id: UUID,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="trip",
            entity_id=trip_id,
            correlation_id=correlation_id,
            description=f"Expense rejected with {len(issues)} issues",
            details={
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_saved(
        expense_id: UUID,
        trip_id: Optional[UUID],
        payer: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_SAVED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense saved: {payer} paid {amount}",
            details={
                "trip_id": str(trip_id) if trip_id else None,
                "payer": payer,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: UUID,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description="Expense deleted",
            is_user_action=True,
        )

    @staticmethod
    def participant_added(
        participant_id: UUID,
        trip_id: Optional[UUID],
        name: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTICIPANT_ADDED,
            entity_type="participant",
            entity_id=participant_id,
            correlation_id=correlation_id,
            description=f"Participant added: {name}",
            details={
                "trip_id": str(trip_id) if trip_id else None,
                "name": name,
            },
            is_user_action=True,
        )

    @staticmethod
    def payment_request_sent(
        trip_id: Optional[UUID],
        debtor: str,
        creditor: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_REQUEST_SENT,
            entity_type="trip",
            entity_id=trip_id,
            correlation_id=correlation_id,
            description=f"Payment request sent to {debtor}",
            details={
                "debtor": debtor,
                "creditor": creditor,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def payment_request_failed(
        trip_id: Optional[UUID],
        debtor: str,
        creditor: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_REQUEST_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="trip",
            entity_id=trip_id,
            correlation_id=correlation_id,
            description=f"Could not send payment request to {debtor}",
            error_message=error_message,
            details={
                "debtor": debtor,
                "creditor": creditor,
            },
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
