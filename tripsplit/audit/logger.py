"""
Audit Logger

Writes each AuditEvent twice: once to the structured process log, and
once to the audit store when one is configured.

A failing audit store is reported in the process log and otherwise
ignored. Settling up or saving an expense must work even when the audit
sheet is unreachable.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from tripsplit.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from tripsplit.services.storage import AuditStorageInterface


# JSON lines on the stdlib logging backend
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

_LEVELS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


class AuditLogger:
    """Records audit events for every flow. Without a store it only logs."""

    def __init__(self, storage: Optional[AuditStorageInterface] = None):
        self._storage = storage
        self._logger = structlog.get_logger("tripsplit.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Record one event.

        Returns:
            False if the audit store rejected the event, True otherwise.
        """
        emit = getattr(self._logger, _LEVELS[event.severity])
        emit("audit_event", **event.to_log_dict())

        if self._storage is None:
            return True

        try:
            return await self._storage.append_event(event)
        except Exception as e:
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def log_settlement_computed(
        self,
        trip_id: UUID,
        expense_count: int,
        settlement_count: int,
        total_spent: Decimal,
        total_outstanding: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log a successful settlement computation."""
        event = AuditEventBuilder.settlement_computed(
            trip_id=trip_id,
            expense_count=expense_count,
            settlement_count=settlement_count,
            total_spent=str(total_spent),
            total_outstanding=str(total_outstanding),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_settlement_failed(
        self,
        trip_id: UUID,
        expense_id: Optional[UUID],
        reason: str,
        correlation_id: UUID,
    ) -> None:
        """Log a settlement rejected because of an invalid expense."""
        event = AuditEventBuilder.settlement_failed(
            trip_id=trip_id,
            expense_id=expense_id,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_validation_failed(
        self,
        trip_id: UUID,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.expense_validation_failed(
            trip_id=trip_id,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_saved(
        self,
        expense_id: UUID,
        trip_id: Optional[UUID],
        payer: str,
        amount: Decimal,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.expense_saved(
            expense_id=expense_id,
            trip_id=trip_id,
            payer=payer,
            amount=str(amount),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_deleted(
        self,
        expense_id: UUID,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_participant_added(
        self,
        participant_id: UUID,
        trip_id: Optional[UUID],
        name: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.participant_added(
            participant_id=participant_id,
            trip_id=trip_id,
            name=name,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_payment_request_sent(
        self,
        trip_id: Optional[UUID],
        debtor: str,
        creditor: str,
        amount: Decimal,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.payment_request_sent(
            trip_id=trip_id,
            debtor=debtor,
            creditor=creditor,
            amount=str(amount),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_payment_request_failed(
        self,
        trip_id: Optional[UUID],
        debtor: str,
        creditor: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.payment_request_failed(
            trip_id=trip_id,
            debtor=debtor,
            creditor=creditor,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Unexpected failure inside the application."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """A storage or notification backend misbehaved."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """New id shared by all events of one user action (e.g. one settle-up)."""
    return uuid4()
