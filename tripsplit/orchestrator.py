"""
Main Orchestrator for TripSplit

This module ties together all the components and defines the
end-to-end flows for:
1. Settlement (trip records → balances → settlement plan → summary)
2. Expense entry (draft → validate → save)
3. Payment requests (settlement edge → reminder to the debtor)

DESIGN DECISION: The orchestrator enforces the boundaries:
- The settlement core never touches storage or the network
- A payment request can never change a computed plan
- Every step is audited
"""

from typing import Optional
from uuid import UUID

import structlog

from tripsplit.audit import AuditLogger, create_correlation_id
from tripsplit.models.expense import (
    Expense,
    ExpenseDraft,
    NotificationResult,
    Participant,
    PaymentRequest,
    SettlementEdge,
    SettlementSummary,
    Trip,
    ValidationResult,
)
from tripsplit.services.notifications import NotificationError, NotificationPort
from tripsplit.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTripStorage,
    InMemoryAuditStorage,
    InMemoryTripStorage,
    NotFoundError,
    TripStorageInterface,
)
from tripsplit.settlement import InvalidExpense, SettlementFacade
from tripsplit.validation import ExpenseValidator


logger = structlog.get_logger(__name__)


class SettlementFlow:
    """
    Computes the balances screen for a trip.

    Flow:
    1. Load trip, roster and expenses from storage
    2. Aggregate balances and plan settlements (pure)
    3. Audit the outcome
    """

    def __init__(
        self,
        trip_storage: TripStorageInterface,
        facade: Optional[SettlementFacade] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = trip_storage
        self._facade = facade or SettlementFacade()
        self._audit_logger = audit_logger

    async def load_trip(self, trip_id: UUID) -> Trip:
        trip = await self._storage.get_trip(trip_id)
        if trip is None:
            raise NotFoundError(f"Trip not found: {trip_id}")
        return trip

    async def compute_trip_settlement(
        self,
        trip_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Trip, SettlementSummary]:
        """
        Compute balances and suggested settlements for a trip.

        Returns:
            (trip, summary)

        Raises:
            NotFoundError: If the trip doesn't exist
            InvalidExpense: If a stored expense cannot be split
        """
        correlation_id = correlation_id or create_correlation_id()

        trip = await self.load_trip(trip_id)
        participants = await self._storage.list_participants(trip_id)
        expenses = await self._storage.list_expenses(trip_id)
        roster = [p.name for p in participants]

        try:
            summary = self._facade.summarize(expenses, roster)
        except InvalidExpense as e:
            if self._audit_logger:
                await self._audit_logger.log_settlement_failed(
                    trip_id=trip_id,
                    expense_id=e.expense_id,
                    reason=e.reason,
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_settlement_computed(
                trip_id=trip_id,
                expense_count=len(expenses),
                settlement_count=len(summary.settlements),
                total_spent=summary.total_spent,
                total_outstanding=summary.total_outstanding,
                correlation_id=correlation_id,
            )

        return trip, summary


class ExpenseFlow:
    """
    Records new expenses and participants for a trip.

    An expense is only saved once it passes schema validation.
    Semantic warnings are returned for display but do not block.
    """

    def __init__(
        self,
        trip_storage: TripStorageInterface,
        validator: Optional[ExpenseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = trip_storage
        self._validator = validator or ExpenseValidator()
        self._audit_logger = audit_logger

    async def add_participant(
        self,
        trip_id: UUID,
        name: str,
        email: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Participant:
        correlation_id = correlation_id or create_correlation_id()

        participant = Participant(trip_id=trip_id, name=name, email=email)
        await self._storage.save_participant(participant)

        if self._audit_logger:
            await self._audit_logger.log_participant_added(
                participant_id=participant.id,
                trip_id=trip_id,
                name=participant.name,
                correlation_id=correlation_id,
            )
        return participant

    async def add_expense(
        self,
        trip_id: UUID,
        draft: ExpenseDraft,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Expense], ValidationResult, str]:
        """
        Validate and save an expense.

        Returns:
            (expense, validation_result, user_message)
            expense is None when validation failed and nothing was saved.

        Raises:
            NotFoundError: If the trip doesn't exist
        """
        correlation_id = correlation_id or create_correlation_id()

        if await self._storage.get_trip(trip_id) is None:
            raise NotFoundError(f"Trip not found: {trip_id}")

        participants = await self._storage.list_participants(trip_id)
        result = self._validator.validate(draft, [p.name for p in participants])
        message = self._validator.get_user_friendly_summary(result)

        if not result.is_valid:
            if self._audit_logger:
                issues = [
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                ]
                await self._audit_logger.log_expense_validation_failed(
                    trip_id=trip_id,
                    issues=issues,
                    correlation_id=correlation_id,
                )
            return None, result, message

        expense = draft.to_expense(trip_id)
        await self._storage.save_expense(expense)

        if self._audit_logger:
            await self._audit_logger.log_expense_saved(
                expense_id=expense.id,
                trip_id=trip_id,
                payer=expense.payer,
                amount=expense.amount,
                correlation_id=correlation_id,
            )

        return expense, result, message

    async def delete_expense(
        self,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        correlation_id = correlation_id or create_correlation_id()

        deleted = await self._storage.delete_expense(expense_id)
        if deleted and self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense_id,
                correlation_id=correlation_id,
            )
        return deleted


class PaymentRequestFlow:
    """
    Sends a reminder for one settlement edge.

    Delivery is fire-and-forget from the settlement's point of view:
    success, an error answer, or an exception all end up as an
    advisory NotificationResult. Nothing is retried here.
    """

    def __init__(
        self,
        sender: NotificationPort,
        trip_storage: Optional[TripStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._sender = sender
        self._storage = trip_storage
        self._audit_logger = audit_logger

    async def _lookup_email(self, trip: Trip, name: str) -> Optional[str]:
        if self._storage is None:
            return None
        for participant in await self._storage.list_participants(trip.id):
            if participant.name == name:
                return participant.email
        return None

    async def request_payment(
        self,
        trip: Trip,
        edge: SettlementEdge,
        correlation_id: Optional[UUID] = None,
    ) -> NotificationResult:
        """Ask the sender to remind edge.debtor to pay edge.creditor."""
        correlation_id = correlation_id or create_correlation_id()

        try:
            request = PaymentRequest.from_edge(
                edge,
                trip=trip,
                recipient_email=await self._lookup_email(trip, edge.debtor),
            )
            result = await self._sender.send_payment_request(request)
        except NotificationError as e:
            logger.warning(
                "payment_request_error",
                service=self._sender.service_name,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service=self._sender.service_name,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            result = NotificationResult.failed(f"Could not send payment request: {e}")
        except Exception as e:
            logger.exception("payment_request_crashed", service=self._sender.service_name)
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"service": self._sender.service_name},
                    correlation_id=correlation_id,
                )
            result = NotificationResult.failed(f"Could not send payment request: {e}")

        if self._audit_logger:
            if result.success:
                await self._audit_logger.log_payment_request_sent(
                    trip_id=trip.id,
                    debtor=edge.debtor,
                    creditor=edge.creditor,
                    amount=edge.amount,
                    correlation_id=correlation_id,
                )
            else:
                await self._audit_logger.log_payment_request_failed(
                    trip_id=trip.id,
                    debtor=edge.debtor,
                    creditor=edge.creditor,
                    error_message=result.error or "unknown error",
                    correlation_id=correlation_id,
                )

        return result


def create_app_components(
    sender: NotificationPort,
    use_storage: bool = True,
) -> tuple[SettlementFlow, ExpenseFlow, PaymentRequestFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        sender: Notification sender for payment requests.
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False (or leave Sheets unconfigured) to run
                    on in-memory storage.

    Returns:
        (settlement_flow, expense_flow, payment_request_flow, sheets_client)
    """
    sheets_client = None
    trip_storage: TripStorageInterface
    audit_logger: AuditLogger

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            trip_storage = GoogleSheetsTripStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            use_storage = False

    if not use_storage:
        trip_storage = InMemoryTripStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    settlement_flow = SettlementFlow(
        trip_storage=trip_storage,
        audit_logger=audit_logger,
    )
    expense_flow = ExpenseFlow(
        trip_storage=trip_storage,
        audit_logger=audit_logger,
    )
    payment_request_flow = PaymentRequestFlow(
        sender=sender,
        trip_storage=trip_storage,
        audit_logger=audit_logger,
    )

    return settlement_flow, expense_flow, payment_request_flow, sheets_client
