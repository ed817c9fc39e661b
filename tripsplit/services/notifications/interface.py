"""
Notification Port

A notification sender delivers one payment request (one settlement
edge) to the debtor. It is an external collaborator: whatever it
returns, the computed balances and settlements stay as they are.

Senders may raise NotificationError; the payment-request flow turns
that into an advisory NotificationResult for the caller.
"""

from abc import ABC, abstractmethod

from tripsplit.models.expense import NotificationResult, PaymentRequest


class NotificationPort(ABC):
    """Delivers payment-request reminders."""

    #: Name used in audit events and logs
    service_name: str = "notification"

    @abstractmethod
    async def send_payment_request(self, request: PaymentRequest) -> NotificationResult:
        """
        Ask for a reminder to be delivered to request.debtor_name.

        Returns:
            NotificationResult(success=True) when the service accepted it,
            or success=False with the service's error message.

        Raises:
            NotificationDeliveryError: If the service could not be reached
        """
        pass


class NotificationError(Exception):
    """Base exception for notification delivery."""
    pass


class NotificationDeliveryError(NotificationError):
    """The notification service could not be reached or answered garbage."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(message)
