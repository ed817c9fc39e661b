"""Payment-request notification senders."""

from tripsplit.services.notifications.interface import (
    NotificationDeliveryError,
    NotificationError,
    NotificationPort,
)
from tripsplit.services.notifications.http_sender import HttpPaymentRequestSender
from tripsplit.services.notifications.email_sender import EmailPaymentRequestSender

__all__ = [
    "EmailPaymentRequestSender",
    "HttpPaymentRequestSender",
    "NotificationDeliveryError",
    "NotificationError",
    "NotificationPort",
]
