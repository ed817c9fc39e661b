"""Services package."""

from tripsplit.services.notifications import (
    EmailPaymentRequestSender,
    HttpPaymentRequestSender,
    NotificationDeliveryError,
    NotificationError,
    NotificationPort,
)
from tripsplit.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTripStorage,
    InMemoryAuditStorage,
    InMemoryTripStorage,
    NotFoundError,
    StorageError,
    TripStorageInterface,
)

__all__ = [
    # Notification services
    "EmailPaymentRequestSender",
    "HttpPaymentRequestSender",
    "NotificationDeliveryError",
    "NotificationError",
    "NotificationPort",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTripStorage",
    "InMemoryAuditStorage",
    "InMemoryTripStorage",
    "NotFoundError",
    "StorageError",
    "TripStorageInterface",
]
