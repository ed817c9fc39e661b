"""
Abstract Storage Interface

Trips, participants and expenses go through TripStorageInterface; audit
events through AuditStorageInterface. Google Sheets and in-memory
backends implement both, and nothing above this layer knows which one
is in use.

The store only supplies and persists records. Balances and settlements
are never stored; they are recomputed from these records on demand.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from tripsplit.models.expense import Expense, Participant, Trip
from tripsplit.models.audit import AuditEvent


class TripStorageInterface(ABC):
    """
    Abstract interface for trip, participant and expense storage.

    Implementations raise the StorageError family below and nothing
    backend-specific.
    """

    @abstractmethod
    async def save_trip(self, trip: Trip) -> bool:
        """
        Save a new trip.

        Raises:
            DuplicateError: If a trip with the same id exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_trip(self, trip_id: UUID) -> Optional[Trip]:
        """Retrieve a trip by id, or None."""
        pass

    @abstractmethod
    async def save_participant(self, participant: Participant) -> bool:
        """
        Add a participant to a trip.

        Raises:
            DuplicateError: If the trip already has a participant
                            with the same display name
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def list_participants(self, trip_id: UUID) -> list[Participant]:
        """
        List a trip's participants in the order they were added.

        This order becomes the roster order the settlement plan follows.
        """
        pass

    @abstractmethod
    async def save_expense(self, expense: Expense) -> bool:
        """
        Save an expense.

        Raises:
            NotFoundError: If the expense's trip doesn't exist
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def list_expenses(self, trip_id: UUID) -> list[Expense]:
        """List a trip's expenses, newest first."""
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> bool:
        """
        Delete an expense by id.

        Returns:
            True if deleted, False if it did not exist
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Events are only ever appended.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a specific entity, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Any failure reading or writing records."""
    pass


class NotFoundError(StorageError):
    """The requested record does not exist."""
    pass


class DuplicateError(StorageError):
    """A record with the same identity already exists."""
    pass


class ConnectionError(StorageError):
    """The backend could not be reached or authorized."""
    pass
