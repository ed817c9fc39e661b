"""
In-Memory Storage Implementation

Used by tests and for running without Google Sheets configured.
Records are copied on the way in and out so callers can never mutate
what is stored.
"""

from typing import Optional
from uuid import UUID

from tripsplit.models.expense import Expense, Participant, Trip
from tripsplit.models.audit import AuditEvent
from tripsplit.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    TripStorageInterface,
)


class InMemoryTripStorage(TripStorageInterface):
    """Dict-backed trip storage; lives as long as the process."""

    def __init__(self):
        self._trips: dict[UUID, Trip] = {}
        self._participants: list[Participant] = []
        self._expenses: list[Expense] = []

    async def save_trip(self, trip: Trip) -> bool:
        if trip.id in self._trips:
            raise DuplicateError(f"Trip already exists: {trip.id}")
        self._trips[trip.id] = trip.model_copy(deep=True)
        return True

    async def get_trip(self, trip_id: UUID) -> Optional[Trip]:
        trip = self._trips.get(trip_id)
        return trip.model_copy(deep=True) if trip else None

    async def save_participant(self, participant: Participant) -> bool:
        if participant.trip_id is not None and participant.trip_id not in self._trips:
            raise NotFoundError(f"Trip not found: {participant.trip_id}")
        for existing in self._participants:
            if existing.trip_id == participant.trip_id and existing.name == participant.name:
                raise DuplicateError(
                    f"Participant '{participant.name}' already exists in trip {participant.trip_id}"
                )
        self._participants.append(participant.model_copy(deep=True))
        return True

    async def list_participants(self, trip_id: UUID) -> list[Participant]:
        return [
            p.model_copy(deep=True)
            for p in self._participants
            if p.trip_id == trip_id
        ]

    async def save_expense(self, expense: Expense) -> bool:
        if expense.trip_id is not None and expense.trip_id not in self._trips:
            raise NotFoundError(f"Trip not found: {expense.trip_id}")
        self._expenses.append(expense.model_copy(deep=True))
        return True

    async def list_expenses(self, trip_id: UUID) -> list[Expense]:
        expenses = [
            e.model_copy(deep=True)
            for e in self._expenses
            if e.trip_id == trip_id
        ]
        expenses.sort(key=lambda e: e.created_at, reverse=True)
        return expenses

    async def delete_expense(self, expense_id: UUID) -> bool:
        for idx, expense in enumerate(self._expenses):
            if expense.id == expense_id:
                del self._expenses[idx]
                return True
        return False


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only in-memory audit log."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
