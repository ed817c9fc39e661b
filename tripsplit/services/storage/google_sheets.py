"""
Google Sheets Storage

One worksheet per record type. Trip members can open the spreadsheet
and read the raw expense list directly.

LIMITS:
- Not suitable for high-volume data (a trip has tens of expenses)
- No transactions: a failed write can leave a partial row
- Every query reads the whole worksheet and filters in Python

gspread is synchronous, so every sheet call runs in a worker thread.
"""

import asyncio
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from tripsplit.config import GoogleSheetsSettings, get_settings
from tripsplit.models.expense import Expense, ExpenseCategory, Participant, Trip
from tripsplit.models.audit import AuditEvent, AuditEventType, AuditSeverity
from tripsplit.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
    TripStorageInterface,
)


SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

TRIP_COLUMNS = [
    "id",
    "name",
    "currency",
    "location",
    "start_date",
    "end_date",
    "created_at",
]

PARTICIPANT_COLUMNS = [
    "id",
    "trip_id",
    "name",
    "email",
    "created_at",
]

EXPENSE_COLUMNS = [
    "id",
    "trip_id",
    "title",
    "amount",
    "payer",
    "split_between_json",
    "category",
    "date",
    "description",
    "created_at",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _cell(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Hands out the worksheets of the trip spreadsheet.

    The spreadsheet is opened on first use. A worksheet that does not
    exist yet is created with its header row.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._settings = settings or get_settings().google_sheets
        self._spreadsheet: Optional[gspread.Spreadsheet] = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _open(self) -> gspread.Spreadsheet:
        path = self._settings.credentials_path
        try:
            credentials = Credentials.from_service_account_file(path, scopes=SCOPES)
            return gspread.authorize(credentials).open_by_key(self._settings.spreadsheet_id)
        except FileNotFoundError:
            raise ConnectionError(f"No service account file at {path}")
        except gspread.SpreadsheetNotFound:
            raise ConnectionError(f"No spreadsheet with id {self._settings.spreadsheet_id}")
        except Exception as e:
            raise ConnectionError(f"Could not open the trip spreadsheet: {e}")

    def _worksheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        if self._spreadsheet is None:
            self._spreadsheet = self._open()
        try:
            return self._spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = self._spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
            return sheet

    def get_trips_sheet(self) -> gspread.Worksheet:
        return self._worksheet(self._settings.trips_sheet_name, TRIP_COLUMNS)

    def get_participants_sheet(self) -> gspread.Worksheet:
        return self._worksheet(
            self._settings.participants_sheet_name, PARTICIPANT_COLUMNS
        )

    def get_expenses_sheet(self) -> gspread.Worksheet:
        return self._worksheet(
            self._settings.expenses_sheet_name, EXPENSE_COLUMNS
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self._worksheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsTripStorage(TripStorageInterface):
    """
    Google Sheets implementation of trip storage.

    One worksheet per record type, one record per row.
    The split list is JSON-serialized into a single cell.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -- row conversion -------------------------------------------------------

    @staticmethod
    def _trip_to_row(trip: Trip) -> list:
        return [
            str(trip.id),
            trip.name,
            trip.currency,
            trip.location or "",
            trip.start_date.isoformat() if trip.start_date else "",
            trip.end_date.isoformat() if trip.end_date else "",
            trip.created_at.isoformat(),
        ]

    @staticmethod
    def _row_to_trip(row: list) -> Trip:
        return Trip(
            id=UUID(_cell(row, 0)),
            name=_cell(row, 1),
            currency=_cell(row, 2, "USD"),
            location=_cell(row, 3) or None,
            start_date=date.fromisoformat(_cell(row, 4)) if _cell(row, 4) else None,
            end_date=date.fromisoformat(_cell(row, 5)) if _cell(row, 5) else None,
            created_at=datetime.fromisoformat(_cell(row, 6)),
        )

    @staticmethod
    def _participant_to_row(participant: Participant) -> list:
        return [
            str(participant.id),
            str(participant.trip_id) if participant.trip_id else "",
            participant.name,
            participant.email or "",
            participant.created_at.isoformat(),
        ]

    @staticmethod
    def _row_to_participant(row: list) -> Participant:
        return Participant(
            id=UUID(_cell(row, 0)),
            trip_id=UUID(_cell(row, 1)) if _cell(row, 1) else None,
            name=_cell(row, 2),
            email=_cell(row, 3) or None,
            created_at=datetime.fromisoformat(_cell(row, 4)),
        )

    @staticmethod
    def _expense_to_row(expense: Expense) -> list:
        return [
            str(expense.id),
            str(expense.trip_id) if expense.trip_id else "",
            expense.title,
            str(expense.amount),
            expense.payer,
            json.dumps(expense.split_between),
            expense.category.value,
            expense.date.isoformat(),
            expense.description or "",
            expense.created_at.isoformat(),
        ]

    @staticmethod
    def _row_to_expense(row: list) -> Expense:
        return Expense(
            id=UUID(_cell(row, 0)),
            trip_id=UUID(_cell(row, 1)) if _cell(row, 1) else None,
            title=_cell(row, 2),
            amount=Decimal(_cell(row, 3, "0")),
            payer=_cell(row, 4),
            split_between=json.loads(_cell(row, 5, "[]")),
            category=ExpenseCategory(_cell(row, 6, ExpenseCategory.OTHER.value)),
            date=date.fromisoformat(_cell(row, 7)),
            description=_cell(row, 8) or None,
            created_at=datetime.fromisoformat(_cell(row, 9)),
        )

    # -- sheet access ---------------------------------------------------------

    @staticmethod
    def _data_rows(sheet: gspread.Worksheet) -> list[list]:
        """All non-empty rows, excluding the header."""
        return [row for row in sheet.get_all_values()[1:] if row and row[0]]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append(self, sheet: gspread.Worksheet, row: list) -> None:
        sheet.append_row(row, value_input_option="RAW")

    # -- interface ------------------------------------------------------------

    async def save_trip(self, trip: Trip) -> bool:
        """Save a trip to Google Sheets."""
        def _save() -> bool:
            sheet = self._client.get_trips_sheet()
            if any(row[0] == str(trip.id) for row in self._data_rows(sheet)):
                raise DuplicateError(f"Trip already exists: {trip.id}")
            self._append(sheet, self._trip_to_row(trip))
            return True

        try:
            return await asyncio.to_thread(_save)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save trip: {e}")

    async def get_trip(self, trip_id: UUID) -> Optional[Trip]:
        """Retrieve a trip by its ID."""
        def _get() -> Optional[Trip]:
            sheet = self._client.get_trips_sheet()
            for row in self._data_rows(sheet):
                if row[0] == str(trip_id):
                    return self._row_to_trip(row)
            return None

        try:
            return await asyncio.to_thread(_get)
        except Exception as e:
            raise StorageError(f"Failed to get trip: {e}")

    async def save_participant(self, participant: Participant) -> bool:
        """Append a participant, refusing duplicate names within a trip."""
        trip_key = str(participant.trip_id) if participant.trip_id else ""

        def _save() -> bool:
            sheet = self._client.get_participants_sheet()
            for row in self._data_rows(sheet):
                if _cell(row, 1) == trip_key and _cell(row, 2) == participant.name:
                    raise DuplicateError(
                        f"Participant '{participant.name}' already exists in trip {trip_key}"
                    )
            self._append(sheet, self._participant_to_row(participant))
            return True

        try:
            return await asyncio.to_thread(_save)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save participant: {e}")

    async def list_participants(self, trip_id: UUID) -> list[Participant]:
        """Participants in the order they were added."""
        def _list() -> list[Participant]:
            sheet = self._client.get_participants_sheet()
            participants = []
            for row in self._data_rows(sheet):
                if _cell(row, 1) != str(trip_id):
                    continue
                try:
                    participants.append(self._row_to_participant(row))
                except Exception:
                    continue  # Skip malformed rows
            participants.sort(key=lambda p: p.created_at)
            return participants

        try:
            return await asyncio.to_thread(_list)
        except Exception as e:
            raise StorageError(f"Failed to list participants: {e}")

    async def save_expense(self, expense: Expense) -> bool:
        """Save an expense to Google Sheets."""
        def _save() -> bool:
            if expense.trip_id is not None:
                trips = self._data_rows(self._client.get_trips_sheet())
                if all(row[0] != str(expense.trip_id) for row in trips):
                    raise NotFoundError(f"Trip not found: {expense.trip_id}")
            sheet = self._client.get_expenses_sheet()
            self._append(sheet, self._expense_to_row(expense))
            return True

        try:
            return await asyncio.to_thread(_save)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}")

    async def list_expenses(self, trip_id: UUID) -> list[Expense]:
        """Expenses for a trip, newest first."""
        def _list() -> list[Expense]:
            sheet = self._client.get_expenses_sheet()
            expenses = []
            for row in self._data_rows(sheet):
                if _cell(row, 1) != str(trip_id):
                    continue
                try:
                    expenses.append(self._row_to_expense(row))
                except Exception:
                    continue  # Skip malformed rows
            expenses.sort(key=lambda e: e.created_at, reverse=True)
            return expenses

        try:
            return await asyncio.to_thread(_list)
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}")

    async def delete_expense(self, expense_id: UUID) -> bool:
        """Delete an expense by ID."""
        def _delete() -> bool:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()
            for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
                if row and row[0] == str(expense_id):
                    sheet.delete_rows(idx)
                    return True
            return False

        try:
            return await asyncio.to_thread(_delete)
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Audit trail kept in its own worksheet.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _row_to_event(row: list) -> AuditEvent:
        """Inverse of AuditEvent.to_sheets_row."""
        return AuditEvent(
            event_id=UUID(_cell(row, 0)),
            timestamp=datetime.fromisoformat(_cell(row, 1)),
            event_type=AuditEventType(_cell(row, 2)),
            severity=AuditSeverity(_cell(row, 3)),
            entity_type=_cell(row, 4) or None,
            entity_id=UUID(_cell(row, 5)) if _cell(row, 5) else None,
            correlation_id=UUID(_cell(row, 6)) if _cell(row, 6) else None,
            description=_cell(row, 7),
            details=json.loads(_cell(row, 8)) if _cell(row, 8) else {},
            error_message=_cell(row, 9) or None,
            is_user_action=_cell(row, 10).lower() == "true",
        )

    def _load_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception:
                continue
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append_row(self, row: list) -> None:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(row, value_input_option="RAW")

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            await asyncio.to_thread(self._append_row, event.to_sheets_row())
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Events of one user action, oldest first."""
        try:
            events = await asyncio.to_thread(self._load_events)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events = [e for e in events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            events = await asyncio.to_thread(self._load_events)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events = [
            e for e in events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        try:
            events = await asyncio.to_thread(self._load_events)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
