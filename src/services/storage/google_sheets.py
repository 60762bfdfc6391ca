"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a remote backend because:
1. The service member (or a spouse back home) can see the saved state
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- One API round-trip per save (fine: saves follow user actions)
- A cell holds at most 50,000 characters, so the state JSON is split
  across as many trailing cells as it needs
- No transactions: the row for a key is overwritten in place

The implementation follows the abstract interface, so the lifecycle
manager never knows which backend it is talking to.
"""

import json
from datetime import datetime
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.config import GoogleSheetsSettings, get_settings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.models.state import EngineState
from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    CorruptStateError,
    StateStorageInterface,
    StorageError,
)


# Fixed columns of the state sheet; the JSON chunks follow them
STATE_COLUMNS = [
    "state_key",
    "saved_at",
    "schema_version",
    "chunk_count",
]

# Stay under the 50,000 character cell limit
CELL_CHUNK_SIZE = 45000

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
]


def split_payload(payload: str, size: int = CELL_CHUNK_SIZE) -> list[str]:
    """Split a string into cell-sized pieces (at least one, possibly empty)."""
    return [payload[i:i + size] for i in range(0, len(payload), size)] or [""]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        retry=retry_if_exception_type(ConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, headers: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(headers))
            sheet.append_row(headers)
        return sheet

    def get_state_sheet(self) -> gspread.Worksheet:
        """Get or create the engine state worksheet."""
        return self._get_or_create(self._settings.state_sheet_name, STATE_COLUMNS, rows=100)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the audit worksheet."""
        return self._get_or_create(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


class GoogleSheetsStateStorage(StateStorageInterface):
    """
    Engine state stored as one row per state key.

    Row layout: state_key, saved_at, schema_version, chunk_count, then
    chunk_count cells of JSON that concatenate to the full state.
    """

    def __init__(
        self,
        state_key: str,
        client: Optional[GoogleSheetsClient] = None,
    ):
        self._state_key = state_key
        self._client = client or GoogleSheetsClient()

    def _state_to_row(self, state: EngineState) -> list:
        chunks = split_payload(state.to_json())
        return [
            self._state_key,
            state.saved_at.isoformat(),
            str(state.schema_version),
            str(len(chunks)),
            *chunks,
        ]

    def _row_to_state(self, row: list) -> EngineState:
        try:
            chunk_count = int(row[3])
            payload = "".join(row[4:4 + chunk_count])
            return EngineState.from_json(payload)
        except (IndexError, ValueError, ValidationError) as e:
            raise CorruptStateError(f"Stored state for {self._state_key!r} is unreadable: {e}")

    def _find_row(self, all_rows: list[list]) -> Optional[int]:
        """1-based sheet row index for our key, skipping the header."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == self._state_key:
                return idx
        return None

    @retry(
        retry=retry_if_exception_type(gspread.exceptions.APIError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _fetch_rows(self) -> list[list]:
        return self._client.get_state_sheet().get_all_values()

    def load(self) -> Optional[EngineState]:
        """Load the state row for our key."""
        try:
            all_rows = self._fetch_rows()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read state sheet: {e}")

        idx = self._find_row(all_rows)
        if idx is None:
            return None
        return self._row_to_state(all_rows[idx - 1])

    @retry(
        retry=retry_if_exception_type(gspread.exceptions.APIError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write_row(self, row: list) -> None:
        sheet = self._client.get_state_sheet()
        idx = self._find_row(sheet.get_all_values())
        if idx is None:
            sheet.append_row(row, value_input_option="RAW")
        else:
            sheet.update(values=[row], range_name=f"A{idx}", value_input_option="RAW")

    def save(self, state: EngineState) -> None:
        """Overwrite (or create) the state row for our key."""
        try:
            self._write_row(self._state_to_row(state))
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save state: {e}")

    def clear(self) -> None:
        try:
            sheet = self._client.get_state_sheet()
            idx = self._find_row(sheet.get_all_values())
            if idx is not None:
                sheet.delete_rows(idx)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to clear state: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit storage.

    Append-only log. We never update or delete audit events.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _event_to_row(self, event: AuditEvent) -> list:
        return [
            str(event.event_id),
            event.timestamp.isoformat(),
            event.event_type.value,
            event.severity.value,
            event.entity_type or "",
            str(event.entity_id) if event.entity_id else "",
            str(event.correlation_id) if event.correlation_id else "",
            event.description,
            json.dumps(event.details, default=str),
            event.error_message or "",
        ]

    def _row_to_event(self, row: list) -> AuditEvent:
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3, "info")),
            entity_type=safe_get(4) or None,
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
        )

    def _all_events(self) -> list[AuditEvent]:
        try:
            all_rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, ValidationError):
                continue  # Skip malformed rows
        return events

    @retry(
        retry=retry_if_exception_type(gspread.exceptions.APIError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        sheet = self._client.get_audit_sheet()
        sheet.append_row(self._event_to_row(event), value_input_option="RAW")
        return True

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = self._all_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
