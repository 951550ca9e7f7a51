"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the remote document store because:
1. Users can view their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

Each user owns one row in the Users worksheet:
    user_id | updated_at | state_json

The budget document is kept whole as camelCase JSON, so a row always
holds a complete, self-consistent snapshot.

TRADEOFFS:
- No transactions: the last writer wins
- A single cell holds at most 50k characters (years of daily logs fit)
"""

import json
from datetime import datetime
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from zenbudget.config import get_settings
from zenbudget.models.audit import AuditEvent, AuditEventType, AuditSeverity
from zenbudget.models.budget import BudgetState
from zenbudget.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    StateStorageInterface,
    StorageError,
)
from zenbudget.state.mutations import merge_remote


# Column mappings for Users sheet
USER_COLUMNS = [
    "user_id",
    "updated_at",
    "state_json",
]

# Column mappings for Audit sheet (matches AuditEvent.to_sheets_row)
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
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
                raise ConnectionError(
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
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_users_sheet(self) -> gspread.Worksheet:
        """Get or create the Users worksheet."""
        return self._get_or_create(self._settings.users_sheet_name, USER_COLUMNS, 100)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        # More rows for audit log
        return self._get_or_create(self._settings.audit_sheet_name, AUDIT_COLUMNS, 5000)


def _safe_get(row: list, index: int, default: str = "") -> str:
    # Handle missing columns gracefully
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsStateStorage(StateStorageInterface):
    """
    Google Sheets implementation of budget document storage.

    One row per user; the document is JSON-serialized into one cell.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, sheet: gspread.Worksheet, user_id: str) -> tuple[Optional[int], Optional[list]]:
        """Return the 1-based sheet row index and values for a user."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
            if row and row[0] == user_id:
                return idx, row
        return None, None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def load_state(self, user_id: str) -> Optional[BudgetState]:
        """Read the user's row and merge it over the initial state."""
        try:
            sheet = self._client.get_users_sheet()
            _, row = self._find_row(sheet, user_id)
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load budget document: {e}")

        if row is None:
            return None

        payload = _safe_get(row, 2)
        if not payload:
            return merge_remote({})
        try:
            return merge_remote(json.loads(payload))
        except ValueError as e:
            # Includes pydantic ValidationError and JSONDecodeError
            raise StorageError(f"Stored budget document for {user_id} is invalid: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_state(self, user_id: str, state: BudgetState) -> bool:
        """Overwrite the user's row, appending it if this is a new user."""
        try:
            sheet = self._client.get_users_sheet()
            row = [
                user_id,
                datetime.utcnow().isoformat(),
                json.dumps(state.to_document(), ensure_ascii=False),
            ]
            idx, _ = self._find_row(sheet, user_id)
            if idx is None:
                sheet.append_row(row, value_input_option="RAW")
            else:
                sheet.update(
                    range_name=f"A{idx}:C{idx}",
                    values=[row],
                    value_input_option="RAW",
                )
            return True
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save budget document: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            user_id=_safe_get(row, 4) or None,
            entity_type=_safe_get(row, 5) or None,
            entity_id=_safe_get(row, 6) or None,
            correlation_id=UUID(_safe_get(row, 7)) if _safe_get(row, 7) else None,
            description=_safe_get(row, 8),
            details=json.loads(_safe_get(row, 9)) if _safe_get(row, 9) else {},
            error_message=_safe_get(row, 10) or None,
            is_user_action=_safe_get(row, 11).lower() == "true",
        )

    def _read_events(self, keep) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0] or not keep(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError):
                continue  # Skip malformed rows
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        wanted = str(correlation_id)
        events = self._read_events(lambda row: _safe_get(row, 7) == wanted)
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_for_user(
        self,
        user_id: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events for a user."""
        events = self._read_events(lambda row: _safe_get(row, 4) == user_id)
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
