"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a storage backend because:
1. The user can see (and back up) their data from any browser
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- A cell holds at most 50,000 characters, so a blob is split across the
  columns of its row
- No transactions (last write wins, which matches the single-writer store)
- Every call is a network round trip, so reads and writes are retried

Layout of the data worksheet: one row per key.
    column A: key
    column B: updated_at (ISO timestamp, informational)
    columns C..: consecutive chunks of the blob
"""

import json
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import get_settings
from finance_tracker.config.settings import GoogleSheetsSettings
from finance_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    BlobStoreInterface,
    BlobTooLargeError,
    ConnectionError,
    StorageError,
)


logger = structlog.get_logger(__name__)

# Google Sheets hard limit per cell
CELL_CHAR_LIMIT = 50000
MAX_CHUNKS = 20
DATA_COLUMNS = ["key", "updated_at"] + [f"chunk_{i}" for i in range(1, MAX_CHUNKS + 1)]

# Column mappings for Audit sheet
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

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
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

    def get_data_sheet(self) -> gspread.Worksheet:
        """Get or create the key/value worksheet."""
        return self._get_or_create_sheet(
            self._settings.data_sheet_name, DATA_COLUMNS, rows=100
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def split_into_chunks(value: str, size: int = CELL_CHAR_LIMIT) -> list[str]:
    """Split a blob into cell-sized pieces. An empty blob is one empty chunk."""
    if not value:
        return [""]
    return [value[i:i + size] for i in range(0, len(value), size)]


class GoogleSheetsBlobStore(BlobStoreInterface):
    """
    Google Sheets implementation of the blob store.

    Blobs are stored one key per row, chunked across columns C onwards.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _find_row(all_rows: list[list[str]], key: str) -> Optional[int]:
        """1-based sheet row index of a key (row 1 is the header)."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == key:
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def get(self, key: str) -> Optional[str]:
        """Read and reassemble the blob stored under a key."""
        try:
            sheet = self._client.get_data_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == key:
                    return "".join(row[2:])
            return None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read '{key}': {e}")

    def set(self, key: str, value: str) -> None:
        """Write a blob, replacing the previous row for the key."""
        chunks = split_into_chunks(value)
        if len(chunks) > MAX_CHUNKS:
            raise BlobTooLargeError(
                f"Blob '{key}' is {len(value)} characters; "
                f"the sheet holds at most {CELL_CHAR_LIMIT * MAX_CHUNKS}"
            )
        row = [key, datetime.now(timezone.utc).isoformat()] + chunks
        # Pad so that chunks left over from a longer previous value are cleared
        row += [""] * (len(DATA_COLUMNS) - len(row))
        self._write_row(key, row)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write_row(self, key: str, row: list[str]) -> None:
        try:
            sheet = self._client.get_data_sheet()
            idx = self._find_row(sheet.get_all_values(), key)
            if idx is None:
                sheet.append_row(row, value_input_option="RAW")
            else:
                sheet.update(
                    range_name=f"A{idx}",
                    values=[row],
                    value_input_option="RAW",
                )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write '{key}': {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def remove(self, key: str) -> None:
        try:
            sheet = self._client.get_data_sheet()
            idx = self._find_row(sheet.get_all_values(), key)
            if idx is not None:
                sheet.delete_rows(idx)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to remove '{key}': {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _event_to_row(self, event: AuditEvent) -> list:
        """Convert an AuditEvent to a spreadsheet row."""
        return [
            str(event.event_id),
            event.timestamp.isoformat(),
            event.event_type.value,
            event.severity.value,
            event.entity_type or "",
            event.entity_id or "",
            str(event.correlation_id) if event.correlation_id else "",
            event.description,
            json.dumps(event.details) if event.details else "",
            event.error_message or "",
            str(event.is_user_action),
        ]

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError) as e:
                logger.warning("audit_row_unreadable", error=str(e), event_id=row[0])
        return events

    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Failures are reported, never raised."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(self._event_to_row(event), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.warning(
                "audit_append_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = [
                e for e in self._read_events()
                if e.correlation_id == correlation_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._read_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
