"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the remote table store because:
1. The user can view and fix their phone book directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (a personal phone book is small)
- No transactions (we handle this with careful ordering)
- Limited query capabilities (we filter in Python)

Photos are never stored here: the contact row only carries the photo
store reference. Inline data URIs are still accepted but can hit the
50k character cell limit, so the flows move them out first.
"""

import json
from datetime import datetime
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from src.config import get_settings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.models.contact import ContactRecord, TypedEntry
from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ContactStorageInterface,
    StorageError,
    contact_matches,
    sort_contacts,
)


# Column mappings for Contacts sheet
CONTACT_COLUMNS = [
    "id",
    "formatted_name",
    "organization",
    "title",
    "note",
    "telephones_json",
    "emails_json",
    "photo",
]

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

    def get_contacts_sheet(self) -> gspread.Worksheet:
        """Get or create the Contacts worksheet."""
        return self._get_or_create_sheet(
            self._settings.contacts_sheet_name,
            CONTACT_COLUMNS,
            rows=2000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


def _entries_to_json(entries: list[TypedEntry]) -> str:
    return json.dumps([entry.model_dump() for entry in entries], ensure_ascii=False)


def _entries_from_json(raw: str) -> list[TypedEntry]:
    if not raw:
        return []
    return [TypedEntry(**item) for item in json.loads(raw)]


class GoogleSheetsContactStorage(ContactStorageInterface):
    """
    Google Sheets implementation of contact storage.

    Contacts are stored as rows in a worksheet with one contact per row.
    Phone numbers and emails are JSON-serialized to keep their order and kind.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _contact_to_row(self, contact: ContactRecord) -> list:
        """Convert a ContactRecord to a spreadsheet row."""
        return [
            str(contact.id),
            contact.formatted_name,
            contact.organization or "",
            contact.title or "",
            contact.note or "",
            _entries_to_json(contact.telephones),
            _entries_to_json(contact.emails),
            contact.photo or "",
        ]

    def _row_to_contact(self, row: list) -> ContactRecord:
        """Convert a spreadsheet row to a ContactRecord."""
        # Handle missing columns gracefully
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return ContactRecord(
            id=UUID(safe_get(0)),
            formatted_name=safe_get(1),
            organization=safe_get(2) or None,
            title=safe_get(3) or None,
            note=safe_get(4) or None,
            telephones=_entries_from_json(safe_get(5)),
            emails=_entries_from_json(safe_get(6)),
            photo=safe_get(7) or None,
        )

    def _find_row_index(self, all_rows: list[list], contact_id: UUID) -> Optional[int]:
        """1-based sheet row index of a contact, header included."""
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is the header
            if row and row[0] == str(contact_id):
                return idx
        return None

    def _read_contacts(self) -> list[ContactRecord]:
        sheet = self._client.get_contacts_sheet()
        contacts = []
        for row in sheet.get_all_values()[1:]:  # Skip header
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                contacts.append(self._row_to_contact(row))
            except Exception:
                continue  # Skip malformed rows
        return contacts

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save_contact(self, contact: ContactRecord) -> bool:
        """Insert or update a contact row."""
        try:
            sheet = self._client.get_contacts_sheet()
            new_row = self._contact_to_row(contact)
            row_index = self._find_row_index(sheet.get_all_values(), contact.id)

            if row_index is None:
                sheet.append_row(new_row, value_input_option="RAW")
            else:
                sheet.update(
                    range_name=f"A{row_index}",
                    values=[new_row],
                    value_input_option="RAW",
                )
            return True
        except Exception as e:
            raise StorageError(f"Failed to save contact: {e}")

    async def get_contact_by_id(self, contact_id: UUID) -> Optional[ContactRecord]:
        """Retrieve a contact by its ID."""
        try:
            sheet = self._client.get_contacts_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == str(contact_id):
                    return self._row_to_contact(row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to get contact: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def delete_contact(self, contact_id: UUID) -> bool:
        """Delete a contact by ID."""
        try:
            sheet = self._client.get_contacts_sheet()
            row_index = self._find_row_index(sheet.get_all_values(), contact_id)
            if row_index is None:
                return False
            sheet.delete_rows(row_index)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete contact: {e}")

    async def list_contacts(
        self,
        search: Optional[str] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> list[ContactRecord]:
        """List contacts with an optional search filter."""
        try:
            contacts = [
                contact for contact in self._read_contacts()
                if contact_matches(contact, search)
            ]
            return sort_contacts(contacts)[offset:offset + limit]
        except Exception as e:
            raise StorageError(f"Failed to list contacts: {e}")

    async def existing_names(self) -> set[str]:
        try:
            return {contact.formatted_name for contact in self._read_contacts()}
        except Exception as e:
            raise StorageError(f"Failed to read contact names: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

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
            entity_id=UUID(safe_get(5)) if safe_get(5) else None,
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
            if row and row[0]:
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
        try:
            events = [
                event for event in self._read_events()
                if event.correlation_id == correlation_id
            ]
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._read_events()
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
