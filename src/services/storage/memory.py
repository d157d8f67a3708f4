"""
In-Memory Storage

Used by the test suite and as the fallback when Google Sheets is not
configured. Contacts are copied on the way in and out so callers can never
mutate stored state by accident.
"""

from typing import Optional
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.contact import ContactRecord
from src.services.storage.interface import (
    AuditStorageInterface,
    ContactStorageInterface,
    contact_matches,
    sort_contacts,
)


class InMemoryContactStorage(ContactStorageInterface):
    """Dict-backed contact storage keyed by contact id."""

    def __init__(self, contacts: Optional[list[ContactRecord]] = None):
        self._contacts: dict[UUID, ContactRecord] = {}
        for contact in contacts or []:
            self._contacts[contact.id] = contact.model_copy(deep=True)

    async def save_contact(self, contact: ContactRecord) -> bool:
        self._contacts[contact.id] = contact.model_copy(deep=True)
        return True

    async def get_contact_by_id(self, contact_id: UUID) -> Optional[ContactRecord]:
        contact = self._contacts.get(contact_id)
        return contact.model_copy(deep=True) if contact else None

    async def delete_contact(self, contact_id: UUID) -> bool:
        return self._contacts.pop(contact_id, None) is not None

    async def list_contacts(
        self,
        search: Optional[str] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> list[ContactRecord]:
        matches = [
            contact.model_copy(deep=True)
            for contact in self._contacts.values()
            if contact_matches(contact, search)
        ]
        return sort_contacts(matches)[offset:offset + limit]

    async def existing_names(self) -> set[str]:
        return {contact.formatted_name for contact in self._contacts.values()}


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
