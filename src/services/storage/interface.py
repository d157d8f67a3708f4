"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the import/export flows decoupled from the storage backend

The interface is intentionally simple - just the operations the phone
book needs.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from src.models.audit import AuditEvent
from src.models.contact import ContactRecord


def contact_matches(contact: ContactRecord, search: Optional[str]) -> bool:
    """
    Phone book search rule shared by all backends.

    Name, organization and email match case-insensitively; phone numbers
    match by plain substring.
    """
    if not search:
        return True
    needle = search.lower()
    if needle in contact.formatted_name.lower():
        return True
    if contact.organization and needle in contact.organization.lower():
        return True
    if any(search in tel.value for tel in contact.telephones):
        return True
    return any(needle in email.value.lower() for email in contact.emails)


def sort_contacts(contacts: list[ContactRecord]) -> list[ContactRecord]:
    """Sort by formatted name, case-insensitively."""
    return sorted(contacts, key=lambda c: c.formatted_name.casefold())


class ContactStorageInterface(ABC):
    """
    Abstract interface for contact storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def save_contact(self, contact: ContactRecord) -> bool:
        """
        Insert or replace a contact, keyed by its id.

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_contact_by_id(self, contact_id: UUID) -> Optional[ContactRecord]:
        """
        Retrieve a contact by its ID.

        Returns:
            The contact if found, None otherwise
        """
        pass

    @abstractmethod
    async def delete_contact(self, contact_id: UUID) -> bool:
        """
        Delete a contact by ID.

        Returns:
            True if deleted, False if no such contact existed
        """
        pass

    @abstractmethod
    async def list_contacts(
        self,
        search: Optional[str] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> list[ContactRecord]:
        """
        List contacts sorted by formatted name.

        Args:
            search: Filter by name, organization, phone or email (partial match)
            limit: Maximum number of results
            offset: Number of results to skip
        """
        pass

    @abstractmethod
    async def existing_names(self) -> set[str]:
        """Formatted names of every stored contact (used for import dedupe)."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
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
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
