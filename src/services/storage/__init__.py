"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the remote backend; the in-memory backend serves tests and
offline use.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ContactStorageInterface,
    NotFoundError,
    StorageError,
    contact_matches,
    sort_contacts,
)
from src.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsContactStorage,
)
from src.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryContactStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ContactStorageInterface",
    "contact_matches",
    "sort_contacts",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsContactStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryContactStorage",
]
