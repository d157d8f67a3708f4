"""
Data Models Package

This package contains all Pydantic models used by the phone book.
All data flowing through the system must conform to these schemas.
"""

from src.models.contact import (
    ContactRecord,
    TypedEntry,
)
from src.models.results import (
    ExportResult,
    ImportResult,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Contact models
    "ContactRecord",
    "TypedEntry",
    # Flow results
    "ExportResult",
    "ImportResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
