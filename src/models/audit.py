"""
Audit Models for the Phone Book

Every import, export and edit of the phone book is logged for audit purposes.
This lets the user see when contacts arrived, which file they came from, and
what was skipped along the way.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Import / export
    CONTACTS_IMPORTED = "contacts_imported"
    IMPORT_REJECTED = "import_rejected"
    DUPLICATES_SKIPPED = "duplicates_skipped"
    CONTACTS_EXPORTED = "contacts_exported"

    # Phone book edits
    CONTACT_SAVED = "contact_saved"
    CONTACT_DELETED = "contact_deleted"

    # Photos
    PHOTO_STORED = "photo_stored"
    PHOTO_STORE_FAILED = "photo_store_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'contact', 'vcf_file', 'photo')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one import)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, ensure_ascii=False) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.contacts_imported("phone.vcf", 12, 1, correlation_id)
        event = AuditEventBuilder.contact_deleted(contact_id, "Jane Doe", correlation_id)
    """

    @staticmethod
    def contacts_imported(
        filename: str,
        imported: int,
        dropped_blocks: int,
        correlation_id: UUID
    ) -> AuditEvent:
        severity = AuditSeverity.WARNING if dropped_blocks else AuditSeverity.INFO
        return AuditEvent(
            event_type=AuditEventType.CONTACTS_IMPORTED,
            severity=severity,
            entity_type="vcf_file",
            correlation_id=correlation_id,
            description=f"Imported {imported} contacts from {filename}",
            details={
                "filename": filename,
                "imported": imported,
                "dropped_blocks": dropped_blocks,
            },
            is_user_action=True,
        )

    @staticmethod
    def import_rejected(
        filename: str,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="vcf_file",
            correlation_id=correlation_id,
            description=f"Import of {filename} rejected",
            details={
                "filename": filename,
            },
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def duplicates_skipped(
        filename: str,
        names: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATES_SKIPPED,
            entity_type="vcf_file",
            correlation_id=correlation_id,
            description=f"Skipped {len(names)} contacts already in the phone book",
            details={
                "filename": filename,
                "names": names,
            },
        )

    @staticmethod
    def contacts_exported(
        contact_count: int,
        photos_missing: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTACTS_EXPORTED,
            severity=AuditSeverity.WARNING if photos_missing else AuditSeverity.INFO,
            entity_type="vcf_file",
            correlation_id=correlation_id,
            description=f"Exported {contact_count} contacts",
            details={
                "contact_count": contact_count,
                "photos_missing": photos_missing,
            },
            is_user_action=True,
        )

    @staticmethod
    def contact_saved(
        contact_id: UUID,
        name: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTACT_SAVED,
            entity_type="contact",
            entity_id=contact_id,
            correlation_id=correlation_id,
            description=f"Contact saved: {name}",
            details={
                "name": name,
            },
            is_user_action=True,
        )

    @staticmethod
    def contact_deleted(
        contact_id: UUID,
        name: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONTACT_DELETED,
            entity_type="contact",
            entity_id=contact_id,
            correlation_id=correlation_id,
            description=f"Contact deleted: {name}",
            details={
                "name": name,
            },
            is_user_action=True,
        )

    @staticmethod
    def photo_stored(
        contact_id: UUID,
        reference: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PHOTO_STORED,
            entity_type="photo",
            entity_id=contact_id,
            correlation_id=correlation_id,
            description="Contact photo moved to photo storage",
            details={
                "reference": reference,
            },
        )

    @staticmethod
    def photo_store_failed(
        contact_id: UUID,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PHOTO_STORE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="photo",
            entity_id=contact_id,
            correlation_id=correlation_id,
            description="Contact photo kept inline: photo storage failed",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
