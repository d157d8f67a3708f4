"""
Audit Logger

DESIGN DECISION: Every phone book import, export and edit is logged.
This provides:
1. A history the user can check ("where did this contact come from?")
2. Visibility into vCard blocks that were dropped during import
3. Debugging capability when photo storage misbehaves

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't break an import if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder
from src.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_contacts_imported(
        self,
        filename: str,
        imported: int,
        dropped_blocks: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.contacts_imported(
            filename=filename,
            imported=imported,
            dropped_blocks=dropped_blocks,
            correlation_id=correlation_id,
        ))

    async def log_import_rejected(
        self,
        filename: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.import_rejected(
            filename=filename,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_duplicates_skipped(
        self,
        filename: str,
        names: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.duplicates_skipped(
            filename=filename,
            names=names,
            correlation_id=correlation_id,
        ))

    async def log_contacts_exported(
        self,
        contact_count: int,
        photos_missing: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.contacts_exported(
            contact_count=contact_count,
            photos_missing=photos_missing,
            correlation_id=correlation_id,
        ))

    async def log_contact_saved(
        self,
        contact_id: UUID,
        name: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.contact_saved(
            contact_id=contact_id,
            name=name,
            correlation_id=correlation_id,
        ))

    async def log_contact_deleted(
        self,
        contact_id: UUID,
        name: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.contact_deleted(
            contact_id=contact_id,
            name=name,
            correlation_id=correlation_id,
        ))

    async def log_photo_stored(
        self,
        contact_id: UUID,
        reference: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.photo_stored(
            contact_id=contact_id,
            reference=reference,
            correlation_id=correlation_id,
        ))

    async def log_photo_store_failed(
        self,
        contact_id: UUID,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.photo_store_failed(
            contact_id=contact_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., importing a file).
    Pass it through all subsequent operations.
    """
    return uuid4()
