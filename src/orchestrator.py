"""
Main Orchestrator for the Phone Book

This module ties together all the components and defines the
end-to-end flows for:
1. Import (vCard file -> decode -> dedupe -> photos to photo store -> save)
2. Export (storage -> photos loaded back -> encode -> vCard text)
3. Phone book edits (save, delete, search, group)

DESIGN DECISION: The codec stays pure. Everything that touches storage,
the photo store or the audit trail happens here, so a broken vCard block
can only ever cost that one contact, never the whole import.
"""

from typing import Optional
from uuid import UUID

import structlog

from src.audit import AuditLogger, create_correlation_id
from src.config import AppSettings, get_settings
from src.contacts import count_record_markers, decode, encode
from src.models.contact import ContactRecord, TypedEntry
from src.models.results import ExportResult, ImportResult
from src.services.image import (
    CloudinaryPhotoStore,
    InMemoryPhotoStore,
    PhotoStoreError,
    PhotoStoreInterface,
)
from src.services.storage import (
    ContactStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsContactStorage,
    InMemoryContactStorage,
    NotFoundError,
)


EXPORT_PAGE_SIZE = 500

logger = structlog.get_logger(__name__)


class ContactImportError(Exception):
    """Base exception for vCard import errors."""
    pass


class ImportTooLargeError(ContactImportError):
    """The uploaded file exceeds the configured size limit."""
    pass


async def _move_photo_to_store(
    contact: ContactRecord,
    photo_store: Optional[PhotoStoreInterface],
    audit_logger: Optional[AuditLogger],
    correlation_id: UUID,
) -> Optional[bool]:
    """
    Replace an inline photo with a photo store reference.

    Returns None when there was nothing to move, True when the photo was
    stored, False when storing failed and the photo stayed inline.
    """
    if photo_store is None or not contact.has_inline_photo:
        return None

    try:
        reference = await photo_store.store_photo(contact.photo, contact.id)
    except PhotoStoreError as e:
        if audit_logger:
            await audit_logger.log_photo_store_failed(
                contact_id=contact.id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
        return False

    contact.photo = reference
    if audit_logger:
        await audit_logger.log_photo_stored(
            contact_id=contact.id,
            reference=reference,
            correlation_id=correlation_id,
        )
    return True


class ContactImportFlow:
    """
    Orchestrates importing vCard files into the phone book.

    Flow:
    1. Size check -> reject oversized files
    2. Decode -> vCard text to ContactRecords (broken blocks dropped)
    3. Dedupe -> skip names already in the phone book
    4. Photos -> inline data URIs moved to the photo store
    5. Save -> persist each new contact
    """

    def __init__(
        self,
        contact_storage: ContactStorageInterface,
        photo_store: Optional[PhotoStoreInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._contact_storage = contact_storage
        self._photo_store = photo_store
        self._audit_logger = audit_logger
        self._app_settings = app_settings or get_settings().app

    def _to_text(self, content: bytes | str) -> str:
        if isinstance(content, bytes):
            return content.decode("utf-8-sig", errors="replace")
        return content.lstrip("\ufeff")

    async def import_vcf(
        self,
        content: bytes | str,
        filename: str = "contacts.vcf",
        correlation_id: Optional[UUID] = None,
    ) -> ImportResult:
        """
        Import one vCard file.

        Raises:
            ImportTooLargeError: If the file exceeds max_import_size_mb
        """
        correlation_id = correlation_id or create_correlation_id()

        size = len(content) if isinstance(content, bytes) else len(content.encode("utf-8"))
        if size > self._app_settings.max_import_size_bytes:
            reason = (
                f"File is {size} bytes; the limit is "
                f"{self._app_settings.max_import_size_mb} MB"
            )
            if self._audit_logger:
                await self._audit_logger.log_import_rejected(
                    filename=filename,
                    reason=reason,
                    correlation_id=correlation_id,
                )
            raise ImportTooLargeError(reason)

        text = self._to_text(content)
        records = decode(text)
        blocks_seen = count_record_markers(text)

        result = ImportResult(
            filename=filename,
            blocks_seen=blocks_seen,
            dropped_blocks=max(0, blocks_seen - len(records)),
        )

        existing_names = await self._contact_storage.existing_names()

        for record in records:
            if record.formatted_name in existing_names:
                result.skipped_duplicates.append(record.formatted_name)
                continue

            stored = await _move_photo_to_store(
                record,
                self._photo_store,
                self._audit_logger,
                correlation_id,
            )
            if stored is True:
                result.photos_stored += 1
            elif stored is False:
                result.photo_failures += 1

            await self._contact_storage.save_contact(record)
            result.imported.append(record)

        if self._audit_logger:
            if result.skipped_duplicates:
                await self._audit_logger.log_duplicates_skipped(
                    filename=filename,
                    names=result.skipped_duplicates,
                    correlation_id=correlation_id,
                )
            await self._audit_logger.log_contacts_imported(
                filename=filename,
                imported=result.imported_count,
                dropped_blocks=result.dropped_blocks,
                correlation_id=correlation_id,
            )

        return result

    async def import_files(
        self,
        files: list[tuple[str, bytes | str]],
        correlation_id: Optional[UUID] = None,
    ) -> list[ImportResult]:
        """Import several files one after another; each is independent."""
        correlation_id = correlation_id or create_correlation_id()
        return [
            await self.import_vcf(content, filename, correlation_id)
            for filename, content in files
        ]


class ContactExportFlow:
    """
    Orchestrates exporting the phone book as a vCard file.

    Stored photo references are loaded back into data URIs so the exported
    file is self-contained. Photos that cannot be loaded are left out.
    """

    def __init__(
        self,
        contact_storage: ContactStorageInterface,
        photo_store: Optional[PhotoStoreInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._contact_storage = contact_storage
        self._photo_store = photo_store
        self._audit_logger = audit_logger

    async def _all_contacts(self, search: Optional[str]) -> list[ContactRecord]:
        contacts: list[ContactRecord] = []
        offset = 0
        while True:
            page = await self._contact_storage.list_contacts(
                search=search,
                limit=EXPORT_PAGE_SIZE,
                offset=offset,
            )
            contacts.extend(page)
            if len(page) < EXPORT_PAGE_SIZE:
                return contacts
            offset += EXPORT_PAGE_SIZE

    async def _load_photo(
        self,
        reference: str,
        correlation_id: UUID,
    ) -> Optional[str]:
        if self._photo_store is None or not self._photo_store.is_reference(reference):
            return None
        try:
            return await self._photo_store.load_data_uri(reference)
        except PhotoStoreError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="photo_store",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return None

    async def export_vcf(
        self,
        search: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ExportResult:
        correlation_id = correlation_id or create_correlation_id()

        contacts = await self._all_contacts(search)
        photos_included = 0
        photos_missing = 0

        for contact in contacts:
            if not contact.photo:
                continue
            if contact.has_inline_photo:
                photos_included += 1
                continue

            data_uri = await self._load_photo(contact.photo, correlation_id)
            if data_uri:
                contact.photo = data_uri
                photos_included += 1
            else:
                contact.photo = None
                photos_missing += 1

        if self._audit_logger:
            await self._audit_logger.log_contacts_exported(
                contact_count=len(contacts),
                photos_missing=photos_missing,
                correlation_id=correlation_id,
            )

        return ExportResult(
            vcf_text=encode(contacts),
            contact_count=len(contacts),
            photos_included=photos_included,
            photos_missing=photos_missing,
            search=search,
        )


class ContactBookFlow:
    """
    Everyday phone book operations: add/edit, delete, search, browse.
    """

    def __init__(
        self,
        contact_storage: ContactStorageInterface,
        photo_store: Optional[PhotoStoreInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
    ):
        self._contact_storage = contact_storage
        self._photo_store = photo_store
        self._audit_logger = audit_logger
        self._app_settings = app_settings or get_settings().app

    async def save_contact(
        self,
        formatted_name: str,
        telephones: Optional[list[TypedEntry]] = None,
        emails: Optional[list[TypedEntry]] = None,
        organization: Optional[str] = None,
        title: Optional[str] = None,
        note: Optional[str] = None,
        photo: Optional[str] = None,
        contact_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ContactRecord:
        """
        Create or update a contact from form input.

        A blank name becomes the configured default name. Blank phone and
        email rows are dropped. An inline photo is moved to the photo store,
        and a replaced stored photo is deleted.
        """
        correlation_id = correlation_id or create_correlation_id()

        previous = None
        if contact_id is not None:
            previous = await self._contact_storage.get_contact_by_id(contact_id)

        fields = dict(
            formatted_name=(formatted_name or "").strip() or self._app_settings.default_contact_name,
            telephones=telephones or [],
            emails=emails or [],
            organization=organization,
            title=title,
            note=note,
            photo=photo,
        )
        if contact_id is not None:
            fields["id"] = contact_id
        contact = ContactRecord(**fields)

        await _move_photo_to_store(
            contact,
            self._photo_store,
            self._audit_logger,
            correlation_id,
        )

        await self._contact_storage.save_contact(contact)

        if previous and previous.photo and previous.photo != contact.photo:
            await self._delete_stored_photo(previous.photo, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_contact_saved(
                contact_id=contact.id,
                name=contact.formatted_name,
                correlation_id=correlation_id,
            )
        return contact

    async def delete_contact(
        self,
        contact_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Delete a contact and its stored photo.

        Raises:
            NotFoundError: If no contact has this id
        """
        correlation_id = correlation_id or create_correlation_id()

        contact = await self._contact_storage.get_contact_by_id(contact_id)
        if contact is None:
            raise NotFoundError(f"Contact not found: {contact_id}")

        await self._contact_storage.delete_contact(contact_id)
        if contact.photo:
            await self._delete_stored_photo(contact.photo, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_contact_deleted(
                contact_id=contact_id,
                name=contact.formatted_name,
                correlation_id=correlation_id,
            )

    async def _delete_stored_photo(self, reference: str, correlation_id: UUID) -> None:
        if self._photo_store is None or not self._photo_store.is_reference(reference):
            return
        try:
            await self._photo_store.delete_photo(reference)
        except PhotoStoreError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="photo_store",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )

    async def search(self, term: Optional[str] = None) -> list[ContactRecord]:
        """Contacts matching the term, sorted by name."""
        return await self._contact_storage.list_contacts(search=term)

    @staticmethod
    def group_by_initial(contacts: list[ContactRecord]) -> dict[str, list[ContactRecord]]:
        """Group contacts under the upper-cased first letter of their name."""
        groups: dict[str, list[ContactRecord]] = {}
        for contact in contacts:
            letter = contact.formatted_name[:1].upper() or "#"
            groups.setdefault(letter, []).append(contact)
        return groups

    async def photo_url(self, contact: ContactRecord) -> Optional[str]:
        """URL the UI can show for the contact's photo."""
        if not contact.photo:
            return None
        if contact.has_inline_photo:
            return contact.photo
        if self._photo_store is None:
            return None
        return await self._photo_store.resolve_url(contact.photo)


def create_app_components(
    use_storage: bool = True,
) -> tuple[ContactImportFlow, ContactExportFlow, ContactBookFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets and Cloudinary.
                    Set to False for testing or offline use; in-memory
                    storage and photo store are used instead.

    Returns:
        (import_flow, export_flow, book_flow, sheets_client)
    """
    sheets_client = None
    contact_storage: ContactStorageInterface = InMemoryContactStorage()
    photo_store: PhotoStoreInterface = InMemoryPhotoStore()
    audit_logger = AuditLogger()  # Local-only logging

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            contact_storage = GoogleSheetsContactStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None

        try:
            photo_store = CloudinaryPhotoStore()
        except Exception as e:
            logger.warning("photo_store_not_configured", error=str(e))

    app_settings = get_settings().app

    import_flow = ContactImportFlow(
        contact_storage=contact_storage,
        photo_store=photo_store,
        audit_logger=audit_logger,
        app_settings=app_settings,
    )
    export_flow = ContactExportFlow(
        contact_storage=contact_storage,
        photo_store=photo_store,
        audit_logger=audit_logger,
    )
    book_flow = ContactBookFlow(
        contact_storage=contact_storage,
        photo_store=photo_store,
        audit_logger=audit_logger,
        app_settings=app_settings,
    )

    return import_flow, export_flow, book_flow, sheets_client
