"""Services package."""

from src.services.image import (
    CloudinaryPhotoStore,
    InMemoryPhotoStore,
    PhotoDecodeError,
    PhotoStoreError,
    PhotoStoreInterface,
    PhotoUploadError,
)
from src.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    ContactStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsContactStorage,
    InMemoryAuditStorage,
    InMemoryContactStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Photo services
    "CloudinaryPhotoStore",
    "InMemoryPhotoStore",
    "PhotoDecodeError",
    "PhotoStoreError",
    "PhotoStoreInterface",
    "PhotoUploadError",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "ContactStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsContactStorage",
    "InMemoryAuditStorage",
    "InMemoryContactStorage",
    "NotFoundError",
    "StorageError",
]
