"""
Photo Store Interface

Contact photos arrive from vCard files as inline data URIs. Keeping
megabytes of base64 in every contact row is wasteful, so the flows hand
photos to a photo store and keep only the opaque reference string it
returns. The store can resolve a reference to a display URL and load the
bytes back when the phone book is exported.
"""

import base64
import binascii
from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from src.contacts.vcf import split_data_uri


class PhotoStoreError(Exception):
    """Base exception for photo store operations."""
    pass


class PhotoDecodeError(PhotoStoreError):
    """The photo payload is not valid base64 or not an image."""
    pass


class PhotoUploadError(PhotoStoreError):
    """Failed to upload the photo to the backend."""
    pass


def decode_data_uri(data_uri: str) -> tuple[str, bytes]:
    """
    Decode a base64 data URI into (mime_type, raw_bytes).

    Raises:
        PhotoDecodeError: If the value is not a base64 data URI
    """
    parts = split_data_uri(data_uri)
    if parts is None:
        raise PhotoDecodeError("Photo is not a base64 data URI")

    mime_type, payload = parts
    payload = "".join(payload.split())
    payload += "=" * (-len(payload) % 4)
    try:
        return mime_type, base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise PhotoDecodeError(f"Invalid base64 photo payload: {e}")


def encode_data_uri(mime_type: str, image_bytes: bytes) -> str:
    payload = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


class PhotoStoreInterface(ABC):
    """Abstract key-value store for contact photos."""

    reference_prefix: str = ""

    def is_reference(self, value: Optional[str]) -> bool:
        """True if value is a reference issued by this store."""
        return bool(value) and value.startswith(self.reference_prefix)

    @abstractmethod
    async def store_photo(self, data_uri: str, contact_id: UUID) -> str:
        """
        Store a photo and return its reference.

        Raises:
            PhotoDecodeError: If the data URI cannot be decoded
            PhotoUploadError: If the backend rejects the upload
        """
        pass

    @abstractmethod
    async def resolve_url(self, reference: str) -> Optional[str]:
        """Display URL for a reference, or None if it is not ours."""
        pass

    @abstractmethod
    async def load_data_uri(self, reference: str) -> Optional[str]:
        """
        Load a stored photo back as a data URI.

        Returns:
            The data URI, or None if the photo no longer exists

        Raises:
            PhotoStoreError: If the backend could not be reached
        """
        pass

    @abstractmethod
    async def delete_photo(self, reference: str) -> bool:
        """Delete a stored photo. Returns False if nothing was deleted."""
        pass
