"""In-memory photo store for tests and offline use."""

from typing import Optional
from uuid import UUID, uuid4

from src.services.image.interface import (
    PhotoStoreInterface,
    decode_data_uri,
    encode_data_uri,
)


class InMemoryPhotoStore(PhotoStoreInterface):
    """Keeps photo bytes in a dict; references look like mem:<uuid>."""

    reference_prefix = "mem:"

    def __init__(self):
        self.photos: dict[str, tuple[str, bytes]] = {}

    def _key(self, reference: str) -> str:
        return reference[len(self.reference_prefix):]

    async def store_photo(self, data_uri: str, contact_id: UUID) -> str:
        mime_type, image_bytes = decode_data_uri(data_uri)
        key = f"{contact_id}_{uuid4().hex[:8]}"
        self.photos[key] = (mime_type, image_bytes)
        return self.reference_prefix + key

    async def resolve_url(self, reference: str) -> Optional[str]:
        return await self.load_data_uri(reference)

    async def load_data_uri(self, reference: str) -> Optional[str]:
        if not self.is_reference(reference):
            return None
        stored = self.photos.get(self._key(reference))
        if stored is None:
            return None
        return encode_data_uri(*stored)

    async def delete_photo(self, reference: str) -> bool:
        if not self.is_reference(reference):
            return False
        return self.photos.pop(self._key(reference), None) is not None
