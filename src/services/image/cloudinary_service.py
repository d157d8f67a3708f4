"""
Contact Photo Storage using Cloudinary

DESIGN DECISION: We use Cloudinary because:
1. Reliable cloud infrastructure with a free tier sufficient for personal use
2. On-the-fly thumbnails (face-cropped avatars) without storing extra copies
3. Simple API

This service handles:
1. Decoding and sanity-checking photos that arrived inside vCard files
2. Uploading them and returning a `cld:<public_id>` reference
3. Building display URLs for the phone book list
4. Downloading originals back for vCard export

CRITICAL: The vCard codec passes photo payloads through uninterpreted.
This is the first place the bytes are checked to really be an image.
"""

import hashlib
from io import BytesIO
from typing import Optional
from uuid import UUID

import cloudinary
import cloudinary.uploader
import httpx
from cloudinary import CloudinaryImage
from PIL import Image
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.config import get_settings
from src.services.image.interface import (
    PhotoDecodeError,
    PhotoStoreError,
    PhotoStoreInterface,
    PhotoUploadError,
    decode_data_uri,
    encode_data_uri,
)


def inspect_photo(image_bytes: bytes) -> tuple[str, int, int]:
    """
    Check that the bytes are a readable image.

    Returns: (mime_type, width, height)

    Raises:
        PhotoDecodeError: If PIL cannot identify the image
    """
    try:
        with Image.open(BytesIO(image_bytes)) as img:
            img.verify()
            image_format = img.format
            width, height = img.size
    except Exception as e:
        raise PhotoDecodeError(f"Photo is not a readable image: {e}")

    mime_type = Image.MIME.get(image_format or "", "image/jpeg")
    return mime_type, width, height


class CloudinaryPhotoStore(PhotoStoreInterface):
    """
    Photo store backed by Cloudinary.

    Flow:
    1. Receive a data URI from a decoded contact
    2. Decode and verify it with PIL
    3. Upload to the configured folder
    4. Return a reference the contact row can carry
    """

    reference_prefix = "cld:"

    def __init__(self):
        self._settings = get_settings().cloudinary
        self._app_settings = get_settings().app
        self._configured = False

    def _configure(self):
        """Configure Cloudinary SDK."""
        if not self._configured:
            cloudinary.config(
                cloud_name=self._settings.cloud_name,
                api_key=self._settings.api_key,
                api_secret=self._settings.api_secret,
                secure=True,
            )
            self._configured = True

    def _public_id(self, reference: str) -> str:
        return reference[len(self.reference_prefix):]

    def _generate_public_id(self, contact_id: UUID, image_bytes: bytes) -> str:
        """
        Generate a unique public ID for Cloudinary.

        Format: {contact_id}_{content_hash}. The folder is added by the upload.
        """
        content_hash = hashlib.md5(image_bytes).hexdigest()[:8]
        return f"{contact_id}_{content_hash}"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(PhotoUploadError),
        reraise=True,
    )
    def _upload(self, image_bytes: bytes, public_id: str) -> dict:
        try:
            result = cloudinary.uploader.upload(
                image_bytes,
                public_id=public_id,
                folder=self._settings.photo_folder,
                resource_type="image",
                overwrite=True,
                tags=["contact_photo"],
            )
        except cloudinary.exceptions.Error as e:
            raise PhotoUploadError(f"Cloudinary error: {e}")
        except Exception as e:
            raise PhotoUploadError(f"Failed to upload photo: {e}")

        if not result.get("public_id"):
            raise PhotoUploadError("No public_id returned from Cloudinary")
        return result

    async def store_photo(self, data_uri: str, contact_id: UUID) -> str:
        """Upload an inline photo and return its cld: reference."""
        self._configure()

        _, image_bytes = decode_data_uri(data_uri)
        inspect_photo(image_bytes)

        result = self._upload(
            image_bytes,
            self._generate_public_id(contact_id, image_bytes),
        )
        return self.reference_prefix + result["public_id"]

    async def resolve_url(self, reference: str) -> Optional[str]:
        """Face-cropped square thumbnail URL for the phone book list."""
        if not self.is_reference(reference):
            return None
        self._configure()

        size = self._settings.thumbnail_size
        return CloudinaryImage(self._public_id(reference)).build_url(
            secure=True,
            transformation=[
                {"width": size, "height": size, "crop": "thumb", "gravity": "face"},
                {"quality": "auto", "fetch_format": "auto"},
            ],
        )

    async def load_data_uri(self, reference: str) -> Optional[str]:
        """Download the original upload and return it as a data URI."""
        if not self.is_reference(reference):
            return None
        self._configure()

        url = CloudinaryImage(self._public_id(reference)).build_url(secure=True)
        try:
            async with httpx.AsyncClient(
                timeout=self._app_settings.photo_fetch_timeout_seconds,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
                if response.status_code == 404:
                    return None
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise PhotoStoreError(f"Failed to download photo: {e}")

        image_bytes = response.content
        mime_type, _, _ = inspect_photo(image_bytes)
        return encode_data_uri(mime_type, image_bytes)

    async def delete_photo(self, reference: str) -> bool:
        if not self.is_reference(reference):
            return False
        self._configure()

        try:
            result = cloudinary.uploader.destroy(
                self._public_id(reference),
                resource_type="image",
            )
        except cloudinary.exceptions.Error as e:
            raise PhotoStoreError(f"Cloudinary error: {e}")
        return result.get("result") == "ok"
