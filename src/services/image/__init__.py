"""Contact photo storage package."""

from src.services.image.interface import (
    PhotoDecodeError,
    PhotoStoreError,
    PhotoStoreInterface,
    PhotoUploadError,
    decode_data_uri,
    encode_data_uri,
)
from src.services.image.cloudinary_service import (
    CloudinaryPhotoStore,
    inspect_photo,
)
from src.services.image.memory import InMemoryPhotoStore

__all__ = [
    "CloudinaryPhotoStore",
    "InMemoryPhotoStore",
    "PhotoDecodeError",
    "PhotoStoreError",
    "PhotoStoreInterface",
    "PhotoUploadError",
    "decode_data_uri",
    "encode_data_uri",
    "inspect_photo",
]
