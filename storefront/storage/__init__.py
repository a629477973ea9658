"""
Storage abstractions.

- ContentStorage → Cloudinary (product images), local filesystem in development
- RecordStore → users, products, categories
"""

from storefront.config import Settings
from storefront.storage.base import (
    BlobStoreError,
    ContentStorage,
    DuplicateRecordError,
    RecordStore,
    StorageError,
    StorageProvider,
    UnreadableImage,
)
from storefront.storage.cloudinary import CloudinaryContentStorage
from storefront.storage.local import (
    InMemoryRecordStore,
    LocalContentStorage,
    create_local_storage,
)
from storefront.storage.transform import ImageTransform


def create_storage(settings: Settings) -> StorageProvider:
    """Pick storage backends from settings."""
    if not settings.use_cloudinary:
        return create_local_storage(settings.data_dir, settings.public_base_url)
    return StorageProvider(
        content=CloudinaryContentStorage(
            cloud_name=settings.cloud_name,
            api_key=settings.api_key,
            api_secret=settings.api_secret,
        ),
        records=InMemoryRecordStore(),
    )


__all__ = [
    "BlobStoreError",
    "CloudinaryContentStorage",
    "ContentStorage",
    "DuplicateRecordError",
    "ImageTransform",
    "InMemoryRecordStore",
    "LocalContentStorage",
    "RecordStore",
    "StorageError",
    "StorageProvider",
    "UnreadableImage",
    "create_local_storage",
    "create_storage",
]
