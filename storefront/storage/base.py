"""
Storage abstraction layer.

All persistence goes through these interfaces. This allows swapping
implementations (local filesystem → Cloudinary, in-memory → PostgreSQL)
without changing application code.

- ContentStorage → Cloudinary or local filesystem (product images)
- RecordStore → PostgreSQL in production, in-memory for development
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from storefront.core.models import (
    Category,
    CategoryCreate,
    Product,
    ProductCreate,
    ProductListing,
    UserCreate,
    UserRecord,
)
from storefront.storage.transform import ImageTransform


# =============================================================================
# Errors
# =============================================================================


class StorageError(Exception):
    """A storage backend failed."""


class BlobStoreError(StorageError):
    """Content could not be written to (or removed from) the blob store."""


class UnreadableImage(BlobStoreError):
    """The content is not an image the store can decode. A client error."""


class DuplicateRecordError(StorageError):
    """A uniqueness constraint was violated."""


# =============================================================================
# Storage Interfaces
# =============================================================================


class ContentStorage(ABC):
    """
    Storage for binary content (product images).

    Remote Implementation: Cloudinary
    Local Implementation: Filesystem
    """

    @abstractmethod
    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        transform: ImageTransform | None = None,
    ) -> str:
        """
        Store content under `key`, applying `transform` if given.

        Returns the durable URL of the stored content.

        Raises:
            BlobStoreError: the backend refused or failed the write
        """

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete content."""

    async def close(self) -> None:
        """Release network resources."""


class RecordStore(ABC):
    """
    Storage for users, products and categories.

    Emails are stored lowercase; `insert_user` raises DuplicateRecordError
    when the email is already taken.
    """

    @abstractmethod
    async def find_user_by_email(self, email: str) -> UserRecord | None:
        ...

    @abstractmethod
    async def find_user_by_id(self, user_id: int) -> UserRecord | None:
        ...

    @abstractmethod
    async def insert_user(self, user: UserCreate) -> UserRecord:
        ...

    @abstractmethod
    async def find_category_by_id(self, category_id: int) -> Category | None:
        ...

    @abstractmethod
    async def insert_category(self, category: CategoryCreate) -> Category:
        ...

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        ...

    @abstractmethod
    async def insert_product(self, product: ProductCreate) -> Product:
        ...

    @abstractmethod
    async def list_products(self) -> list[ProductListing]:
        """Products joined with their category name."""


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for all storage backends.

    Initialize once at app startup with appropriate implementations.
    Services receive this and use the interfaces without knowing
    the underlying implementation.
    """

    model_config = {"arbitrary_types_allowed": True}

    content: ContentStorage
    records: RecordStore
