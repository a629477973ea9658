"""
Local storage implementations for development.

These are in-memory or filesystem-based implementations
that work without any external services.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from PIL import Image

from storefront.core.models import (
    Category,
    CategoryCreate,
    Product,
    ProductCreate,
    ProductListing,
    UserCreate,
    UserRecord,
)
from storefront.storage.base import (
    BlobStoreError,
    ContentStorage,
    DuplicateRecordError,
    RecordStore,
    StorageError,
    StorageProvider,
    UnreadableImage,
)
from storefront.storage.transform import ImageTransform

logger = logging.getLogger(__name__)


# =============================================================================
# Local Filesystem Content Storage
# =============================================================================


class LocalContentStorage(ContentStorage):
    """Store content on local filesystem."""

    def __init__(self, base_path: str = "./data/content", public_base_url: str = ""):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    def _key_to_path(self, key: str) -> Path:
        return self.base_path / key

    def _url_for(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return f"file://{self._key_to_path(key).absolute()}"

    def _write(self, path: Path, data: bytes, transform: ImageTransform | None) -> None:
        if transform is not None:
            try:
                data = transform.apply(data)
            except (OSError, Image.DecompressionBombError) as e:
                raise UnreadableImage(f"Not a readable image: {path.name}") from e
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    @staticmethod
    def _remove_when_written(path: Path):
        def callback(write: asyncio.Future) -> None:
            if write.cancelled() or write.exception() is not None:
                return
            path.unlink(missing_ok=True)
            logger.info(f"Removed abandoned write {path.name}")

        return callback

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        transform: ImageTransform | None = None,
    ) -> str:
        """
        Write content to disk, resizing images first.

        If the caller is cancelled mid-write, the worker thread still runs to
        completion; the file it produces is removed as soon as it lands.

        Raises:
            UnreadableImage: `transform` was given and `data` is not an image
            BlobStoreError: the file could not be written
        """
        path = self._key_to_path(key)
        write = asyncio.ensure_future(asyncio.to_thread(self._write, path, data, transform))
        try:
            await asyncio.shield(write)
        except asyncio.CancelledError:
            write.add_done_callback(self._remove_when_written(path))
            raise
        except OSError as e:
            raise BlobStoreError(f"Could not write {key}: {e}") from e
        logger.debug("Stored %s (%d bytes in)", key, len(data))
        return self._url_for(key)

    async def delete(self, key: str) -> bool:
        path = self._key_to_path(key)
        if path.exists():
            path.unlink()
            return True
        return False


# =============================================================================
# In-Memory Record Store
# =============================================================================


class InMemoryRecordStore(RecordStore):
    """In-memory record store for development and tests."""

    def __init__(self):
        self._users: dict[int, UserRecord] = {}
        self._users_by_email: dict[str, int] = {}
        self._categories: dict[int, Category] = {}
        self._products: dict[int, Product] = {}
        self._next_id = {"users": 1, "categories": 1, "products": 1}
        self._lock = asyncio.Lock()

    def _allocate(self, table: str) -> int:
        n = self._next_id[table]
        self._next_id[table] = n + 1
        return n

    async def find_user_by_email(self, email: str) -> UserRecord | None:
        user_id = self._users_by_email.get(email.lower())
        return self._users.get(user_id) if user_id is not None else None

    async def find_user_by_id(self, user_id: int) -> UserRecord | None:
        return self._users.get(user_id)

    async def insert_user(self, user: UserCreate) -> UserRecord:
        async with self._lock:
            email = user.email.lower()
            if email in self._users_by_email:
                raise DuplicateRecordError(f"users.email already exists: {email}")
            record = UserRecord(
                user_id=self._allocate("users"),
                **user.model_dump(exclude={"email"}),
                email=email,
            )
            self._users[record.user_id] = record
            self._users_by_email[email] = record.user_id
            return record

    async def find_category_by_id(self, category_id: int) -> Category | None:
        return self._categories.get(category_id)

    async def insert_category(self, category: CategoryCreate) -> Category:
        async with self._lock:
            record = Category(category_id=self._allocate("categories"), **category.model_dump())
            self._categories[record.category_id] = record
            return record

    async def list_categories(self) -> list[Category]:
        return list(self._categories.values())

    async def insert_product(self, product: ProductCreate) -> Product:
        async with self._lock:
            if product.category_id not in self._categories:
                # foreign key
                raise StorageError(f"categories.category_id not found: {product.category_id}")
            record = Product(product_id=self._allocate("products"), **product.model_dump())
            self._products[record.product_id] = record
            return record

    async def list_products(self) -> list[ProductListing]:
        # inner join: products without a category are skipped
        listings = []
        for product in self._products.values():
            category = self._categories.get(product.category_id)
            if category is None:
                continue
            listings.append(
                ProductListing(**product.model_dump(), category_name=category.category_name)
            )
        return listings


# =============================================================================
# Factory
# =============================================================================


def create_local_storage(data_dir: str = "./data", public_base_url: str = "") -> StorageProvider:
    """Create a StorageProvider with local implementations."""
    return StorageProvider(
        content=LocalContentStorage(f"{data_dir}/content", public_base_url=public_base_url),
        records=InMemoryRecordStore(),
    )
