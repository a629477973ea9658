"""
Tests for storage backends and the image transform.
"""

import asyncio
import io
import time

import httpx
import pytest
from PIL import Image

from storefront.core.models import CategoryCreate, ProductCreate, UserCreate, UserRole
from storefront.storage import (
    BlobStoreError,
    CloudinaryContentStorage,
    DuplicateRecordError,
    InMemoryRecordStore,
    LocalContentStorage,
    StorageError,
    UnreadableImage,
    create_storage,
)
from storefront.storage.cloudinary import sign_params
from storefront.storage.transform import ImageTransform

from conftest import make_settings


def png_bytes(width: int, height: int) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", (width, height), color=(200, 30, 30)).save(out, format="PNG")
    return out.getvalue()


def image_size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as img:
        return img.size


# =============================================================================
# Image Transform
# =============================================================================


class TestImageTransform:
    @pytest.mark.parametrize(
        "size, expected",
        [
            ((1000, 800), (500, 400)),
            ((1000, 500), (500, 250)),
            ((500, 2000), (125, 500)),
            ((200, 100), (200, 100)),
            ((500, 500), (500, 500)),
        ],
    )
    def test_target_size(self, size, expected):
        assert ImageTransform().target_size(*size) == expected

    def test_cloudinary_form(self):
        assert ImageTransform(300, 200).as_cloudinary() == "c_limit,h_200,w_300"

    def test_shrinks_large_image(self):
        resized = ImageTransform().apply(png_bytes(1000, 800))
        assert image_size(resized) == (500, 400)

    def test_small_image_untouched(self):
        data = png_bytes(120, 80)
        assert ImageTransform().apply(data) is data

    def test_keeps_format(self):
        out = io.BytesIO()
        Image.new("RGB", (900, 900)).save(out, format="JPEG")
        resized = ImageTransform().apply(out.getvalue())
        with Image.open(io.BytesIO(resized)) as img:
            assert img.format == "JPEG"


# =============================================================================
# Local Content Storage
# =============================================================================


class TestLocalContentStorage:
    @pytest.mark.asyncio
    async def test_put_applies_transform(self, tmp_path):
        storage = LocalContentStorage(str(tmp_path), public_base_url="http://localhost:5001/static/")
        url = await storage.put("imgs/a.png", png_bytes(1000, 800), "image/png", ImageTransform())

        assert url == "http://localhost:5001/static/imgs/a.png"
        assert image_size((tmp_path / "imgs" / "a.png").read_bytes()) == (500, 400)

    @pytest.mark.asyncio
    async def test_file_url_without_base(self, tmp_path):
        storage = LocalContentStorage(str(tmp_path))
        url = await storage.put("a.bin", b"raw")

        assert url.startswith("file://")
        assert (tmp_path / "a.bin").read_bytes() == b"raw"

    @pytest.mark.asyncio
    async def test_unreadable_image(self, tmp_path):
        storage = LocalContentStorage(str(tmp_path))
        with pytest.raises(UnreadableImage):
            await storage.put("a.png", b"not an image", "image/png", ImageTransform())
        assert not (tmp_path / "a.png").exists()

    @pytest.mark.asyncio
    async def test_decompression_bomb_refused(self, tmp_path, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        storage = LocalContentStorage(str(tmp_path))

        with pytest.raises(UnreadableImage):
            await storage.put("a.png", png_bytes(100, 100), "image/png", ImageTransform())

    @pytest.mark.asyncio
    async def test_cancelled_write_leaves_no_file(self, tmp_path, monkeypatch):
        storage = LocalContentStorage(str(tmp_path))
        write = storage._write

        def slow_write(path, data, transform):
            time.sleep(0.2)
            write(path, data, transform)

        monkeypatch.setattr(storage, "_write", slow_write)
        task = asyncio.ensure_future(storage.put("late.bin", b"raw"))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        await asyncio.sleep(0.4)
        assert not (tmp_path / "late.bin").exists()

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path):
        storage = LocalContentStorage(str(tmp_path))
        await storage.put("a.bin", b"raw")

        assert await storage.delete("a.bin")
        assert not await storage.delete("a.bin")


# =============================================================================
# In-Memory Record Store
# =============================================================================


def new_user(email: str = "a@x.com") -> UserCreate:
    return UserCreate(first_name="A", last_name="B", email=email, password_hash="$2b$04$x")


class TestInMemoryRecordStore:
    @pytest.mark.asyncio
    async def test_users(self):
        records = InMemoryRecordStore()
        user = await records.insert_user(new_user())

        assert user.user_id == 1
        assert user.user_role == UserRole.STANDARD
        assert (await records.find_user_by_email("a@x.com")).user_id == 1
        assert (await records.find_user_by_id(1)).email == "a@x.com"
        assert await records.find_user_by_id(99) is None

    @pytest.mark.asyncio
    async def test_duplicate_email(self):
        records = InMemoryRecordStore()
        await records.insert_user(new_user("a@x.com"))
        with pytest.raises(DuplicateRecordError):
            await records.insert_user(new_user("A@X.com"))

    @pytest.mark.asyncio
    async def test_product_needs_category(self):
        records = InMemoryRecordStore()
        product = ProductCreate(
            product_name="Mug", description="Blue", price=9.5,
            product_image="https://cdn.test/m.png", category_id=3,
        )
        with pytest.raises(StorageError):
            await records.insert_product(product)

    @pytest.mark.asyncio
    async def test_listing_joins_category_name(self):
        records = InMemoryRecordStore()
        category = await records.insert_category(
            CategoryCreate(category_name="Kitchen", description="Pots")
        )
        await records.insert_product(ProductCreate(
            product_name="Mug", description="Blue", price=9.5,
            product_image="https://cdn.test/m.png", category_id=category.category_id,
        ))

        listings = await records.list_products()
        assert [p.category_name for p in listings] == ["Kitchen"]
        assert [c.category_name for c in await records.list_categories()] == ["Kitchen"]


# =============================================================================
# Cloudinary Content Storage
# =============================================================================


class TestCloudinaryContentStorage:
    def test_signature_ignores_order_and_blanks(self):
        a = sign_params({"timestamp": 1, "public_id": "x", "eager": ""}, "secret")
        b = sign_params({"public_id": "x", "timestamp": 1}, "secret")

        assert a == b
        assert len(a) == 40
        assert a != sign_params({"public_id": "x", "timestamp": 1}, "other")

    def test_requires_credentials(self):
        with pytest.raises(ValueError):
            CloudinaryContentStorage("demo", "", "")

    @pytest.mark.asyncio
    async def test_put_signed_upload(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"secure_url": "https://res.cloudinary.com/demo/a.png"})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        storage = CloudinaryContentStorage("demo", "key", "secret", client=client)
        url = await storage.put("ecommerce-images/img_1.png", b"png", "image/png", ImageTransform())

        assert url == "https://res.cloudinary.com/demo/a.png"
        request = requests[0]
        assert request.url.path == "/v1_1/demo/image/upload"
        body = request.content
        assert b"c_limit,h_500,w_500" in body
        assert b"ecommerce-images/img_1\r\n" in body
        assert b'name="signature"' in body
        assert b'name="api_key"' in body
        await storage.close()

    @pytest.mark.asyncio
    async def test_error_status(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(401, text="bad key"))
        )
        storage = CloudinaryContentStorage("demo", "key", "secret", client=client)

        with pytest.raises(BlobStoreError):
            await storage.put("a.png", b"png", "image/png")

    @pytest.mark.asyncio
    async def test_undecodable_upload(self):
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(400, json={"error": {"message": "Invalid image file"}})
            )
        )
        storage = CloudinaryContentStorage("demo", "key", "secret", client=client)

        with pytest.raises(UnreadableImage):
            await storage.put("a.png", b"png", "image/png")

    @pytest.mark.asyncio
    async def test_retries_transport_errors(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("connection reset", request=request)
            return httpx.Response(200, json={"secure_url": "https://res.cloudinary.com/demo/a.png"})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        storage = CloudinaryContentStorage("demo", "key", "secret", client=client)

        assert await storage.put("a.png", b"png", "image/png") == "https://res.cloudinary.com/demo/a.png"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        storage = CloudinaryContentStorage("demo", "key", "secret", client=client)

        with pytest.raises(BlobStoreError):
            await storage.put("a.png", b"png", "image/png")


# =============================================================================
# Factory
# =============================================================================


class TestCreateStorage:
    def test_local_by_default(self, tmp_path):
        provider = create_storage(make_settings(data_dir=str(tmp_path)))
        assert isinstance(provider.content, LocalContentStorage)
        assert isinstance(provider.records, InMemoryRecordStore)

    def test_cloudinary_when_configured(self):
        provider = create_storage(make_settings(cloud_name="demo", api_key="k", api_secret="s"))
        assert isinstance(provider.content, CloudinaryContentStorage)
