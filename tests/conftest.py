"""
Shared fixtures.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from storefront.api.app import create_app
from storefront.auth.tokens import IdentityClaims, TokenService
from storefront.config import Settings
from storefront.core.models import UserRole
from storefront.storage import InMemoryRecordStore, StorageProvider
from storefront.storage.base import ContentStorage
from storefront.storage.transform import ImageTransform

SECRET = "test-signing-secret-0123456789abcdef0123456789"
OTHER_SECRET = "another-signing-secret-fedcba9876543210fedcba"
MIB = 1024 * 1024


class FakeContentStorage(ContentStorage):
    """Records writes instead of storing anything."""

    def __init__(self):
        self.puts: list[dict] = []
        self.deleted: list[str] = []

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        transform: ImageTransform | None = None,
    ) -> str:
        self.puts.append({
            "key": key,
            "size": len(data),
            "content_type": content_type,
            "transform": transform,
        })
        return f"https://cdn.test/{key}"

    async def delete(self, key: str) -> bool:
        self.deleted.append(key)
        return True


def make_settings(**overrides) -> Settings:
    values = {
        "secret_token": SECRET,
        "password_hash_rounds": 4,
        "environment": "development",
        "sentry_dsn": "",
        "cloud_name": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def claims_for(user_role: UserRole = UserRole.STANDARD, user_id: int = 1) -> IdentityClaims:
    return IdentityClaims(
        id=user_id,
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        user_role=user_role,
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings(tmp_path):
    """Development settings with a signing secret and a cheap hash cost."""
    return make_settings(data_dir=str(tmp_path))


@pytest.fixture
def tokens(settings):
    return TokenService(settings.secret_token, settings.token_ttl_seconds)


@pytest.fixture
def content():
    return FakeContentStorage()


@pytest.fixture
def storage(content):
    return StorageProvider(content=content, records=InMemoryRecordStore())


@pytest.fixture
def client(settings, storage):
    """Test client over a fresh app and empty stores."""
    app = create_app(settings=settings, storage=storage)
    with TestClient(app) as c:
        yield c


def sign_up(client: TestClient, **overrides):
    body = {
        "first_name": "A",
        "last_name": "B",
        "email": "A@X.com",
        "password": "p",
    }
    body.update(overrides)
    return client.post("/api/v1/sign-up", json=body)


def login(client: TestClient, email: str = "a@x.com", password: str = "p"):
    return client.post("/api/v1/login", json={"email": email, "password": password})


@pytest.fixture
def admin_client(client):
    """Client holding an administrator's session cookie."""
    sign_up(client, email="boss@shop.com", password="hunter2", user_role=4)
    assert login(client, "boss@shop.com", "hunter2").status_code == 200
    return client
