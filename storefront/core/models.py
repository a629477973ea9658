"""
Core data models for the storefront.

Users, products and categories are owned by the record store; these models
are the shapes that cross the store boundary and the HTTP boundary.
"""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, Field

from storefront.core.utils import utc_now


# =============================================================================
# Roles
# =============================================================================


class UserRole(IntEnum):
    """Platform-wide role. No other values are valid."""

    STANDARD = 1
    ADMIN = 4


def clamp_role(value: Any) -> UserRole:
    """
    Coerce a client-supplied role selector to a valid role.

    Anything that is not exactly 1 or 4 (after integer parsing) becomes
    STANDARD. Out-of-range values are downgraded, not rejected. Decimal
    forms such as "4.0" (or a JSON 4.0) do not parse as integers and are
    downgraded too, rather than truncated to 4.
    """
    if isinstance(value, bool) or value is None:
        return UserRole.STANDARD
    try:
        number = int(str(value).strip())
    except ValueError:
        return UserRole.STANDARD
    if number == UserRole.ADMIN:
        return UserRole.ADMIN
    return UserRole.STANDARD


# =============================================================================
# Users
# =============================================================================


class UserCreate(BaseModel):
    """A user row about to be inserted (already normalized and hashed)."""

    first_name: str
    last_name: str
    email: str
    password_hash: str
    user_role: UserRole = UserRole.STANDARD
    phone: str | None = None
    profile: str | None = None


class UserRecord(BaseModel):
    """User stored in the record store."""

    user_id: int
    first_name: str
    last_name: str
    email: str
    password_hash: str | None = None
    user_role: UserRole = UserRole.STANDARD
    phone: str | None = None
    profile: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    def to_public(self) -> PublicUser:
        return PublicUser(**self.model_dump(exclude={"password_hash"}))


class PublicUser(BaseModel):
    """User data returned to clients (no password hash)."""

    user_id: int
    first_name: str
    last_name: str
    email: str
    user_role: UserRole
    phone: str | None = None
    profile: str | None = None
    created_at: datetime | None = None


# =============================================================================
# Catalog
# =============================================================================


class CategoryCreate(BaseModel):
    category_name: str
    description: str


class Category(CategoryCreate):
    category_id: int


class ProductCreate(BaseModel):
    product_name: str
    description: str
    price: float
    product_image: str  # blob reference URL
    category_id: int


class Product(ProductCreate):
    product_id: int
    created_at: datetime = Field(default_factory=utc_now)


class ProductListing(Product):
    """Product joined with its category name."""

    category_name: str
