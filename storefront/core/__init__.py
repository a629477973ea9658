"""
Core module - data models and shared utilities.
"""

from storefront.core.models import (
    Category,
    CategoryCreate,
    Product,
    ProductCreate,
    ProductListing,
    PublicUser,
    UserCreate,
    UserRecord,
    UserRole,
    clamp_role,
)
from storefront.core.utils import generate_id, normalize_email, utc_now

__all__ = [
    "Category",
    "CategoryCreate",
    "Product",
    "ProductCreate",
    "ProductListing",
    "PublicUser",
    "UserCreate",
    "UserRecord",
    "UserRole",
    "clamp_role",
    "generate_id",
    "normalize_email",
    "utc_now",
]
