"""
Catalog service - products and categories.

Product creation is the commit point of the upload pipeline: it only runs
once the image has been admitted and stored and the caller is an admin.
"""

from __future__ import annotations

import logging
import math

from pydantic import BaseModel

from storefront.core.models import (
    Category,
    CategoryCreate,
    Product,
    ProductCreate,
    ProductListing,
)
from storefront.errors import ErrorKind, ServiceError, missing_field
from storefront.storage.base import RecordStore

logger = logging.getLogger(__name__)


class CategoryRequest(BaseModel):
    category_name: str | None = None
    description: str | None = None


class CatalogService:
    """Validates catalog writes and hands them to the record store."""

    def __init__(self, records: RecordStore):
        self.records = records

    async def list_products(self) -> list[ProductListing]:
        return await self.records.list_products()

    async def list_categories(self) -> list[Category]:
        return await self.records.list_categories()

    async def create_product(
        self,
        product_name: str | None,
        description: str | None,
        price: str | None,
        category_id: str | None,
        image_url: str | None,
    ) -> Product:
        """
        Create a product from raw form values.

        Raises:
            ServiceError: MISSING_FIELD, INVALID_FIELD, INVALID_CATEGORY (all 400)
        """
        if not (product_name and description and price and category_id and image_url):
            raise missing_field()

        try:
            parsed_price = float(price)
            parsed_category = int(category_id)
        except ValueError:
            raise ServiceError.of(
                ErrorKind.VALIDATION, "INVALID_FIELD", "price and category_id must be numeric"
            )

        if not math.isfinite(parsed_price):
            raise ServiceError.of(
                ErrorKind.VALIDATION, "INVALID_FIELD", "price must be a finite number"
            )

        if await self.records.find_category_by_id(parsed_category) is None:
            raise ServiceError.of(ErrorKind.VALIDATION, "INVALID_CATEGORY", "Invalid category_id")

        product = await self.records.insert_product(ProductCreate(
            product_name=product_name,
            description=description,
            price=parsed_price,
            product_image=image_url,
            category_id=parsed_category,
        ))
        logger.info(f"Created product {product.product_id} in category {parsed_category}")
        return product

    async def create_category(self, data: CategoryRequest) -> Category:
        if not (data.category_name and data.description):
            raise missing_field("Category name and description are required")
        return await self.records.insert_category(CategoryCreate(
            category_name=data.category_name,
            description=data.description,
        ))
