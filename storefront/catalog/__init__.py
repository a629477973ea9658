"""
Catalog - products and categories.
"""

from storefront.catalog.service import CatalogService, CategoryRequest

__all__ = ["CatalogService", "CategoryRequest"]
