"""
Dependencies - services built at startup, looked up per request.
"""

from __future__ import annotations

from fastapi import Request

from storefront.auth.accounts import AccountService
from storefront.catalog.service import CatalogService
from storefront.config import Settings
from storefront.storage.base import StorageProvider


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> StorageProvider:
    return request.app.state.storage


def get_accounts(request: Request) -> AccountService:
    return request.app.state.accounts


def get_catalog(request: Request) -> CatalogService:
    return request.app.state.catalog
