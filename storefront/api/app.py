"""
FastAPI application for the storefront.

This is the HTTP API the shop frontend talks to. `create_app()` wires
settings, storage and services once; routes reach them through
`app.state`.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.auth.accounts import AccountService
from storefront.auth.passwords import PasswordHasher
from storefront.auth.policies import build_pipelines
from storefront.auth.routes import router as auth_router
from storefront.auth.tokens import TokenService
from storefront.catalog.routes import router as catalog_router
from storefront.catalog.service import CatalogService
from storefront.config import Settings, get_settings
from storefront.errors import ServiceError, internal_error
from storefront.integrations.sentry import init_sentry
from storefront.storage import StorageProvider, create_storage
from storefront.uploads.admission import UploadPolicy

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# Error Handlers
# =============================================================================


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    rejection = exc.rejection
    if rejection.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {rejection.code}")
    return JSONResponse(status_code=rejection.status_code, content=rejection.to_body())


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid request body", "code": "INVALID_FIELD"},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content=internal_error().to_body())


# =============================================================================
# App Factory
# =============================================================================


def create_app(
    settings: Settings | None = None,
    storage: StorageProvider | None = None,
) -> FastAPI:
    """Build the application. Settings are read once, here."""
    settings = settings or get_settings()
    storage = storage or create_storage(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize and cleanup app resources."""
        configure_logging(settings)
        if init_sentry(settings):
            logger.info("Sentry error tracking enabled")
        if not settings.secret_token:
            logger.error("SECRET_TOKEN not set: logins will fail until it is configured")

        logger.info(f"Storefront API starting in {settings.environment} mode")

        yield

        await storage.content.close()
        logger.info("Storefront API shutting down")

    app = FastAPI(
        title="Storefront API",
        description="E-commerce backend: accounts, products and categories",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS (cookies cross origin, so credentials must be allowed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Services
    tokens = TokenService(settings.secret_token, settings.token_ttl_seconds)
    hasher = PasswordHasher(settings.password_hash_rounds)

    app.state.settings = settings
    app.state.storage = storage
    app.state.accounts = AccountService(storage.records, hasher, tokens)
    app.state.catalog = CatalogService(storage.records)
    app.state.pipelines = build_pipelines(
        tokens,
        storage.content,
        UploadPolicy.from_settings(settings),
        cookie_name=settings.session_cookie_name,
    )

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(auth_router)
    app.include_router(catalog_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "storefront-api"}

    @app.get("/api/v1/test")
    async def test_route():
        return {"message": "Test route is working!"}

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        return Response(status_code=204)

    return app
