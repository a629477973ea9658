"""
Account flows - sign-up and login.

Both hash/verify passwords in a worker thread so a slow bcrypt round never
stalls other requests on the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from storefront.auth.passwords import PasswordHasher
from storefront.auth.tokens import IdentityClaims, SigningKeyMissing, TokenService
from storefront.core.models import PublicUser, UserCreate, clamp_role
from storefront.core.utils import normalize_email
from storefront.errors import ErrorKind, ServiceError, missing_field
from storefront.storage.base import DuplicateRecordError, RecordStore

logger = logging.getLogger(__name__)


# =============================================================================
# Request Models
# =============================================================================

# Fields are optional so a missing one is reported as MISSING_FIELD (400)
# by the service, not as a 422 from request validation.


class SignUpRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    password: str | None = None
    user_role: Any = None
    phone: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


@dataclass(frozen=True)
class LoginResult:
    user: PublicUser
    token: str


# =============================================================================
# Service
# =============================================================================


class AccountService:
    """Registers users and exchanges credentials for session tokens."""

    def __init__(self, records: RecordStore, hasher: PasswordHasher, tokens: TokenService):
        self.records = records
        self.hasher = hasher
        self.tokens = tokens

    async def sign_up(self, data: SignUpRequest) -> PublicUser:
        """
        Create a user.

        The requested role is clamped: anything but a valid 1 or 4
        becomes a standard user.

        Raises:
            ServiceError: MISSING_FIELD (400), DUPLICATE_EMAIL (409)
        """
        if not (data.first_name and data.last_name and data.email and data.password):
            raise missing_field()

        email = normalize_email(data.email)
        if await self.records.find_user_by_email(email) is not None:
            raise _duplicate_email()

        password_hash = await asyncio.to_thread(self.hasher.hash, data.password)
        try:
            user = await self.records.insert_user(UserCreate(
                first_name=data.first_name,
                last_name=data.last_name,
                email=email,
                password_hash=password_hash,
                user_role=clamp_role(data.user_role),
                phone=data.phone,
            ))
        except DuplicateRecordError:
            # lost a race with a concurrent sign-up
            raise _duplicate_email()

        logger.info(f"Registered user {user.user_id} with role {int(user.user_role)}")
        return user.to_public()

    async def login(self, data: LoginRequest) -> LoginResult:
        """
        Verify credentials and issue a session token.

        Raises:
            ServiceError: MISSING_FIELD (400), NOT_FOUND (404),
                INVALID_CREDENTIALS (401), CONFIG_ERROR (500)
        """
        if not (data.email and data.password):
            raise missing_field("Email and password are required")

        user = await self.records.find_user_by_email(normalize_email(data.email))
        if user is None:
            raise ServiceError.of(ErrorKind.NOT_FOUND, "NOT_FOUND", "User not found")

        matched = await asyncio.to_thread(self.hasher.verify, data.password, user.password_hash)
        if not matched:
            raise ServiceError.of(
                ErrorKind.UNAUTHENTICATED, "INVALID_CREDENTIALS", "Invalid password"
            )

        try:
            token = self.tokens.issue(IdentityClaims.from_user(user))
        except SigningKeyMissing:
            logger.error("SECRET_TOKEN not set; refusing to issue session token")
            raise ServiceError.of(
                ErrorKind.CONFIGURATION, "CONFIG_ERROR", "Server configuration error"
            )

        return LoginResult(user=user.to_public(), token=token)


def _duplicate_email() -> ServiceError:
    return ServiceError.of(ErrorKind.CONFLICT, "DUPLICATE_EMAIL", "Email already exists")
