# =============================================================================
# Session Tokens
# =============================================================================
#
# Signed, time-bound tokens carrying a copy of the user's identity:
#   - Token issuance (login)
#   - Token verification (every protected request)
#
# Claims are not re-fetched from the store on each request. They may be
# stale relative to the stored user until the token expires.
#
# =============================================================================

from datetime import datetime, timedelta, timezone
from enum import Enum
import logging

from pydantic import BaseModel
import jwt

from storefront.core.models import UserRecord, UserRole
from storefront.core.utils import utc_now

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


# =============================================================================
# Models
# =============================================================================

class IdentityClaims(BaseModel):
    """The identity fields copied into a token."""
    id: int
    first_name: str
    last_name: str
    email: str
    user_role: UserRole

    @classmethod
    def from_user(cls, user: UserRecord) -> "IdentityClaims":
        return cls(
            id=user.user_id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            user_role=user.user_role,
        )


class ClaimSet(IdentityClaims):
    """Verified token payload."""
    iat: datetime
    exp: datetime

    @property
    def identity(self) -> IdentityClaims:
        return IdentityClaims(**self.model_dump(exclude={"iat", "exp"}))


# =============================================================================
# Errors
# =============================================================================

class TokenFailure(str, Enum):
    EXPIRED = "expired"
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"


class TokenError(Exception):
    """Token could not be verified. `reason` is for logs only."""

    def __init__(self, reason: TokenFailure, detail: str = ""):
        super().__init__(detail or reason.value)
        self.reason = reason


class SigningKeyMissing(Exception):
    """No signing secret configured; refuse to issue or verify."""


# =============================================================================
# Token Service
# =============================================================================

class TokenService:
    """Issue and verify HS256 session tokens."""

    def __init__(self, secret: str, ttl_seconds: int = 24 * 60 * 60):
        self._secret = secret
        self.ttl = timedelta(seconds=ttl_seconds)

    def _require_secret(self) -> str:
        if not self._secret:
            raise SigningKeyMissing("SECRET_TOKEN not set")
        return self._secret

    def issue(self, claims: IdentityClaims, now: datetime | None = None) -> str:
        """
        Create a signed token for `claims`.

        Raises:
            SigningKeyMissing: no secret configured (no token is issued)
        """
        secret = self._require_secret()
        issued_at = now or utc_now()
        payload = {
            **claims.model_dump(mode="json"),
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.ttl).timestamp()),
        }
        return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)

    def verify(self, token: str) -> ClaimSet:
        """
        Verify signature and expiry, returning the claims.

        Expiry is checked first, so an expired token is reported as
        EXPIRED whatever its signature.

        Raises:
            TokenError: EXPIRED, MALFORMED or BAD_SIGNATURE
            SigningKeyMissing: no secret configured
        """
        secret = self._require_secret()

        try:
            unverified = jwt.decode(
                token,
                options={"verify_signature": False, "verify_exp": True},
                algorithms=[JWT_ALGORITHM],
            )
        except jwt.ExpiredSignatureError:
            raise TokenError(TokenFailure.EXPIRED)
        except jwt.InvalidTokenError as e:
            raise TokenError(TokenFailure.MALFORMED, str(e))

        if "exp" not in unverified:
            raise TokenError(TokenFailure.MALFORMED, "missing exp")

        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[JWT_ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            # expired between the two decodes
            raise TokenError(TokenFailure.EXPIRED)
        except jwt.InvalidSignatureError:
            raise TokenError(TokenFailure.BAD_SIGNATURE)
        except jwt.InvalidTokenError as e:
            raise TokenError(TokenFailure.MALFORMED, str(e))

        try:
            return ClaimSet(
                id=payload["id"],
                first_name=payload["first_name"],
                last_name=payload["last_name"],
                email=payload["email"],
                user_role=payload["user_role"],
                iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )
        except (KeyError, ValueError, TypeError) as e:
            raise TokenError(TokenFailure.MALFORMED, f"bad claims: {e}")
