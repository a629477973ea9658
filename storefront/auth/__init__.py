"""
Authentication and authorization.

Design principles:
1. Signed claims in a cookie; no store lookup per request
2. Middleware as an explicit pipeline of stages, halting on first rejection
3. Anonymous and authenticated contexts are different types
4. Zero boilerplate in route handlers: `Depends(require_admin)`

Route guards live in `storefront.auth.policies`, which also pulls in upload
admission; import them from there.
"""

from storefront.auth.accounts import AccountService, LoginRequest, SignUpRequest
from storefront.auth.capabilities import Capability, is_admin
from storefront.auth.context import (
    Anonymous,
    Authenticated,
    RequestContext,
)
from storefront.auth.passwords import PasswordHasher
from storefront.auth.pipeline import (
    Pipeline,
    Stage,
    authenticate,
    require_role,
)
from storefront.auth.tokens import (
    ClaimSet,
    IdentityClaims,
    SigningKeyMissing,
    TokenError,
    TokenFailure,
    TokenService,
)

__all__ = [
    # Pipeline
    "Pipeline",
    "Stage",
    "authenticate",
    "require_role",
    "Capability",
    "is_admin",
    # Context
    "RequestContext",
    "Anonymous",
    "Authenticated",
    # Tokens
    "TokenService",
    "IdentityClaims",
    "ClaimSet",
    "TokenError",
    "TokenFailure",
    "SigningKeyMissing",
    # Accounts
    "AccountService",
    "PasswordHasher",
    "SignUpRequest",
    "LoginRequest",
]
