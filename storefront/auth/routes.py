# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints:
#   POST /api/v1/sign-up   - Create account
#   POST /api/v1/login     - Verify credentials, set session cookie
#   GET  /api/v1/logout    - Clear session cookie
#   GET  /api/v1/me        - Get current user
#
# =============================================================================

from fastapi import APIRouter, Depends, Response

from storefront.api.deps import get_accounts, get_app_settings, get_storage
from storefront.auth.accounts import AccountService, LoginRequest, SignUpRequest
from storefront.auth.context import RequestContext
from storefront.auth.cookies import clear_session_cookie, set_session_cookie
from storefront.auth.policies import require_auth
from storefront.config import Settings
from storefront.errors import ErrorKind, ServiceError
from storefront.storage.base import StorageProvider

router = APIRouter(prefix="/api/v1", tags=["auth"])


# =============================================================================
# Public Endpoints
# =============================================================================

@router.post("/sign-up", status_code=201)
async def sign_up(
    data: SignUpRequest,
    accounts: AccountService = Depends(get_accounts),
):
    """
    Create a new account.

    Does not log the user in; call /login afterwards.
    """
    user = await accounts.sign_up(data)
    return {"message": "User registered successfully", "user": user}


@router.post("/login")
async def login(
    data: LoginRequest,
    response: Response,
    accounts: AccountService = Depends(get_accounts),
    settings: Settings = Depends(get_app_settings),
):
    """
    Authenticate and set the session cookie.
    """
    result = await accounts.login(data)
    set_session_cookie(response, result.token, settings)
    return {"message": "Login successful", "user": result.user}


@router.get("/logout")
async def logout(
    response: Response,
    settings: Settings = Depends(get_app_settings),
):
    """
    Logout by expiring the session cookie.

    The token itself stays valid until it expires; there is no revocation.
    """
    clear_session_cookie(response, settings)
    return {"message": "User Logout"}


# =============================================================================
# Protected Endpoints
# =============================================================================

@router.get("/me")
async def get_current_user(
    ctx: RequestContext = Depends(require_auth),
    storage: StorageProvider = Depends(get_storage),
):
    """
    Get the current authenticated user from the store.
    """
    user = await storage.records.find_user_by_id(ctx.authenticated.user_id)
    if user is None:
        raise ServiceError.of(ErrorKind.NOT_FOUND, "NOT_FOUND", "User not found")

    return {"message": "User fetched successfully", "user": user.to_public()}
