"""
Session cookie - carries the token between browser and API.
"""

from __future__ import annotations

from fastapi import Response

from storefront.config import Settings


def _attributes(settings: Settings) -> dict:
    # Cross-site frontend in production needs SameSite=None, which browsers
    # only accept together with Secure.
    return {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "none" if settings.is_production else "lax",
        "path": "/",
    }


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.token_ttl_seconds,
        **_attributes(settings),
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    """Overwrite the cookie with an empty value that expires immediately."""
    response.set_cookie(
        key=settings.session_cookie_name,
        value="",
        max_age=1,
        **_attributes(settings),
    )
