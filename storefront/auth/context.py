"""
Request context - the "who is asking, with what" for each request.

The identity is a tagged union: a context is either Anonymous or
Authenticated, never "authenticated with claims missing". Stages return a
new context rather than mutating the request.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Mapping, Union

from fastapi import Request

from storefront.auth.tokens import ClaimSet
from storefront.core.models import UserRole


@dataclass(frozen=True)
class Anonymous:
    """No verified credential."""

    @property
    def is_authenticated(self) -> bool:
        return False


@dataclass(frozen=True)
class Authenticated:
    """A verified token's claims."""

    claims: ClaimSet

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def user_id(self) -> int:
        return self.claims.id

    @property
    def role(self) -> UserRole:
        return self.claims.user_role


Identity = Union[Anonymous, Authenticated]

ANONYMOUS = Anonymous()


@dataclass(frozen=True)
class RequestContext:
    """
    Everything the pipeline stages look at.

    Usage in routes:
        async def my_route(ctx: RequestContext = Depends(require_admin)):
            print(f"User {ctx.authenticated.user_id} creating a product")
    """

    identity: Identity = ANONYMOUS
    cookies: Mapping[str, str] = field(default_factory=dict)
    form: Mapping[str, Any] = field(default_factory=dict)

    # Set by upload admission
    upload_url: str | None = None
    upload_key: str | None = None

    # Resolves True once the client has gone away
    is_disconnected: Callable[[], Awaitable[bool]] | None = None

    @property
    def authenticated(self) -> Authenticated:
        """The authenticated identity; only valid after authentication ran."""
        if not isinstance(self.identity, Authenticated):
            raise RuntimeError("request context is not authenticated")
        return self.identity

    def with_identity(self, identity: Identity) -> RequestContext:
        return replace(self, identity=identity)

    def with_upload(self, url: str, key: str) -> RequestContext:
        return replace(self, upload_url=url, upload_key=key)

    @classmethod
    async def from_request(cls, request: Request, read_form: bool = False) -> RequestContext:
        form: Mapping[str, Any] = {}
        if read_form:
            # cached by Starlette; the handler's Form() params see the same data
            form = await request.form()
        return cls(
            cookies=dict(request.cookies),
            form=form,
            is_disconnected=request.is_disconnected,
        )
