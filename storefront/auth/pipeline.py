"""
Request pipeline - ordered, capability-tagged stages.

Each stage takes a RequestContext and returns either a new context or a
Rejection. The Pipeline runs stages in order and stops at the first
Rejection; nothing after it executes.

    pipeline = Pipeline([authenticate(tokens), require_role(is_admin)])
    result = await pipeline.run(ctx)
    if isinstance(result, Rejection):
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Union

from storefront.auth.capabilities import Capability, RolePredicate, is_admin
from storefront.auth.context import Authenticated, RequestContext
from storefront.auth.tokens import SigningKeyMissing, TokenError, TokenService
from storefront.errors import ErrorKind, Rejection

logger = logging.getLogger(__name__)


StageResult = Union[RequestContext, Rejection]
StageFn = Callable[[RequestContext], Awaitable[StageResult]]
UndoFn = Callable[[RequestContext], Awaitable[None]]


@dataclass(frozen=True)
class Stage:
    """
    A named step that may require and provide capabilities.

    `undo` reverses the stage's side effects. It runs when a later stage,
    or the handler behind the pipeline, refuses the request.
    """

    name: str
    run: StageFn
    requires: frozenset[Capability] = frozenset()
    provides: frozenset[Capability] = frozenset()
    undo: UndoFn | None = None


class Pipeline:
    """Runs stages in order, halting (and undoing) on the first Rejection."""

    def __init__(self, stages: Iterable[Stage]):
        self.stages = tuple(stages)
        available: set[Capability] = set()
        for stage in self.stages:
            missing = stage.requires - available
            if missing:
                names = ", ".join(sorted(c.value for c in missing))
                raise ValueError(
                    f"Stage {stage.name!r} requires {names} from an earlier stage"
                )
            available |= stage.provides
        self.capabilities = frozenset(available)

    def provides(self, capability: Capability) -> bool:
        return capability in self.capabilities

    async def run(self, ctx: RequestContext) -> StageResult:
        completed: list[Stage] = []
        for stage in self.stages:
            result = await stage.run(ctx)
            if isinstance(result, Rejection):
                logger.info(f"Rejected at {stage.name}: {result.code}")
                await self._undo(completed, ctx)
                return result
            ctx = result
            completed.append(stage)
        return ctx

    async def undo(self, ctx: RequestContext) -> None:
        """Reverse every stage's side effects, e.g. after the handler failed."""
        await self._undo(self.stages, ctx)

    @staticmethod
    async def _undo(stages, ctx: RequestContext) -> None:
        for stage in reversed(stages):
            if stage.undo is not None:
                await stage.undo(ctx)


# =============================================================================
# Authentication
# =============================================================================


TOKEN_MISSING = Rejection(ErrorKind.UNAUTHENTICATED, "TOKEN_MISSING", "Unauthorized: Token missing")
TOKEN_INVALID = Rejection(ErrorKind.UNAUTHENTICATED, "TOKEN_INVALID", "Invalid or expired token")
SERVER_MISCONFIGURED = Rejection(ErrorKind.CONFIGURATION, "CONFIG_ERROR", "Server configuration error")


def authenticate(tokens: TokenService, cookie_name: str = "token") -> Stage:
    """
    Verify the session cookie and attach its claims.

    Trusts the signed claims for the token's lifetime; the record store is
    never consulted here.
    """

    async def run(ctx: RequestContext) -> StageResult:
        token = ctx.cookies.get(cookie_name)
        if not token:
            return TOKEN_MISSING
        try:
            claims = tokens.verify(token)
        except TokenError as e:
            # reason stays in the logs; the client sees one status
            logger.info(f"Token rejected: {e.reason.value}")
            return TOKEN_INVALID
        except SigningKeyMissing:
            logger.error("SECRET_TOKEN not set; cannot verify session tokens")
            return SERVER_MISCONFIGURED
        return ctx.with_identity(Authenticated(claims=claims))

    return Stage(
        name="authenticate",
        run=run,
        provides=frozenset({Capability.IDENTITY}),
    )


# =============================================================================
# Authorization
# =============================================================================


def require_role(predicate: RolePredicate, message: str = "Access denied") -> Stage:
    """Pass only authenticated contexts whose role satisfies `predicate`."""

    denied = Rejection(ErrorKind.FORBIDDEN, "FORBIDDEN", message)

    async def run(ctx: RequestContext) -> StageResult:
        identity = ctx.identity
        if not isinstance(identity, Authenticated):
            return denied
        if not predicate(identity.role):
            logger.info(f"Role {int(identity.role)} denied for user {identity.user_id}")
            return denied
        return ctx

    return Stage(
        name="require_role",
        run=run,
        requires=frozenset({Capability.IDENTITY}),
    )


def require_admin() -> Stage:
    return require_role(is_admin, "Access denied: Admin only")
