"""
Policies - the interface route handlers use.

Just use: `ctx: RequestContext = Depends(require_admin)`

Design:
- Pipelines are built once at startup (`build_pipelines`) and kept on
  `app.state.pipelines`
- `guard(name)` returns a FastAPI dependency that builds the request
  context, runs the named pipeline and raises on the first rejection;
  stages a rejected or failed request already ran are undone
- If allowed, the route receives the resulting RequestContext
"""

from __future__ import annotations

from typing import AsyncIterator, Callable

from fastapi import Request

from storefront.auth.capabilities import Capability
from storefront.auth.context import RequestContext
from storefront.auth.pipeline import Pipeline, authenticate, require_admin as admin_stage
from storefront.auth.tokens import TokenService
from storefront.errors import Rejection, ServiceError
from storefront.storage.base import ContentStorage
from storefront.uploads.admission import UploadPolicy, admit_upload


AUTHENTICATED = "authenticated"
ADMIN = "admin"
ADMIN_UPLOAD = "admin_upload"


def build_pipelines(
    tokens: TokenService,
    content: ContentStorage,
    upload_policy: UploadPolicy,
    cookie_name: str = "token",
) -> dict[str, Pipeline]:
    """The pipelines routes can guard themselves with."""
    auth = authenticate(tokens, cookie_name)
    return {
        AUTHENTICATED: Pipeline([auth]),
        ADMIN: Pipeline([auth, admin_stage()]),
        # upload first: the file is validated and stored before the
        # credential is looked at
        ADMIN_UPLOAD: Pipeline([admit_upload(content, upload_policy), auth, admin_stage()]),
    }


def guard(name: str) -> Callable:
    """
    Create a FastAPI dependency that runs the named pipeline.

    If the handler behind the guard raises, the pipeline's stages are undone
    (a stored upload is deleted) before the error propagates.
    """

    async def dependency(request: Request) -> AsyncIterator[RequestContext]:
        pipeline: Pipeline = request.app.state.pipelines[name]
        ctx = await RequestContext.from_request(
            request,
            read_form=pipeline.provides(Capability.UPLOAD),
        )
        result = await pipeline.run(ctx)
        if isinstance(result, Rejection):
            raise ServiceError(result)
        try:
            yield result
        except Exception:
            await pipeline.undo(result)
            raise

    return dependency


require_auth = guard(AUTHENTICATED)
require_admin = guard(ADMIN)
require_admin_upload = guard(ADMIN_UPLOAD)
