"""
Upload admission - validate an inbound image before it costs storage.

Checks run in order: declared MIME type, file format, size. Only an
admitted file is forwarded to content storage; the returned URL is attached
to the request context for the handler to persist.

A request without a file passes through untouched. Whether a missing image
is an error is the handler's call.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Awaitable, Callable

from starlette.datastructures import UploadFile

from storefront.auth.capabilities import Capability
from storefront.auth.context import RequestContext
from storefront.auth.pipeline import Stage, StageResult
from storefront.config import Settings
from storefront.core.utils import generate_id
from storefront.errors import ErrorKind, Rejection
from storefront.storage.base import BlobStoreError, ContentStorage, UnreadableImage
from storefront.storage.transform import ImageTransform

logger = logging.getLogger(__name__)


ALLOWED_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp"})
CHUNK_SIZE = 64 * 1024
DISCONNECT_POLL_SECONDS = 0.1


# =============================================================================
# Policy
# =============================================================================


@dataclass(frozen=True)
class UploadPolicy:
    """Admission limits and where admitted files go."""

    field_name: str = "product_image"
    max_bytes: int = 5 * 1024 * 1024
    folder: str = "ecommerce-images"
    timeout_seconds: float = 30.0
    transform: ImageTransform = field(default_factory=ImageTransform)

    @classmethod
    def from_settings(cls, settings: Settings) -> UploadPolicy:
        return cls(
            field_name=settings.upload_field_name,
            max_bytes=settings.upload_max_bytes,
            folder=settings.upload_folder,
            timeout_seconds=settings.blob_store_timeout_seconds,
            transform=ImageTransform(
                max_width=settings.image_max_width,
                max_height=settings.image_max_height,
            ),
        )


@dataclass(frozen=True)
class UploadDescriptor:
    """What the client declared about a file. Exists for one request."""

    field_name: str
    filename: str
    declared_mimetype: str
    byte_size: int | None

    @classmethod
    def of(cls, field_name: str, upload: UploadFile) -> UploadDescriptor:
        return cls(
            field_name=field_name,
            filename=upload.filename or "",
            declared_mimetype=(upload.content_type or "").lower(),
            byte_size=upload.size,
        )

    @property
    def file_format(self) -> str | None:
        """Extension from the filename, else the MIME subtype."""
        suffix = PurePosixPath(self.filename).suffix.lower().lstrip(".")
        if suffix:
            return suffix
        _, _, subtype = self.declared_mimetype.partition("/")
        return subtype.split(";")[0].strip() or None


# =============================================================================
# Rejections
# =============================================================================


INVALID_FILE_TYPE = Rejection(
    ErrorKind.UPLOAD_REJECTED,
    "INVALID_FILE_TYPE",
    "Only image files are allowed (jpg, jpeg, png, webp)",
)
UPLOAD_FAILED = Rejection(ErrorKind.DEPENDENCY_FAILURE, "UPLOAD_FAILED", "File upload failed")
UPLOAD_ABORTED = Rejection(ErrorKind.DEPENDENCY_FAILURE, "UPLOAD_ABORTED", "Upload aborted")


def file_too_large(max_bytes: int) -> Rejection:
    return Rejection(
        ErrorKind.UPLOAD_REJECTED,
        "FILE_TOO_LARGE",
        f"File too large (max {max_bytes} bytes)",
    )


def check_upload(descriptor: UploadDescriptor, policy: UploadPolicy) -> Rejection | None:
    """Validate what the client declared. Nothing is read or stored."""
    if not descriptor.declared_mimetype.startswith("image/"):
        return INVALID_FILE_TYPE
    if descriptor.file_format not in ALLOWED_EXTENSIONS:
        return INVALID_FILE_TYPE
    if descriptor.byte_size is not None and descriptor.byte_size > policy.max_bytes:
        return file_too_large(policy.max_bytes)
    return None


# =============================================================================
# Reading and forwarding
# =============================================================================


class UploadTimeout(Exception):
    """Content storage did not answer in time."""


class UploadAborted(Exception):
    """The client went away mid-upload."""


async def read_bounded(upload: UploadFile, limit: int) -> bytes | None:
    """Read at most `limit` bytes; None as soon as the file proves larger."""
    await upload.seek(0)
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await upload.read(CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            return None
        chunks.append(chunk)
    return b"".join(chunks)


async def _wait_for_disconnect(is_disconnected: Callable[[], Awaitable[bool]]) -> None:
    while not await is_disconnected():
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


async def forward(
    write: Awaitable[str],
    timeout: float,
    is_disconnected: Callable[[], Awaitable[bool]] | None = None,
) -> str:
    """
    Await a storage write, bounded by `timeout` and by the client staying.

    The write is cancelled on timeout, on disconnect, and if the caller
    itself is cancelled.

    Raises:
        UploadTimeout: `timeout` elapsed first
        UploadAborted: the client disconnected first
        BlobStoreError: the write itself failed
    """
    store = asyncio.ensure_future(write)
    watcher = (
        asyncio.ensure_future(_wait_for_disconnect(is_disconnected))
        if is_disconnected is not None
        else None
    )
    waiters = {store} if watcher is None else {store, watcher}
    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
        if store in done:
            return store.result()
        if watcher is not None and watcher in done:
            raise UploadAborted()
        raise UploadTimeout()
    finally:
        for task in waiters:
            if not task.done():
                task.cancel()


# =============================================================================
# Stage
# =============================================================================


def admit_upload(content: ContentStorage, policy: UploadPolicy) -> Stage:
    """Pipeline stage: validate the file field and forward it to storage."""

    async def run(ctx: RequestContext) -> StageResult:
        upload = ctx.form.get(policy.field_name)
        if not isinstance(upload, UploadFile) or not upload.filename:
            return ctx

        descriptor = UploadDescriptor.of(policy.field_name, upload)
        rejection = check_upload(descriptor, policy)
        if rejection is not None:
            logger.info(
                f"Upload rejected ({rejection.code}): {descriptor.filename!r} "
                f"{descriptor.declared_mimetype} {descriptor.byte_size}"
            )
            return rejection

        data = await read_bounded(upload, policy.max_bytes)
        if data is None:
            logger.info(f"Upload rejected (FILE_TOO_LARGE): {descriptor.filename!r}")
            return file_too_large(policy.max_bytes)

        key = f"{policy.folder}/{generate_id('img')}.{descriptor.file_format}"
        try:
            url = await forward(
                content.put(key, data, descriptor.declared_mimetype, policy.transform),
                policy.timeout_seconds,
                ctx.is_disconnected,
            )
        except UploadTimeout:
            logger.error(f"Content storage timed out after {policy.timeout_seconds}s for {key}")
            await discard(content, key)
            return UPLOAD_FAILED
        except UploadAborted:
            logger.warning(f"Client disconnected during upload of {key}; write cancelled")
            await discard(content, key)
            return UPLOAD_ABORTED
        except UnreadableImage:
            logger.info(f"Upload rejected (INVALID_FILE_TYPE): {descriptor.filename!r} is unreadable")
            return INVALID_FILE_TYPE
        except BlobStoreError:
            logger.exception(f"Content storage failed for {key}")
            return UPLOAD_FAILED

        logger.info(f"Stored upload {key} ({len(data)} bytes)")
        return ctx.with_upload(url, key)

    async def undo(ctx: RequestContext) -> None:
        if ctx.upload_key:
            await discard(content, ctx.upload_key)

    return Stage(
        name="admit_upload",
        run=run,
        provides=frozenset({Capability.UPLOAD}),
        undo=undo,
    )


async def discard(content: ContentStorage, key: str) -> None:
    """Delete a stored upload the request will not use. Failures are logged."""
    try:
        removed = await content.delete(key)
    except BlobStoreError:
        logger.exception(f"Could not remove orphaned upload {key}")
        return
    if removed:
        logger.info(f"Removed orphaned upload {key}")
