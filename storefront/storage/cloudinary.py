"""
Cloudinary content storage.

Uploads go through Cloudinary's signed upload API. The image transform is
sent as an incoming transformation so the stored asset is already bounded;
nothing is resized locally.
"""

from __future__ import annotations

import hashlib
import logging
import time
from pathlib import PurePosixPath
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from storefront.storage.base import BlobStoreError, ContentStorage, UnreadableImage
from storefront.storage.transform import ImageTransform

logger = logging.getLogger(__name__)


ALLOWED_FORMATS = ("jpg", "jpeg", "png", "webp")


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """
    Cloudinary request signature.

    Parameters are sorted by name, joined as `k=v` with `&`, suffixed with
    the API secret and SHA-1 hashed.
    """
    to_sign = "&".join(
        f"{k}={v}" for k, v in sorted(params.items()) if v not in (None, "")
    )
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class CloudinaryContentStorage(ContentStorage):
    """Store product images on Cloudinary."""

    API_BASE = "https://api.cloudinary.com/v1_1"

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        client: httpx.AsyncClient | None = None,
    ):
        if not (cloud_name and api_key and api_secret):
            raise ValueError("Cloudinary credentials not configured")
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self._client = client or httpx.AsyncClient()

    def _endpoint(self, action: str) -> str:
        return f"{self.API_BASE}/{self.cloud_name}/image/{action}"

    def _signed(self, params: dict[str, Any]) -> dict[str, Any]:
        params = {**params, "timestamp": int(time.time())}
        params["signature"] = sign_params(params, self.api_secret)
        params["api_key"] = self.api_key
        return params

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _post(self, action: str, data: dict[str, Any], files: dict | None = None) -> dict:
        response = await self._client.post(self._endpoint(action), data=data, files=files)
        if response.status_code == 400 and action == "upload":
            # Cloudinary answers 400 for files it cannot decode
            logger.info(f"Cloudinary refused upload: {response.text}")
            raise UnreadableImage("Cloudinary could not read the image")
        if response.status_code != 200:
            logger.error(f"Cloudinary {action} failed: {response.status_code} {response.text}")
            raise BlobStoreError(f"Cloudinary {action} failed: {response.status_code}")
        return response.json()

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        transform: ImageTransform | None = None,
    ) -> str:
        params: dict[str, Any] = {
            # Cloudinary appends the format itself
            "public_id": str(PurePosixPath(key).with_suffix("")),
            "allowed_formats": ",".join(ALLOWED_FORMATS),
        }
        if transform is not None:
            params["transformation"] = transform.as_cloudinary()

        filename = PurePosixPath(key).name
        try:
            body = await self._post(
                "upload",
                self._signed(params),
                files={"file": (filename, data, content_type)},
            )
        except httpx.HTTPError as e:
            raise BlobStoreError(f"Cloudinary unreachable: {e}") from e

        url = body.get("secure_url") or body.get("url")
        if not url:
            raise BlobStoreError("Cloudinary response had no URL")
        return url

    async def delete(self, key: str) -> bool:
        params = {"public_id": str(PurePosixPath(key).with_suffix(""))}
        try:
            body = await self._post("destroy", self._signed(params))
        except httpx.HTTPError as e:
            raise BlobStoreError(f"Cloudinary unreachable: {e}") from e
        return body.get("result") == "ok"

    async def close(self) -> None:
        await self._client.aclose()
