"""
Image transform policy handed to content storage.

The policy only *describes* the transform. Stores that can transform
server-side (Cloudinary) render it as a transformation string; stores that
cannot (local filesystem) call `apply()` before writing.
"""

from __future__ import annotations

import io
from dataclasses import dataclass

from PIL import Image


@dataclass(frozen=True)
class ImageTransform:
    """Constrain an image to a bounding box without upscaling."""

    max_width: int = 500
    max_height: int = 500

    def target_size(self, width: int, height: int) -> tuple[int, int]:
        """Size an image of (width, height) ends up with."""
        if width <= self.max_width and height <= self.max_height:
            return width, height
        scale = min(self.max_width / width, self.max_height / height)
        return max(1, round(width * scale)), max(1, round(height * scale))

    def as_cloudinary(self) -> str:
        # c_limit: fit inside the box, never enlarge
        return f"c_limit,h_{self.max_height},w_{self.max_width}"

    def apply(self, data: bytes) -> bytes:
        """
        Resize encoded image bytes, keeping the original format.

        Raises:
            PIL.UnidentifiedImageError: data is not a readable image
            PIL.Image.DecompressionBombError: the image has too many pixels
        """
        with Image.open(io.BytesIO(data)) as img:
            size = self.target_size(*img.size)
            if size == img.size:
                return data
            fmt = img.format or "PNG"
            resized = img.resize(size, Image.Resampling.LANCZOS)
            out = io.BytesIO()
            resized.save(out, format=fmt)
            return out.getvalue()
