"""Derivative generation: crop-to-cover resize and JPEG re-encode.

Handles:
- original: bytes returned untouched (format and metadata preserved)
- width + height: cover the exact box, centered
- width only: height from the catalog aspect ratio
- height only: width from the catalog aspect ratio

Every non-original output is a quality-85 progressive JPEG, whatever the
source format was.
"""

from __future__ import annotations

import io

from PIL import Image, ImageOps

from image_variants.errors import ResizeError
from image_variants.models.catalog import SizeSpec

JPEG_QUALITY = 85


def target_dimensions(size: SizeSpec, aspect_ratio: float) -> tuple[int, int]:
    """Resolve a size spec to an exact ``(width, height)`` box."""
    if size.width and size.height:
        return size.width, size.height
    if size.width:
        return size.width, round(size.width / aspect_ratio)
    if size.height:
        return round(size.height * aspect_ratio), size.height
    raise ValueError(f"size {size.name!r} has neither width nor height")


class DerivativeGenerator:
    """Produce re-encoded variants from source image bytes.

    Pure CPU work with no I/O; the orchestrator runs it off the event loop.
    """

    def __init__(self, quality: int = JPEG_QUALITY) -> None:
        self._quality = quality

    def resize(self, source: bytes, size: SizeSpec, aspect_ratio: float) -> bytes:
        """Render ``source`` at ``size``.

        Args:
            source: Raw downloaded image bytes.
            size: Target size from the category catalog.
            aspect_ratio: Catalog width/height ratio for single-dimension sizes.

        Returns:
            The source bytes for ``original``, JPEG bytes otherwise.

        Raises:
            ResizeError: If the buffer cannot be decoded or encoded.
        """
        if size.is_original:
            return source

        box = target_dimensions(size, aspect_ratio)

        try:
            with Image.open(io.BytesIO(source)) as img:
                img.load()
                rgb = self._to_rgb(img)
                fitted = ImageOps.fit(
                    rgb, box, method=Image.Resampling.LANCZOS, centering=(0.5, 0.5)
                )
                buffer = io.BytesIO()
                fitted.save(
                    buffer,
                    format="JPEG",
                    quality=self._quality,
                    progressive=True,
                    optimize=True,
                )
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise ResizeError(f"cannot resize to {size.name} ({box[0]}x{box[1]}): {e}") from e

        return buffer.getvalue()

    def _to_rgb(self, img: Image.Image) -> Image.Image:
        """JPEG has no alpha channel; flatten anything else to RGB."""
        if img.mode == "RGB":
            return img
        if img.mode == "P" and "transparency" in img.info:
            img = img.convert("RGBA")
        return img.convert("RGB")
