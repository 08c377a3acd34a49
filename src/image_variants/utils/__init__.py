"""Utility modules for the image variant pipeline."""

from image_variants.utils.media_type import probe_content_type

__all__ = [
    "probe_content_type",
]
