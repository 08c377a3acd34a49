"""Content hashing and object key layout.

Keys are a pure function of (source URL, category, size) so the full key set
for an image is known before any network call.
"""

from __future__ import annotations

import hashlib

from image_variants.models.catalog import get_catalog
from image_variants.models.enums import AssetCategory

KEY_PREFIX = "images"
KEY_EXTENSION = "jpg"


def content_hash(source_url: str) -> str:
    """128-bit MD5 hex digest of the source URL. Stable, not a security boundary."""
    return hashlib.md5(source_url.encode("utf-8"), usedforsecurity=False).hexdigest()


def object_key(
    category: AssetCategory | str,
    size_name: str,
    hash_value: str,
    extension: str = KEY_EXTENSION,
) -> str:
    """``images/{category}/{size}/{hash}.{ext}``."""
    category_value = category.value if isinstance(category, AssetCategory) else category
    return f"{KEY_PREFIX}/{category_value}/{size_name}/{hash_value}.{extension}"


def object_keys(source_url: str, category: AssetCategory | str) -> dict[str, str]:
    """All keys for an image, size name -> key, in catalog order."""
    catalog = get_catalog(category)
    hash_value = content_hash(source_url)
    return {
        size.name: object_key(catalog.category, size.name, hash_value)
        for size in catalog.sizes
    }
