"""TMDB-facing helpers on top of the pipeline.

TMDB hands out relative image paths (``/kqjL17yufvn9OVLyXYpvtyrFfak.jpg``);
these helpers turn them into source URLs, expand movies into batch items,
and pick URLs out of variant maps for display.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Final

from image_variants.config import settings
from image_variants.errors import PipelineError
from image_variants.models.batch import BatchItem
from image_variants.models.catalog import ORIGINAL, parse_category
from image_variants.models.enums import AssetCategory
from image_variants.pipeline.orchestrator import ImagePipeline

logger = logging.getLogger(__name__)

# Tried in order when the preferred size is not in a variant map
_FALLBACK_ORDER: Final[dict[AssetCategory, tuple[str, ...]]] = {
    AssetCategory.POSTER: ("w342", "w500", "w185", "w780", ORIGINAL),
    AssetCategory.BACKDROP: ("w780", "w1280", "w300", ORIGINAL),
    AssetCategory.PROFILE: ("w185", "h632", "w45", ORIGINAL),
}

# Display buckets -> catalog size
_RESPONSIVE_SIZES: Final[dict[AssetCategory, dict[str, str]]] = {
    AssetCategory.POSTER: {
        "small": "w185",
        "medium": "w342",
        "large": "w500",
        "xlarge": "w780",
        "original": ORIGINAL,
    },
    AssetCategory.BACKDROP: {
        "small": "w300",
        "medium": "w780",
        "large": "w1280",
        "original": ORIGINAL,
    },
    AssetCategory.PROFILE: {
        "small": "w45",
        "medium": "w185",
        "large": "h632",
        "original": ORIGINAL,
    },
}

# Served straight from TMDB when the pipeline cannot produce a URL
ORIGIN_FALLBACK_SIZE: Final = "w500"


def full_image_url(
    path: str | None, size: str = ORIGINAL, base_url: str | None = None
) -> str | None:
    """TMDB CDN URL for a relative image path, or None for an empty path."""
    if not path:
        return None
    base = (base_url or settings.tmdb_image_base_url).rstrip("/")
    return f"{base}/{size}/{path.lstrip('/')}"


def movie_image_jobs(movies: Iterable[Mapping[str, Any]]) -> list[BatchItem]:
    """Expand movie records into poster/backdrop batch items.

    Each movie needs an ``id`` and may carry ``poster_path`` and/or
    ``backdrop_path``. Item ids are ``{id}_poster`` / ``{id}_backdrop``.
    """
    jobs: list[BatchItem] = []
    for movie in movies:
        for category, field in (
            (AssetCategory.POSTER, "poster_path"),
            (AssetCategory.BACKDROP, "backdrop_path"),
        ):
            url = full_image_url(movie.get(field))
            if url:
                jobs.append(
                    BatchItem(
                        id=f"{movie['id']}_{category.value}",
                        source_url=url,
                        category=category,
                    )
                )
    return jobs


def pick_variant_url(
    variants: Mapping[str, str] | None,
    preferred: str | None = None,
    category: AssetCategory | str = AssetCategory.POSTER,
) -> str | None:
    """Preferred size if present, else the first available fallback size."""
    if not variants:
        return None
    fallback = _FALLBACK_ORDER[parse_category(category)]
    for size in (preferred or fallback[0], *fallback):
        url = variants.get(size)
        if url:
            return url
    return None


def responsive_urls(
    variants: Mapping[str, str], category: AssetCategory | str
) -> dict[str, str | None]:
    """Map a variant result onto small/medium/large(/xlarge)/original buckets."""
    sizes = _RESPONSIVE_SIZES[parse_category(category)]
    return {bucket: variants.get(size) for bucket, size in sizes.items()}


async def optimized_image_url(
    pipeline: ImagePipeline,
    path: str | None,
    category: AssetCategory | str,
    size: str | None = None,
) -> str | None:
    """Stored variant URL for a TMDB path, degrading to the TMDB origin URL.

    Pipeline failures never reach the caller here: the image is served from
    TMDB at ``size`` (or w500) instead.
    """
    source_url = full_image_url(path)
    if source_url is None:
        return None
    try:
        return await pipeline.get_image(source_url, category, size)
    except PipelineError as e:
        logger.warning("[TMDB] Falling back to origin for %s: %s", path, e)
        return full_image_url(path, size or ORIGIN_FALLBACK_SIZE)
