"""Compiled-in size catalogs per asset category.

Sizes mirror the TMDB naming scheme: ``w342`` is 342px wide, ``h632`` is
632px tall, and ``original`` is the downloaded bytes untouched. When only one
dimension is given the other comes from the catalog's aspect ratio.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from image_variants.errors import InvalidCategoryError, UnknownSizeError
from image_variants.models.enums import AssetCategory

ORIGINAL: Final = "original"

# size name -> fetchable URL, in catalog order
VariantResult = dict[str, str]


@dataclass(frozen=True)
class SizeSpec:
    """One named target size."""

    name: str
    width: int | None = None
    height: int | None = None

    @property
    def is_original(self) -> bool:
        return self.name == ORIGINAL


@dataclass(frozen=True)
class SizeCatalog:
    """Ordered sizes for a category plus the ratio used to fill a missing dimension."""

    category: AssetCategory
    sizes: tuple[SizeSpec, ...]
    aspect_ratio: float  # width / height
    default_size: str

    @property
    def names(self) -> list[str]:
        return [size.name for size in self.sizes]

    def get(self, name: str) -> SizeSpec:
        for size in self.sizes:
            if size.name == name:
                return size
        raise UnknownSizeError(
            f"unknown size {name!r} for {self.category.value}; "
            f"expected one of {', '.join(self.names)}"
        )


CATALOGS: Final[dict[AssetCategory, SizeCatalog]] = {
    AssetCategory.POSTER: SizeCatalog(
        category=AssetCategory.POSTER,
        sizes=(
            SizeSpec("w92", width=92),
            SizeSpec("w154", width=154),
            SizeSpec("w185", width=185),
            SizeSpec("w342", width=342),
            SizeSpec("w500", width=500),
            SizeSpec("w780", width=780),
            SizeSpec(ORIGINAL),
        ),
        aspect_ratio=2 / 3,
        default_size="w342",
    ),
    AssetCategory.PROFILE: SizeCatalog(
        category=AssetCategory.PROFILE,
        sizes=(
            SizeSpec("w45", width=45),
            SizeSpec("w185", width=185),
            SizeSpec("h632", height=632),
            SizeSpec(ORIGINAL),
        ),
        aspect_ratio=2 / 3,
        default_size="w185",
    ),
    AssetCategory.BACKDROP: SizeCatalog(
        category=AssetCategory.BACKDROP,
        sizes=(
            SizeSpec("w300", width=300),
            SizeSpec("w780", width=780),
            SizeSpec("w1280", width=1280),
            SizeSpec(ORIGINAL),
        ),
        aspect_ratio=16 / 9,
        default_size="w780",
    ),
}


def parse_category(category: AssetCategory | str) -> AssetCategory:
    """Coerce a category string, rejecting anything without a catalog."""
    if isinstance(category, AssetCategory):
        return category
    try:
        return AssetCategory(category)
    except ValueError:
        valid = ", ".join(c.value for c in AssetCategory)
        raise InvalidCategoryError(
            f"invalid image category {category!r}; expected one of {valid}"
        ) from None


def get_catalog(category: AssetCategory | str) -> SizeCatalog:
    """Look up the size catalog for a category."""
    return CATALOGS[parse_category(category)]
