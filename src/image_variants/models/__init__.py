"""Data model for the image variant pipeline."""

from image_variants.models.batch import BatchItem, BatchItemResult
from image_variants.models.catalog import (
    CATALOGS,
    ORIGINAL,
    SizeCatalog,
    SizeSpec,
    VariantResult,
    get_catalog,
)
from image_variants.models.enums import AssetCategory, SizeState

__all__ = [
    "AssetCategory",
    "BatchItem",
    "BatchItemResult",
    "CATALOGS",
    "ORIGINAL",
    "SizeCatalog",
    "SizeSpec",
    "SizeState",
    "VariantResult",
    "get_catalog",
]
