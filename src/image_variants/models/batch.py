"""Pydantic schemas for batch processing requests and results."""

from __future__ import annotations

from pydantic import BaseModel, Field

from image_variants.models.enums import AssetCategory


class BatchItem(BaseModel):
    """One image to process as part of a batch."""

    id: str = Field(description="Caller-assigned identifier, e.g. '603_poster'")
    source_url: str = Field(description="Absolute URL of the origin image")
    category: AssetCategory


class BatchItemResult(BaseModel):
    """Outcome of one batch item.

    Failures are data: a failed item carries its error messages and no
    variants, and never aborts the rest of the batch.
    """

    id: str
    success: bool
    variants: dict[str, str] | None = None
    errors: list[str] = Field(default_factory=list)
