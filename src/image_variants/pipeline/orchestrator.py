"""Pipeline orchestrator: cache-aware variant generation.

The orchestrator is the only component that knows about size catalogs.
For each size, in catalog order:

    CHECKING_EXISTENCE -> EXISTS
                       -> DOWNLOADING -> RESIZING -> UPLOADING -> EXISTS
                                                              -> FAILED (raises)

The source is downloaded at most once per call and only when the first
missing size is reached, so a fully cached image costs HEAD requests only.
Sizes and batch items are processed strictly one after another, keeping at
most one request in flight against the store and the upstream CDN.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping
from types import TracebackType
from typing import Any

from pydantic import ValidationError

from image_variants.clients.object_store import ObjectStoreClient
from image_variants.clients.source import SourceClient
from image_variants.config import StoreConfig
from image_variants.derivatives.generator import DerivativeGenerator
from image_variants.errors import PipelineError
from image_variants.models.batch import BatchItem, BatchItemResult
from image_variants.models.catalog import SizeCatalog, SizeSpec, VariantResult, get_catalog
from image_variants.models.enums import AssetCategory, SizeState
from image_variants.pipeline.keys import content_hash, object_key
from image_variants.utils.media_type import probe_content_type

logger = logging.getLogger(__name__)


class ImagePipeline:
    """Produce and persist the size variants of source images.

    Usage:
        async with ImagePipeline.from_config(StoreConfig.from_settings()) as pipeline:
            variants = await pipeline.process_image(url, "poster")
            # variants["w342"], variants["original"], ...
    """

    def __init__(
        self,
        store: ObjectStoreClient,
        source: SourceClient | None = None,
        generator: DerivativeGenerator | None = None,
    ) -> None:
        self._store = store
        self._source = source or SourceClient()
        self._generator = generator or DerivativeGenerator()

    @classmethod
    def from_config(cls, config: StoreConfig) -> ImagePipeline:
        return cls(ObjectStoreClient(config))

    @property
    def store(self) -> ObjectStoreClient:
        return self._store

    async def __aenter__(self) -> ImagePipeline:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._store.aclose()
        await self._source.aclose()

    async def process_image(
        self, source_url: str, category: AssetCategory | str
    ) -> VariantResult:
        """Ensure every catalog size exists in the store and return their URLs.

        Args:
            source_url: Absolute URL of the origin image.
            category: Asset category selecting the size catalog.

        Returns:
            Size name -> URL, one entry per catalog size, in catalog order.

        Raises:
            InvalidCategoryError: Before any network call, for unknown categories.
            DownloadError, ResizeError, UploadError: The whole call fails and no
                partial result is returned. Sizes uploaded before the failure
                stay stored and are skipped on retry.
        """
        catalog = get_catalog(category)
        hash_value = content_hash(source_url)
        source_bytes: bytes | None = None
        results: VariantResult = {}

        for size in catalog.sizes:
            key = object_key(catalog.category, size.name, hash_value)
            self._trace(key, SizeState.CHECKING_EXISTENCE)

            if await self._store.exists(key):
                self._trace(key, SizeState.EXISTS)
                results[size.name] = self._store.url_for(key)
                continue

            try:
                if source_bytes is None:
                    self._trace(key, SizeState.DOWNLOADING)
                    source_bytes = await self._source.download(source_url)
                await self._generate(key, source_bytes, size, catalog)
            except PipelineError as e:
                self._trace(key, SizeState.FAILED)
                logger.error(
                    "[PIPELINE] Failed to process %s %s: %s",
                    catalog.category.value, size.name, e
                )
                raise

            self._trace(key, SizeState.EXISTS)
            results[size.name] = self._store.url_for(key)
            logger.info("[PIPELINE] Processed %s %s: %s", catalog.category.value, size.name, key)

        return results

    async def get_image(
        self,
        source_url: str,
        category: AssetCategory | str,
        size_name: str | None = None,
    ) -> str:
        """URL for one size, generating the whole catalog only on a miss.

        Args:
            source_url: Absolute URL of the origin image.
            category: Asset category selecting the size catalog.
            size_name: Catalog size; defaults to the catalog's default size.

        Raises:
            InvalidCategoryError, UnknownSizeError: Before any network call.
            DownloadError, ResizeError, UploadError: From the process_image fallback.
        """
        catalog = get_catalog(category)
        size = catalog.get(size_name or catalog.default_size)
        key = object_key(catalog.category, size.name, content_hash(source_url))

        if await self._store.exists(key):
            return self._store.url_for(key)

        results = await self.process_image(source_url, catalog.category)
        return results[size.name]

    async def batch_process_images(
        self, items: Iterable[BatchItem | Mapping[str, Any]]
    ) -> dict[str, BatchItemResult]:
        """Process items one at a time; failures are recorded, never raised.

        Args:
            items: BatchItems, or mappings with ``id``, ``source_url`` and ``category``.
                Items without a usable id (including non-mappings) are keyed by
                position as ``#<index>``.

        Returns:
            Item id -> BatchItemResult, in input order.
        """
        results: dict[str, BatchItemResult] = {}

        for index, raw in enumerate(items):
            item_id = _item_id(raw, index)
            try:
                item = raw if isinstance(raw, BatchItem) else BatchItem.model_validate(raw)
                variants = await self.process_image(item.source_url, item.category)
            except ValidationError as e:
                logger.error("[PIPELINE] Invalid batch item %s: %s", item_id, e)
                results[item_id] = BatchItemResult(id=item_id, success=False, errors=[str(e)])
                continue
            except PipelineError as e:
                logger.error("[PIPELINE] Failed to process image %s: %s", item_id, e)
                results[item_id] = BatchItemResult(id=item_id, success=False, errors=[str(e)])
                continue
            except Exception as e:
                # Batch callers get failures as data, whatever the cause
                logger.exception("[PIPELINE] Failed to process image %s", item_id)
                results[item_id] = BatchItemResult(
                    id=item_id, success=False, errors=[str(e) or type(e).__name__]
                )
                continue

            results[item_id] = BatchItemResult(id=item_id, success=True, variants=variants)

        return results

    async def _generate(
        self, key: str, source_bytes: bytes, size: SizeSpec, catalog: SizeCatalog
    ) -> None:
        self._trace(key, SizeState.RESIZING)
        derived = await asyncio.to_thread(
            self._generator.resize, source_bytes, size, catalog.aspect_ratio
        )
        content_type = probe_content_type(derived) if size.is_original else "image/jpeg"

        self._trace(key, SizeState.UPLOADING)
        await self._store.upload(key, derived, content_type)

    def _trace(self, key: str, state: SizeState) -> None:
        logger.debug("[PIPELINE] %s → %s", key, state.value)


def _item_id(raw: object, index: int) -> str:
    """Result key for a batch item; positional when the item carries no id."""
    if isinstance(raw, BatchItem):
        return raw.id
    if isinstance(raw, Mapping) and raw.get("id") not in (None, ""):
        return str(raw["id"])
    return f"#{index}"
