"""Async client for an S3-compatible object store (Cloudflare R2 by default)."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from types import TracebackType

import httpx

from image_variants.config import StoreConfig, settings
from image_variants.errors import UploadError
from image_variants.signing.sigv4 import SigV4Signer

logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=31536000, immutable"
SOURCE_METADATA = "tmdb"


@dataclass
class StoreStats:
    """Per-client counters. Existence failures are downgraded to misses, so
    this is the only place a degraded store shows up."""

    existence_checks: int = 0
    existence_check_failures: int = 0
    uploads: int = 0


class ObjectStoreClient:
    """HEAD / PUT / URL construction for content-addressed objects.

    All requests are signed with SigV4 by hand; no cloud SDK involved.

    Usage:
        async with ObjectStoreClient(StoreConfig.from_settings()) as store:
            if not await store.exists(key):
                await store.upload(key, data)
            url = store.url_for(key)
    """

    def __init__(
        self,
        config: StoreConfig,
        *,
        signer: SigV4Signer | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._signer = signer or SigV4Signer(config)
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self.stats = StoreStats()

    async def __aenter__(self) -> ObjectStoreClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def exists(self, key: str) -> bool:
        """Check whether ``key`` is stored.

        Only a 200 counts as present. Any other status or a transport error is
        logged and treated as absent so the caller regenerates instead of failing.
        """
        self.stats.existence_checks += 1
        path = self._config.object_path(key)
        auth = self._signer.header_auth("HEAD", path)

        start_time = time.time()
        try:
            response = await self._http.head(
                self._config.object_url(key), headers=auth.as_headers()
            )
        except httpx.HTTPError as e:
            self.stats.existence_check_failures += 1
            logger.warning("[STORE] HEAD %s failed, treating as absent: %s", key, e)
            return False

        if settings.log_api_calls:
            elapsed = (time.time() - start_time) * 1000  # ms
            logger.info("[STORE] HEAD %s → %d (%.0fms)", key, response.status_code, elapsed)

        if response.status_code == 200:
            return True
        if response.status_code == 404:
            logger.debug("[STORE] HEAD %s → 404, not stored", key)
        else:
            self.stats.existence_check_failures += 1
            logger.warning(
                "[STORE] HEAD %s returned %d, treating as absent", key, response.status_code
            )
        return False

    async def upload(self, key: str, data: bytes, content_type: str = "image/jpeg") -> None:
        """PUT ``data`` under ``key`` as an immutable, publicly cacheable object.

        Raises:
            UploadError: On a non-2xx response or a transport failure.
        """
        path = self._config.object_path(key)
        amz_headers = {
            "x-amz-meta-source": SOURCE_METADATA,
            "x-amz-meta-processed-at": datetime.now(timezone.utc).isoformat(),
            "x-amz-storage-class": "STANDARD",
        }
        auth = self._signer.header_auth("PUT", path, content_type, amz_headers)
        headers = {
            "Content-Type": content_type,
            "Cache-Control": CACHE_CONTROL,
            **amz_headers,
            **auth.as_headers(),
        }

        start_time = time.time()
        try:
            response = await self._http.put(
                self._config.object_url(key), content=data, headers=headers
            )
        except httpx.HTTPError as e:
            raise UploadError(key, reason=str(e)) from e

        if not response.is_success:
            raise UploadError(key, status=response.status_code)

        self.stats.uploads += 1
        if settings.log_api_calls:
            elapsed = (time.time() - start_time) * 1000  # ms
            logger.info(
                "[STORE] PUT %s (%d bytes, %s) → %d (%.0fms)",
                key, len(data), content_type, response.status_code, elapsed
            )

    def url_for(self, key: str) -> str:
        """Public URL when a custom domain is configured, otherwise a presigned GET."""
        if self._config.custom_domain:
            return f"{self._config.custom_domain}/{key}"
        return self._signer.presigned_url(key, self._config.presign_expiry_seconds)
