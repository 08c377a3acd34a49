"""Download origin images from the upstream CDN."""

from __future__ import annotations

import logging
import time

import httpx

from image_variants.config import settings
from image_variants.errors import DownloadError

logger = logging.getLogger(__name__)


class SourceClient:
    """Fetch source image bytes over HTTP."""

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=settings.http_timeout_seconds, follow_redirects=True
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def download(self, url: str) -> bytes:
        """Return the body at ``url``.

        Raises:
            DownloadError: On a non-2xx response or a transport failure.
        """
        start_time = time.time()
        try:
            response = await self._http.get(url)
        except httpx.HTTPError as e:
            raise DownloadError(url, reason=str(e)) from e

        if not response.is_success:
            raise DownloadError(url, status=response.status_code)

        if settings.log_api_calls:
            elapsed = (time.time() - start_time) * 1000  # ms
            logger.info(
                "[SOURCE] GET %s (%d bytes) (%.0fms)", url, len(response.content), elapsed
            )

        return response.content
