"""Shared pytest fixtures for image variant tests."""

from __future__ import annotations

import io
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import httpx
import pytest
from PIL import Image

from image_variants.clients.object_store import ObjectStoreClient
from image_variants.clients.source import SourceClient
from image_variants.config import StoreConfig
from image_variants.pipeline.orchestrator import ImagePipeline
from image_variants.signing.sigv4 import SigV4Signer

ENDPOINT = "https://test-bucket.acct123.r2.cloudflarestorage.com"
FROZEN_NOW = datetime(2024, 3, 15, 12, 30, 45, tzinfo=timezone.utc)


def create_test_image(width: int = 600, height: int = 900, format: str = "JPEG") -> bytes:
    """Create a minimal test image."""
    mode = "RGBA" if format == "PNG" else "RGB"
    img = Image.new(mode, (width, height), color="red")
    buffer = io.BytesIO()
    img.save(buffer, format=format)
    return buffer.getvalue()


class FakeObjectStore:
    """In-memory S3-compatible endpoint served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []
        self.fail_put_keys: set[str] = set()
        self.head_status: int | None = None  # Force a HEAD status
        self.head_error: bool = False

    def key_of(self, request: httpx.Request) -> str:
        return request.url.path.lstrip("/")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = self.key_of(request)

        if request.method == "HEAD":
            if self.head_error:
                raise httpx.ConnectError("connection refused", request=request)
            if self.head_status is not None:
                return httpx.Response(self.head_status)
            return httpx.Response(200 if key in self.objects else 404)

        if request.method == "PUT":
            if key in self.fail_put_keys:
                return httpx.Response(500, text="InternalError")
            self.objects[key] = request.content
            return httpx.Response(200)

        return httpx.Response(405)

    def calls(self, method: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method]


class FakeCdn:
    """Upstream image CDN: serves registered URLs, 404 for anything else."""

    def __init__(self) -> None:
        self.images: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = self.images.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body)


@pytest.fixture
def store_config() -> StoreConfig:
    return StoreConfig(
        access_key_id="AKIDEXAMPLE",
        secret_access_key="wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
        endpoint=ENDPOINT,
    )


@pytest.fixture
def frozen_clock():
    return lambda: FROZEN_NOW


@pytest.fixture
def signer(store_config: StoreConfig, frozen_clock) -> SigV4Signer:
    return SigV4Signer(store_config, clock=frozen_clock)


@pytest.fixture
def fake_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def fake_cdn() -> FakeCdn:
    return FakeCdn()


@pytest.fixture
async def store_client(
    store_config: StoreConfig, signer: SigV4Signer, fake_store: FakeObjectStore
) -> AsyncGenerator[ObjectStoreClient, None]:
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_store.handler))
    client = ObjectStoreClient(store_config, signer=signer, http_client=http)
    yield client
    await http.aclose()


@pytest.fixture
async def pipeline(
    store_client: ObjectStoreClient, fake_cdn: FakeCdn
) -> AsyncGenerator[ImagePipeline, None]:
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_cdn.handler))
    yield ImagePipeline(store_client, SourceClient(http_client=http))
    await http.aclose()
