"""Tests for the pipeline orchestrator and key derivation."""

from __future__ import annotations

import hashlib
import io

import pytest
from PIL import Image

from image_variants.errors import (
    DownloadError,
    InvalidCategoryError,
    ResizeError,
    UnknownSizeError,
    UploadError,
)
from image_variants.models.batch import BatchItem
from image_variants.models.enums import AssetCategory
from image_variants.pipeline.keys import content_hash, object_key, object_keys
from image_variants.pipeline.orchestrator import ImagePipeline

from conftest import FakeCdn, FakeObjectStore, create_test_image

SOURCE_URL = "https://cdn.example/abc.jpg"
POSTER_SIZES = ["w92", "w154", "w185", "w342", "w500", "w780", "original"]


class TestKeys:
    """Tests for content hashing and object key layout."""

    def test_content_hash_is_md5_of_url(self) -> None:
        assert content_hash(SOURCE_URL) == hashlib.md5(SOURCE_URL.encode()).hexdigest()

    def test_content_hash_is_deterministic(self) -> None:
        assert content_hash(SOURCE_URL) == content_hash(SOURCE_URL)
        assert content_hash(SOURCE_URL) != content_hash("https://cdn.example/abd.jpg")

    def test_object_key_layout(self) -> None:
        assert object_key(AssetCategory.POSTER, "w92", "deadbeef") == (
            "images/poster/w92/deadbeef.jpg"
        )
        assert object_key("profile", "h632", "deadbeef") == "images/profile/h632/deadbeef.jpg"

    def test_object_keys_cover_catalog_in_order(self) -> None:
        keys = object_keys(SOURCE_URL, "poster")
        hash_value = content_hash(SOURCE_URL)

        assert list(keys) == POSTER_SIZES
        assert keys["original"] == f"images/poster/original/{hash_value}.jpg"

    def test_invalid_category(self) -> None:
        with pytest.raises(InvalidCategoryError, match="thumbnail"):
            object_keys(SOURCE_URL, "thumbnail")


class TestProcessImage:
    """Tests for ImagePipeline.process_image."""

    async def test_scenario_poster_produces_seven_urls(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn, fake_store: FakeObjectStore
    ) -> None:
        fake_cdn.images[SOURCE_URL] = create_test_image()

        variants = await pipeline.process_image(SOURCE_URL, "poster")

        assert list(variants) == POSTER_SIZES
        assert all(isinstance(url, str) and url for url in variants.values())
        assert len(fake_store.calls("PUT")) == 7
        assert set(fake_store.objects) == set(object_keys(SOURCE_URL, "poster").values())

    async def test_second_call_uploads_and_downloads_nothing(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn, fake_store: FakeObjectStore
    ) -> None:
        fake_cdn.images[SOURCE_URL] = create_test_image()
        first = await pipeline.process_image(SOURCE_URL, "poster")
        puts_after_first = len(fake_store.calls("PUT"))
        downloads_after_first = len(fake_cdn.requests)

        second = await pipeline.process_image(SOURCE_URL, "poster")

        assert second == first
        assert len(fake_store.calls("PUT")) == puts_after_first
        assert len(fake_cdn.requests) == downloads_after_first

    async def test_source_downloaded_once_per_call(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn
    ) -> None:
        fake_cdn.images[SOURCE_URL] = create_test_image()

        await pipeline.process_image(SOURCE_URL, "backdrop")

        assert len(fake_cdn.requests) == 1

    async def test_no_download_when_everything_exists(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn, fake_store: FakeObjectStore
    ) -> None:
        for key in object_keys(SOURCE_URL, "profile").values():
            fake_store.objects[key] = b"stored"

        variants = await pipeline.process_image(SOURCE_URL, "profile")

        assert list(variants) == ["w45", "w185", "h632", "original"]
        assert fake_cdn.requests == []
        assert fake_store.calls("PUT") == []

    async def test_download_deferred_until_first_miss(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn, fake_store: FakeObjectStore
    ) -> None:
        fake_cdn.images[SOURCE_URL] = create_test_image()
        keys = object_keys(SOURCE_URL, "backdrop")
        for size in ("w300", "w780", "w1280"):
            fake_store.objects[keys[size]] = b"stored"

        await pipeline.process_image(SOURCE_URL, "backdrop")

        assert len(fake_cdn.requests) == 1
        assert [fake_store.key_of(r) for r in fake_store.calls("PUT")] == [keys["original"]]

    async def test_original_is_byte_identical(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn, fake_store: FakeObjectStore
    ) -> None:
        source = create_test_image(format="PNG")
        fake_cdn.images[SOURCE_URL] = source

        await pipeline.process_image(SOURCE_URL, "poster")

        original_key = object_keys(SOURCE_URL, "poster")["original"]
        assert fake_store.objects[original_key] == source
        put = next(r for r in fake_store.calls("PUT") if fake_store.key_of(r) == original_key)
        assert put.headers["Content-Type"] == "image/png"

    async def test_resized_variants_are_jpeg(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn, fake_store: FakeObjectStore
    ) -> None:
        fake_cdn.images[SOURCE_URL] = create_test_image(format="PNG")

        await pipeline.process_image(SOURCE_URL, "poster")

        w342 = fake_store.objects[object_keys(SOURCE_URL, "poster")["w342"]]
        img = Image.open(io.BytesIO(w342))
        assert img.format == "JPEG"
        assert img.size == (342, 513)

    async def test_upload_failure_raises_without_partial_result(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn, fake_store: FakeObjectStore
    ) -> None:
        fake_cdn.images[SOURCE_URL] = create_test_image()
        keys = object_keys(SOURCE_URL, "poster")
        fake_store.fail_put_keys.add(keys["w342"])

        with pytest.raises(UploadError) as exc_info:
            await pipeline.process_image(SOURCE_URL, "poster")

        assert exc_info.value.key == keys["w342"]
        # Earlier sizes stay durably stored
        assert {keys["w92"], keys["w154"], keys["w185"]} <= set(fake_store.objects)
        assert keys["w500"] not in fake_store.objects

    async def test_retry_after_failure_skips_stored_sizes(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn, fake_store: FakeObjectStore
    ) -> None:
        fake_cdn.images[SOURCE_URL] = create_test_image()
        keys = object_keys(SOURCE_URL, "poster")
        fake_store.fail_put_keys.add(keys["w342"])
        with pytest.raises(UploadError):
            await pipeline.process_image(SOURCE_URL, "poster")

        fake_store.fail_put_keys.clear()
        fake_store.requests.clear()
        variants = await pipeline.process_image(SOURCE_URL, "poster")

        assert list(variants) == POSTER_SIZES
        uploaded = [fake_store.key_of(r) for r in fake_store.calls("PUT")]
        assert uploaded == [keys[s] for s in ("w342", "w500", "w780", "original")]

    async def test_download_failure_propagates(
        self, pipeline: ImagePipeline, fake_store: FakeObjectStore
    ) -> None:
        with pytest.raises(DownloadError):
            await pipeline.process_image("https://cdn.example/missing.jpg", "poster")
        assert fake_store.calls("PUT") == []

    async def test_undecodable_source_propagates(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn, fake_store: FakeObjectStore
    ) -> None:
        fake_cdn.images[SOURCE_URL] = b"<html>not an image</html>"

        with pytest.raises(ResizeError):
            await pipeline.process_image(SOURCE_URL, "poster")
        assert fake_store.calls("PUT") == []

    async def test_existence_failures_force_regeneration(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn, fake_store: FakeObjectStore
    ) -> None:
        fake_cdn.images[SOURCE_URL] = create_test_image()
        fake_store.head_error = True

        variants = await pipeline.process_image(SOURCE_URL, "profile")

        assert len(variants) == 4
        assert len(fake_store.calls("PUT")) == 4
        assert pipeline.store.stats.existence_check_failures == 4

    async def test_invalid_category_before_network(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn, fake_store: FakeObjectStore
    ) -> None:
        with pytest.raises(InvalidCategoryError):
            await pipeline.process_image(SOURCE_URL, "banner")
        assert fake_store.requests == []
        assert fake_cdn.requests == []


class TestGetImage:
    """Tests for ImagePipeline.get_image."""

    async def test_cache_hit_checks_one_key(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn, fake_store: FakeObjectStore
    ) -> None:
        key = object_keys(SOURCE_URL, "poster")["w500"]
        fake_store.objects[key] = b"stored"

        url = await pipeline.get_image(SOURCE_URL, "poster", "w500")

        assert f"/{key}?" in url
        assert len(fake_store.calls("HEAD")) == 1
        assert fake_cdn.requests == []

    async def test_defaults_to_catalog_default_size(
        self, pipeline: ImagePipeline, fake_store: FakeObjectStore
    ) -> None:
        key = object_keys(SOURCE_URL, "backdrop")["w780"]
        fake_store.objects[key] = b"stored"

        url = await pipeline.get_image(SOURCE_URL, "backdrop")

        assert f"/{key}?" in url

    async def test_miss_processes_whole_catalog(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn, fake_store: FakeObjectStore
    ) -> None:
        fake_cdn.images[SOURCE_URL] = create_test_image()

        url = await pipeline.get_image(SOURCE_URL, "poster", "w185")

        assert "/images/poster/w185/" in url
        assert len(fake_store.calls("PUT")) == 7

    async def test_unknown_size_before_network(
        self, pipeline: ImagePipeline, fake_store: FakeObjectStore
    ) -> None:
        with pytest.raises(UnknownSizeError, match="w9999"):
            await pipeline.get_image(SOURCE_URL, "poster", "w9999")
        assert fake_store.requests == []


class TestBatchProcessImages:
    """Tests for ImagePipeline.batch_process_images."""

    async def test_failure_is_isolated(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn
    ) -> None:
        fake_cdn.images[SOURCE_URL] = create_test_image()
        items = [
            BatchItem(id="A", source_url=SOURCE_URL, category=AssetCategory.POSTER),
            BatchItem(id="B", source_url="https://cdn.example/gone.jpg", category="poster"),
        ]

        results = await pipeline.batch_process_images(items)

        assert results["A"].success is True
        assert list(results["A"].variants or {}) == POSTER_SIZES
        assert results["A"].errors == []
        assert results["B"].success is False
        assert results["B"].variants is None
        assert results["B"].errors and "gone.jpg" in results["B"].errors[0]

    async def test_failure_first_does_not_block_later_items(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn
    ) -> None:
        fake_cdn.images[SOURCE_URL] = create_test_image()
        results = await pipeline.batch_process_images(
            [
                {"id": "bad", "source_url": "https://cdn.example/gone.jpg", "category": "poster"},
                {"id": "good", "source_url": SOURCE_URL, "category": "profile"},
            ]
        )

        assert list(results) == ["bad", "good"]
        assert results["bad"].success is False
        assert results["good"].success is True

    async def test_invalid_item_recorded(self, pipeline: ImagePipeline) -> None:
        results = await pipeline.batch_process_images(
            [{"id": "x", "source_url": SOURCE_URL, "category": "banner"}]
        )

        assert results["x"].success is False
        assert results["x"].errors

    async def test_unexpected_errors_become_data(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn, monkeypatch
    ) -> None:
        async def explode(*args, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(pipeline, "process_image", explode)
        results = await pipeline.batch_process_images(
            [BatchItem(id="z", source_url=SOURCE_URL, category="poster")]
        )

        assert results["z"].errors == ["disk on fire"]

    async def test_empty_batch(self, pipeline: ImagePipeline) -> None:
        assert await pipeline.batch_process_images([]) == {}

    async def test_non_mapping_item_recorded_by_position(
        self, pipeline: ImagePipeline, fake_cdn: FakeCdn
    ) -> None:
        fake_cdn.images[SOURCE_URL] = create_test_image()
        results = await pipeline.batch_process_images(
            [{"id": "good", "source_url": SOURCE_URL, "category": "profile"}, "oops", 42]
        )

        assert list(results) == ["good", "#1", "#2"]
        assert results["good"].success is True
        assert results["#1"].success is False
        assert results["#1"].errors
        assert results["#2"].id == "#2"
        assert results["#2"].success is False

    async def test_items_without_id_kept_apart(self, pipeline: ImagePipeline) -> None:
        results = await pipeline.batch_process_images(
            [
                {"source_url": "https://cdn.example/a.jpg", "category": "poster"},
                {"source_url": "https://cdn.example/b.jpg", "category": "poster"},
            ]
        )

        assert list(results) == ["#0", "#1"]
        assert "a.jpg" in results["#0"].errors[0]
        assert "b.jpg" in results["#1"].errors[0]
