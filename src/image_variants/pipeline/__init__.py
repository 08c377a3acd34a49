"""Pipeline orchestration.

Main entry point:
    from image_variants.pipeline import ImagePipeline

    async with ImagePipeline.from_config(StoreConfig.from_settings()) as pipeline:
        variants = await pipeline.process_image(url, "poster")
"""

from image_variants.pipeline.keys import content_hash, object_key, object_keys
from image_variants.pipeline.orchestrator import ImagePipeline

__all__ = [
    "ImagePipeline",
    "content_hash",
    "object_key",
    "object_keys",
]
