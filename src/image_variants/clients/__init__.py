"""Network clients: the object store and the upstream image CDN."""

from image_variants.clients.object_store import ObjectStoreClient, StoreStats
from image_variants.clients.source import SourceClient

__all__ = [
    "ObjectStoreClient",
    "SourceClient",
    "StoreStats",
]
