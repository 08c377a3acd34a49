"""Image format probing from magic bytes.

Used to label ``original`` objects with a truthful Content-Type. Object keys
keep their ``.jpg`` suffix regardless, since keys must be known before the
source is downloaded.
"""

from __future__ import annotations

from typing import Final

DEFAULT_CONTENT_TYPE: Final = "application/octet-stream"

# Format: (magic_bytes, offset, content_type)
_MAGIC_SIGNATURES: Final[list[tuple[bytes, int, str]]] = [
    (b"\xff\xd8\xff", 0, "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", 0, "image/png"),
    (b"GIF87a", 0, "image/gif"),
    (b"GIF89a", 0, "image/gif"),
    (b"WEBP", 8, "image/webp"),  # RIFF container, brand at offset 8
    (b"BM", 0, "image/bmp"),
    (b"II*\x00", 0, "image/tiff"),  # little-endian
    (b"MM\x00*", 0, "image/tiff"),  # big-endian
]


def probe_content_type(data: bytes) -> str:
    """Return the image MIME type for ``data`` or ``application/octet-stream``."""
    for magic, offset, content_type in _MAGIC_SIGNATURES:
        if data[offset : offset + len(magic)] == magic:
            if content_type == "image/webp" and not data.startswith(b"RIFF"):
                continue
            return content_type
    return DEFAULT_CONTENT_TYPE

