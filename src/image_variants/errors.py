"""Domain-specific exceptions for the derivative pipeline."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(PipelineError):
    """Raised at startup when store credentials or identity are missing."""


class InvalidCategoryError(PipelineError, ValueError):
    """Raised when an asset category has no size catalog."""


class UnknownSizeError(PipelineError, ValueError):
    """Raised when a size name is not part of the category's catalog."""


class DownloadError(PipelineError):
    """Raised when the source image cannot be fetched."""

    def __init__(self, url: str, status: int | None = None, reason: str | None = None) -> None:
        self.url = url
        self.status = status
        detail = f"status {status}" if status is not None else (reason or "transport error")
        super().__init__(f"download failed for {url}: {detail}")


class ResizeError(PipelineError):
    """Raised when a source buffer cannot be decoded or re-encoded."""


class StoreError(PipelineError):
    """Base class for object store failures that propagate to callers."""

    def __init__(
        self, operation: str, key: str, status: int | None = None, reason: str | None = None
    ) -> None:
        self.operation = operation
        self.key = key
        self.status = status
        detail = f"status {status}" if status is not None else (reason or "transport error")
        super().__init__(f"{operation} failed for {key}: {detail}")


class UploadError(StoreError):
    """Raised when a PUT to the object store does not succeed."""

    def __init__(self, key: str, status: int | None = None, reason: str | None = None) -> None:
        super().__init__("upload", key, status=status, reason=reason)
