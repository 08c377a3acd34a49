"""Configuration settings for the image variant pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from image_variants.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Object store (Cloudflare R2 / any S3-compatible endpoint) ────────────
    cloudflare_account_id: str | None = None
    r2_access_key_id: str | None = None
    r2_secret_access_key: str | None = None
    r2_bucket_name: str = "baphomet-images"

    # Public domain serving the bucket, e.g. "https://images.example.com".
    # When set, variant URLs are built directly and never signed.
    r2_custom_domain: str | None = None

    # Full endpoint override (e.g. a local MinIO). Defaults to the R2
    # virtual-hosted endpoint derived from bucket + account.
    r2_endpoint_url: str | None = None

    # SigV4 scope. R2 accepts "auto"; other S3 stores need their real region.
    r2_region: str = "auto"

    # 7 days, the SigV4 maximum
    presign_expiry_seconds: int = Field(default=604800, ge=1, le=604800)

    # ── Source CDN ───────────────────────────────────────────────────────────
    tmdb_image_base_url: str = "https://image.tmdb.org/t/p"

    # ── HTTP / logging ───────────────────────────────────────────────────────
    http_timeout_seconds: float = 30.0
    log_level: str = "INFO"
    log_api_calls: bool = False


settings = Settings()


@dataclass(frozen=True)
class StoreConfig:
    """Validated, immutable object store identity.

    Built once at startup and handed to the signer and clients. Missing
    credentials are a fatal configuration error here, never a per-call one.
    """

    access_key_id: str
    secret_access_key: str
    endpoint: str
    region: str = "auto"
    service: str = "s3"
    custom_domain: str | None = None
    presign_expiry_seconds: int = 604800

    @property
    def host(self) -> str:
        return urlsplit(self.endpoint).netloc

    def object_path(self, key: str) -> str:
        """Request path for a key, keeping any path-style bucket prefix of the endpoint."""
        prefix = urlsplit(self.endpoint).path.rstrip("/")
        return f"{prefix}/{key.lstrip('/')}"

    @property
    def origin(self) -> str:
        parts = urlsplit(self.endpoint)
        return f"{parts.scheme}://{parts.netloc}"

    def object_url(self, key: str) -> str:
        return f"{self.origin}{self.object_path(key)}"

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> StoreConfig:
        cfg = source or settings

        missing = [
            name
            for name, value in (
                ("R2_ACCESS_KEY_ID", cfg.r2_access_key_id),
                ("R2_SECRET_ACCESS_KEY", cfg.r2_secret_access_key),
            )
            if not value
        ]
        if not cfg.r2_endpoint_url and not cfg.cloudflare_account_id:
            missing.append("CLOUDFLARE_ACCOUNT_ID")
        if not cfg.r2_bucket_name and not cfg.r2_endpoint_url:
            missing.append("R2_BUCKET_NAME")
        if missing:
            raise ConfigurationError(
                f"object store is not configured; missing: {', '.join(missing)}"
            )

        if cfg.r2_endpoint_url:
            endpoint = cfg.r2_endpoint_url
        else:
            endpoint = (
                f"https://{cfg.r2_bucket_name}.{cfg.cloudflare_account_id}"
                ".r2.cloudflarestorage.com"
            )

        custom_domain = cfg.r2_custom_domain.rstrip("/") if cfg.r2_custom_domain else None

        return cls(
            access_key_id=cfg.r2_access_key_id,  # type: ignore[arg-type]
            secret_access_key=cfg.r2_secret_access_key,  # type: ignore[arg-type]
            endpoint=endpoint.rstrip("/"),
            region=cfg.r2_region,
            custom_domain=custom_domain,
            presign_expiry_seconds=cfg.presign_expiry_seconds,
        )
