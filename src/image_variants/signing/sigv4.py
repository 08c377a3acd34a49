"""AWS Signature Version 4 for S3-compatible object stores.

Pure functions plus a small signer bound to one set of credentials. Nothing
here performs I/O; the only impure input is the clock, which is injectable
and sampled exactly once per signing call so the date stamp, amz-date and
credential scope always agree.

Request flow:
    canonical_request -> sha256 -> string_to_sign -> HMAC(derive_signing_key)
"""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Final
from urllib.parse import quote

from image_variants.config import StoreConfig

ALGORITHM: Final = "AWS4-HMAC-SHA256"
UNSIGNED_PAYLOAD: Final = "UNSIGNED-PAYLOAD"
TERMINATOR: Final = "aws4_request"
DEFAULT_REGION: Final = "auto"
DEFAULT_SERVICE: Final = "s3"

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def _sha256_hex(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _uri_encode(value: str, *, keep_slash: bool = False) -> str:
    # RFC 3986 unreserved characters are never encoded
    safe = "-_.~/" if keep_slash else "-_.~"
    return quote(value, safe=safe)


def amz_timestamps(now: datetime) -> tuple[str, str]:
    """Return ``(amz_date, date_stamp)``, e.g. ``("20130524T000000Z", "20130524")``."""
    amz_date = now.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return amz_date, amz_date[:8]


def credential_scope(
    date_stamp: str, region: str = DEFAULT_REGION, service: str = DEFAULT_SERVICE
) -> str:
    return f"{date_stamp}/{region}/{service}/{TERMINATOR}"


def derive_signing_key(
    secret_key: str,
    date_stamp: str,
    region: str = DEFAULT_REGION,
    service: str = DEFAULT_SERVICE,
) -> bytes:
    """Derive the SigV4 signing key via the date -> region -> service chain."""
    k_date = _hmac(f"AWS4{secret_key}".encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, TERMINATOR)


def canonical_query_string(params: Mapping[str, str]) -> str:
    """Encode and sort query parameters as SigV4 requires."""
    encoded = sorted((_uri_encode(k), _uri_encode(v)) for k, v in params.items())
    return "&".join(f"{k}={v}" for k, v in encoded)


def canonical_request(
    method: str,
    path: str,
    query_string: str,
    headers: Mapping[str, str],
    signed_headers: Sequence[str] | None = None,
    payload_hash: str = UNSIGNED_PAYLOAD,
) -> str:
    """Build the canonical request string.

    Args:
        method: HTTP verb, upper-case.
        path: Absolute request path; URI-encoded here with ``/`` preserved.
        query_string: Already-canonical query string (see canonical_query_string).
        headers: Headers to sign. Names are lower-cased and sorted.
        signed_headers: Subset of header names to sign. Defaults to all.
        payload_hash: Hex digest of the body or ``UNSIGNED-PAYLOAD``.
    """
    normalized = {name.lower(): " ".join(str(value).split()) for name, value in headers.items()}
    names = sorted(
        {name.lower() for name in signed_headers} if signed_headers is not None else normalized
    )
    missing = [name for name in names if name not in normalized]
    if missing:
        raise ValueError(f"signed headers missing from request: {', '.join(missing)}")

    canonical_headers = "".join(f"{name}:{normalized[name]}\n" for name in names)
    return "\n".join(
        [
            method.upper(),
            _uri_encode(path, keep_slash=True),
            query_string,
            canonical_headers,
            ";".join(names),
            payload_hash,
        ]
    )


def string_to_sign(amz_date: str, scope: str, canonical_request_hash: str) -> str:
    return "\n".join([ALGORITHM, amz_date, scope, canonical_request_hash])


def sign(signing_key: bytes, text: str) -> str:
    """Hex HMAC-SHA256 of the string to sign."""
    return hmac.new(signing_key, text.encode("utf-8"), hashlib.sha256).hexdigest()


@dataclass(frozen=True)
class HeaderAuth:
    """Headers to send with a header-signed request."""

    authorization: str
    amz_date: str
    signed_headers: str

    def as_headers(self) -> dict[str, str]:
        return {
            "Authorization": self.authorization,
            "x-amz-date": self.amz_date,
            "x-amz-content-sha256": UNSIGNED_PAYLOAD,
        }


class SigV4Signer:
    """Sign requests for one bucket endpoint.

    Usage:
        signer = SigV4Signer(StoreConfig.from_settings())
        auth = signer.header_auth("PUT", "/images/poster/w92/abc.jpg", "image/jpeg")
        url = signer.presigned_url("images/poster/w92/abc.jpg")
    """

    def __init__(self, config: StoreConfig, clock: Clock | None = None) -> None:
        self._config = config
        self._clock = clock or utc_now

    @property
    def host(self) -> str:
        return self._config.host

    def header_auth(
        self,
        method: str,
        path: str,
        content_type: str | None = None,
        amz_headers: Mapping[str, str] | None = None,
    ) -> HeaderAuth:
        """Sign a request whose credentials travel in the Authorization header.

        Signs ``host``, ``x-amz-content-sha256``, ``x-amz-date`` and, when
        given, ``content-type`` plus any extra ``x-amz-*`` headers the request
        will carry. The body is never hashed (streaming upload).
        """
        amz_date, date_stamp = amz_timestamps(self._clock())
        scope = credential_scope(date_stamp, self._config.region, self._config.service)

        headers = {
            "host": self.host,
            "x-amz-content-sha256": UNSIGNED_PAYLOAD,
            "x-amz-date": amz_date,
        }
        if content_type:
            headers["content-type"] = content_type
        for name, value in (amz_headers or {}).items():
            headers[name.lower()] = value

        request = canonical_request(method, path, "", headers)
        signature = self._signature(request, amz_date, date_stamp, scope)
        signed = ";".join(sorted(headers))

        authorization = (
            f"{ALGORITHM} Credential={self._config.access_key_id}/{scope}, "
            f"SignedHeaders={signed}, Signature={signature}"
        )
        return HeaderAuth(authorization=authorization, amz_date=amz_date, signed_headers=signed)

    def presigned_url(self, key: str, expires_in: int | None = None) -> str:
        """Build a time-boxed GET URL carrying its signature in the query string."""
        expires = expires_in if expires_in is not None else self._config.presign_expiry_seconds
        amz_date, date_stamp = amz_timestamps(self._clock())
        scope = credential_scope(date_stamp, self._config.region, self._config.service)

        params = {
            "X-Amz-Algorithm": ALGORITHM,
            "X-Amz-Credential": f"{self._config.access_key_id}/{scope}",
            "X-Amz-Date": amz_date,
            "X-Amz-Expires": str(expires),
            "X-Amz-SignedHeaders": "host",
        }
        query = canonical_query_string(params)
        path = self._config.object_path(key)

        request = canonical_request("GET", path, query, {"host": self.host})
        signature = self._signature(request, amz_date, date_stamp, scope)

        url = f"{self._config.origin}{_uri_encode(path, keep_slash=True)}"
        return f"{url}?{query}&X-Amz-Signature={signature}"

    def _signature(self, request: str, amz_date: str, date_stamp: str, scope: str) -> str:
        key = derive_signing_key(
            self._config.secret_access_key,
            date_stamp,
            self._config.region,
            self._config.service,
        )
        return sign(key, string_to_sign(amz_date, scope, _sha256_hex(request)))
