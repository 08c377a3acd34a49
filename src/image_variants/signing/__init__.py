"""SigV4 request signing without a cloud SDK."""

from image_variants.signing.sigv4 import (
    ALGORITHM,
    UNSIGNED_PAYLOAD,
    HeaderAuth,
    SigV4Signer,
    canonical_query_string,
    canonical_request,
    credential_scope,
    derive_signing_key,
    string_to_sign,
)

__all__ = [
    "ALGORITHM",
    "UNSIGNED_PAYLOAD",
    "HeaderAuth",
    "SigV4Signer",
    "canonical_query_string",
    "canonical_request",
    "credential_scope",
    "derive_signing_key",
    "string_to_sign",
]
