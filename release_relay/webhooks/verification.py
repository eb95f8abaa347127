"""Webhook signature verification: constant-time HMAC-SHA256.

Security contract:
- Signatures arrive as ``X-Hub-Signature-256: sha256=<hex>`` over the raw body
- SHA-256 is the only accepted algorithm (legacy SHA-1 headers are ignored)
- Digests are compared as raw bytes with hmac.compare_digest() (no early exit)
- Absent header -> MissingSignatureError (401)
- Wrong prefix or non-hex/wrong-length digest -> MalformedSignatureError (400)
- Well-formed but wrong digest -> verify() returns False (401 upstream)
- Empty secret is a configuration error, never a per-request failure
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re

from release_relay.errors import (
    ConfigError,
    MalformedSignatureError,
    MissingSignatureError,
    SignatureMismatchError,
)

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-hub-signature-256"
SIGNATURE_PREFIX = "sha256="
DIGEST_ALGORITHM = hashlib.sha256

_HEX_DIGEST_LENGTH = DIGEST_ALGORITHM().digest_size * 2
_HEX_RE = re.compile(r"[0-9a-fA-F]+")


def compute_digest(secret: bytes, raw_body: bytes) -> bytes:
    """Raw HMAC-SHA256 digest of the body keyed by the secret."""
    if not secret:
        raise ConfigError("Webhook secret is not configured")
    return hmac.new(secret, raw_body, DIGEST_ALGORITHM).digest()


def sign(secret: bytes, raw_body: bytes) -> str:
    """Build the signature header value a sender would attach to this body."""
    return SIGNATURE_PREFIX + compute_digest(secret, raw_body).hex()


def parse_signature_header(header: str | None) -> bytes:
    """Strip the ``sha256=`` prefix and decode the hex digest.

    Args:
        header: Value of the X-Hub-Signature-256 header

    Returns:
        The presented digest as raw bytes

    Raises:
        MissingSignatureError: header absent or empty
        MalformedSignatureError: prefix missing, or digest not a SHA-256 hex string
    """
    if not header:
        raise MissingSignatureError()
    if not header.startswith(SIGNATURE_PREFIX):
        raise MalformedSignatureError(f"Signature header must start with '{SIGNATURE_PREFIX}'")

    hex_digest = header[len(SIGNATURE_PREFIX):]
    if len(hex_digest) != _HEX_DIGEST_LENGTH or not _HEX_RE.fullmatch(hex_digest):
        raise MalformedSignatureError("Signature digest is not a SHA-256 hex string")
    return bytes.fromhex(hex_digest)


def verify(secret: bytes, raw_body: bytes, presented_signature: str | None) -> bool:
    """Verify a webhook body against its presented signature header.

    Args:
        secret: Shared webhook secret (HMAC key)
        raw_body: Request body exactly as received
        presented_signature: Value of the X-Hub-Signature-256 header

    Returns:
        True if the signature matches the body

    Raises:
        MissingSignatureError / MalformedSignatureError: header unusable
        ConfigError: secret is empty
    """
    presented = parse_signature_header(presented_signature)
    computed = compute_digest(secret, raw_body)
    return hmac.compare_digest(computed, presented)


def require_valid_signature(secret: bytes, raw_body: bytes, presented_signature: str | None) -> None:
    """Like verify(), but raises SignatureMismatchError instead of returning False."""
    if not verify(secret, raw_body, presented_signature):
        raise SignatureMismatchError()
