"""Error taxonomy for the relay.

- ConfigError: fatal, raised at startup (e.g. missing webhook secret)
- AuthError: per-request signature failures (absent, malformed, mismatched)
- DecodeError: per-request payload that does not match the release-event schema
- StoreError: I/O or corruption in the metadata store, never retried here
- ResolveError: expected outcomes while architectures are still rolling out
"""

from __future__ import annotations

from enum import Enum


class RelayError(Exception):
    """Base class for every error raised by the relay core."""


class ConfigError(RelayError):
    """Service configuration is unusable. The process must not start."""


# ── Authentication ────────────────────────────────────────────────────────


class AuthError(RelayError):
    """Webhook delivery could not be authenticated."""


class MissingSignatureError(AuthError):
    """Signature header absent or empty."""

    def __init__(self) -> None:
        super().__init__("Signature header is missing")


class MalformedSignatureError(AuthError):
    """Signature header present but structurally invalid (prefix or digest shape)."""


class SignatureMismatchError(AuthError):
    """Signature is well-formed but does not match the body."""

    def __init__(self) -> None:
        super().__init__("Signature does not match request body")


# ── Payload decoding ──────────────────────────────────────────────────────


class DecodeError(RelayError):
    """Webhook body is not a valid release event."""


# ── Storage ───────────────────────────────────────────────────────────────


class StoreErrorKind(Enum):
    """Classification of metadata store failures."""

    IO = "io"
    CORRUPT = "corrupt"


class StoreError(RelayError):
    """Metadata store failure. Corruption requires operator intervention."""

    def __init__(self, message: str, kind: StoreErrorKind) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind


# ── Resolution ────────────────────────────────────────────────────────────


class ResolveError(RelayError):
    """Stored history cannot produce a consistent per-architecture answer."""


class MissingArchitecturesError(ResolveError):
    """One or more required architectures have no usable record."""

    def __init__(self, architectures: list[str]) -> None:
        super().__init__(f"Missing architectures: {', '.join(architectures)}")
        self.architectures = list(architectures)


class VersionMismatchError(ResolveError):
    """Selected versions differ across architectures while parity is enforced."""

    def __init__(self, versions: dict[str, str]) -> None:
        detail = ", ".join(f"{arch}={version}" for arch, version in versions.items())
        super().__init__(f"Architecture versions disagree: {detail}")
        self.versions = dict(versions)
