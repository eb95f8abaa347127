"""Webhook ingest: verify, decode, store, acknowledge.

Per-delivery state machine:

    RECEIVED -> SIGNATURE_CHECKED -> DECODED -> STORED -> ACKNOWLEDGED
        any step may exit to REJECTED(status)

Security contract:
- Signature is checked before the body is parsed
- Absent or mismatched signature -> 401; malformed header -> 400
- Payload that is not a release event -> 400 (unknown fields ignored)
- Store failure -> 500 and no acknowledgement, so the sender redelivers
- Auth and decode rejections log at WARNING, never ERROR (noise traffic)
- Store failures log at ERROR with the store path
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass
from enum import Enum

from release_relay.errors import (
    AuthError,
    DecodeError,
    MalformedSignatureError,
    MissingSignatureError,
    StoreError,
)
from release_relay.models import ReleaseRecord, decode_package_event
from release_relay.store.metadata_store import MetadataStore
from release_relay.webhooks.verification import require_valid_signature

logger = logging.getLogger(__name__)


class IngestStage(Enum):
    """Delivery lifecycle states."""

    RECEIVED = "received"
    SIGNATURE_CHECKED = "signature_checked"
    DECODED = "decoded"
    STORED = "stored"
    ACKNOWLEDGED = "acknowledged"
    REJECTED = "rejected"


@dataclass
class IngestResult:
    """Outcome of one delivery.

    ``failed_at`` is the last stage reached before rejection.
    """

    stage: IngestStage
    status_code: int
    failed_at: IngestStage | None = None
    reason: str = ""
    record: ReleaseRecord | None = None

    @property
    def accepted(self) -> bool:
        return self.stage is IngestStage.ACKNOWLEDGED


class WebhookIngest:
    """Sole writer of the metadata store.

    Args:
        secret: Shared webhook secret (HMAC key); must be non-empty
        store: Destination for decoded release records
    """

    def __init__(self, secret: bytes, store: MetadataStore) -> None:
        self._secret = secret
        self._store = store
        self._counts: Counter[str] = Counter()
        self._counts_lock = threading.Lock()

    @property
    def counts(self) -> dict[str, int]:
        """Delivery counts by outcome."""
        with self._counts_lock:
            return dict(self._counts)

    def _audit(self, result: IngestResult) -> IngestResult:
        outcome = "accepted" if result.accepted else result.reason
        with self._counts_lock:
            self._counts[outcome] += 1
            count = self._counts[outcome]
        tag = result.record.tag.name if result.record else "unknown"
        if result.status_code >= 500:
            level = logging.ERROR
        elif result.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            "WEBHOOK_AUDIT stage=%s status=%d outcome=%s tag=%s count=%d",
            (result.failed_at or result.stage).value,
            result.status_code,
            outcome,
            tag,
            count,
        )
        return result

    def _reject(self, at: IngestStage, status_code: int, reason: str) -> IngestResult:
        return self._audit(
            IngestResult(
                stage=IngestStage.REJECTED,
                status_code=status_code,
                failed_at=at,
                reason=reason,
            )
        )

    def process(self, raw_body: bytes, signature_header: str | None) -> IngestResult:
        """Run one delivery through the state machine.

        Blocking: holds the store's write lock during the append. Call from a
        worker thread, after the body has been fully read.
        """
        stage = IngestStage.RECEIVED

        try:
            require_valid_signature(self._secret, raw_body, signature_header)
        except MalformedSignatureError as e:
            logger.debug("Malformed signature header: %s", e)
            return self._reject(stage, 400, "malformed_signature")
        except MissingSignatureError:
            return self._reject(stage, 401, "missing_signature")
        except AuthError as e:
            logger.debug("Signature rejected: %s", e)
            return self._reject(stage, 401, "signature_mismatch")
        stage = IngestStage.SIGNATURE_CHECKED

        try:
            event = decode_package_event(raw_body)
        except DecodeError as e:
            logger.debug("Payload rejected: %s", e)
            return self._reject(stage, 400, "invalid_payload")
        record = ReleaseRecord.from_event(event)
        stage = IngestStage.DECODED

        try:
            self._store.append(record)
        except StoreError as e:
            logger.error(
                "Failed to store release %s in %s (%s): %s",
                record.tag.name,
                self._store.path,
                e.kind.value,
                e.message,
            )
            result = IngestResult(
                stage=IngestStage.REJECTED,
                status_code=500,
                failed_at=stage,
                reason=f"store_{e.kind.value}",
                record=record,
            )
            return self._audit(result)

        return self._audit(
            IngestResult(stage=IngestStage.ACKNOWLEDGED, status_code=200, record=record)
        )
