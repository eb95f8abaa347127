"""Version query: read the store, resolve, shape the response.

The only read path exposed to clients. Store and resolver state is injected
at construction so tests and the app factory choose the backing file.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from release_relay.errors import MissingArchitecturesError, VersionMismatchError
from release_relay.models import ReleaseRecord
from release_relay.store.metadata_store import MetadataStore
from release_relay.versions.resolver import resolve

logger = logging.getLogger(__name__)


class VersionQuery:
    """Resolve the latest tag per architecture from the metadata store."""

    def __init__(
        self,
        store: MetadataStore,
        architectures: Sequence[str],
        enforce_parity: bool = True,
    ) -> None:
        self._store = store
        self._architectures = list(architectures)
        self._enforce_parity = enforce_parity

    def resolve_records(self) -> dict[str, ReleaseRecord]:
        """Selected record per architecture. Raises StoreError / ResolveError."""
        records = self._store.read_all()
        try:
            return resolve(records, self._architectures, self._enforce_parity)
        except MissingArchitecturesError as e:
            logger.warning(
                "Versions not ready: missing %s (%d records scanned)",
                ", ".join(e.architectures),
                len(records),
            )
            raise
        except VersionMismatchError as e:
            logger.warning(
                "Architecture versions disagree: %s",
                ", ".join(f"{arch}={v}" for arch, v in e.versions.items()),
            )
            raise

    def latest_tags(self) -> dict[str, str]:
        """Architecture -> tag name, the body of the version endpoint."""
        return {arch: record.tag.name for arch, record in self.resolve_records().items()}
