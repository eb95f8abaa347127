"""Release metadata persistence.

A single append-only JSON collection guarded by a readers-writer lock.
"""

from release_relay.store.metadata_store import MetadataStore

__all__ = ["MetadataStore"]
