"""Metadata store: append-only release history in a single JSON file.

The whole collection is loaded on every read and rewritten on every append.
The file holds one JSON array of ReleaseRecord objects; an absent or empty
file is an empty collection.

Concurrency contract:
- One ReadWriteLock per store instance, owned here and never exposed
- append() holds exclusive access across read-modify-write
- read_all() holds shared access, so it never sees a half-applied append
- Writes go to a temp file in the same directory, fsync, then os.replace(),
  so an interrupted append leaves the previous collection intact
- I/O failures -> StoreError(IO); undecodable content -> StoreError(CORRUPT)
- Nothing here retries; corruption needs an operator
"""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from release_relay.errors import StoreError, StoreErrorKind
from release_relay.models import ReleaseRecord
from release_relay.store.rwlock import ReadWriteLock

logger = logging.getLogger(__name__)

_COLLECTION = TypeAdapter(list[ReleaseRecord])

# Readable by the version poller; mkstemp alone would leave 0600
_DEFAULT_FILE_MODE = 0o644


class MetadataStore:
    """Append-only collection of ReleaseRecords backed by one file.

    Args:
        path: Location of the JSON array. Parent directories are created on
            first append.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._lock = ReadWriteLock()

    @property
    def path(self) -> Path:
        return self._path

    # ── Public API ────────────────────────────────────────────────────────

    def append(self, record: ReleaseRecord) -> int:
        """Append one record and persist the full collection.

        Returns:
            Size of the collection after the append
        """
        with self._lock.write():
            records = self._load()
            records.append(record)
            self._persist(records)
        logger.info("Stored release %s (%d records in %s)", record.tag.name, len(records), self._path)
        return len(records)

    def read_all(self) -> list[ReleaseRecord]:
        """Return the full collection in insertion order."""
        with self._lock.read():
            records = self._load()
        logger.debug("Read %d records from %s", len(records), self._path)
        return records

    # ── File handling ─────────────────────────────────────────────────────

    def _load(self) -> list[ReleaseRecord]:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error("Failed to read metadata file %s: %s", self._path, e)
            raise StoreError(f"Cannot read {self._path}: {e}", StoreErrorKind.IO) from e

        if not raw.strip():
            return []

        try:
            return _COLLECTION.validate_json(raw)
        except ValidationError as e:
            logger.error(
                "Metadata file %s is corrupt (%d validation errors)", self._path, e.error_count()
            )
            raise StoreError(f"Corrupt metadata in {self._path}", StoreErrorKind.CORRUPT) from e

    def _file_mode(self) -> int:
        """Mode of the existing file, or the default for a new one."""
        try:
            return stat.S_IMODE(self._path.stat().st_mode)
        except FileNotFoundError:
            return _DEFAULT_FILE_MODE

    def _persist(self, records: list[ReleaseRecord]) -> None:
        data = json.dumps([r.model_dump(mode="json") for r in records], indent=2).encode("utf-8")
        directory = self._path.parent
        tmp_name = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=directory, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.chmod(tmp_name, self._file_mode())
            os.replace(tmp_name, self._path)
            tmp_name = None
        except OSError as e:
            logger.error("Failed to write metadata file %s: %s", self._path, e)
            raise StoreError(f"Cannot write {self._path}: {e}", StoreErrorKind.IO) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("Could not remove temp file %s", tmp_name)
