"""Version resolver: newest consistent release per architecture.

Pure function over the stored collection. Rules:

1. Records tagged ``latest`` are not ranked. If their labels carry the
   platforms mapping, each platform yields a derived ``latest-<arch>``
   record that is used only for architectures with no versioned record.
2. Every other tag must parse as ``<major>.<minor>.<patch>-<arch>``;
   anything else is skipped, never an error.
3. Per architecture the greatest version wins. Equal versions resolve to
   the record seen last in collection order.
4. Every required architecture must be covered, otherwise
   MissingArchitecturesError.
5. With parity enforced, the versioned selections must all be equal,
   otherwise VersionMismatchError.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from pydantic import TypeAdapter, ValidationError

from release_relay.errors import MissingArchitecturesError, VersionMismatchError
from release_relay.models import PLATFORMS_LABEL, PlatformEntry, RecordTag, ReleaseLabels, ReleaseRecord
from release_relay.versions.semver import LATEST_TAG, SemVer, parse_release_tag

logger = logging.getLogger(__name__)

_PLATFORMS = TypeAdapter(list[PlatformEntry])


def _ordered_architectures(architectures: Iterable[str]) -> list[str]:
    """De-duplicate while keeping caller order. Unordered sets are sorted."""
    if isinstance(architectures, (set, frozenset)):
        return sorted(architectures)
    return list(dict.fromkeys(architectures))


def expand_latest(record: ReleaseRecord) -> dict[str, ReleaseRecord]:
    """Derive ``latest-<arch>`` records from a sentinel record's platforms label.

    Returns a mapping of architecture -> derived record, empty when the label
    is absent or unparsable.
    """
    platforms = record.labels.all_labels.get(PLATFORMS_LABEL)
    if platforms is None:
        logger.debug("Skipping '%s' record without %s label", LATEST_TAG, PLATFORMS_LABEL)
        return {}

    try:
        entries = _PLATFORMS.validate_json(platforms)
    except ValidationError as e:
        logger.warning(
            "Failed to parse %s label on '%s' record (%d errors)",
            PLATFORMS_LABEL,
            LATEST_TAG,
            e.error_count(),
        )
        return {}

    return {
        entry.architecture: ReleaseRecord(
            tag=RecordTag(name=f"{LATEST_TAG}-{entry.architecture}", digest=entry.digest),
            labels=ReleaseLabels(),
        )
        for entry in entries
    }


def select_latest(records: Iterable[ReleaseRecord]) -> tuple[
    dict[str, tuple[SemVer, ReleaseRecord]], dict[str, ReleaseRecord]
]:
    """Rank records per architecture.

    Returns:
        (versioned, fallback): the best versioned record per architecture
        with its version, and the derived ``latest-<arch>`` record per
        architecture (last one wins)
    """
    versioned: dict[str, tuple[SemVer, ReleaseRecord]] = {}
    fallback: dict[str, ReleaseRecord] = {}

    for record in records:
        name = record.tag.name
        if name == LATEST_TAG:
            fallback.update(expand_latest(record))
            continue

        parsed = parse_release_tag(name)
        if parsed is None:
            logger.debug("Skipping non-release tag %r", name)
            continue

        current = versioned.get(parsed.architecture)
        # >= so that a later duplicate of the same version replaces the earlier one
        if current is None or parsed.version >= current[0]:
            versioned[parsed.architecture] = (parsed.version, record)

    return versioned, fallback


def resolve(
    records: Iterable[ReleaseRecord],
    architectures: Iterable[str],
    enforce_parity: bool = True,
) -> dict[str, ReleaseRecord]:
    """Resolve the newest release per required architecture.

    Args:
        records: Stored collection, in insertion order
        architectures: Required architectures. Lists keep their order in
            errors and results; sets are reported sorted.
        enforce_parity: Require equal versions across architectures

    Returns:
        Mapping of architecture -> selected ReleaseRecord, in required order

    Raises:
        MissingArchitecturesError: a required architecture has no usable record
        VersionMismatchError: parity enforced and selected versions differ
    """
    required: Sequence[str] = _ordered_architectures(architectures)
    versioned, fallback = select_latest(records)

    selected: dict[str, ReleaseRecord] = {}
    missing: list[str] = []
    for arch in required:
        if arch in versioned:
            selected[arch] = versioned[arch][1]
        elif arch in fallback:
            selected[arch] = fallback[arch]
        else:
            missing.append(arch)

    if missing:
        raise MissingArchitecturesError(missing)

    if enforce_parity:
        versions = {arch: versioned[arch][0] for arch in required if arch in versioned}
        if len(set(versions.values())) > 1:
            raise VersionMismatchError({arch: str(v) for arch, v in versions.items()})

    return selected
