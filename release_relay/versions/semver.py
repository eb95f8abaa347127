"""Release tag parsing.

A release tag has the shape ``<major>.<minor>.<patch>-<architecture>``,
optionally prefixed with ``v`` (``v1.4.2-arm64``). Parsing is kept apart from
comparison: parse_release_tag() only answers "is this a release tag, and what
does it say", SemVer ordering is plain tuple ordering.
"""

from __future__ import annotations

import re
from typing import NamedTuple

# Sentinel tag pushed alongside versioned tags; carries no architecture
LATEST_TAG = "latest"

_RELEASE_TAG_RE = re.compile(
    r"v?(?P<major>[0-9]+)\.(?P<minor>[0-9]+)\.(?P<patch>[0-9]+)-(?P<arch>[a-z0-9][a-z0-9_]*)"
)


class SemVer(NamedTuple):
    """Three-component version, ordered major, then minor, then patch."""

    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


class ReleaseTag(NamedTuple):
    version: SemVer
    architecture: str


def parse_release_tag(tag: str) -> ReleaseTag | None:
    """Parse a tag into (version, architecture).

    Returns None for anything that is not a release tag, including the
    ``latest`` sentinel, tags with extra dash-separated suffixes
    (``1.2.0-rc1-arm64``) and tags without an architecture.
    """
    match = _RELEASE_TAG_RE.fullmatch(tag)
    if match is None:
        return None
    version = SemVer(int(match["major"]), int(match["minor"]), int(match["patch"]))
    return ReleaseTag(version=version, architecture=match["arch"])
