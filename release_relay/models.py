"""Pydantic schemas for release metadata.

Two families of models live here:

- **Webhook payload**: the package event posted by the registry. Decoding
  ignores unknown fields so newer payload revisions keep working, and fails
  closed when the tag name is missing.
- **ReleaseRecord**: the slim, immutable record persisted by the metadata
  store: ``tag.name``, ``tag.digest`` and ``labels.all_labels``.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from release_relay.errors import DecodeError

# Label carrying the per-architecture digests of a multi-platform "latest" push
PLATFORMS_LABEL = "github.internal.platforms"


def _none_as_empty(value: Any) -> Any:
    return {} if value is None else value


def _none_as_blank(value: Any) -> Any:
    return "" if value is None else value


# Registries send explicit nulls for empty label maps
LabelMap = Annotated[dict[str, str], BeforeValidator(_none_as_empty)]


# ═══════════════════════════════════════════════════════════
# Webhook payload
# ═══════════════════════════════════════════════════════════


class Tag(BaseModel):
    """Published tag: name plus content digest."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    digest: Annotated[str, BeforeValidator(_none_as_blank)] = ""


class ContainerLabels(BaseModel):
    """OCI labels as delivered by the registry."""

    description: str | None = None
    source: str | None = None
    revision: str | None = None
    image_url: str | None = None
    licenses: str | None = None
    all_labels: LabelMap = Field(default_factory=dict)


class ManifestConfig(BaseModel):
    digest: str | None = None
    media_type: str | None = None
    size: int | None = None


class Layer(BaseModel):
    digest: str | None = None
    media_type: str | None = None
    size: int | None = None


class Manifest(BaseModel):
    """Image manifest summary. Carried for decoding only, never persisted."""

    digest: str | None = None
    media_type: str | None = None
    uri: str | None = None
    size: int | None = None
    config: ManifestConfig | None = None
    layers: list[Layer] | None = None


class ContainerMetadata(BaseModel):
    tag: Tag
    labels: Annotated[ContainerLabels, BeforeValidator(_none_as_empty)] = Field(
        default_factory=ContainerLabels
    )
    manifest: Manifest | None = None


class PackageVersion(BaseModel):
    container_metadata: ContainerMetadata


class Package(BaseModel):
    package_version: PackageVersion


class PackageEvent(BaseModel):
    """Top-level registry package event."""

    action: str = ""
    package: Package


def decode_package_event(body: bytes) -> PackageEvent:
    """Decode a raw webhook body into a PackageEvent.

    Raises:
        DecodeError: body is not JSON or does not match the event shape
    """
    try:
        return PackageEvent.model_validate_json(body)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) or "body" for err in e.errors()})
        raise DecodeError(f"Invalid release event: {', '.join(fields)}") from e


# ═══════════════════════════════════════════════════════════
# Persisted record
# ═══════════════════════════════════════════════════════════


class RecordTag(BaseModel):
    """Stored tag. Any name loads, including the empty name of an untagged push."""

    model_config = ConfigDict(frozen=True)

    name: Annotated[str, BeforeValidator(_none_as_blank)]
    digest: Annotated[str, BeforeValidator(_none_as_blank)] = ""


class ReleaseLabels(BaseModel):
    model_config = ConfigDict(frozen=True)

    all_labels: LabelMap = Field(default_factory=dict)


class ReleaseRecord(BaseModel):
    """One published artifact version. Identity is structural; duplicates are legal."""

    model_config = ConfigDict(frozen=True)

    tag: RecordTag
    labels: Annotated[ReleaseLabels, BeforeValidator(_none_as_empty)] = Field(
        default_factory=ReleaseLabels
    )

    @classmethod
    def build(
        cls,
        name: str,
        digest: str = "",
        labels: dict[str, str] | None = None,
    ) -> ReleaseRecord:
        """Convenience constructor from flat values."""
        return cls(tag=RecordTag(name=name, digest=digest), labels=ReleaseLabels(all_labels=labels or {}))

    @classmethod
    def from_event(cls, event: PackageEvent) -> ReleaseRecord:
        """Project a decoded package event onto the persisted shape."""
        metadata = event.package.package_version.container_metadata
        return cls(
            tag=RecordTag(name=metadata.tag.name, digest=metadata.tag.digest),
            labels=ReleaseLabels(all_labels=metadata.labels.all_labels),
        )

    @property
    def all_labels(self) -> dict[str, str]:
        return self.labels.all_labels


class PlatformEntry(BaseModel):
    """One entry of the platforms label on a multi-platform push."""

    digest: Annotated[str, BeforeValidator(_none_as_blank)] = ""
    architecture: str = Field(min_length=1)
    os: str = ""
