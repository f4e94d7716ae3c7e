"""
Data models for OCI artifacts.

These Pydantic models give type safety and validation for descriptors,
manifests and indexes on both the push and the pull side. Field names are
snake_case in Python and camelCase on the wire (via aliases).
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .digest import validate_digest
from .errors import ManifestParseError
from .storage.oci_media_types import OCI_IMAGE_MANIFEST, TITLE_ANNOTATION


class _OciModel(BaseModel):
    """Shared config: accept both aliases and field names, keep unknown wire fields."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation (camelCase keys, unset optionals omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Platform(_OciModel):
    """Target environment of a manifest (os/architecture[/variant])."""
    os: str = Field(..., description="Operating system, e.g. linux")
    architecture: str = Field(..., description="CPU architecture, e.g. amd64")
    os_version: Optional[str] = Field(default=None, alias="os.version")
    os_features: Optional[List[str]] = Field(default=None, alias="os.features")
    variant: Optional[str] = Field(default=None, description="CPU variant, e.g. v8")

    def __str__(self) -> str:
        out = f"{self.os}/{self.architecture}"
        if self.variant:
            out += f"/{self.variant}"
        return out


class Descriptor(_OciModel):
    """
    Typed pointer to content.

    Invariants:
    - digest: "sha256:" + 64 lowercase hex chars, equal to the digest of the content
    - size: exact byte length of the referenced content (>= 0)
    """
    media_type: str = Field(..., alias="mediaType")
    digest: str
    size: int = Field(..., ge=0)
    annotations: Optional[Dict[str, str]] = None
    urls: Optional[List[str]] = None
    artifact_type: Optional[str] = Field(default=None, alias="artifactType")

    @field_validator("digest")
    @classmethod
    def _check_digest(cls, v: str) -> str:
        return validate_digest(v)

    @property
    def title(self) -> Optional[str]:
        if not self.annotations:
            return None
        return self.annotations.get(TITLE_ANNOTATION)


class IndexEntry(Descriptor):
    """Index entry: a manifest descriptor with optional platform metadata."""
    platform: Optional[Platform] = None


class ImageManifest(_OciModel):
    """OCI Image Manifest. Layer order is significant."""
    schema_version: int = Field(default=2, alias="schemaVersion")
    media_type: Optional[str] = Field(default=None, alias="mediaType")
    config: Descriptor
    layers: List[Descriptor] = Field(default_factory=list)
    annotations: Optional[Dict[str, str]] = None
    artifact_type: Optional[str] = Field(default=None, alias="artifactType")
    subject: Optional[Descriptor] = None

    @field_validator("schema_version")
    @classmethod
    def _check_schema_version(cls, v: int) -> int:
        if v != 2:
            raise ValueError(f"schemaVersion must be 2, got {v}")
        return v


class ImageIndex(_OciModel):
    """OCI Image Index (manifest list). Distinguished by its ``manifests`` field."""
    schema_version: int = Field(default=2, alias="schemaVersion")
    media_type: Optional[str] = Field(default=None, alias="mediaType")
    manifests: List[IndexEntry] = Field(default_factory=list)
    annotations: Optional[Dict[str, str]] = None
    artifact_type: Optional[str] = Field(default=None, alias="artifactType")
    subject: Optional[Descriptor] = None

    @field_validator("schema_version")
    @classmethod
    def _check_schema_version(cls, v: int) -> int:
        if v != 2:
            raise ValueError(f"schemaVersion must be 2, got {v}")
        return v


ParsedManifest = Union[ImageManifest, ImageIndex]


class FileLayer(BaseModel):
    """
    Assembly input: one local file to push as a layer.

    ``title`` defaults to the file's base name and is written into the
    layer annotations under org.opencontainers.image.title.
    """
    path: Path
    media_type: Optional[str] = None
    annotations: Optional[Dict[str, str]] = None
    title: Optional[str] = None

    @property
    def effective_title(self) -> str:
        return self.title or self.path.name


class PushOptions(BaseModel):
    """Options for assembling an artifact manifest."""
    artifact_type: Optional[str] = None
    annotations: Optional[Dict[str, str]] = None
    config_media_type: Optional[str] = None
    config_annotations: Optional[Dict[str, str]] = None


class ManifestDescriptor(BaseModel):
    """A pushed manifest and the platform it targets, as input to an index."""
    digest: str
    media_type: str = OCI_IMAGE_MANIFEST
    size: int = Field(..., ge=0)
    platform: Optional[Platform] = None
    annotations: Optional[Dict[str, str]] = None

    @field_validator("digest")
    @classmethod
    def _check_digest(cls, v: str) -> str:
        return validate_digest(v)

    def to_descriptor(self) -> Descriptor:
        return Descriptor(
            media_type=self.media_type,
            digest=self.digest,
            size=self.size,
            annotations=self.annotations,
        )


def to_json_bytes(model: _OciModel) -> bytes:
    """Canonical serialization used for every pushed manifest and index."""
    return json.dumps(model.to_dict(), sort_keys=True, separators=(",", ":")).encode("utf-8")


def parse_manifest(payload: Union[str, bytes]) -> ParsedManifest:
    """
    Parse manifest JSON into an ImageManifest or ImageIndex.

    The decision is made once, here, by the presence of a ``manifests``
    field; downstream code dispatches on the returned type.

    Raises:
        ManifestParseError: If the payload is not JSON or not a valid manifest/index
    """
    try:
        doc = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestParseError(f"Invalid manifest JSON: {e}") from e

    if not isinstance(doc, dict):
        raise ManifestParseError(f"Manifest must be a JSON object, got {type(doc).__name__}")

    try:
        if "manifests" in doc:
            return ImageIndex.model_validate(doc)
        return ImageManifest.model_validate(doc)
    except ValidationError as e:
        kind = "index" if "manifests" in doc else "manifest"
        raise ManifestParseError(f"Invalid image {kind}: {e}") from e


__all__ = [
    "Platform",
    "Descriptor",
    "IndexEntry",
    "ImageManifest",
    "ImageIndex",
    "ParsedManifest",
    "FileLayer",
    "PushOptions",
    "ManifestDescriptor",
    "to_json_bytes",
    "parse_manifest",
]
