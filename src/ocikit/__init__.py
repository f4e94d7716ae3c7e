"""
ocikit - OCI artifact assembly and resolution.

Turns local files into OCI Image Manifests with content-addressed blobs,
resolves pulled references (manifest or multi-platform index) to a concrete
layer set, and exposes layer payloads as byte streams.
"""
from __future__ import annotations

from .assembler import ArtifactAssembler
from .digest import compute_digest
from .errors import (
    ArtifactError,
    LayerFileNotFound,
    ManifestParseError,
    MissingExtractionDependency,
    PlatformNotFound,
    TransportError,
    UnsafeLayerPath,
    UnsupportedIndexOperation,
)
from .models import (
    Descriptor,
    FileLayer,
    ImageIndex,
    ImageManifest,
    IndexEntry,
    ManifestDescriptor,
    Platform,
    PushOptions,
    parse_manifest,
)
from .resolver import ArtifactResolver
from .streams import LayerStream, LayerStreamer

__version__ = "0.1.0"

__all__ = [
    "ArtifactAssembler",
    "ArtifactResolver",
    "LayerStreamer",
    "LayerStream",
    "compute_digest",
    "Descriptor",
    "FileLayer",
    "ImageIndex",
    "ImageManifest",
    "IndexEntry",
    "ManifestDescriptor",
    "Platform",
    "PushOptions",
    "parse_manifest",
    "ArtifactError",
    "LayerFileNotFound",
    "ManifestParseError",
    "MissingExtractionDependency",
    "PlatformNotFound",
    "TransportError",
    "UnsafeLayerPath",
    "UnsupportedIndexOperation",
]
