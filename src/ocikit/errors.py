"""
Core error taxonomy.

Every failure of an assembly or resolution operation reaches the caller as
one of these types (or as a TransportError from the registry layer). The
core performs no local retries and no silent recovery.
"""
from __future__ import annotations

from .storage.oci_errors import TransportError


class ArtifactError(Exception):
    """Base class for ocikit core errors."""
    pass


class LayerFileNotFound(ArtifactError, FileNotFoundError):
    """
    A local file named by a FileLayer does not exist.

    Blobs for earlier files in the same push may already be uploaded; that
    is safe because re-pushing a content-addressed blob is a no-op.
    """

    def __init__(self, path: str):
        super().__init__(f"File not found: {path}")
        self.path = path


class ManifestParseError(ArtifactError, ValueError):
    """Manifest JSON from the transport is malformed or has the wrong shape."""
    pass


class UnsupportedIndexOperation(ArtifactError):
    """The operation does not support Image Indexes (e.g. copy)."""
    pass


class PlatformNotFound(ArtifactError):
    """No index entry matches the requested platform, or the index is empty."""
    pass


class MissingExtractionDependency(ArtifactError):
    """
    A decompression or tar capability needed for extraction is unavailable.

    This is a configuration error (install the missing extra), not a data error.
    """
    pass


class UnsafeLayerPath(ArtifactError, ValueError):
    """A layer title or tar entry would be written outside the output directory."""
    pass


__all__ = [
    "ArtifactError",
    "LayerFileNotFound",
    "ManifestParseError",
    "UnsupportedIndexOperation",
    "PlatformNotFound",
    "MissingExtractionDependency",
    "UnsafeLayerPath",
    "TransportError",
]
