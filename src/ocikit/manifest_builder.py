"""
Manifest and index construction.

Pure functions that assemble OCI Image Manifests and Image Indexes from
descriptors. Nothing here talks to a registry.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .digest import compute_digest
from .models import Descriptor, ImageIndex, ImageManifest, IndexEntry, Platform
from .storage.oci_media_types import OCI_IMAGE_INDEX, OCI_IMAGE_MANIFEST

__all__ = ["descriptor_for", "build_manifest", "build_index"]


def descriptor_for(data: bytes, media_type: str, *,
                   annotations: Optional[Dict[str, str]] = None) -> Descriptor:
    """Descriptor for an in-memory payload (digest and size computed from ``data``)."""
    return Descriptor(
        media_type=media_type,
        digest=compute_digest(data),
        size=len(data),
        annotations=annotations or None,
    )


def build_manifest(config: Descriptor,
                   layers: Sequence[Descriptor],
                   annotations: Optional[Dict[str, str]] = None,
                   artifact_type: Optional[str] = None,
                   subject: Optional[Descriptor] = None) -> ImageManifest:
    """
    Build an OCI Image Manifest.

    Args:
        config: Config blob descriptor
        layers: Layer descriptors, in the order they must appear
        annotations: Manifest-level annotations
        artifact_type: Artifact type tag
        subject: Manifest this artifact refers to (OCI 1.1 referrers)

    Returns:
        Manifest with schemaVersion 2 and the OCI image manifest media type
    """
    return ImageManifest(
        schema_version=2,
        media_type=OCI_IMAGE_MANIFEST,
        config=config,
        layers=list(layers),
        annotations=annotations or None,
        artifact_type=artifact_type or None,
        subject=subject,
    )


def build_index(entries: Iterable[Tuple[Descriptor, Optional[Platform]]],
                annotations: Optional[Dict[str, str]] = None,
                *,
                embed_platform: bool = False) -> ImageIndex:
    """
    Build an OCI Image Index from (descriptor, platform) pairs.

    By default the per-entry platform is NOT written into the emitted
    descriptors, so platform metadata does not survive a push/pull round trip
    and has to be derived elsewhere. Pass ``embed_platform=True`` to write the
    standard ``platform`` field on each entry instead.

    Args:
        entries: Manifest descriptors with their platform, in index order
        annotations: Index-level annotations
        embed_platform: Write each entry's platform into its descriptor

    Returns:
        Index with schemaVersion 2 and the OCI image index media type
    """
    manifests: List[IndexEntry] = []
    for descriptor, platform in entries:
        manifests.append(IndexEntry(
            media_type=descriptor.media_type,
            digest=descriptor.digest,
            size=descriptor.size,
            annotations=descriptor.annotations,
            urls=descriptor.urls,
            platform=platform if embed_platform else None,
        ))

    return ImageIndex(
        schema_version=2,
        media_type=OCI_IMAGE_INDEX,
        manifests=manifests,
        annotations=annotations or None,
    )
