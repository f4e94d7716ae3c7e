"""
Registry transport protocol definition.

Defines the capability set the core consumes from a registry client. The
assembler and resolver receive an implementation through their
constructors; there is no process-wide client. Every reference argument is
an artifact reference string (``registry/repository[:tag][@digest]``).
"""
from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, runtime_checkable


@runtime_checkable
class RegistryTransport(Protocol):
    """
    Wire-level registry operations.

    Implementations own authentication, TLS mode, HTTP retries and upload
    negotiation. Failures surface as TransportError subclasses.
    """

    def pull_manifest(self, ref: str) -> str:
        """
        GET the manifest stored at ``ref``.

        Returns:
            Manifest JSON text exactly as stored (manifest or index)

        Raises:
            OciNotFound: If manifest doesn't exist
            OciAuthError: If authentication fails
            TransportError: For other registry errors
        """
        ...

    def push_manifest(self, ref: str, manifest_json: str) -> str:
        """
        PUT an image manifest at ``ref``.

        Returns:
            Canonical digest of the pushed manifest

        Raises:
            OciDigestMismatch: If server digest != local digest
            TransportError: For other registry errors
        """
        ...

    def push_manifest_list(self, ref: str, index_json: str) -> str:
        """PUT an image index at ``ref`` and return its digest."""
        ...

    def pull_manifest_raw(self, ref: str,
                          accepted_media_types: Optional[Sequence[str]] = None) -> bytes:
        """GET manifest bytes, negotiating on ``accepted_media_types``."""
        ...

    def push_manifest_raw(self, ref: str, data: bytes, content_type: str) -> str:
        """PUT manifest bytes verbatim with an explicit content type; return the digest."""
        ...

    def fetch_manifest_digest(self, ref: str) -> str:
        """HEAD the manifest and return its canonical digest."""
        ...

    def pull_blob(self, ref: str, digest: str) -> bytes:
        """
        GET blob content by digest from the repository of ``ref``.

        Raises:
            OciNotFound: If blob doesn't exist
            TransportError: For other registry errors
        """
        ...

    def push_blob(self, ref: str, data: bytes, digest: str) -> str:
        """
        Upload a blob to the repository of ``ref``.

        Pushing a blob that is already present is a no-op.

        Returns:
            The blob digest

        Raises:
            OciDigestMismatch: If content doesn't match digest
            TransportError: For other registry errors
        """
        ...

    def mount_blob(self, target_ref: str, from_ref: str, digest: str) -> str:
        """Cross-repository mount of ``digest`` from ``from_ref`` into ``target_ref``."""
        ...

    def list_tags(self, ref: str, n: Optional[int] = None,
                  last: Optional[str] = None) -> List[str]:
        """List tags of the repository of ``ref`` (optionally paginated)."""
        ...

    def pull_image_manifest(self, ref: str) -> str:
        """
        GET the image manifest for the current platform.

        When ``ref`` is an index, the implementation selects the entry for
        the host platform and returns that manifest's JSON.
        """
        ...

    def pull_referrers(self, ref: str, artifact_type: Optional[str] = None) -> str:
        """GET the referrers index (JSON) for the manifest at ``ref``."""
        ...


__all__ = ["RegistryTransport"]
