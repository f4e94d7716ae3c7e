"""
Artifact resolution.

Pulls a reference, decides once whether it is an Image Manifest or an
Image Index, and narrows an index down to one concrete manifest (for an
explicit platform, or for the host via the transport).
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from .digest import digest_hex
from .errors import PlatformNotFound
from .models import ImageIndex, ImageManifest, ParsedManifest, Platform, parse_manifest
from .path_safety import join_under
from .platforms import match_platform
from .storage.reference import Reference
from .storage.transport import RegistryTransport
from .streams import LayerStream, LayerStreamer

logger = logging.getLogger(__name__)

__all__ = ["ArtifactResolver"]


class ArtifactResolver:
    """
    Resolves references to concrete manifests and materializes their layers.

    Every call pulls fresh; nothing is cached between calls.
    """

    def __init__(self, transport: RegistryTransport, *, verify: bool = True):
        """
        Args:
            transport: Registry transport
            verify: Check every pulled layer against its descriptor digest
        """
        self._transport = transport
        self._streamer = LayerStreamer(transport, verify=verify)

    def fetch(self, ref: str) -> ParsedManifest:
        """Pull and parse whatever is stored at ``ref`` (manifest or index)."""
        logger.debug(f"Pulling manifest {ref}")
        return parse_manifest(self._transport.pull_manifest(ref))

    def manifest_json(self, ref: str) -> str:
        """Raw manifest JSON stored at ``ref``."""
        return self._transport.pull_manifest(ref)

    def resolve(self, ref: str, platform: Optional[Platform] = None) -> ImageManifest:
        """
        Resolve ``ref`` to a concrete Image Manifest.

        A plain manifest is returned as pulled. For an index, an explicit
        ``platform`` selects the entry locally; without one the transport's
        host-platform pull decides.

        Raises:
            ManifestParseError: If the pulled JSON is malformed
            PlatformNotFound: If the index is empty or nothing matches ``platform``
        """
        doc = self.fetch(ref)
        if isinstance(doc, ImageManifest):
            return doc

        if not doc.manifests:
            raise PlatformNotFound(f"Image index {ref} has no manifests")

        if platform is None:
            logger.debug(f"{ref} is an index; resolving for the host platform")
            return self._expect_manifest(ref, parse_manifest(self._transport.pull_image_manifest(ref)))

        return self._resolve_entry(ref, doc, platform)

    def resolve_for_platform(self, ref: str, platform: Platform) -> ImageManifest:
        """Like ``resolve`` with a required platform."""
        return self.resolve(ref, platform)

    def list_platforms(self, ref: str) -> List[Platform]:
        """
        Platforms declared by the index at ``ref``.

        Entries without platform metadata are skipped; a plain manifest
        yields an empty list.
        """
        doc = self.fetch(ref)
        if isinstance(doc, ImageManifest):
            return []
        return [entry.platform for entry in doc.manifests if entry.platform is not None]

    def pull_streams(self, ref: str, platform: Optional[Platform] = None) -> List[LayerStream]:
        """Resolve ``ref`` and pull every layer as a LayerStream."""
        manifest = self.resolve(ref, platform)
        return self._streamer.stream_layers(ref, manifest)

    def pull(self, ref: str, output_dir: str | Path,
             platform: Optional[Platform] = None) -> List[Path]:
        """
        Resolve ``ref`` and write every layer into ``output_dir``.

        Each layer lands at its title annotation, or at its digest hex when
        untitled. Titles are validated so nothing escapes ``output_dir``.

        Returns:
            Written paths in layer order
        """
        root = Path(output_dir)
        root.mkdir(parents=True, exist_ok=True)

        written: List[Path] = []
        for stream in self.pull_streams(ref, platform):
            name = stream.filename or digest_hex(stream.digest)
            target = join_under(root, name)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(stream.data)
            written.append(target)

        logger.info(f"Pulled {ref} into {root} ({len(written)} files)")
        return written

    def discover(self, ref: str, artifact_type: Optional[str] = None) -> ImageIndex:
        """
        Referrers of the manifest at ``ref`` (OCI 1.1).

        Returns:
            Index whose entries describe the referring artifacts
        """
        doc = parse_manifest(self._transport.pull_referrers(ref, artifact_type))
        if not isinstance(doc, ImageIndex):
            return ImageIndex(manifests=[])
        return doc

    def list_tags(self, ref: str) -> List[str]:
        return self._transport.list_tags(ref)

    def _resolve_entry(self, ref: str, index: ImageIndex, platform: Platform) -> ImageManifest:
        entry = match_platform(platform, index.manifests)
        pinned = str(Reference.parse(ref).with_digest(entry.digest))
        logger.debug(f"Selected {entry.digest} for {platform} from {ref}")
        return self._expect_manifest(pinned, self.fetch(pinned))

    @staticmethod
    def _expect_manifest(ref: str, doc: ParsedManifest) -> ImageManifest:
        if isinstance(doc, ImageIndex):
            raise PlatformNotFound(f"Nested image index at {ref} is not supported")
        return doc
