"""
Artifact assembly.

Turns local files into pushed blobs, a config blob and a pushed OCI Image
Manifest. Also pushes indexes, multi-platform artifact sets, referrer
attachments and manifest copies. All transport calls run strictly one
after another.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .digest import compute_digest
from .errors import LayerFileNotFound, UnsupportedIndexOperation
from .manifest_builder import build_index, build_manifest, descriptor_for
from .models import (
    Descriptor,
    FileLayer,
    ImageIndex,
    ManifestDescriptor,
    Platform,
    PushOptions,
    parse_manifest,
    to_json_bytes,
)
from .storage.oci_media_types import (
    OCI_EMPTY_CONFIG,
    OCI_EMPTY_CONFIG_BYTES,
    OCI_GENERIC_LAYER,
    OCI_IMAGE_INDEX,
    OCI_IMAGE_MANIFEST,
    TITLE_ANNOTATION,
)
from .storage.reference import DEFAULT_TAG, Reference
from .storage.transport import RegistryTransport

logger = logging.getLogger(__name__)

__all__ = ["ArtifactAssembler", "platform_tag"]

LayerInput = Union[FileLayer, str, Path]


def _as_file_layer(item: LayerInput) -> FileLayer:
    if isinstance(item, FileLayer):
        return item
    return FileLayer(path=Path(item))


def platform_tag(ref: str, platform: Platform) -> str:
    """
    Reference of the per-platform artifact pushed by ``push_multiplatform``.

    Examples:
        >>> platform_tag("localhost:5000/app:v1", Platform(os="linux", architecture="arm64", variant="v8"))
        'localhost:5000/app:v1-linux-arm64-v8'
    """
    r = Reference.parse(ref)
    suffix = f"{platform.os}-{platform.architecture}"
    if platform.variant:
        suffix += f"-{platform.variant}"
    return str(r.with_tag(f"{r.tag or DEFAULT_TAG}-{suffix}"))


class ArtifactAssembler:
    """
    Builds and pushes OCI artifacts through an injected RegistryTransport.

    Failure policy: a failing file aborts the operation before the manifest
    is pushed. Blobs already uploaded stay in the registry; re-running the
    push is safe because blobs are content-addressed.
    """

    def __init__(self, transport: RegistryTransport):
        self._transport = transport

    @property
    def transport(self) -> RegistryTransport:
        return self._transport

    def assemble(self, ref: str, files: Sequence[LayerInput],
                 options: Optional[PushOptions] = None) -> str:
        """
        Push files as layers and the manifest tying them together.

        Args:
            ref: Target artifact reference
            files: Layers in manifest order
            options: Artifact type, manifest/config annotations, config media type

        Returns:
            Digest of the pushed manifest

        Raises:
            LayerFileNotFound: If a file does not exist (earlier blobs are already pushed)
            TransportError: If the registry rejects a push
        """
        digest, _ = self._assemble(ref, files, options or PushOptions())
        return digest

    def push_blob(self, ref: str, data: bytes) -> str:
        """Push a single blob into the repository of ``ref`` and return its digest."""
        digest = compute_digest(data)
        logger.debug(f"Pushing blob {digest} ({len(data)} bytes) to {ref}")
        return self._transport.push_blob(ref, data, digest)

    def attach(self, subject_ref: str, artifact_ref: str, files: Sequence[LayerInput],
               artifact_type: str, annotations: Optional[Dict[str, str]] = None) -> str:
        """
        Push an artifact whose manifest names ``subject_ref`` as its subject.

        The subject descriptor is computed from the subject's stored manifest
        bytes, so registries with the referrers API list the new artifact
        under the subject.

        Returns:
            Digest of the pushed artifact manifest
        """
        if not artifact_type:
            raise ValueError("artifact_type is required to attach an artifact")

        raw = self._transport.pull_manifest_raw(subject_ref)
        doc = parse_manifest(raw)
        default_type = OCI_IMAGE_INDEX if isinstance(doc, ImageIndex) else OCI_IMAGE_MANIFEST
        subject = Descriptor(
            media_type=doc.media_type or default_type,
            digest=compute_digest(raw),
            size=len(raw),
        )

        options = PushOptions(
            artifact_type=artifact_type,
            annotations=annotations,
            config_media_type=OCI_EMPTY_CONFIG,
        )
        digest, _ = self._assemble(artifact_ref, files, options, subject=subject)
        logger.info(f"Attached {artifact_ref} ({digest}) to {subject_ref}")
        return digest

    def copy(self, src_ref: str, dst_ref: str) -> str:
        """
        Copy an artifact manifest and its blobs from ``src_ref`` to ``dst_ref``.

        Blobs are mounted when both references live on the same registry,
        otherwise pulled and pushed. The manifest bytes are pushed unchanged,
        so the target digest equals the source digest.

        Raises:
            UnsupportedIndexOperation: If ``src_ref`` is an Image Index
        """
        raw = self._transport.pull_manifest_raw(src_ref)
        doc = parse_manifest(raw)
        if isinstance(doc, ImageIndex):
            raise UnsupportedIndexOperation(
                f"Copying an image index is not supported: {src_ref}"
            )

        src = Reference.parse(src_ref)
        dst = Reference.parse(dst_ref)
        mount = src.same_registry(dst) and src.repository != dst.repository
        same_repo = src.same_registry(dst) and src.repository == dst.repository

        for blob in [doc.config, *doc.layers]:
            if same_repo:
                continue
            if mount:
                self._transport.mount_blob(dst_ref, src_ref, blob.digest)
            else:
                data = self._transport.pull_blob(src_ref, blob.digest)
                self._transport.push_blob(dst_ref, data, blob.digest)

        digest = self._transport.push_manifest_raw(dst_ref, raw, doc.media_type or OCI_IMAGE_MANIFEST)
        logger.info(f"Copied {src_ref} to {dst_ref} ({digest})")
        return digest

    def push_manifest_index(self, ref: str, manifests: Sequence[ManifestDescriptor],
                            annotations: Optional[Dict[str, str]] = None,
                            *, embed_platform: bool = False) -> str:
        """
        Push an Image Index over already-pushed manifests.

        Args:
            ref: Target reference for the index
            manifests: Member manifests with their platforms, in index order
            annotations: Index-level annotations
            embed_platform: Write each member's platform into the index entry

        Returns:
            Digest of the pushed index
        """
        index = build_index(
            ((m.to_descriptor(), m.platform) for m in manifests),
            annotations,
            embed_platform=embed_platform,
        )
        digest = self._transport.push_manifest_list(ref, to_json_bytes(index).decode("utf-8"))
        logger.info(f"Pushed index {ref} ({digest}) with {len(manifests)} manifests")
        return digest

    def push_multiplatform(self, ref: str,
                           platform_files: Iterable[Tuple[Platform, Sequence[LayerInput]]],
                           options: Optional[PushOptions] = None) -> str:
        """
        Push one artifact per platform, then an index over them at ``ref``.

        Each platform artifact is tagged ``<tag>-<os>-<arch>[-<variant>]``.
        Member descriptors are computed from the pushed manifest bytes and the
        index carries each entry's platform.

        Returns:
            Digest of the pushed index
        """
        options = options or PushOptions()
        members: List[ManifestDescriptor] = []
        for platform, files in platform_files:
            tagged = platform_tag(ref, platform)
            digest, manifest_bytes = self._assemble(tagged, files, options)
            members.append(ManifestDescriptor(
                digest=digest,
                media_type=OCI_IMAGE_MANIFEST,
                size=len(manifest_bytes),
                platform=platform,
            ))
            logger.debug(f"Pushed {platform} artifact as {tagged}")

        if not members:
            raise ValueError("At least one platform is required")

        return self.push_manifest_index(ref, members, options.annotations, embed_platform=True)

    def _assemble(self, ref: str, files: Sequence[LayerInput], options: PushOptions,
                  subject: Optional[Descriptor] = None) -> Tuple[str, bytes]:
        layers: List[Descriptor] = []
        for item in files:
            layer = _as_file_layer(item)
            layers.append(self._push_file(ref, layer))

        config_data = OCI_EMPTY_CONFIG_BYTES
        config = descriptor_for(
            config_data,
            options.config_media_type or OCI_EMPTY_CONFIG,
            annotations=options.config_annotations,
        )
        self._transport.push_blob(ref, config_data, config.digest)

        manifest = build_manifest(
            config,
            layers,
            annotations=options.annotations,
            artifact_type=options.artifact_type,
            subject=subject,
        )
        manifest_bytes = to_json_bytes(manifest)
        digest = self._transport.push_manifest(ref, manifest_bytes.decode("utf-8"))
        logger.info(f"Pushed {ref} ({digest}) with {len(layers)} layers")
        return digest, manifest_bytes

    def _push_file(self, ref: str, layer: FileLayer) -> Descriptor:
        path = layer.path
        if not path.is_file():
            raise LayerFileNotFound(str(path))
        data = path.read_bytes()

        annotations = {TITLE_ANNOTATION: layer.effective_title}
        annotations.update(layer.annotations or {})
        descriptor = descriptor_for(
            data,
            layer.media_type or OCI_GENERIC_LAYER,
            annotations=annotations,
        )
        logger.debug(f"Pushing layer {path} as {descriptor.digest}")
        self._transport.push_blob(ref, data, descriptor.digest)
        return descriptor
