"""
Operations Facade - Application service layer.

Provides a clean interface between the CLI and the assembler/resolver,
centralizing command orchestration (one method per CLI verb) while keeping
CLI commands thin and testable. Exceptions bubble up for central mapping.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import yaml

from ..assembler import ArtifactAssembler
from ..digest import compute_digest
from ..models import (
    FileLayer,
    ImageIndex,
    ManifestDescriptor,
    Platform,
    PushOptions,
    parse_manifest,
)
from ..platforms import parse_platform
from ..resolver import ArtifactResolver
from ..settings import Settings, create_settings_from_env
from ..storage.oci_media_types import (
    EXTENSION_MEDIA_TYPES,
    MANIFEST_ANNOTATION_KEY,
    OCI_GENERIC_LAYER,
    OCI_IMAGE_INDEX,
    OCI_IMAGE_MANIFEST,
)
from ..storage.reference import Reference
from ..storage.transport import RegistryTransport

logger = logging.getLogger(__name__)

__all__ = [
    "Operations",
    "detect_media_type",
    "load_annotation_file",
    "parse_annotations",
    "parse_index_member",
    "parse_platform_files",
]


def detect_media_type(path: Path) -> str:
    """Media type for a file from its extension (octet-stream when unknown)."""
    return EXTENSION_MEDIA_TYPES.get(path.suffix.lower(), OCI_GENERIC_LAYER)


def parse_annotations(values: Optional[Sequence[str]]) -> Optional[Dict[str, str]]:
    """
    Parse repeated ``key=value`` strings.

    Values may contain ``=``; only the first one splits.

    Raises:
        ValueError: If an entry has no ``=`` or an empty key
    """
    if not values:
        return None
    out: Dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ValueError(f"Annotation must be key=value, got {item!r}")
        out[key] = value
    return out


def load_annotation_file(path: Path) -> Tuple[Dict[str, str], Dict[str, Dict[str, str]]]:
    """
    Load manifest and per-file annotations from a YAML or JSON mapping.

    The ``$manifest`` key holds manifest annotations; every other key is a
    file base name mapped to that layer's annotations.

    Returns:
        (manifest_annotations, {file_name: layer_annotations})

    Raises:
        ValueError: If the document is not a mapping of mappings
    """
    with open(path, "r") as f:
        doc = yaml.safe_load(f) or {}
    if not isinstance(doc, dict):
        raise ValueError(f"Annotation file {path} must contain a mapping")

    manifest: Dict[str, str] = {}
    per_file: Dict[str, Dict[str, str]] = {}
    for key, value in doc.items():
        if not isinstance(value, dict):
            raise ValueError(f"Annotations for {key!r} in {path} must be a mapping")
        annotations = {str(k): str(v) for k, v in value.items()}
        if key == MANIFEST_ANNOTATION_KEY:
            manifest = annotations
        else:
            per_file[str(key)] = annotations
    return manifest, per_file


def parse_platform_files(value: str) -> Tuple[Platform, List[str]]:
    """
    Parse ``os/arch[/variant]:file1,file2``.

    Raises:
        ValueError: If the platform or the file list is missing
    """
    platform_part, sep, files_part = value.partition(":")
    files = [f.strip() for f in files_part.split(",") if f.strip()]
    if not sep or not platform_part or not files:
        raise ValueError(f"Invalid platform format: {value}. Expected: os/arch:file1,file2,...")
    return parse_platform(platform_part), files


def parse_index_member(value: str) -> Tuple[str, Platform]:
    """
    Parse ``digest,os,arch[,variant]``.

    Raises:
        ValueError: If digest, os or arch is missing
    """
    parts = [p.strip() for p in value.split(",")]
    if len(parts) < 3 or not all(parts[:3]):
        raise ValueError(f"Invalid manifest format: {value}. Expected: digest,os,arch[,variant]")
    variant = parts[3] if len(parts) > 3 and parts[3] else None
    return parts[0], Platform(os=parts[1], architecture=parts[2], variant=variant)


class Operations:
    """
    Application service facade for CLI operations.

    Holds one transport and builds an assembler and resolver around it.
    The facade is stateless apart from those injected collaborators.
    """

    def __init__(self, transport: RegistryTransport, settings: Optional[Settings] = None):
        """
        Initialize Operations facade.

        Args:
            transport: Registry transport (tests pass an in-memory fake)
            settings: Optional settings (if None, loaded from environment)
        """
        self.settings = settings or create_settings_from_env()
        self.transport = transport
        self.assembler = ArtifactAssembler(transport)
        self.resolver = ArtifactResolver(transport)

    def push(self, ref: str, files: Sequence[str], *,
             artifact_type: Optional[str] = None,
             annotations: Optional[Dict[str, str]] = None,
             annotation_file: Optional[Path] = None,
             config_media_type: Optional[str] = None) -> str:
        """
        Push local files as an artifact.

        Media types are detected from file extensions. Annotations from
        ``annotation_file`` are merged under those given directly.

        Returns:
            Manifest digest
        """
        manifest_annotations: Dict[str, str] = {}
        per_file: Dict[str, Dict[str, str]] = {}
        if annotation_file is not None:
            manifest_annotations, per_file = load_annotation_file(annotation_file)
        manifest_annotations.update(annotations or {})

        layers = []
        for name in files:
            path = Path(name)
            layers.append(FileLayer(
                path=path,
                media_type=detect_media_type(path),
                annotations=per_file.get(path.name),
            ))

        options = PushOptions(
            artifact_type=artifact_type,
            annotations=manifest_annotations or None,
            config_media_type=config_media_type,
        )
        return self.assembler.assemble(ref, layers, options)

    def pull(self, ref: str, output_dir: str | Path,
             platform: Optional[str] = None) -> List[Path]:
        """Resolve and materialize ``ref`` (optionally for ``os/arch[/variant]``)."""
        wanted = parse_platform(platform) if platform else None
        return self.resolver.pull(ref, output_dir, wanted)

    def manifest(self, ref: str, pretty: bool = True) -> str:
        text = self.resolver.manifest_json(ref)
        if not pretty:
            return text
        return json.dumps(json.loads(text), indent=2)

    def copy(self, src: str, dst: str) -> str:
        return self.assembler.copy(src, dst)

    def attach(self, subject: str, artifact_ref: str, files: Sequence[str],
               artifact_type: str, annotations: Optional[Dict[str, str]] = None) -> str:
        layers = [FileLayer(path=Path(f), media_type=OCI_GENERIC_LAYER) for f in files]
        return self.assembler.attach(subject, artifact_ref, layers, artifact_type, annotations)

    def blob_push(self, ref: str, file: str) -> str:
        return self.assembler.push_blob(ref, Path(file).read_bytes())

    def blob_fetch(self, ref: str, digest: str) -> bytes:
        return self.transport.pull_blob(ref, digest)

    def index_create(self, ref: str, members: Sequence[str],
                     annotations: Optional[Dict[str, str]] = None) -> str:
        """
        Push an index over existing manifests given as ``digest,os,arch[,variant]``.

        Each member manifest is pulled by digest from the repository of
        ``ref`` to take its exact size and media type.
        """
        base = Reference.parse(ref)
        descriptors: List[ManifestDescriptor] = []
        for member in members:
            digest, platform = parse_index_member(member)
            raw = self.transport.pull_manifest_raw(str(base.with_digest(digest)))
            doc = parse_manifest(raw)
            default_type = OCI_IMAGE_INDEX if isinstance(doc, ImageIndex) else OCI_IMAGE_MANIFEST
            descriptors.append(ManifestDescriptor(
                digest=compute_digest(raw),
                media_type=doc.media_type or default_type,
                size=len(raw),
                platform=platform,
            ))
        if not descriptors:
            raise ValueError("At least one --manifest is required")
        return self.assembler.push_manifest_index(ref, descriptors, annotations, embed_platform=True)

    def index_list(self, ref: str) -> List[Platform]:
        return self.resolver.list_platforms(ref)

    def pull_platform(self, ref: str, platform: str, output_dir: str | Path) -> List[Path]:
        return self.pull(ref, output_dir, platform=platform)

    def push_multiplatform(self, ref: str, platforms: Sequence[str], *,
                           artifact_type: Optional[str] = None,
                           annotations: Optional[Dict[str, str]] = None) -> str:
        """Push ``os/arch[/variant]:file1,file2`` groups and an index over them."""
        groups = []
        for value in platforms:
            platform, files = parse_platform_files(value)
            groups.append((platform, [FileLayer(path=Path(f), media_type=OCI_GENERIC_LAYER) for f in files]))
        if not groups:
            raise ValueError("At least one --platform is required")
        options = PushOptions(artifact_type=artifact_type, annotations=annotations)
        return self.assembler.push_multiplatform(ref, groups, options)

    def tags(self, ref: str) -> List[str]:
        return self.resolver.list_tags(ref)

    def discover(self, ref: str, artifact_type: Optional[str] = None) -> ImageIndex:
        return self.resolver.discover(ref, artifact_type)
