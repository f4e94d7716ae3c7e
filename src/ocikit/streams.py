"""
Layer payload streams.

Exposes resolved layer bytes as file-like streams, classifies tar layers by
media type, and unpacks tar / tar+gzip / tar+zstd layers into a directory.
Payloads are held fully in memory; the streams are views over those bytes.
"""
from __future__ import annotations

import gzip
import io
import logging
import tarfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, BinaryIO, Callable, Dict, List, Optional

from .digest import compute_digest
from .errors import MissingExtractionDependency
from .models import Descriptor, ImageManifest
from .path_safety import join_under
from .storage.oci_errors import OciDigestMismatch
from .storage.oci_media_types import DOCKER_LAYER_TAR_GZIP, OCI_IMAGE_LAYER_TAR_GZIP

if TYPE_CHECKING:
    from .storage.transport import RegistryTransport

logger = logging.getLogger(__name__)

__all__ = [
    "LayerStream",
    "LayerStreamer",
    "TarEntry",
    "buffer_to_stream",
    "is_tar_gz",
    "is_tar_zstd",
    "is_tar",
    "gunzip_stream",
    "zstd_stream",
    "get_layer_stream",
    "extract_tar",
    "extract_tar_gz",
    "verify_blob",
]

CHUNK_SIZE = 1024 * 1024  # 1 MiB


@dataclass(frozen=True)
class TarEntry:
    """One unpacked tar member, as reported to extraction callbacks."""
    path: str
    size: int


@dataclass(frozen=True)
class LayerStream:
    """
    A pulled layer.

    ``filename`` comes from the layer's title annotation and is None when
    the layer has no title.
    """
    data: bytes
    media_type: str
    digest: str
    annotations: Optional[Dict[str, str]] = None
    filename: Optional[str] = None

    def open(self, decompress: bool = False) -> BinaryIO:
        """Readable stream over the payload, optionally decompressed."""
        return get_layer_stream(self.data, decompress=decompress, media_type=self.media_type)

    @property
    def is_tar_gz(self) -> bool:
        return is_tar_gz(self.media_type)

    @property
    def is_tar(self) -> bool:
        return is_tar(self.media_type)


def buffer_to_stream(data: bytes) -> BinaryIO:
    return io.BytesIO(data)


def is_tar_gz(media_type: str) -> bool:
    """True for gzip-compressed tar media types (OCI and Docker)."""
    return (
        "tar+gzip" in media_type
        or "tar.gz" in media_type
        or media_type == OCI_IMAGE_LAYER_TAR_GZIP
        or media_type == DOCKER_LAYER_TAR_GZIP
    )


def is_tar_zstd(media_type: str) -> bool:
    """True for zstd-compressed tar media types."""
    return "tar+zstd" in media_type or "tar.zst" in media_type


def is_tar(media_type: str) -> bool:
    """True for uncompressed tar media types."""
    return "tar" in media_type and not is_tar_gz(media_type) and not is_tar_zstd(media_type)


def gunzip_stream(stream: BinaryIO) -> BinaryIO:
    """Wrap ``stream`` in a gzip decompressor."""
    return gzip.GzipFile(fileobj=stream, mode="rb")


def zstd_stream(stream: BinaryIO) -> BinaryIO:
    """Wrap ``stream`` in a zstandard decompressor."""
    try:
        import zstandard as zstd
    except ImportError as e:
        raise MissingExtractionDependency(
            "The 'zstandard' package is required for zstd layers. "
            "Install it with: pip install 'ocikit[zstd]'"
        ) from e
    return zstd.ZstdDecompressor().stream_reader(stream)


def get_layer_stream(data: bytes, decompress: bool = False,
                     media_type: Optional[str] = None) -> BinaryIO:
    """
    Readable stream over ``data``.

    With ``decompress=True`` the payload is inflated: zstd when the media
    type says so, gzip otherwise.
    """
    stream = buffer_to_stream(data)
    if not decompress:
        return stream
    if media_type and is_tar_zstd(media_type):
        return zstd_stream(stream)
    return gunzip_stream(stream)


def _read_all(stream: BinaryIO) -> bytes:
    out = io.BytesIO()
    while True:
        chunk = stream.read(CHUNK_SIZE)
        if not chunk:
            break
        out.write(chunk)
    return out.getvalue()


def extract_tar(data: bytes, output_dir: str | Path, *,
                media_type: Optional[str] = None,
                decompress: Optional[bool] = None,
                on_entry: Optional[Callable[[TarEntry], None]] = None) -> List[TarEntry]:
    """
    Decompress (if needed) and unpack a tar payload into ``output_dir``.

    Only regular files and directories are written; links and special
    files are skipped. Every member name is validated so nothing lands
    outside ``output_dir``.

    Args:
        data: Layer payload
        output_dir: Destination directory (created if missing)
        media_type: Layer media type, used to pick the decompressor
        decompress: Force decompression on/off (default: from media type)
        on_entry: Called once per unpacked member

    Returns:
        Unpacked entries in archive order

    Raises:
        MissingExtractionDependency: If a zstd layer is given and zstandard is not installed
        UnsafeLayerPath: If a member would escape ``output_dir``
    """
    if decompress is None:
        decompress = media_type is None or not is_tar(media_type)

    root = Path(output_dir)
    root.mkdir(parents=True, exist_ok=True)

    payload = _read_all(get_layer_stream(data, decompress=decompress, media_type=media_type))
    entries: List[TarEntry] = []

    with tarfile.open(fileobj=io.BytesIO(payload), mode="r:") as tar:
        for member in tar:
            if not (member.isfile() or member.isdir()):
                logger.warning(f"Skipping non-regular tar member {member.name!r}")
                continue

            if member.isdir() and PurePosixPath(member.name) == PurePosixPath("."):
                # "./" root entry of archives made with `tar -C dir .`
                continue

            target = join_under(root, member.name)
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
                source = tar.extractfile(member)
                with open(target, "wb") as out:
                    out.write(source.read() if source is not None else b"")

            entry = TarEntry(path=member.name, size=member.size)
            entries.append(entry)
            if on_entry is not None:
                on_entry(entry)

    logger.debug(f"Extracted {len(entries)} entries into {root}")
    return entries


def extract_tar_gz(data: bytes, output_dir: str | Path,
                   on_entry: Optional[Callable[[TarEntry], None]] = None) -> List[TarEntry]:
    """Gunzip then unpack ``data`` into ``output_dir``."""
    return extract_tar(data, output_dir, decompress=True, on_entry=on_entry)


def verify_blob(descriptor: Descriptor, data: bytes) -> None:
    """
    Check pulled bytes against their descriptor.

    Raises:
        OciDigestMismatch: If digest or size disagree
    """
    actual = compute_digest(data)
    if actual != descriptor.digest:
        raise OciDigestMismatch(
            f"Blob digest mismatch: expected {descriptor.digest}, got {actual}",
            expected=descriptor.digest,
            actual=actual,
        )
    if len(data) != descriptor.size:
        raise OciDigestMismatch(
            f"Blob size mismatch for {descriptor.digest}: expected {descriptor.size}, got {len(data)}",
            expected=str(descriptor.size),
            actual=str(len(data)),
        )


class LayerStreamer:
    """
    Pulls the layers of a resolved manifest as LayerStreams.

    Layers are fetched one after another, in manifest order.
    """

    def __init__(self, transport: RegistryTransport, *, verify: bool = True):
        """
        Args:
            transport: Registry transport used to pull blobs
            verify: Re-digest every pulled blob and compare with its descriptor
        """
        self._transport = transport
        self._verify = verify

    def pull_layer(self, ref: str, descriptor: Descriptor) -> bytes:
        logger.debug(f"Pulling blob {descriptor.digest} from {ref}")
        data = self._transport.pull_blob(ref, descriptor.digest)
        if self._verify:
            verify_blob(descriptor, data)
        return data

    def stream_layers(self, ref: str, manifest: ImageManifest) -> List[LayerStream]:
        """
        Pull every layer of ``manifest`` from the repository of ``ref``.

        Returns:
            One LayerStream per layer, in manifest order
        """
        streams: List[LayerStream] = []
        for layer in manifest.layers:
            data = self.pull_layer(ref, layer)
            streams.append(LayerStream(
                data=data,
                media_type=layer.media_type,
                digest=layer.digest,
                annotations=layer.annotations,
                filename=layer.title,
            ))
        return streams

