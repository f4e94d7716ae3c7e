"""
Tests for ArtifactResolver.

Covers manifest vs index dispatch, platform selection, pull to a
directory, digest verification and referrer discovery.
"""
from __future__ import annotations

import json

import pytest

from ocikit.digest import compute_digest, digest_hex
from ocikit.errors import ManifestParseError, PlatformNotFound, UnsafeLayerPath
from ocikit.models import FileLayer, ImageIndex, ImageManifest, Platform, PushOptions
from ocikit.platforms import parse_platform
from ocikit.resolver import ArtifactResolver
from ocikit.storage.oci_errors import OciDigestMismatch
from ocikit.storage.oci_media_types import OCI_EMPTY_CONFIG, OCI_IMAGE_INDEX, OCI_IMAGE_MANIFEST, TITLE_ANNOTATION

from .storage.fakes.fake_registry_transport import FakeRegistryTransport

REPO = "localhost:5000/myorg/multi"


def _layer(transport, ref, data, title=None):
    digest = transport.seed_blob(ref, data)
    desc = {"mediaType": "application/octet-stream", "digest": digest, "size": len(data)}
    if title:
        desc["annotations"] = {TITLE_ANNOTATION: title}
    return desc


def _seed_manifest(transport, ref, layers):
    transport.seed_blob(ref, b"{}")
    doc = {
        "schemaVersion": 2,
        "mediaType": OCI_IMAGE_MANIFEST,
        "config": {"mediaType": OCI_EMPTY_CONFIG, "digest": compute_digest(b"{}"), "size": 2},
        "layers": layers,
    }
    digest = transport.seed_manifest(ref, doc)
    size = len(transport.pull_manifest_raw(ref))
    return digest, size


@pytest.fixture
def multiplatform(transport):
    """Index at REPO:v1 over linux/amd64 and linux/arm64 manifests, platforms embedded."""
    entries = []
    for arch in ("amd64", "arm64"):
        tag_ref = f"{REPO}:{arch}"
        digest, size = _seed_manifest(transport, tag_ref,
                                      [_layer(transport, tag_ref, f"{arch} payload".encode(), "app.bin")])
        entries.append({"mediaType": OCI_IMAGE_MANIFEST, "digest": digest, "size": size,
                        "platform": {"os": "linux", "architecture": arch}})
    transport.seed_manifest(f"{REPO}:v1", {"schemaVersion": 2, "mediaType": OCI_IMAGE_INDEX,
                                           "manifests": entries})
    transport.calls.clear()
    return f"{REPO}:v1"


class TestResolveManifest:
    """Test resolution of plain manifests."""

    def test_plain_manifest_single_pull(self, resolver, transport):
        """A manifest without ``manifests`` is returned with exactly one pull."""
        ref = f"{REPO}:plain"
        _seed_manifest(transport, ref, [_layer(transport, ref, b"data", "a.txt")])
        transport.calls.clear()

        manifest = resolver.resolve(ref)

        assert isinstance(manifest, ImageManifest)
        assert manifest.layers[0].title == "a.txt"
        assert transport.calls == [("pull_manifest", ref)]

    def test_platform_ignored_for_plain_manifest(self, resolver, transport):
        """An explicit platform does not matter when there is no index."""
        ref = f"{REPO}:plain"
        _seed_manifest(transport, ref, [_layer(transport, ref, b"data")])
        assert resolver.resolve(ref, parse_platform("windows/amd64")).layers

    def test_malformed_json(self, resolver, transport):
        """Garbage from the transport surfaces as ManifestParseError."""
        transport.pull_manifest = lambda ref: "{oops"
        with pytest.raises(ManifestParseError):
            resolver.resolve(f"{REPO}:v1")


class TestResolveIndex:
    """Test resolution of image indexes."""

    def test_explicit_platform(self, resolver, transport, multiplatform):
        """The matching entry is pulled by digest-qualified reference."""
        manifest = resolver.resolve(multiplatform, parse_platform("linux/arm64"))

        assert manifest.layers
        pulled = transport.calls_to("pull_manifest")
        assert len(pulled) == 2
        assert "@sha256:" in pulled[1][1]
        assert transport.pull_blob(multiplatform, manifest.layers[0].digest) == b"arm64 payload"

    def test_no_platform_delegates_to_transport(self, resolver, transport, multiplatform):
        """Without a platform, host resolution is the transport's job."""
        transport.host_platform = Platform(os="linux", architecture="amd64")
        manifest = resolver.resolve(multiplatform)

        assert transport.calls_to("pull_image_manifest") == [("pull_image_manifest", multiplatform)]
        assert transport.pull_blob(multiplatform, manifest.layers[0].digest) == b"amd64 payload"

    def test_no_matching_platform(self, resolver, multiplatform):
        with pytest.raises(PlatformNotFound, match="windows/amd64"):
            resolver.resolve(multiplatform, parse_platform("windows/amd64"))

    def test_empty_index(self, resolver, transport):
        """An index with zero entries fails even without a platform."""
        ref = f"{REPO}:empty"
        transport.seed_manifest(ref, {"schemaVersion": 2, "manifests": []})
        with pytest.raises(PlatformNotFound):
            resolver.resolve(ref)
        with pytest.raises(PlatformNotFound):
            resolver.resolve(ref, parse_platform("linux/amd64"))

    def test_list_platforms(self, resolver, transport, multiplatform):
        assert [str(p) for p in resolver.list_platforms(multiplatform)] == ["linux/amd64", "linux/arm64"]

    def test_list_platforms_plain_manifest(self, resolver, transport):
        ref = f"{REPO}:plain"
        _seed_manifest(transport, ref, [])
        assert resolver.list_platforms(ref) == []


class TestPull:
    """Test materializing layers to a directory."""

    def test_round_trip(self, assembler, resolver, write_file, tmp_path):
        """Pushed files come back byte-identical under their titles."""
        ref = f"{REPO}:roundtrip"
        contents = {"file1.txt": b"Hello from ORAS test 1!", "file2.txt": b"Hello from ORAS test 2!",
                    "config.json": b'{"version":"1.0"}', "binary.dat": bytes([0, 1, 2, 3])}
        assembler.assemble(ref, [write_file(f"src/{n}", c) for n, c in contents.items()])

        out = tmp_path / "out"
        written = resolver.pull(ref, out)

        assert [p.name for p in written] == list(contents)
        for name, content in contents.items():
            assert (out / name).read_bytes() == content

    def test_untitled_layer_uses_digest(self, resolver, transport, tmp_path):
        ref = f"{REPO}:untitled"
        _seed_manifest(transport, ref, [_layer(transport, ref, b"anonymous")])
        written = resolver.pull(ref, tmp_path)
        assert written[0].name == digest_hex(compute_digest(b"anonymous"))

    def test_unsafe_title_rejected(self, resolver, transport, tmp_path):
        """A title escaping the output directory is refused."""
        ref = f"{REPO}:evil"
        _seed_manifest(transport, ref, [_layer(transport, ref, b"x", "../evil.txt")])
        with pytest.raises(UnsafeLayerPath):
            resolver.pull(ref, tmp_path / "out")
        assert not (tmp_path / "evil.txt").exists()

    def test_digest_mismatch(self, transport, tmp_path):
        """A blob whose bytes disagree with the descriptor is rejected."""
        ref = f"{REPO}:corrupt"
        layer = _layer(transport, ref, b"good", "a.txt")
        _seed_manifest(transport, ref, [layer])
        original = transport.pull_blob
        transport.pull_blob = lambda r, d: b"evil" if d == layer["digest"] else original(r, d)

        with pytest.raises(OciDigestMismatch) as exc_info:
            ArtifactResolver(transport).pull(ref, tmp_path)
        assert exc_info.value.expected == layer["digest"]

    def test_annotations_preserved(self, assembler, resolver, write_file):
        """Layer and manifest annotations come back unchanged."""
        ref = f"{REPO}:annotated"
        layer = FileLayer(path=write_file("a.txt", "a"), annotations={"x.y": "z"})
        assembler.assemble(ref, [layer], PushOptions(annotations={"m": "n"}))

        streams = resolver.pull_streams(ref)
        assert streams[0].annotations == {TITLE_ANNOTATION: "a.txt", "x.y": "z"}
        assert streams[0].filename == "a.txt"
        assert resolver.resolve(ref).annotations == {"m": "n"}


class TestDiscoverAndTags:
    """Test referrers and tag listing."""

    def test_discover_attached(self, assembler, resolver, write_file):
        ref = f"{REPO}:subject"
        assembler.assemble(ref, [write_file("a.txt", "a")])
        assembler.attach(ref, f"{REPO}:sbom", [write_file("sbom.json", "{}")], "application/spdx+json")

        index = resolver.discover(ref)
        assert isinstance(index, ImageIndex)
        assert [e.artifact_type for e in index.manifests] == ["application/spdx+json"]
        assert resolver.discover(ref, "application/other").manifests == []

    def test_list_tags(self, assembler, resolver, write_file):
        for tag in ("v2", "v1"):
            assembler.assemble(f"{REPO}:{tag}", [write_file("a.txt", tag)])
        assert resolver.list_tags(REPO) == ["v1", "v2"]

    def test_manifest_json_is_raw(self, resolver, transport):
        ref = f"{REPO}:plain"
        _seed_manifest(transport, ref, [])
        assert json.loads(resolver.manifest_json(ref))["mediaType"] == OCI_IMAGE_MANIFEST
