"""Tests for manifest and index construction."""
from __future__ import annotations

from ocikit.digest import compute_digest
from ocikit.manifest_builder import build_index, build_manifest, descriptor_for
from ocikit.models import Platform
from ocikit.storage.oci_media_types import OCI_EMPTY_CONFIG, OCI_IMAGE_INDEX, OCI_IMAGE_MANIFEST


class TestBuildManifest:
    """Test build_manifest."""

    def test_shape_and_order(self):
        """schemaVersion 2, OCI media type, layers in the given order."""
        config = descriptor_for(b"{}", OCI_EMPTY_CONFIG)
        layers = [descriptor_for(f"layer{i}".encode(), "text/plain") for i in range(3)]
        manifest = build_manifest(config, layers, annotations={"k": "v"}, artifact_type="application/x.test")

        assert manifest.schema_version == 2
        assert manifest.media_type == OCI_IMAGE_MANIFEST
        assert [l.digest for l in manifest.layers] == [compute_digest(f"layer{i}".encode()) for i in range(3)]
        assert manifest.annotations == {"k": "v"}
        assert manifest.artifact_type == "application/x.test"
        assert manifest.subject is None

    def test_empty_annotations_omitted(self):
        """Empty annotation maps are not written."""
        manifest = build_manifest(descriptor_for(b"{}", OCI_EMPTY_CONFIG), [], annotations={})
        assert "annotations" not in manifest.to_dict()

    def test_descriptor_for_size(self):
        """descriptor_for takes size and digest from the payload."""
        d = descriptor_for(b"abc", "text/plain")
        assert d.size == 3
        assert d.digest == compute_digest(b"abc")


class TestBuildIndex:
    """Test build_index."""

    def _entries(self):
        return [
            (descriptor_for(b"m1", OCI_IMAGE_MANIFEST), Platform(os="linux", architecture="amd64")),
            (descriptor_for(b"m2", OCI_IMAGE_MANIFEST), Platform(os="linux", architecture="arm64")),
        ]

    def test_platform_not_embedded_by_default(self):
        """
        Known limitation: by default the per-entry platform is not written
        into the index, so it cannot be recovered after a push/pull.
        """
        index = build_index(self._entries(), {"a": "b"})
        assert index.media_type == OCI_IMAGE_INDEX
        assert index.schema_version == 2
        assert [e.platform for e in index.manifests] == [None, None]
        assert all("platform" not in e for e in index.to_dict()["manifests"])
        assert index.annotations == {"a": "b"}

    def test_platform_embedded_on_request(self):
        """embed_platform=True writes the standard platform field."""
        index = build_index(self._entries(), embed_platform=True)
        assert [str(e.platform) for e in index.manifests] == ["linux/amd64", "linux/arm64"]
        assert index.to_dict()["manifests"][1]["platform"] == {"os": "linux", "architecture": "arm64"}
