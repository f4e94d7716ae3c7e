"""
Tests for the Operations facade and its argument parsers.

Tests the facade layer directly against the in-memory transport, without
going through the CLI.
"""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from ocikit.models import Platform
from ocikit.operations.facade import (
    Operations,
    detect_media_type,
    load_annotation_file,
    parse_annotations,
    parse_index_member,
    parse_platform_files,
)
from ocikit.storage.oci_media_types import OCI_GENERIC_LAYER


@pytest.fixture
def ops(transport, settings):
    return Operations(transport, settings=settings)


class TestParsers:
    """Test parsing of CLI-style argument strings."""

    def test_parse_annotations(self):
        assert parse_annotations(["a=1", "b=x=y"]) == {"a": "1", "b": "x=y"}
        assert parse_annotations([]) is None
        assert parse_annotations(None) is None

    @pytest.mark.parametrize("bad", ["novalue", "=value"])
    def test_parse_annotations_invalid(self, bad):
        with pytest.raises(ValueError, match="key=value"):
            parse_annotations([bad])

    def test_parse_platform_files(self):
        platform, files = parse_platform_files("linux/arm/v7:a.bin, b.bin")
        assert platform == Platform(os="linux", architecture="arm", variant="v7")
        assert files == ["a.bin", "b.bin"]

    @pytest.mark.parametrize("bad", ["linux/amd64", "linux/amd64:", ":a.bin"])
    def test_parse_platform_files_invalid(self, bad):
        with pytest.raises(ValueError):
            parse_platform_files(bad)

    def test_parse_index_member(self):
        digest = "sha256:" + "a" * 64
        assert parse_index_member(f"{digest},linux,amd64") == (
            digest, Platform(os="linux", architecture="amd64"))
        assert parse_index_member(f"{digest},linux,arm64,v8")[1].variant == "v8"

    def test_parse_index_member_invalid(self):
        with pytest.raises(ValueError, match="digest,os,arch"):
            parse_index_member("sha256:abc,linux")

    def test_detect_media_type(self):
        assert detect_media_type(Path("model.bin")) == OCI_GENERIC_LAYER
        assert detect_media_type(Path("data.JSON")) == "application/json"


class TestAnnotationFile:
    """Test loading manifest and per-file annotations."""

    def test_yaml(self, write_file):
        path = write_file("ann.yaml", (
            "$manifest:\n"
            "  org.example.version: 3\n"
            "weights.bin:\n"
            "  org.example.kind: weights\n"
        ))
        manifest, per_file = load_annotation_file(path)
        assert manifest == {"org.example.version": "3"}
        assert per_file == {"weights.bin": {"org.example.kind": "weights"}}

    def test_json(self, write_file):
        """JSON is valid YAML and loads the same way."""
        path = write_file("ann.json", json.dumps({"$manifest": {"k": "v"}}))
        assert load_annotation_file(path) == ({"k": "v"}, {})

    def test_empty_file(self, write_file):
        assert load_annotation_file(write_file("empty.yaml", "")) == ({}, {})

    @pytest.mark.parametrize("content", ["- a\n- b\n", "$manifest: scalar\n"])
    def test_wrong_shape(self, write_file, content):
        with pytest.raises(ValueError):
            load_annotation_file(write_file("bad.yaml", content))


class TestOperations:
    """Test facade methods against the fake transport."""

    def test_push_merges_annotations(self, ops, transport, ref, write_file):
        data = write_file("weights.bin", b"w")
        ann = write_file("ann.yaml", "$manifest:\n  a: file\n  b: file\n")

        ops.push(ref, [str(data)], annotations={"b": "flag"}, annotation_file=ann)

        doc = json.loads(transport.pull_manifest(ref))
        assert doc["annotations"] == {"a": "file", "b": "flag"}

    def test_push_detects_media_types(self, ops, transport, ref, write_file):
        files = [write_file("w.bin", b"w"), write_file("c.json", b"{}")]

        ops.push(ref, [str(f) for f in files])

        doc = json.loads(transport.pull_manifest(ref))
        assert [layer["mediaType"] for layer in doc["layers"]] == [OCI_GENERIC_LAYER, "application/json"]

    def test_pull_returns_written_paths(self, ops, ref, write_file, tmp_path):
        ops.push(ref, [str(write_file("a.txt", "A"))])
        written = ops.pull(ref, tmp_path / "out")
        assert [p.name for p in written] == ["a.txt"]

    def test_manifest_pretty(self, ops, ref, write_file):
        ops.push(ref, [str(write_file("a.txt", "A"))])
        pretty = ops.manifest(ref)
        compact = ops.manifest(ref, pretty=False)
        assert "\n" in pretty
        assert json.loads(pretty) == json.loads(compact)

    def test_index_create_uses_member_sizes(self, ops, transport, ref, write_file):
        base = "localhost:5000/myorg/artifact"
        digest = ops.push(f"{base}:amd", [str(write_file("a.bin", "a"))])
        raw = transport.pull_manifest_raw(f"{base}@{digest}")

        ops.index_create(ref, [f"{digest},linux,amd64"], annotations={"k": "v"})

        index = json.loads(transport.pull_manifest(ref))
        assert index["annotations"] == {"k": "v"}
        assert index["manifests"][0]["size"] == len(raw)
        assert index["manifests"][0]["platform"] == {"os": "linux", "architecture": "amd64"}

    def test_index_create_requires_members(self, ops, ref):
        with pytest.raises(ValueError):
            ops.index_create(ref, [])

    def test_push_multiplatform(self, ops, ref, write_file):
        amd = write_file("amd.bin", "amd")
        ops.push_multiplatform(ref, [f"linux/amd64:{amd}"], artifact_type="application/x-tool")
        assert ops.index_list(ref) == [Platform(os="linux", architecture="amd64")]

    def test_blob_roundtrip(self, ops, ref, write_file):
        digest = ops.blob_push(ref, str(write_file("blob", b"bytes")))
        assert ops.blob_fetch(ref, digest) == b"bytes"
