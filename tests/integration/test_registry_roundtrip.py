"""
End-to-end tests against a real registry:2 container.

Run with ``pytest -m integration``; skipped when Docker is unavailable.
"""
from __future__ import annotations

import json

import pytest

from ocikit.assembler import ArtifactAssembler
from ocikit.digest import compute_digest
from ocikit.models import FileLayer, Platform, PushOptions
from ocikit.resolver import ArtifactResolver
from ocikit.settings import Settings
from ocikit.storage.oci_errors import OciNotFound
from ocikit.storage.registry_http import HttpRegistryTransport

pytestmark = pytest.mark.integration


@pytest.fixture
def http_transport(oci_registry):
    with HttpRegistryTransport(Settings(insecure=True, http_retry=2)) as transport:
        yield transport


def test_push_pull_roundtrip(oci_registry, http_transport, write_file, tmp_path):
    ref = f"{oci_registry}/ocikit/roundtrip:v1"
    files = [write_file("model.bin", b"\x00weights\x01"), write_file("notes.txt", "hello")]

    digest = ArtifactAssembler(http_transport).assemble(
        ref, files, PushOptions(artifact_type="application/x-test", annotations={"k": "v"}))

    assert http_transport.fetch_manifest_digest(ref) == digest
    written = ArtifactResolver(http_transport).pull(ref, tmp_path / "out")
    assert [p.name for p in written] == ["model.bin", "notes.txt"]
    assert (tmp_path / "out" / "model.bin").read_bytes() == b"\x00weights\x01"
    assert "v1" in http_transport.list_tags(ref)


def test_multiplatform_and_copy(oci_registry, http_transport, write_file, tmp_path):
    ref = f"{oci_registry}/ocikit/multi:v1"
    assembler = ArtifactAssembler(http_transport)
    assembler.push_multiplatform(ref, [
        (Platform(os="linux", architecture="amd64"), [write_file("amd/tool", "amd")]),
        (Platform(os="linux", architecture="arm64"), [write_file("arm/tool", "arm")]),
    ])

    resolver = ArtifactResolver(http_transport)
    assert [str(p) for p in resolver.list_platforms(ref)] == ["linux/amd64", "linux/arm64"]
    resolver.pull(ref, tmp_path / "arm", Platform(os="linux", architecture="arm64"))
    assert (tmp_path / "arm" / "tool").read_text() == "arm"

    single = f"{oci_registry}/ocikit/single:v1"
    assembler.assemble(single, [FileLayer(path=write_file("a.txt", "A"))])
    copied = f"{oci_registry}/ocikit/copied:v1"
    assert assembler.copy(single, copied) == http_transport.fetch_manifest_digest(single)


def test_blob_and_missing_manifest(oci_registry, http_transport):
    ref = f"{oci_registry}/ocikit/blobs:v1"
    data = json.dumps({"hello": "world"}).encode()
    digest = http_transport.push_blob(ref, data, compute_digest(data))

    assert http_transport.pull_blob(ref, digest) == data
    with pytest.raises(OciNotFound):
        http_transport.pull_manifest(f"{oci_registry}/ocikit/blobs:missing")


def test_attach_records_subject(oci_registry, http_transport, write_file):
    """The attached manifest points back at the subject."""
    subject = f"{oci_registry}/ocikit/subject:v1"
    assembler = ArtifactAssembler(http_transport)
    subject_digest = assembler.assemble(subject, [write_file("app.bin", "app")])

    artifact = f"{oci_registry}/ocikit/subject:sbom"
    assembler.attach(subject, artifact, [write_file("sbom.json", "{}")], "application/spdx+json")

    doc = json.loads(http_transport.pull_manifest(artifact))
    assert doc["subject"]["digest"] == subject_digest
    assert doc["artifactType"] == "application/spdx+json"
