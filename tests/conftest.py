"""Root pytest configuration for ocikit tests."""
import pytest

from ocikit.assembler import ArtifactAssembler
from ocikit.resolver import ArtifactResolver
from ocikit.settings import Settings

from .storage.fakes.fake_registry_transport import FakeRegistryTransport

# Import fixtures to make them available
from .fixtures.oci_registry import oci_registry  # noqa: F401

REF = "localhost:5000/myorg/artifact:v1"


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires Docker)"
    )


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Keep host credentials and registry config out of tests."""
    for var in ("ORAS_USERNAME", "ORAS_PASSWORD", "OCIKIT_INSECURE",
                "OCIKIT_HTTP_TIMEOUT", "OCIKIT_HTTP_RETRY", "DOCKER_CONFIG"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def settings():
    """Standard test settings."""
    return Settings(insecure=True)


@pytest.fixture
def transport():
    """In-memory registry transport."""
    return FakeRegistryTransport()


@pytest.fixture
def assembler(transport):
    return ArtifactAssembler(transport)


@pytest.fixture
def resolver(transport):
    return ArtifactResolver(transport)


@pytest.fixture
def ref():
    return REF


@pytest.fixture
def write_file(tmp_path):
    """Write ``content`` to ``tmp_path/name`` and return the path."""
    def _write(name, content):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode()
        path.write_bytes(content)
        return path
    return _write
