"""OCI Registry fixtures for testing using testcontainers."""
import pytest


@pytest.fixture(scope="session")
def oci_registry():
    """
    Provides a real OCI registry for testing.

    Spins up a registry:2 container and returns the registry address.
    The fixture is session-scoped for performance - the same registry
    is reused across all tests in the session.

    Returns:
        str: Registry address in format "host:port"
    """
    containers = pytest.importorskip("testcontainers.core.container")
    waiting = pytest.importorskip("testcontainers.core.waiting_utils")

    try:
        container = containers.DockerContainer("registry:2").with_exposed_ports(5000)
        container.start()
    except Exception as e:
        pytest.skip(f"Docker not available: {e}")

    try:
        waiting.wait_for_logs(container, "listening on", timeout=30)
        host = container.get_container_host_ip()
        port = container.get_exposed_port(5000)
        yield f"{host}:{port}"
    finally:
        container.stop()
