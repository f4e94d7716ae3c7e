# Fake implementations for testing

from .fake_registry_transport import FakeRegistryTransport

__all__ = ["FakeRegistryTransport"]
