"""
CLI Context for managing application dependencies.

Provides a clean way to manage CLI-level dependencies like settings and the
registry transport, avoiding global state and enabling dependency injection.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from .operations import Operations
from .settings import Settings, create_settings_from_env
from .storage.registry_http import HttpRegistryTransport
from .storage.transport import RegistryTransport


@dataclass
class CLIContext:
    """
    Shared context for CLI commands.

    Holds the settings for one command invocation and the transport built
    from them. Flags given on the command line override environment values.
    """
    settings: Settings
    _transport: Optional[RegistryTransport] = None

    @classmethod
    def from_env(cls, *, insecure: bool = False,
                 username: Optional[str] = None,
                 password: Optional[str] = None) -> CLIContext:
        """
        Create CLI context from environment variables plus CLI overrides.

        Raises:
            ValueError: If the resulting settings are invalid
        """
        settings = create_settings_from_env()
        overrides = {}
        if insecure:
            overrides["insecure"] = True
        if username:
            overrides["username"] = username
        if password:
            overrides["password"] = password
        if overrides:
            settings = replace(settings, **overrides)
        return cls(settings=settings)

    def create_transport(self) -> RegistryTransport:
        return HttpRegistryTransport(self.settings)

    @property
    def transport(self) -> RegistryTransport:
        """
        Get or create the transport (lazy initialization).

        Created on first access and reused for the rest of the command.
        """
        if self._transport is None:
            self._transport = self.create_transport()
        return self._transport

    def operations(self) -> Operations:
        return Operations(self.transport, settings=self.settings)
