"""
Settings and configuration for ocikit.

Centralizes configuration values and provides validation with fail-fast behavior.
Loads settings from environment variables at transport construction time.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

__all__ = ["Settings", "create_settings_from_env"]


@dataclass(frozen=True)
class Settings:
    """
    Configuration settings for registry access.

    Attributes:
        insecure: Use plain HTTP and skip TLS verification (local/dev registries)
        username: Username for registry authentication
        password: Password for registry authentication
        http_timeout_s: HTTP request timeout in seconds
        http_retry: Number of retries for timed-out requests (0=no retry)
        docker_config: Directory containing Docker's config.json (credential fallback)
    """
    insecure: bool = False
    username: Optional[str] = None
    password: Optional[str] = None
    http_timeout_s: float = 30.0
    http_retry: int = 0
    docker_config: Optional[str] = None

    def __post_init__(self):
        """Validate settings on construction."""
        if self.http_timeout_s <= 0:
            raise ValueError(f"http_timeout_s must be positive, got {self.http_timeout_s}")

        if self.http_retry < 0:
            raise ValueError(f"http_retry must be non-negative, got {self.http_retry}")

        # Credentials come as a pair or not at all
        if bool(self.username) != bool(self.password):
            raise ValueError("username and password must be given together")

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)


def create_settings_from_env() -> Settings:
    """
    Load settings from environment variables.

    Environment Variables:
        - ORAS_USERNAME (optional)
        - ORAS_PASSWORD (optional)
        - OCIKIT_INSECURE (default: false)
        - OCIKIT_HTTP_TIMEOUT (default: 30.0)
        - OCIKIT_HTTP_RETRY (default: 0)
        - DOCKER_CONFIG (optional, default: ~/.docker)

    Returns:
        Settings object with validated configuration

    Raises:
        ValueError: If configuration is invalid

    Note:
        Creates a fresh Settings instance every time (no caching).
    """
    def str_to_bool(value: str) -> bool:
        return value.lower() in ('true', '1', 'yes', 'on')

    def get_float(key: str, default: float) -> float:
        value = os.getenv(key)
        return float(value) if value else default

    def get_int(key: str, default: int) -> int:
        value = os.getenv(key)
        return int(value) if value else default

    return Settings(
        insecure=str_to_bool(os.getenv("OCIKIT_INSECURE", "false")),
        username=os.getenv("ORAS_USERNAME") or None,
        password=os.getenv("ORAS_PASSWORD") or None,
        http_timeout_s=get_float("OCIKIT_HTTP_TIMEOUT", 30.0),
        http_retry=get_int("OCIKIT_HTTP_RETRY", 0),
        docker_config=os.getenv("DOCKER_CONFIG") or None,
    )
