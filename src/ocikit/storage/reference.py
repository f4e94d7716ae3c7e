"""
Artifact reference parsing.

Wraps oras' container name parser so every part of ocikit agrees on how
``[registry/]repository[:tag][@digest]`` strings are split and rebuilt.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from oras.container import Container as OrasContainer

from ..digest import is_digest

DEFAULT_TAG = "latest"
DOCKER_HUB_REGISTRIES = ("docker.io", "index.docker.io", "registry-1.docker.io")

__all__ = ["Reference", "DEFAULT_TAG"]


@dataclass(frozen=True)
class Reference:
    """
    Parsed artifact reference.

    Attributes:
        registry: Registry host[:port] (e.g., "localhost:5000")
        repository: Repository path within the registry (e.g., "myorg/artifact")
        tag: Tag, or None when the reference only pins a digest
        digest: Manifest digest (sha256:...), or None
    """
    registry: str
    repository: str
    tag: Optional[str] = None
    digest: Optional[str] = None

    @classmethod
    def parse(cls, ref: str) -> Reference:
        """
        Parse a reference string.

        A reference without tag or digest defaults to the "latest" tag.
        Single-segment Docker Hub names gain the "library/" namespace.

        Examples:
            >>> Reference.parse("localhost:5000/myorg/artifact:v1")
            Reference(registry='localhost:5000', repository='myorg/artifact', tag='v1', digest=None)

        Raises:
            ValueError: If the reference is empty or cannot be parsed
        """
        ref = (ref or "").strip()
        if not ref:
            raise ValueError("reference cannot be empty")

        try:
            container = OrasContainer(ref)
        except ValueError as e:
            raise ValueError(f"Invalid reference: {ref}: {e}") from e

        digest = container.digest or None
        if digest is not None and not is_digest(digest):
            raise ValueError(f"Invalid digest in reference: {ref}")

        # oras always fills in a tag; only keep it when the caller wrote one
        name_part = ref.split("@", 1)[0]
        explicit_tag = ":" in name_part.rsplit("/", 1)[-1]
        tag = container.tag if explicit_tag else None
        if tag is None and digest is None:
            tag = DEFAULT_TAG

        repository = "/".join(part for part in container.api_prefix.split("/") if part)
        # Docker Hub serves official images under library/
        if container.registry in DOCKER_HUB_REGISTRIES and "/" not in repository:
            repository = f"library/{repository}"

        return cls(
            registry=container.registry,
            repository=repository,
            tag=tag,
            digest=digest,
        )

    @property
    def target(self) -> str:
        """The manifest reference sent to the registry (digest wins over tag)."""
        return self.digest or self.tag or DEFAULT_TAG

    def with_digest(self, digest: str) -> Reference:
        """Digest-qualified reference to another manifest in the same repository."""
        if not is_digest(digest):
            raise ValueError(f"Invalid digest: {digest}")
        return replace(self, tag=None, digest=digest)

    def with_tag(self, tag: str) -> Reference:
        """Tag-qualified reference in the same repository."""
        if not tag:
            raise ValueError("tag cannot be empty")
        return replace(self, tag=tag, digest=None)

    def same_registry(self, other: Reference) -> bool:
        return self.registry == other.registry

    def __str__(self) -> str:
        out = f"{self.registry}/{self.repository}"
        if self.tag:
            out += f":{self.tag}"
        if self.digest:
            out += f"@{self.digest}"
        return out
