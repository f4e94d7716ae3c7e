"""
Platform parsing and matching.

Selects the index entry that serves a requested platform. Matching rules:

- ``os`` and ``architecture`` must be equal.
- A requested ``variant`` must equal the candidate's variant exactly.
- With no requested variant, a candidate without a variant is preferred;
  otherwise the first os/architecture match in index order wins.

Entries without platform metadata never match.
"""
from __future__ import annotations

import logging
import platform as host_platform
from typing import Optional, Sequence

from .errors import PlatformNotFound
from .models import IndexEntry, Platform

logger = logging.getLogger(__name__)

__all__ = ["parse_platform", "format_platform", "match_platform", "current_platform"]

# Host machine names -> (OCI architecture, variant)
_ARCH_ALIASES = {
    "x86_64": ("amd64", None),
    "amd64": ("amd64", None),
    "i386": ("386", None),
    "i686": ("386", None),
    "aarch64": ("arm64", None),
    "arm64": ("arm64", None),
    "armv7l": ("arm", "v7"),
    "armv6l": ("arm", "v6"),
    "ppc64le": ("ppc64le", None),
    "s390x": ("s390x", None),
    "riscv64": ("riscv64", None),
}


def parse_platform(value: str) -> Platform:
    """
    Parse ``os/arch[/variant]``.

    Examples:
        >>> parse_platform("linux/arm64/v8").variant
        'v8'

    Raises:
        ValueError: If os or arch is missing or there are too many parts
    """
    parts = (value or "").strip().split("/")
    if len(parts) < 2 or len(parts) > 3 or not parts[0] or not parts[1]:
        raise ValueError(f"Platform must be in format os/arch[/variant], got {value!r}")
    variant = parts[2] if len(parts) == 3 and parts[2] else None
    return Platform(os=parts[0], architecture=parts[1], variant=variant)


def format_platform(platform: Platform) -> str:
    return str(platform)


def current_platform() -> Platform:
    """Platform of the running host, in OCI naming."""
    machine = host_platform.machine().lower()
    arch, variant = _ARCH_ALIASES.get(machine, (machine, None))
    return Platform(os=host_platform.system().lower(), architecture=arch, variant=variant)


def _os_arch_matches(wanted: Platform, candidate: Platform) -> bool:
    return wanted.os == candidate.os and wanted.architecture == candidate.architecture


def match_platform(wanted: Platform, candidates: Sequence[IndexEntry]) -> IndexEntry:
    """
    Pick the index entry serving ``wanted``.

    Args:
        wanted: Requested platform
        candidates: Index entries in index order

    Returns:
        The selected entry

    Raises:
        PlatformNotFound: If ``candidates`` is empty or nothing matches
    """
    if not candidates:
        raise PlatformNotFound(f"No manifests in index for platform {wanted}")

    same_os_arch = [
        entry for entry in candidates
        if entry.platform is not None and _os_arch_matches(wanted, entry.platform)
    ]

    if wanted.variant:
        for entry in same_os_arch:
            if entry.platform.variant == wanted.variant:
                return entry
    else:
        for entry in same_os_arch:
            if not entry.platform.variant:
                return entry
        if same_os_arch:
            return same_os_arch[0]

    available = [str(e.platform) for e in candidates if e.platform is not None]
    logger.debug(f"No match for {wanted} among {available}")
    raise PlatformNotFound(
        f"No manifest found for platform {wanted}. "
        f"Available: {', '.join(available) if available else 'none declared'}"
    )
