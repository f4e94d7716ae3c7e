"""
Content addressing.

Computes canonical ``sha256:<hex>`` digests. A digest is the only key that
links manifests to blobs, so every component goes through these helpers.
"""
from __future__ import annotations

import hashlib
import re

DIGEST_ALGORITHM = "sha256"

# Canonical digest form: algorithm tag + 64 lowercase hex chars
DIGEST_RE = re.compile(r"^sha256:[a-f0-9]{64}$")

__all__ = [
    "DIGEST_ALGORITHM",
    "DIGEST_RE",
    "compute_digest",
    "sha256_hex",
    "is_digest",
    "validate_digest",
    "digest_hex",
]


def sha256_hex(data: bytes) -> str:
    """Lowercase hex sha256 of ``data`` (no algorithm prefix)."""
    return hashlib.sha256(data).hexdigest()


def compute_digest(data: bytes) -> str:
    """
    Compute the content digest of a byte payload.

    Pure and deterministic: identical bytes always yield the identical
    digest string. Accepts any byte sequence, including empty.

    Examples:
        >>> compute_digest(b"{}")
        'sha256:44136fa355b3678a1146ad16f7e8649e94fb4fc21fe77e8310c060f61caaff8a'
    """
    return f"{DIGEST_ALGORITHM}:{sha256_hex(data)}"


def is_digest(value: str) -> bool:
    return bool(value) and DIGEST_RE.match(value) is not None


def validate_digest(digest: str) -> str:
    """
    Validate digest format and return it unchanged.

    Raises:
        ValueError: If digest is not ``sha256:`` + 64 lowercase hex chars
    """
    if not is_digest(digest):
        raise ValueError(f"Invalid digest format: {digest}")
    return digest


def digest_hex(digest: str) -> str:
    """Strip the algorithm prefix from a validated digest."""
    return validate_digest(digest).split(":", 1)[1]
