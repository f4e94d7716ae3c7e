"""
OCI registry transport error classes.

Provides a clear taxonomy of errors that can occur while talking to a
registry. These errors are mapped from HTTP status codes so callers get a
consistent error interface regardless of the underlying transport.
"""
from __future__ import annotations


class TransportError(Exception):
    """
    Base class for all registry transport errors.

    Covers network, authentication and registry-side failures. The core
    surfaces these unchanged; it never retries or recovers from them.
    """
    pass


class OciAuthError(TransportError):
    """
    Authentication or authorization error.

    Raised when:
    - HTTP 401 Unauthorized (invalid credentials)
    - HTTP 403 Forbidden (insufficient permissions)
    """
    pass


class OciNotFound(TransportError):
    """
    Resource not found in registry.

    Raised when:
    - HTTP 404 Not Found (manifest, blob, or repository doesn't exist)
    """
    pass


class OciDigestMismatch(TransportError):
    """
    Content digest validation failed.

    Raised when:
    - push_manifest: server digest != locally computed digest
    - push_blob: blob content doesn't match expected digest
    - pulled blob content doesn't match its descriptor
    """

    def __init__(self, message: str, expected: str | None = None, actual: str | None = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class OciUnsupportedMediaType(TransportError):
    """
    Media type not supported by registry or client.

    Raised when:
    - HTTP 415 Unsupported Media Type
    - Registry returns a manifest of an unknown type
    """
    pass


class OciTooLarge(TransportError):
    """HTTP 413 Payload Too Large."""
    pass


class OciRateLimited(TransportError):
    """HTTP 429 Too Many Requests."""
    pass


_STATUS_ERRORS = {
    401: OciAuthError,
    403: OciAuthError,
    404: OciNotFound,
    413: OciTooLarge,
    415: OciUnsupportedMediaType,
    429: OciRateLimited,
}


def error_for_status(status_code: int, message: str) -> TransportError:
    """
    Build the transport error matching an HTTP status code.

    Unknown statuses map to the base TransportError.
    """
    error_cls = _STATUS_ERRORS.get(status_code, TransportError)
    return error_cls(message)


__all__ = [
    "TransportError",
    "OciAuthError",
    "OciNotFound",
    "OciDigestMismatch",
    "OciUnsupportedMediaType",
    "OciTooLarge",
    "OciRateLimited",
    "error_for_status",
]
