"""
Registry HTTP transport for the OCI Distribution API.

Implements RegistryTransport over httpx with the Docker Registry v2 auth
flow (Bearer token exchange or Basic credentials), timeout retries via
tenacity, and status-code based error mapping.
"""
from __future__ import annotations

import base64
import json
import logging
import re
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urljoin

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..digest import compute_digest
from ..models import ImageIndex, parse_manifest
from ..platforms import current_platform, match_platform
from ..settings import Settings, create_settings_from_env
from .oci_errors import OciDigestMismatch, TransportError, error_for_status
from .oci_media_types import ACCEPTED_MANIFEST_TYPES, OCI_IMAGE_INDEX, OCI_IMAGE_MANIFEST
from .reference import Reference

logger = logging.getLogger(__name__)

__all__ = ["DockerAuth", "HttpRegistryTransport"]

USER_AGENT = "ocikit/0.1.0"


class DockerAuth:
    """Handle Docker Registry authentication from config files."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or Path.home() / ".docker" / "config.json"
        self._config_cache: Optional[dict] = None
        self._config_mtime: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> DockerAuth:
        if settings.docker_config:
            return cls(Path(settings.docker_config) / "config.json")
        return cls()

    def get_credentials(self, registry: str) -> Optional[Tuple[str, str]]:
        """
        Get credentials for registry from Docker config.

        Returns: (username, password) or None if not found
        """
        config = self._load_config()
        if not config:
            return None

        auths = config.get("auths", {})
        candidates = [registry, f"https://{registry}", f"http://{registry}"]
        auth_entry = next((auths[key] for key in candidates if key in auths), None)
        if auth_entry is None:
            return None

        # Handle base64 encoded auth field
        if "auth" in auth_entry:
            try:
                decoded = base64.b64decode(auth_entry["auth"]).decode()
            except (ValueError, UnicodeDecodeError):
                logger.debug(f"Ignoring undecodable auth entry for {registry}")
            else:
                if ":" in decoded:
                    username, password = decoded.split(":", 1)
                    return username, password

        # Handle username/password fields
        if "username" in auth_entry and "password" in auth_entry:
            return auth_entry["username"], auth_entry["password"]

        return None

    def _load_config(self) -> Optional[dict]:
        """Load Docker config with caching and mtime checking."""
        if not self.config_path.exists():
            return None

        try:
            current_mtime = self.config_path.stat().st_mtime

            # Use cached version if file hasn't changed
            if (self._config_cache is not None and
                    self._config_mtime is not None and
                    current_mtime == self._config_mtime):
                return self._config_cache

            with open(self.config_path, "r") as f:
                config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read Docker config {self.config_path}: {e}")
            return None

        self._config_cache = config
        self._config_mtime = current_mtime
        return config


class HttpRegistryTransport:
    """
    RegistryTransport backed by the OCI Distribution HTTP API.

    Uses one httpx client for all registries. Plain HTTP is used when
    ``settings.insecure`` is set; otherwise HTTPS with certificate checks.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 client: Optional[httpx.Client] = None,
                 auth: Optional[DockerAuth] = None):
        """
        Initialize the transport.

        Args:
            settings: Registry settings (defaults to environment)
            client: Preconfigured httpx client (tests pass one with a MockTransport)
            auth: Docker config credential source (defaults to settings.docker_config)
        """
        self.settings = settings or create_settings_from_env()
        self.auth = auth or DockerAuth.from_settings(self.settings)
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(self.settings.http_timeout_s),
            follow_redirects=True,
            verify=not self.settings.insecure,
            headers={"User-Agent": USER_AGENT},
        )

        # Token cache: {registry/service/scope: (token, expiry_timestamp)}
        self._token_cache: Dict[str, Tuple[str, float]] = {}

    # Manifests

    def pull_manifest(self, ref: str) -> str:
        return self.pull_manifest_raw(ref).decode("utf-8")

    def pull_manifest_raw(self, ref: str,
                          accepted_media_types: Optional[Sequence[str]] = None) -> bytes:
        r = Reference.parse(ref)
        accept = ", ".join(accepted_media_types or ACCEPTED_MANIFEST_TYPES)
        response = self._request("GET", r, f"/v2/{r.repository}/manifests/{r.target}",
                                 headers={"Accept": accept})
        return response.content

    def push_manifest(self, ref: str, manifest_json: str) -> str:
        return self.push_manifest_raw(ref, manifest_json.encode("utf-8"),
                                      _declared_media_type(manifest_json, OCI_IMAGE_MANIFEST))

    def push_manifest_list(self, ref: str, index_json: str) -> str:
        return self.push_manifest_raw(ref, index_json.encode("utf-8"),
                                      _declared_media_type(index_json, OCI_IMAGE_INDEX))

    def push_manifest_raw(self, ref: str, data: bytes, content_type: str) -> str:
        r = Reference.parse(ref)
        local_digest = compute_digest(data)
        response = self._request("PUT", r, f"/v2/{r.repository}/manifests/{r.target}",
                                 headers={"Content-Type": content_type}, content=data)

        server_digest = response.headers.get("Docker-Content-Digest")
        if server_digest and server_digest != local_digest:
            raise OciDigestMismatch(
                f"Registry digest {server_digest} != local digest {local_digest} for {r}",
                expected=local_digest,
                actual=server_digest,
            )
        logger.debug(f"Pushed manifest {local_digest} to {r}")
        return local_digest

    def fetch_manifest_digest(self, ref: str) -> str:
        r = Reference.parse(ref)
        response = self._request("HEAD", r, f"/v2/{r.repository}/manifests/{r.target}",
                                 headers={"Accept": ", ".join(ACCEPTED_MANIFEST_TYPES)})
        digest = response.headers.get("Docker-Content-Digest")
        if digest:
            return digest
        # Some registries omit the header on HEAD
        return compute_digest(self.pull_manifest_raw(ref))

    def pull_image_manifest(self, ref: str) -> str:
        text = self.pull_manifest(ref)
        doc = parse_manifest(text)
        if not isinstance(doc, ImageIndex):
            return text

        wanted = current_platform()
        entry = match_platform(wanted, doc.manifests)
        logger.debug(f"Selected {entry.digest} for host platform {wanted}")
        return self.pull_manifest(str(Reference.parse(ref).with_digest(entry.digest)))

    def pull_referrers(self, ref: str, artifact_type: Optional[str] = None) -> str:
        r = Reference.parse(ref)
        digest = r.digest or self.fetch_manifest_digest(ref)
        params = {"artifactType": artifact_type} if artifact_type else None
        response = self._request("GET", r, f"/v2/{r.repository}/referrers/{digest}",
                                 headers={"Accept": OCI_IMAGE_INDEX}, params=params,
                                 allow_status=(404,))
        if response.status_code == 404:
            # Registry without the referrers API: nothing refers to this manifest
            return json.dumps({"schemaVersion": 2, "mediaType": OCI_IMAGE_INDEX, "manifests": []})
        return response.text

    # Blobs

    def pull_blob(self, ref: str, digest: str) -> bytes:
        r = Reference.parse(ref)
        return self._request("GET", r, f"/v2/{r.repository}/blobs/{digest}").content

    def push_blob(self, ref: str, data: bytes, digest: str) -> str:
        actual = compute_digest(data)
        if actual != digest:
            raise OciDigestMismatch(f"Blob content digest {actual} != {digest}",
                                    expected=digest, actual=actual)

        r = Reference.parse(ref)
        if self._blob_exists(r, digest):
            logger.debug(f"Blob {digest} already present in {r.repository}")
            return digest

        response = self._request("POST", r, f"/v2/{r.repository}/blobs/uploads/")
        self._complete_upload(r, response, data, digest)
        return digest

    def mount_blob(self, target_ref: str, from_ref: str, digest: str) -> str:
        target = Reference.parse(target_ref)
        source = Reference.parse(from_ref)
        if self._blob_exists(target, digest):
            return digest

        response = self._request("POST", target, f"/v2/{target.repository}/blobs/uploads/",
                                 params={"mount": digest, "from": source.repository})
        if response.status_code == 201:
            logger.debug(f"Mounted {digest} from {source.repository} into {target.repository}")
            return digest

        # 202: registry declined the mount and opened a regular upload session
        logger.warning(f"Mount of {digest} declined, uploading instead")
        data = self.pull_blob(from_ref, digest)
        self._complete_upload(target, response, data, digest)
        return digest

    # Tags

    def list_tags(self, ref: str, n: Optional[int] = None,
                  last: Optional[str] = None) -> List[str]:
        r = Reference.parse(ref)
        params: Dict[str, str] = {}
        if n is not None:
            params["n"] = str(n)
        if last:
            params["last"] = last
        response = self._request("GET", r, f"/v2/{r.repository}/tags/list", params=params or None)
        return list(response.json().get("tags") or [])

    # Internals

    def _blob_exists(self, r: Reference, digest: str) -> bool:
        response = self._request("HEAD", r, f"/v2/{r.repository}/blobs/{digest}",
                                 allow_status=(404,))
        return response.status_code == 200

    def _complete_upload(self, r: Reference, session: httpx.Response,
                         data: bytes, digest: str) -> None:
        location = session.headers.get("Location")
        if not location:
            raise TransportError(f"Registry did not return an upload location for {r.repository}")
        # Location may already carry upload state in its query; keep it
        upload_url = httpx.URL(urljoin(self._base_url(r.registry), location))
        upload_url = upload_url.copy_merge_params({"digest": digest})
        self._request("PUT", r, str(upload_url), content=data,
                      headers={"Content-Type": "application/octet-stream"})
        logger.debug(f"Uploaded blob {digest} ({len(data)} bytes) to {r.repository}")

    def _base_url(self, registry: str) -> str:
        scheme = "http" if self.settings.insecure else "https"
        return f"{scheme}://{registry}"

    def _request(self, method: str, r: Reference, path: str,
                 headers: Optional[dict] = None,
                 allow_status: Iterable[int] = (),
                 **kwargs) -> httpx.Response:
        """
        Send one request, retrying timeouts ``settings.http_retry`` times.

        Raises:
            TransportError subclass matching the HTTP status, or TransportError
            for network failures
        """
        url = urljoin(self._base_url(r.registry), path)
        retrying = Retrying(
            stop=stop_after_attempt(self.settings.http_retry + 1),
            wait=wait_exponential(multiplier=0.1, max=5),
            retry=retry_if_exception_type(httpx.TimeoutException),
            reraise=True,
        )
        try:
            response = retrying(self._send, method, url, r.registry, dict(headers or {}), **kwargs)
        except httpx.RequestError as e:
            raise TransportError(f"Network error during {method} {url}: {e}") from e

        if response.status_code >= 400 and response.status_code not in allow_status:
            raise error_for_status(
                response.status_code,
                f"{method} {url} failed: HTTP {response.status_code} {_error_detail(response)}".rstrip(),
            )
        return response

    def _send(self, method: str, url: str, registry: str,
              headers: dict, **kwargs) -> httpx.Response:
        """
        Make HTTP request with transparent auth flow.

        Handles 401 responses by:
        1. Parsing the WWW-Authenticate challenge
        2. Bearer: exchanging credentials (or none) for a token at the realm
        3. Basic: sending configured credentials
        4. Retrying the original request once with the Authorization header
        """
        response = self.client.request(method, url, headers=headers, **kwargs)
        if response.status_code != 401:
            return response

        challenge = response.headers.get("WWW-Authenticate", "")
        creds = self._credentials(registry)
        if challenge.lower().startswith("bearer"):
            token = self._bearer_token(registry, challenge, creds)
            if token is None:
                return response
            headers["Authorization"] = f"Bearer {token}"
        elif creds:
            basic = base64.b64encode(f"{creds[0]}:{creds[1]}".encode()).decode()
            headers["Authorization"] = f"Basic {basic}"
        else:
            return response

        return self.client.request(method, url, headers=headers, **kwargs)

    def _credentials(self, registry: str) -> Optional[Tuple[str, str]]:
        if self.settings.has_credentials:
            return self.settings.username, self.settings.password
        return self.auth.get_credentials(registry)

    def _bearer_token(self, registry: str, challenge: str,
                      creds: Optional[Tuple[str, str]]) -> Optional[str]:
        # Format: Bearer realm="...",service="...",scope="..."
        params = dict(re.findall(r'(\w+)="([^"]*)"', challenge))
        realm = params.get("realm")
        if not realm:
            return None
        service = params.get("service")
        scope = params.get("scope")

        cache_key = f"{registry}:{service or ''}:{scope or ''}"
        cached = self._token_cache.get(cache_key)
        if cached and time.time() < cached[1] - 30:
            return cached[0]

        query = {k: v for k, v in (("service", service), ("scope", scope)) if v}
        try:
            token_response = self.client.get(realm, params=query, auth=creds)
            token_response.raise_for_status()
            token_data = token_response.json()
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            logger.debug(f"Token exchange with {realm} failed: {e}")
            return None

        token = token_data.get("token") or token_data.get("access_token")
        if not token:
            return None

        # Default 60s lifetime when the server does not say
        expires_in = token_data.get("expires_in", 60)
        self._token_cache[cache_key] = (token, time.time() + expires_in)
        return token

    def close(self):
        """Close HTTP client."""
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _declared_media_type(payload: str, default: str) -> str:
    try:
        doc = json.loads(payload)
    except json.JSONDecodeError:
        return default
    if isinstance(doc, dict) and isinstance(doc.get("mediaType"), str):
        return doc["mediaType"]
    return default


def _error_detail(response: httpx.Response) -> str:
    """First registry error message from an OCI error body, if any."""
    try:
        errors = response.json().get("errors") or []
    except (ValueError, AttributeError):
        return ""
    if errors and isinstance(errors[0], dict):
        return f"({errors[0].get('code', '')}: {errors[0].get('message', '')})"
    return ""
