"""
helmpush.cm.client — ChartMuseum client behind an access broker.

Wire contract:

    POST {url}{context_path}/api/charts[?force=true]   upload, 201 on success
    GET  {url}{context_path}/{path}                    download, 200 on success

Failures carry a JSON body ``{"error": "<message>"}``.

Every request is authenticated with the access-broker headers

    CF-Access-Client-Id: <client id>
    CF-Access-Client-Secret: <client secret>

plus the optional CA bundle and client certificate/key pair.
A request is attempted once; there is no retry.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from urllib.parse import urlsplit

import requests
import urllib3

from helmpush import __version__
from helmpush.errors import (
    ConfigError, PackagingError, RegistryError, TransportError,
)

logger = logging.getLogger(__name__)

CLIENT_ID_HEADER = "CF-Access-Client-Id"
CLIENT_SECRET_HEADER = "CF-Access-Client-Secret"
USER_AGENT = f"helm-push-access/{__version__}"

UPLOAD_PATH = "api/charts"


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for one registry."""
    url: str
    context_path: str = ""
    client_id: str = ""
    client_secret: str = ""
    ca_file: str = ""
    cert_file: str = ""
    key_file: str = ""
    insecure_skip_verify: bool = False

    def validate(self) -> None:
        """Fail fast on a bad URL or missing TLS material."""
        parts = urlsplit(self.url)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ConfigError(f"Invalid registry URL: {self.url!r}")

        for flag, value in (
            ("ca-file", self.ca_file),
            ("cert-file", self.cert_file),
            ("key-file", self.key_file),
        ):
            if value and not os.path.isfile(value):
                raise ConfigError(f"--{flag}: file not found: {value}")

        if self.key_file and not self.cert_file:
            raise ConfigError("--key-file requires --cert-file")


def normalize_context_path(context_path: str) -> str:
    """
    >>> normalize_context_path("charts/")
    '/charts'
    >>> normalize_context_path("/")
    ''
    """
    path = context_path.strip().strip("/")
    return f"/{path}" if path else ""


class AccessClient:
    """HTTP client for a ChartMuseum registry.

    Usage::

        client = AccessClient(ClientConfig(url="https://charts.example.com"))
        resp = client.upload_package("mychart-0.1.0.tgz", force=True)
    """

    def __init__(self, config: ClientConfig, session: requests.Session | None = None):
        config.validate()
        self.config = config
        self.session = session if session is not None else requests.Session()
        if config.insecure_skip_verify:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def __enter__(self) -> AccessClient:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    @property
    def base_url(self) -> str:
        return self.config.url.rstrip("/") + normalize_context_path(self.config.context_path)

    def endpoint(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def with_context_path(self, context_path: str) -> AccessClient:
        """Rebind the context path (after discovery)."""
        self.config = replace(self.config, context_path=context_path)
        return self

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # OPERATIONS
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    def upload_package(self, path: str | Path, force: bool = False) -> requests.Response:
        """POST a chart archive. The caller checks for 201."""
        path = Path(path)
        params = {"force": "true"} if force else None
        try:
            f = open(path, "rb")
        except OSError as e:
            raise PackagingError(f"Cannot read chart package {path}: {e}") from e

        with f:
            return self._request(
                "POST",
                self.endpoint(UPLOAD_PATH),
                params=params,
                files={"chart": (path.name, f, "application/gzip")},
            )

    def download_file(self, file_path: str) -> requests.Response:
        """GET a file relative to the registry root, streamed.

        The caller closes the response.
        """
        return self._request("GET", self.endpoint(file_path), stream=True)

    def get(self, file_path: str) -> tuple[int, bytes]:
        """GET a file and read it completely."""
        resp = self.download_file(file_path)
        try:
            return resp.status_code, resp.content
        except requests.RequestException as e:
            raise TransportError(f"Reading {file_path} failed: {e}") from e
        finally:
            resp.close()

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # HELPERS
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    def _headers(self) -> dict[str, str]:
        headers = {"User-Agent": USER_AGENT}
        if self.config.client_id:
            headers[CLIENT_ID_HEADER] = self.config.client_id
        if self.config.client_secret:
            headers[CLIENT_SECRET_HEADER] = self.config.client_secret
        return headers

    def _verify(self) -> bool | str:
        if self.config.insecure_skip_verify:
            return False
        return self.config.ca_file or True

    def _cert(self) -> str | tuple[str, str] | None:
        if not self.config.cert_file:
            return None
        if self.config.key_file:
            return (self.config.cert_file, self.config.key_file)
        return self.config.cert_file

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        logger.debug("%s %s", method, url)
        try:
            resp = self.session.request(
                method,
                url,
                headers=self._headers(),
                verify=self._verify(),
                cert=self._cert(),
                **kwargs,
            )
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e
        logger.debug("%s %s -> %d", method, url, resp.status_code)
        return resp


def registry_error(body: bytes | str, status_code: int) -> RegistryError:
    """Build the error for a failed registry response.

    >>> str(registry_error(b'{"error": "conflict"}', 409))
    '409: conflict'
    >>> str(registry_error(b"bad gateway", 502))
    '502: could not properly parse response JSON: bad gateway'
    """
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    try:
        data = json.loads(text)
    except ValueError:
        data = None

    message = data.get("error") if isinstance(data, dict) else None
    if not message or not isinstance(message, str):
        return RegistryError(
            status_code, f"could not properly parse response JSON: {text}",
        )
    return RegistryError(status_code, message)


def check_response(resp: requests.Response, expected: int) -> None:
    """Raise a RegistryError unless ``resp`` has the expected status."""
    if resp.status_code == expected:
        return
    try:
        body = resp.content
    except requests.RequestException as e:
        raise TransportError(f"Reading registry response failed: {e}") from e
    raise registry_error(body, resp.status_code)
