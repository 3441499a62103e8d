"""
helmpush.download — cm:// downloader protocol handler.

Helm runs the plugin as a downloader for cm:// URLs with four
arguments and reads the file content from stdout:

    helm-push <certFile> <keyFile> <caFile> cm://charts.example.com/team/charts/dep-1.0.0.tgz

The URL path is split into the registry base and the requested file:

    /team/index.yaml               → base /team, file index.yaml
    /team/charts/dep-1.0.0.tgz     → base /team, file charts/dep-1.0.0.tgz
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Sequence
from urllib.parse import urlsplit, urlunsplit

import click
import requests

from helmpush.cm.client import AccessClient, ClientConfig, check_response
from helmpush.errors import InvalidURLError, TransportError
from helmpush.helm.repo import CM_SCHEME
from helmpush.settings import PushOptions

logger = logging.getLogger(__name__)

CHARTS_DIR = "charts"
CHUNK_SIZE = 64 * 1024


def is_download_invocation(args: Sequence[str]) -> bool:
    """True when called in downloader shape rather than push shape."""
    return len(args) == 4 and args[3].startswith(CM_SCHEME)


def split_file_path(path: str) -> tuple[str, str]:
    """Split a URL path into (base path, file path).

    >>> split_file_path("/a/b/charts/foo-1.0.0.tgz")
    ('/a/b', 'charts/foo-1.0.0.tgz')
    >>> split_file_path("/a/b/foo-1.0.0.tgz")
    ('/a/b', 'foo-1.0.0.tgz')
    """
    parts = path.split("/")
    if len(parts) < 2:
        raise InvalidURLError(f"invalid file url path: {path!r}")

    file_path = parts[-1]
    remove = 1
    # Keep the subchart layout for dependency archives
    if parts[-2] == CHARTS_DIR:
        remove += 1
        file_path = f"{CHARTS_DIR}/{file_path}"

    return "/".join(parts[:-remove]), file_path


def download(
    file_url: str,
    options: PushOptions,
    out: BinaryIO | None = None,
    session: requests.Session | None = None,
) -> None:
    """Fetch a cm:// URL and write the raw bytes to ``out`` (stdout)."""
    parsed = urlsplit(file_url)
    try:
        base_path, file_path = split_file_path(parsed.path)
    except InvalidURLError:
        raise InvalidURLError(f"invalid file url: {file_url}") from None

    scheme = "http" if options.use_http else "https"
    base_url = urlunsplit((scheme, parsed.netloc, base_path, "", ""))
    logger.debug("Downloading %s from %s", file_path, base_url)

    config = ClientConfig(
        url=base_url,
        context_path=options.context_path,
        client_id=options.client_id,
        client_secret=options.client_secret,
        ca_file=options.ca_file,
        cert_file=options.cert_file,
        key_file=options.key_file,
        insecure_skip_verify=options.insecure_skip_verify,
    )

    if out is None:
        out = click.get_binary_stream("stdout")

    with AccessClient(config, session=session) as client:
        resp = client.download_file(file_path)
        try:
            check_response(resp, 200)
            for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                out.write(chunk)
        except requests.RequestException as e:
            raise TransportError(f"Reading {file_path} failed: {e}") from e
        finally:
            resp.close()

    out.flush()
