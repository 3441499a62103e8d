"""
helmpush.helm.repo — Repository resolution.

A repository argument is either a literal URL or the name of an
entry in Helm's repositories.yaml:

    repositories:
      - name: chartmuseum
        url: cm://charts.example.com
        caFile: /etc/ssl/ca.pem
        contextPath: /team       # optional, plugin-only keys
        clientId: 0a1b2c.access
        clientSecret: s3cret

URL arguments never touch repositories.yaml; the URL itself becomes
the repository name.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

import yaml

from helmpush.errors import ConfigError, ParseError, RepoNotFoundError
from helmpush.settings import Settings

logger = logging.getLogger(__name__)

CM_SCHEME = "cm://"

_URL_RE = re.compile(r"^https?://")


@dataclass
class RepoConfig:
    """A chart repository entry."""
    name: str
    url: str
    context_path: str = ""
    client_id: str = ""
    client_secret: str = ""
    ca_file: str = ""
    cert_file: str = ""
    key_file: str = ""
    insecure_skip_tls_verify: bool = False


def is_repo_url(identifier: str) -> bool:
    return bool(_URL_RE.match(identifier))


def temp_repo_from_url(url: str) -> RepoConfig:
    """Build a transient repository for a literal URL (never saved)."""
    parts = urlsplit(url)
    if not parts.netloc:
        raise ConfigError(f"Invalid repository URL: {url}")
    return RepoConfig(name=url, url=url)


def load_repositories(path: str | Path) -> list[RepoConfig]:
    """Read a Helm repositories.yaml file."""
    p = Path(path)
    if not p.exists():
        raise RepoNotFoundError(
            f"Repository file not found: {p}. "
            f"Add a repository with 'helm repo add' or pass its URL."
        )

    try:
        with open(p, "rb") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read repository file {p}: {e}") from e
    except yaml.YAMLError as e:
        raise ParseError(f"Cannot parse {p}: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(f"Repository file must be a YAML mapping: {p}")

    repos = []
    for entry in data.get("repositories") or []:
        if not isinstance(entry, dict) or not entry.get("name"):
            continue
        repos.append(RepoConfig(
            name=str(entry["name"]),
            url=str(entry.get("url") or ""),
            context_path=entry.get("contextPath") or "",
            client_id=entry.get("clientId") or "",
            client_secret=entry.get("clientSecret") or "",
            ca_file=entry.get("caFile") or "",
            cert_file=entry.get("certFile") or "",
            key_file=entry.get("keyFile") or "",
            insecure_skip_tls_verify=bool(entry.get("insecure_skip_tls_verify", False)),
        ))
    return repos


def get_repo_by_name(name: str, settings: Settings) -> RepoConfig:
    path = settings.repositories_file
    logger.debug("Looking up repository %r in %s", name, path)
    for repo in load_repositories(path):
        if repo.name == name:
            if not repo.url:
                raise ConfigError(f"repo {name!r} has no url")
            return repo
    raise RepoNotFoundError(f"no repo named {name!r} found")


def resolve_repo(identifier: str, settings: Settings) -> RepoConfig:
    """Resolve a repository name or literal URL.

    Raises:
        RepoNotFoundError: name not present in the repository list
    """
    if is_repo_url(identifier):
        logger.debug("Using %s as a temporary repository", identifier)
        return temp_repo_from_url(identifier)
    return get_repo_by_name(identifier, settings)


def normalize_scheme(url: str, use_http: bool) -> str:
    """Replace the cm:// marker with a real scheme.

    >>> normalize_scheme("cm://charts.example.com/team", use_http=False)
    'https://charts.example.com/team'
    >>> normalize_scheme("cm://localhost:8080", use_http=True)
    'http://localhost:8080'
    """
    scheme = "http://" if use_http else "https://"
    return url.replace(CM_SCHEME, scheme, 1)
