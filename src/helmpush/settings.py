"""
helmpush.settings — Plugin configuration.

Built once per invocation by the CLI and passed down explicitly;
nothing here is a module-level singleton.

Environment variables (only fill values not given as flags):

    HELM_REPO_CLIENT_ID        access-broker client ID
    HELM_REPO_CLIENT_SECRET    access-broker client secret
    HELM_REPO_CONTEXT_PATH     registry context path
    HELM_REPO_USE_HTTP         rewrite cm:// to http:// instead of https://
    HELM_REPO_CA_FILE          CA bundle
    HELM_REPO_CERT_FILE        client certificate
    HELM_REPO_KEY_FILE         client key
    HELM_REPO_INSECURE         skip certificate verification

Helm itself exports HELM_BIN, HELM_HOME (v2), HELM_DEBUG and
HELM_REPOSITORY_CONFIG (v3) to plugins.
"""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping


HELM_MAJOR_VERSION_2 = "2"
HELM_MAJOR_VERSION_3 = "3"

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}

# (PushOptions field, environment variable)
_ENV_STRINGS = [
    ("client_id", "HELM_REPO_CLIENT_ID"),
    ("client_secret", "HELM_REPO_CLIENT_SECRET"),
    ("context_path", "HELM_REPO_CONTEXT_PATH"),
    ("ca_file", "HELM_REPO_CA_FILE"),
    ("cert_file", "HELM_REPO_CERT_FILE"),
    ("key_file", "HELM_REPO_KEY_FILE"),
]
_ENV_BOOLS = [
    ("use_http", "HELM_REPO_USE_HTTP"),
    ("insecure_skip_verify", "HELM_REPO_INSECURE"),
]


def parse_bool(value: str | None) -> bool:
    """Parse a boolean the way Helm's Go tooling does.

    Anything that is not a recognised true value counts as false.

    >>> parse_bool("true"), parse_bool("1"), parse_bool("yes")
    (True, True, False)
    """
    if value is None:
        return False
    return value.strip() in _TRUE_VALUES


def default_keyring() -> str:
    return str(Path.home() / ".gnupg" / "pubring.gpg")


def _default_helm_home(environ: Mapping[str, str]) -> Path:
    home = environ.get("HELM_HOME", "")
    if home:
        return Path(home)
    return Path.home() / ".helm"


def _default_helm_config_dir(environ: Mapping[str, str]) -> Path:
    config_home = environ.get("HELM_CONFIG_HOME", "")
    if config_home:
        return Path(config_home)
    xdg = environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "helm"
    system = platform.system()
    if system == "Windows":
        appdata = environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "helm"
        return Path.home() / "AppData" / "Roaming" / "helm"
    if system == "Darwin":
        return Path.home() / "Library" / "Preferences" / "helm"
    return Path.home() / ".config" / "helm"


@dataclass
class Settings:
    """Helm environment the plugin runs in."""
    helm_major_version: str = HELM_MAJOR_VERSION_3
    helm_bin: str = "helm"
    helm_home: Path = field(default_factory=lambda: _default_helm_home(os.environ))
    helm_config_dir: Path = field(
        default_factory=lambda: _default_helm_config_dir(os.environ)
    )
    repository_config: Path | None = None
    debug: bool = False

    @property
    def is_helm2(self) -> bool:
        return self.helm_major_version == HELM_MAJOR_VERSION_2

    @property
    def repositories_file(self) -> Path:
        """Location of the persisted repository list."""
        if self.is_helm2:
            return self.helm_home / "repository" / "repositories.yaml"
        if self.repository_config is not None:
            return self.repository_config
        return self.helm_config_dir / "repositories.yaml"

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        debug: bool = False,
        home: str | None = None,
        helm_major_version: str | None = None,
    ) -> Settings:
        """Build settings from the process environment.

        The Helm major version is detected by running ``helm version``
        unless given explicitly.
        """
        env = os.environ if environ is None else environ
        helm_bin = env.get("HELM_BIN", "") or "helm"

        if helm_major_version is None:
            from helmpush.helm.version import helm_major_version_current
            helm_major_version = helm_major_version_current(helm_bin, env)

        repo_config = env.get("HELM_REPOSITORY_CONFIG", "")

        return cls(
            helm_major_version=helm_major_version,
            helm_bin=helm_bin,
            helm_home=Path(home) if home else _default_helm_home(env),
            helm_config_dir=_default_helm_config_dir(env),
            repository_config=Path(repo_config) if repo_config else None,
            debug=debug or parse_bool(env.get("HELM_DEBUG")),
        )


@dataclass
class PushOptions:
    """Flag values of one plugin invocation."""
    chart_name: str = ""
    repo_name: str = ""
    chart_version: str = ""
    app_version: str = ""
    client_id: str = ""
    client_secret: str = ""
    context_path: str = ""
    ca_file: str = ""
    cert_file: str = ""
    key_file: str = ""
    keyring: str = field(default_factory=default_keyring)
    insecure_skip_verify: bool = False
    use_http: bool = False
    force_upload: bool = False
    dependency_update: bool = False

    def apply_env(self, environ: Mapping[str, str] | None = None) -> PushOptions:
        """Fill unset fields from HELM_REPO_* variables."""
        env = os.environ if environ is None else environ
        for name, var in _ENV_STRINGS:
            if not getattr(self, name) and var in env:
                setattr(self, name, env[var])
        for name, var in _ENV_BOOLS:
            if not getattr(self, name) and var in env:
                setattr(self, name, parse_bool(env[var]))
        return self

    def fill_tls(
        self,
        ca_file: str | None = "",
        cert_file: str | None = "",
        key_file: str | None = "",
        insecure_skip_verify: bool = False,
    ) -> PushOptions:
        """Use the given TLS material where none was configured."""
        self.ca_file = self.ca_file or ca_file or ""
        self.cert_file = self.cert_file or cert_file or ""
        self.key_file = self.key_file or key_file or ""
        self.insecure_skip_verify = self.insecure_skip_verify or insecure_skip_verify
        return self
