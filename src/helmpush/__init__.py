"""
helmpush — Helm plugin to push charts to ChartMuseum behind an access broker.

Packages a chart directory (or takes a packaged .tgz), optionally
overrides its version, and uploads it to a ChartMuseum registry with
access-broker client credentials. Also serves as Helm's downloader
for cm:// repository URLs.
"""

__version__ = "0.1.0"

from helmpush.errors import (
    HelmPushError,
    ConfigError,
    ResolutionError,
    RepoNotFoundError,
    InvalidURLError,
    DependencyError,
    PackagingError,
    TransportError,
    RegistryError,
    ParseError,
)
from helmpush.settings import Settings, PushOptions
from helmpush.cm.client import AccessClient, ClientConfig
from helmpush.push import Pusher

__all__ = [
    # errors
    "HelmPushError",
    "ConfigError",
    "ResolutionError",
    "RepoNotFoundError",
    "InvalidURLError",
    "DependencyError",
    "PackagingError",
    "TransportError",
    "RegistryError",
    "ParseError",
    # configuration
    "Settings",
    "PushOptions",
    # client
    "AccessClient",
    "ClientConfig",
    # push
    "Pusher",
]
