"""
helmpush.errors — Error types.

Every failure aborts the current command; the CLI catches HelmPushError,
prints its message and exits 1.
"""

from __future__ import annotations


class HelmPushError(Exception):
    """Base class for all plugin errors."""
    pass


class ConfigError(HelmPushError):
    """Bad flag, file or URL."""
    pass


class ResolutionError(HelmPushError):
    pass


class RepoNotFoundError(ResolutionError):
    """Repository name not present in the repository list."""
    pass


class InvalidURLError(ResolutionError):
    pass


class DependencyError(HelmPushError):
    """Dependency update failed."""
    pass


class PackagingError(HelmPushError):
    """Chart could not be loaded or archived."""
    pass


class TransportError(HelmPushError):
    """Network or TLS failure talking to the registry."""
    pass


class RegistryError(HelmPushError):
    """Non-success response from the registry.

    The message is always "<status>: <detail>".
    """

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code}: {detail}")


class ParseError(HelmPushError):
    """Malformed index or response body."""
    pass
