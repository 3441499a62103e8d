"""
helmpush.helm.dependency — Chart dependency update before packaging.

Declared dependencies (requirements.yaml for Helm 2, Chart.yaml for
Helm 3) are downloaded into the chart's charts/ directory by the helm
binary that runs this plugin. The variant is chosen once from the
detected Helm major version.
"""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

from helmpush.errors import DependencyError
from helmpush.settings import Settings

logger = logging.getLogger(__name__)


class DependencyUpdater(ABC):
    """Runs ``helm dependency update`` for a chart directory."""

    def __init__(
        self,
        settings: Settings,
        keyring: str = "",
        echo: Callable[[str], None] | None = None,
    ):
        self.settings = settings
        self.keyring = keyring
        self.echo = echo

    def base_command(self, chart_path: Path) -> list[str]:
        cmd = [self.settings.helm_bin, "dependency", "update", str(chart_path)]
        if self.keyring:
            cmd.extend(["--keyring", self.keyring])
        if self.settings.debug:
            cmd.append("--debug")
        return cmd

    @abstractmethod
    def command(self, chart_path: Path) -> list[str]:
        """Full command line for this Helm major version."""

    def update(self, chart_path: str | Path) -> None:
        """Update dependencies in place.

        Raises:
            DependencyError: helm missing or the update failed
        """
        cmd = self.command(Path(chart_path))
        logger.debug("Running %s", " ".join(cmd))

        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise DependencyError(f"Cannot run {cmd[0]}: {e}") from e

        if result.stdout and self.echo is not None:
            self.echo(result.stdout.rstrip())
        if result.returncode != 0:
            raise DependencyError(
                f"Dependency update failed for {chart_path}: "
                f"{result.stderr.strip() or result.stdout.strip()}"
            )


class Helm2DependencyUpdater(DependencyUpdater):
    def command(self, chart_path: Path) -> list[str]:
        return self.base_command(chart_path) + ["--home", str(self.settings.helm_home)]


class Helm3DependencyUpdater(DependencyUpdater):
    def command(self, chart_path: Path) -> list[str]:
        return self.base_command(chart_path)


def new_dependency_updater(
    settings: Settings,
    keyring: str = "",
    echo: Callable[[str], None] | None = None,
) -> DependencyUpdater:
    cls = Helm2DependencyUpdater if settings.is_helm2 else Helm3DependencyUpdater
    return cls(settings, keyring=keyring, echo=echo)
