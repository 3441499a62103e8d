"""
helmpush.helm.version — Helm major version detection.

    $ helm version --client --short
    Client: v2.17.0+ga690bad      → "2"
    v3.14.2+gc309b6f              → "3"
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
from typing import Mapping

from helmpush.settings import HELM_MAJOR_VERSION_2, HELM_MAJOR_VERSION_3

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"v(\d+)\.\d+")


def parse_major_version(output: str) -> str:
    """Extract the major version from ``helm version --short`` output.

    >>> parse_major_version("Client: v2.17.0+ga690bad")
    '2'
    >>> parse_major_version("v3.14.2+gc309b6f")
    '3'
    """
    match = _VERSION_RE.search(output)
    if match and match.group(1) == HELM_MAJOR_VERSION_2:
        return HELM_MAJOR_VERSION_2
    return HELM_MAJOR_VERSION_3


def helm_major_version_current(
    helm_bin: str = "helm",
    environ: Mapping[str, str] | None = None,
) -> str:
    """Return "2" or "3" for the Helm binary invoking this plugin.

    Falls back to "3" when helm cannot be run.
    """
    env = os.environ if environ is None else environ
    # Helm 2 exports TILLER_NAMESPACE to every plugin
    if env.get("TILLER_NAMESPACE") and not env.get("HELM_REPOSITORY_CONFIG"):
        return HELM_MAJOR_VERSION_2

    try:
        result = subprocess.run(
            [helm_bin, "version", "--client", "--short"],
            capture_output=True,
            text=True,
        )
    except OSError:
        logger.debug("Could not run %s, assuming Helm 3", helm_bin, exc_info=True)
        return HELM_MAJOR_VERSION_3

    if result.returncode != 0:
        logger.debug("%s version failed: %s", helm_bin, result.stderr.strip())
        return HELM_MAJOR_VERSION_3

    return parse_major_version(result.stdout)
