"""
helmpush.helm.index — Repository index parsing and context path discovery.

ChartMuseum reports the prefix it serves under in index.yaml:

    apiVersion: v1
    entries: {...}
    serverInfo:
      contextPath: /charts
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import yaml

from helmpush.errors import ParseError

logger = logging.getLogger(__name__)

# Returns the raw index.yaml bytes or raises
IndexFetcher = Callable[[], bytes]


@dataclass
class Index:
    """The parts of index.yaml the plugin needs."""
    context_path: str = ""


def parse_index(data: bytes | str) -> Index:
    """Parse an index.yaml document.

    Raises:
        ParseError: not YAML, or not a mapping
    """
    try:
        doc = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise ParseError(f"Invalid index.yaml: {e}") from e

    if not isinstance(doc, dict):
        raise ParseError("Invalid index.yaml: expected a YAML mapping")

    server_info = doc.get("serverInfo") or {}
    if not isinstance(server_info, dict):
        raise ParseError("Invalid index.yaml: serverInfo must be a mapping")

    return Index(context_path=str(server_info.get("contextPath") or ""))


def discover_context_path(fetch_index: IndexFetcher) -> str:
    """Fetch index.yaml and return the server-reported context path."""
    index = parse_index(fetch_index())
    logger.debug("Registry reports context path %r", index.context_path)
    return index.context_path
