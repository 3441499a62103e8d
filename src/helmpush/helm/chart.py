"""
helmpush.helm.chart — Chart loading and packaging.

A chart is loaded from a directory or an existing .tgz, its version
and appVersion may be overridden, and it is packaged again as

    <name>-<version>.tgz
      └── <name>/
          ├── Chart.yaml      ← rewritten with overrides
          ├── values.yaml
          ├── templates/...
          └── charts/...

Files matched by .helmignore are skipped when loading a directory.
"""

from __future__ import annotations

import fnmatch
import io
import logging
import tarfile
import time
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

import yaml

from helmpush.errors import ConfigError, PackagingError

logger = logging.getLogger(__name__)

CHART_FILE = "Chart.yaml"
IGNORE_FILE = ".helmignore"

# Chart.yaml fields Helm reads as strings; kept as written
STRING_FIELDS = (
    "apiVersion", "name", "version", "appVersion", "kubeVersion",
    "description", "type", "home", "icon",
)


@dataclass
class Chart:
    """A loaded chart: Chart.yaml metadata plus every other file."""
    metadata: dict[str, Any]
    path: Path
    files: dict[str, bytes] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return str(self.metadata.get("name", ""))

    @property
    def version(self) -> str:
        return str(self.metadata.get("version", ""))

    @property
    def app_version(self) -> str:
        return str(self.metadata.get("appVersion", ""))

    def set_version(self, version: str) -> None:
        self.metadata["version"] = version

    def set_app_version(self, app_version: str) -> None:
        self.metadata["appVersion"] = app_version


def is_chart_dir(path: str | Path) -> bool:
    """True if ``path`` is a directory with a readable Chart.yaml."""
    p = Path(path)
    if not p.is_dir():
        return False
    chart_yaml = p / CHART_FILE
    if not chart_yaml.is_file():
        return False
    try:
        _parse_metadata(_read_file(chart_yaml), str(chart_yaml))
    except PackagingError:
        return False
    return True


def load_chart(path: str | Path) -> Chart:
    """Load a chart from a directory or a packaged archive.

    Raises:
        ConfigError: path does not exist
        PackagingError: not a valid chart
    """
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Chart not found: {p}")
    if p.is_dir():
        return _load_chart_dir(p)
    return _load_chart_archive(p)


def create_chart_package(chart: Chart, dest_dir: str | Path) -> Path:
    """Write the chart as <name>-<version>.tgz into ``dest_dir``.

    Returns:
        Path to the archive
    """
    if not chart.name or not chart.version:
        raise PackagingError(f"Chart at {chart.path} needs a name and a version")

    dest = Path(dest_dir) / f"{chart.name}-{chart.version}.tgz"
    mtime = time.time()

    try:
        with tarfile.open(dest, "w:gz") as tar:
            chart_yaml = yaml.safe_dump(
                chart.metadata, default_flow_style=False, sort_keys=False,
            ).encode()
            _add_bytes(tar, f"{chart.name}/{CHART_FILE}", chart_yaml, mtime)

            for rel in sorted(chart.files):
                _add_bytes(tar, f"{chart.name}/{rel}", chart.files[rel], mtime)
    except (OSError, tarfile.TarError) as e:
        raise PackagingError(f"Cannot create chart package {dest}: {e}") from e

    logger.debug("Packaged %s (%d files) into %s", chart.name, len(chart.files) + 1, dest)
    return dest


def read_packaged_metadata(archive: str | Path) -> dict[str, Any]:
    """Return the Chart.yaml metadata embedded in a packaged chart."""
    return _load_chart_archive(Path(archive)).metadata


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# HELPERS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
def _parse_metadata(data: bytes, source: str) -> dict[str, Any]:
    """Load Chart.yaml, keeping string fields as their source text.

    >>> _parse_metadata(b"name: app\\nversion: 1.10\\nappVersion: 2.0", "Chart.yaml")
    {'name': 'app', 'version': '1.10', 'appVersion': '2.0'}
    """
    try:
        node = yaml.compose(data, Loader=yaml.SafeLoader)
        metadata = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise PackagingError(f"Cannot parse {source}: {e}") from e
    if not isinstance(metadata, dict):
        raise PackagingError(f"{source} must be a YAML mapping")

    for key_node, value_node in node.value:
        key = key_node.value
        if (key in STRING_FIELDS
                and isinstance(value_node, yaml.ScalarNode)
                and metadata.get(key) is not None):
            metadata[key] = value_node.value

    if not metadata.get("name"):
        raise PackagingError(f"{source} has no chart name")
    return metadata


def _read_file(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise PackagingError(f"Cannot read {path}: {e}") from e


def _load_chart_dir(chart_dir: Path) -> Chart:
    chart_yaml = chart_dir / CHART_FILE
    if not chart_yaml.is_file():
        raise PackagingError(f"No {CHART_FILE} found in {chart_dir}")

    metadata = _parse_metadata(_read_file(chart_yaml), str(chart_yaml))
    rules = _load_ignore_rules(chart_dir / IGNORE_FILE)

    files: dict[str, bytes] = {}
    for fp in sorted(chart_dir.rglob("*")):
        if not fp.is_file():
            continue
        rel = fp.relative_to(chart_dir).as_posix()
        if rel == CHART_FILE or _is_ignored(rel, rules):
            continue
        files[rel] = _read_file(fp)

    return Chart(metadata=metadata, path=chart_dir, files=files)


def _load_chart_archive(archive: Path) -> Chart:
    metadata: dict[str, Any] | None = None
    files: dict[str, bytes] = {}

    try:
        with tarfile.open(archive, "r:gz") as tar:
            for member in tar.getmembers():
                if not member.isfile():
                    continue
                # Strip the top-level <name>/ directory
                parts = PurePosixPath(member.name).parts
                if len(parts) < 2:
                    continue
                rel = "/".join(parts[1:])
                fobj = tar.extractfile(member)
                if fobj is None:
                    continue
                data = fobj.read()
                if rel == CHART_FILE:
                    metadata = _parse_metadata(data, f"{archive}:{member.name}")
                else:
                    files[rel] = data
    except (OSError, tarfile.TarError) as e:
        raise PackagingError(f"Cannot read chart archive {archive}: {e}") from e

    if metadata is None:
        raise PackagingError(f"No {CHART_FILE} found in {archive}")

    return Chart(metadata=metadata, path=archive, files=files)


def _load_ignore_rules(path: Path) -> list[str]:
    """Read .helmignore patterns (blank lines and comments skipped)."""
    if not path.is_file():
        return []
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PackagingError(f"Cannot read {path}: {e}") from e
    rules = []
    for line in text.splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            rules.append(line)
    return rules


def _is_ignored(rel: str, rules: list[str]) -> bool:
    """Match a chart-relative path against .helmignore patterns.

    The last matching rule wins; a leading ``!`` re-includes.

    >>> _is_ignored("ci/values.yaml", ["ci/"])
    True
    >>> _is_ignored("templates/a.yaml", ["*.swp"])
    False
    >>> _is_ignored("keep.swp", ["*.swp", "!keep.swp"])
    False
    """
    parts = rel.split("/")
    ignored = False
    for rule in rules:
        negate = rule.startswith("!")
        if negate:
            rule = rule[1:]
        if rule and _rule_matches(rule, rel, parts):
            ignored = not negate
    return ignored


def _rule_matches(rule: str, rel: str, parts: list[str]) -> bool:
    pattern = rule.strip("/")
    if rule.endswith("/"):
        # Directory rule: any parent directory matches
        return (any(fnmatch.fnmatch(d, pattern) for d in parts[:-1])
                or fnmatch.fnmatch("/".join(parts[:-1]), pattern))
    if fnmatch.fnmatch(rel, pattern) or fnmatch.fnmatch(parts[-1], pattern):
        return True
    # A plain name also excludes a directory of that name
    return "/" not in pattern and any(fnmatch.fnmatch(d, pattern) for d in parts[:-1])


def _add_bytes(tar: tarfile.TarFile, name: str, data: bytes, mtime: float) -> None:
    info = tarfile.TarInfo(name=name)
    info.size = len(data)
    info.mode = 0o644
    info.mtime = int(mtime)
    tar.addfile(info, io.BytesIO(data))
