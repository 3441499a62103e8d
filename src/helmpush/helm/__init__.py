"""helmpush.helm — Chart, repository and helm binary helpers."""

from helmpush.helm.chart import (
    Chart, load_chart, is_chart_dir, create_chart_package,
    read_packaged_metadata,
)
from helmpush.helm.dependency import (
    DependencyUpdater, Helm2DependencyUpdater, Helm3DependencyUpdater,
    new_dependency_updater,
)
from helmpush.helm.index import Index, parse_index, discover_context_path
from helmpush.helm.repo import (
    RepoConfig, resolve_repo, get_repo_by_name, temp_repo_from_url,
    load_repositories, is_repo_url, normalize_scheme,
)
from helmpush.helm.version import helm_major_version_current

__all__ = [
    "Chart", "load_chart", "is_chart_dir", "create_chart_package",
    "read_packaged_metadata",
    "DependencyUpdater", "Helm2DependencyUpdater", "Helm3DependencyUpdater",
    "new_dependency_updater",
    "Index", "parse_index", "discover_context_path",
    "RepoConfig", "resolve_repo", "get_repo_by_name", "temp_repo_from_url",
    "load_repositories", "is_repo_url", "normalize_scheme",
    "helm_major_version_current",
]
