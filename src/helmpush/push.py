"""
helmpush.push — Push a chart to a ChartMuseum registry.

Linear pipeline; the first failing stage aborts the push:

    resolve repo → dependency update (-d) → load chart → version overrides
      → cm:// to http(s):// → client → context path (if not given)
      → package into a temp dir → upload → 201 check

  helm push mychart-0.1.0.tgz chartmuseum
  helm push . chartmuseum --version 7c4d121
  helm push . https://charts.example.com
"""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path
from typing import Callable

import click
import requests

from helmpush.cm.client import AccessClient, ClientConfig, check_response, registry_error
from helmpush.errors import DependencyError
from helmpush.helm.chart import Chart, create_chart_package, is_chart_dir, load_chart
from helmpush.helm.dependency import DependencyUpdater, new_dependency_updater
from helmpush.helm.index import discover_context_path
from helmpush.helm.repo import RepoConfig, is_repo_url, normalize_scheme, resolve_repo
from helmpush.settings import PushOptions, Settings

logger = logging.getLogger(__name__)

TEMP_DIR_PREFIX = "helm-push-"
INDEX_FILE = "index.yaml"


class Pusher:
    """One ``helm push`` invocation."""

    def __init__(
        self,
        options: PushOptions,
        settings: Settings,
        echo: Callable[[str], None] = click.echo,
        session: requests.Session | None = None,
        dependency_updater: DependencyUpdater | None = None,
    ):
        self.options = options
        self.settings = settings
        self.echo = echo
        self.session = session
        self.dependency_updater = dependency_updater or new_dependency_updater(
            settings, keyring=options.keyring, echo=echo,
        )

    def run(self) -> None:
        opts = self.options

        repo = resolve_repo(opts.repo_name, self.settings)
        display_name = repo.url if is_repo_url(opts.repo_name) else opts.repo_name

        if opts.dependency_update:
            self.update_dependencies()

        chart = self.load_chart()

        url = normalize_scheme(repo.url, opts.use_http)
        with self.build_client(url, repo) as client:
            if not client.config.context_path:
                self.resolve_context_path(client)

            with tempfile.TemporaryDirectory(prefix=TEMP_DIR_PREFIX) as tmp:
                archive = create_chart_package(chart, tmp)
                self.echo(f"Pushing {archive.name} to {display_name}...")
                resp = client.upload_package(archive, opts.force_upload)
                try:
                    check_response(resp, 201)
                finally:
                    resp.close()

        self.echo("Done.")

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # STAGES
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    def update_dependencies(self) -> None:
        """Run dependency update when the chart argument is a chart directory."""
        path = Path(self.options.chart_name)
        if not path.exists():
            raise DependencyError(f"Chart not found: {path}")
        if not path.is_dir():
            # Packaged charts already carry their dependencies
            return
        if not is_chart_dir(path):
            raise DependencyError(f"{path} is not a valid chart directory")

        logger.debug("Updating dependencies of %s", path)
        self.dependency_updater.update(path.resolve())

    def load_chart(self) -> Chart:
        chart = load_chart(self.options.chart_name)
        if self.options.chart_version:
            chart.set_version(self.options.chart_version)
        if self.options.app_version:
            chart.set_app_version(self.options.app_version)
        logger.debug("Loaded chart %s-%s", chart.name, chart.version)
        return chart

    def build_client(self, url: str, repo: RepoConfig) -> AccessClient:
        opts = self.options
        config = ClientConfig(
            url=url,
            context_path=opts.context_path or repo.context_path,
            client_id=opts.client_id or repo.client_id,
            client_secret=opts.client_secret or repo.client_secret,
            ca_file=opts.ca_file or repo.ca_file,
            cert_file=opts.cert_file or repo.cert_file,
            key_file=opts.key_file or repo.key_file,
            insecure_skip_verify=opts.insecure_skip_verify or repo.insecure_skip_tls_verify,
        )
        return AccessClient(config, session=self.session)

    def resolve_context_path(self, client: AccessClient) -> None:
        """Ask the registry for its context path and rebind the client."""
        def fetch_index() -> bytes:
            status, body = client.get(INDEX_FILE)
            if status != 200:
                raise registry_error(body, status)
            return body

        client.with_context_path(discover_context_path(fetch_index))


def push(
    options: PushOptions,
    settings: Settings,
    echo: Callable[[str], None] = click.echo,
) -> None:
    """Push a chart. See Pusher."""
    Pusher(options, settings, echo=echo).run()
