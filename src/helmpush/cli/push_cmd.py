"""
helmpush.cli.push_cmd — helm push command.

  helm push mychart-0.1.0.tgz chartmuseum       # push .tgz from "helm package"
  helm push . chartmuseum                       # package and push chart directory
  helm push . --version="7c4d121" chartmuseum   # override version in Chart.yaml
  helm push . https://my.chart.repo.com         # push directly to chart repo URL

Called with four arguments ending in a cm:// URL, the command acts as
Helm's downloader for the cm protocol instead.
"""

import logging
import os
import sys

import click

from helmpush.errors import HelmPushError
from helmpush.settings import PushOptions, Settings, default_keyring, parse_bool

USAGE_ERROR = (
    "This command needs 2 arguments: name of chart, "
    "name of chart repository (or repo URL)"
)


@click.command("push", context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("args", nargs=-1)
@click.option("--version", "-v", "chart_version", default="",
              help="Override chart version pre-push")
@click.option("--app-version", "-a", "app_version", default="",
              help="Override app version pre-push")
@click.option("--client-id", default="",
              help="Access client ID [$HELM_REPO_CLIENT_ID]")
@click.option("--client-secret", default="",
              help="Access client secret [$HELM_REPO_CLIENT_SECRET]")
@click.option("--context-path", default="",
              help="ChartMuseum context path [$HELM_REPO_CONTEXT_PATH]")
@click.option("--ca-file", default="",
              help="Verify certificates of HTTPS-enabled servers using this CA bundle [$HELM_REPO_CA_FILE]")
@click.option("--cert-file", default="",
              help="Identify HTTPS client using this SSL certificate file [$HELM_REPO_CERT_FILE]")
@click.option("--key-file", default="",
              help="Identify HTTPS client using this SSL key file [$HELM_REPO_KEY_FILE]")
@click.option("--keyring", default=default_keyring, show_default="~/.gnupg/pubring.gpg",
              help="Location of a public keyring")
@click.option("--insecure", "insecure_skip_verify", is_flag=True, default=False,
              help="Connect to server with an insecure way by skipping certificate verification [$HELM_REPO_INSECURE]")
@click.option("--force", "-f", "force_upload", is_flag=True, default=False,
              help="Force upload even if chart version exists")
@click.option("--dependency-update", "-d", is_flag=True, default=False,
              help='Update dependencies from "requirements.yaml" to dir "charts/" before packaging')
@click.option("--check-helm-version", is_flag=True, default=False,
              help='Output either "2" or "3" indicating the current Helm major version')
@click.option("--debug", is_flag=True, default=False,
              help="Enable verbose output [$HELM_DEBUG]")
@click.option("--home", default=None,
              help="Location of your Helm 2 config [$HELM_HOME]")
@click.pass_context
def push_cmd(ctx, args, chart_version, app_version, client_id, client_secret,
             context_path, ca_file, cert_file, key_file, keyring,
             insecure_skip_verify, force_upload, dependency_update,
             check_helm_version, debug, home):
    """Helm plugin to push chart package to ChartMuseum."""
    from helmpush.download import download, is_download_invocation
    from helmpush.push import push

    debug = debug or parse_bool(os.environ.get("HELM_DEBUG"))
    _configure_logging(debug)

    # Short circuit
    if check_helm_version:
        settings = Settings.from_env(debug=debug, home=home)
        click.echo(settings.helm_major_version)
        return

    options = PushOptions(
        chart_version=chart_version,
        app_version=app_version,
        client_id=client_id,
        client_secret=client_secret,
        context_path=context_path,
        ca_file=ca_file,
        cert_file=cert_file,
        key_file=key_file,
        keyring=keyring,
        insecure_skip_verify=insecure_skip_verify,
        force_upload=force_upload,
        dependency_update=dependency_update,
    )

    try:
        # Downloader protocol: <certFile> <keyFile> <caFile> <cm://url>
        if is_download_invocation(args):
            options.apply_env()
            options.fill_tls(ca_file=args[2], cert_file=args[0], key_file=args[1])
            download(args[3], options)
            return

        if len(args) != 2:
            click.echo(ctx.get_usage(), err=True)
            click.echo(f"Error: {USAGE_ERROR}", err=True)
            sys.exit(1)

        options.chart_name, options.repo_name = args
        options.apply_env()
        settings = Settings.from_env(debug=debug, home=home)
        push(options, settings)

    except HelmPushError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
        stream=sys.stderr,
    )
