"""
helmpush.cli — CLI entry point.

Helm runs the plugin as:
  helm push <chart> <repo> [flags]                          - Package and upload
  helm-push <certFile> <keyFile> <caFile> cm://host/file    - cm:// downloader
"""

from helmpush.cli.push_cmd import push_cmd


def main():
    push_cmd(prog_name="helm push")
