"""
blobsync CLI -- push build outputs to blob storage.

The main Click group is defined here and the subcommands are
registered via register functions.

Entry point: blobsync.cli:main
"""

from __future__ import annotations

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="blobsync")
def main():
    """blobsync -- upload changed files to an Azure blob container."""


from .sync_cmd import register_sync_commands

register_sync_commands(main)
