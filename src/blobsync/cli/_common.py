"""Shared utilities for the CLI command modules.

Provides the Rich console, logging setup, the request options shared
by every sync command, and report rendering.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import click
from rich.console import Console
from rich.table import Table

from ..config import CONNECTION_STRING_ENV, load_request, resolve_config_path
from ..models import BackendType, ContainerPermission, FileAction, SyncReport, SyncRequest

console = Console()

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure root logging for a CLI run."""
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)


def request_options(func: Callable) -> Callable:
    """Attach the options every sync command accepts."""
    options = [
        click.argument("files", nargs=-1, type=click.Path()),
        click.option("--config", "-c", "config_path", default=None, type=click.Path(),
                     help="YAML config file (default: $BLOBSYNC_CONFIG or blobsync.yaml)."),
        click.option("--container", default=None, help="Destination container name."),
        click.option("--connection-string", default=None,
                     help=f"Storage connection string (default: ${CONNECTION_STRING_ENV} "
                          "when the config file sets none)."),
        click.option("--content-type", default=None, help="Content-Type for uploaded blobs."),
        click.option("--content-encoding", default=None, help="Content-Encoding for uploaded blobs."),
        click.option("--permission", default=None,
                     help="Container public access: "
                          + ", ".join(p.value for p in ContainerPermission) + "."),
        click.option("--backend", default=None,
                     type=click.Choice([b.value for b in BackendType]),
                     help="Storage backend (default: azure)."),
        click.option("--verbose", "-v", is_flag=True, help="Debug logging."),
        click.option("--quiet", "-q", is_flag=True, help="Warnings only."),
    ]

    for option in reversed(options):
        func = option(func)
    return func


def build_request(
    config_path: Optional[str],
    files: tuple[str, ...],
    container: Optional[str],
    connection_string: Optional[str],
    content_type: Optional[str],
    content_encoding: Optional[str],
    permission: Optional[str],
    backend: Optional[str],
) -> SyncRequest:
    """Resolve CLI options and config file into a SyncRequest."""
    return load_request(
        resolve_config_path(config_path),
        overrides={
            "files": list(files),
            "container_name": container,
            "connection_string": connection_string,
            "content_type": content_type,
            "content_encoding": content_encoding,
            "container_permission": permission,
            "backend": backend,
        },
    )


_ACTION_STYLE = {
    FileAction.UPLOADED: "[green]uploaded[/]",
    FileAction.WOULD_UPLOAD: "[yellow]would upload[/]",
    FileAction.SKIPPED: "[dim]up to date[/]",
}


def render_report(report: SyncReport) -> None:
    """Print a per-file table and a one-line summary."""
    if report.outcomes:
        table = Table(title=f"Container: {report.container}", show_lines=False)
        table.add_column("Blob", style="cyan")
        table.add_column("Local")
        table.add_column("Remote")
        table.add_column("Action")
        for outcome in report.outcomes:
            table.add_row(
                outcome.blob_name,
                str(outcome.local_ticks),
                str(outcome.remote_ticks) if outcome.remote_ticks is not None else "-",
                _ACTION_STYLE[outcome.action],
            )
        console.print(table)

    verb = "to upload" if report.dry_run else "uploaded"
    console.print(
        f"  [bold]{report.uploaded}[/] {verb}, [bold]{report.skipped}[/] up to date\n"
    )
