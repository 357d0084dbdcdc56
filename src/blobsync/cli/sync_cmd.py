"""Sync commands: push, plan, check."""

from __future__ import annotations

import sys

import click
from rich.markup import escape
from rich.panel import Panel

from ._common import build_request, console, render_report, request_options, setup_logging
from ..config import expand_file_specs, redact_connection_string
from ..engine import SyncEngine
from ..errors import BlobSyncError


def _run(dry_run: bool, **options) -> None:
    setup_logging(options.pop("verbose"), options.pop("quiet"))

    try:
        request = build_request(**options)
        report = SyncEngine(request).run(dry_run=dry_run)
    except (BlobSyncError, FileNotFoundError) as exc:
        console.print(f"[bold red]Sync failed:[/] {escape(str(exc))}")
        sys.exit(1)

    if not report.success:
        console.print(
            f"[bold red]Could not open container[/] {request.container_name}. "
            "Check the connection string."
        )
        sys.exit(1)

    render_report(report)


def register_sync_commands(main: click.Group) -> None:
    """Register push, plan, and check."""

    @main.command("push")
    @request_options
    @click.option("--dry-run", is_flag=True, help="Show what would upload, upload nothing.")
    def push(dry_run: bool, **options):
        """Upload every listed file whose remote copy is stale.

        Files come from the FILES arguments or the config file's
        ``files`` list. Glob patterns are expanded.

        Examples:

            blobsync push --container site --content-type text/html dist/*.html

            blobsync push -c blobsync.yaml
        """
        _run(dry_run, **options)

    @main.command("plan")
    @request_options
    def plan(**options):
        """List which files would upload, without uploading."""
        _run(True, **options)

    @main.command("check")
    @request_options
    def check(**options):
        """Validate configuration without touching storage."""
        setup_logging(options.pop("verbose"), options.pop("quiet"))

        try:
            request = build_request(**options)
        except BlobSyncError as exc:
            console.print(f"[bold red]Invalid configuration:[/] {escape(str(exc))}")
            sys.exit(1)

        paths = expand_file_specs(request.files, request.base_dir)
        missing = [p for p in paths if not p.is_file()]

        console.print(Panel(
            f"Backend: [cyan]{request.backend.value}[/]\n"
            f"Container: [cyan]{request.container_name}[/]\n"
            f"Connection: {redact_connection_string(request.connection_string)}\n"
            f"Access: {request.permission.value}\n"
            f"Content-Type: {request.content_type}\n"
            f"Content-Encoding: {request.content_encoding or '[dim]none[/]'}\n"
            f"Files: [bold]{len(paths)}[/]",
            title="blobsync",
            border_style="cyan",
        ))
        for path in missing:
            console.print(f"  [red]missing:[/] {escape(str(path))}")
        if missing:
            sys.exit(1)
