"""
Sync Engine -- walks the file list and refreshes stale blobs.

    provision container  ->  for each file: fetch attributes -> compare
                             timestamps -> upload + metadata + properties

Runs strictly in order, one file at a time. The first failure while
writing a blob aborts the rest of the run.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .backends import BlobBackend, create_backend
from .config import expand_file_specs
from .errors import TransientRemoteError, UnrecoverableUploadError
from .models import (
    LAST_MODIFIED_KEY,
    FileAction,
    FileOutcome,
    RemoteState,
    SyncReport,
    SyncRequest,
)
from .provisioner import BackendFactory, open_container, provision_container
from .staleness import is_remote_stale, parse_ticks
from .ticks import file_ticks

logger = logging.getLogger("blobsync.engine")


class SyncEngine:
    """Uploads the files of a SyncRequest whose remote copies are stale.

    Args:
        request: What to sync and where.
        backend_factory: Builds the storage backend for the request.
        log: Logger that receives progress messages.
    """

    def __init__(
        self,
        request: SyncRequest,
        backend_factory: BackendFactory = create_backend,
        log: Optional[logging.Logger] = None,
    ):
        self.request = request
        self.backend_factory = backend_factory
        self.log = log or logger

    def files(self) -> list[Path]:
        """Resolved local paths, in processing order."""
        return expand_file_specs(self.request.files, self.request.base_dir)

    def run(self, dry_run: bool = False) -> SyncReport:
        """Execute one sync pass.

        Args:
            dry_run: Evaluate staleness but upload nothing. The container
                is opened read-only: not created, policy untouched.

        Returns:
            SyncReport; ``success`` is False if the container could not
            be opened, in which case no file was processed.

        Raises:
            TransientRemoteError: Attributes of an existing blob could not be read.
            UnrecoverableUploadError: Writing a blob failed.
            FileNotFoundError: A listed local file does not exist.
        """
        report = SyncReport(container=self.request.container_name, dry_run=dry_run)

        if dry_run:
            backend = open_container(self.request, self.backend_factory, self.log)
        else:
            backend = provision_container(self.request, self.backend_factory, self.log)
        if backend is None:
            report.success = False
            return report

        for path in self.files():
            report.outcomes.append(self._sync_file(backend, path, dry_run))

        self.log.info(
            "Sync of %s finished: %d uploaded, %d skipped",
            self.request.container_name, report.uploaded, report.skipped,
        )
        return report

    def _sync_file(self, backend: BlobBackend, path: Path, dry_run: bool) -> FileOutcome:
        blob_name = path.name
        self.log.info("Considering %s", blob_name)

        local_ticks = file_ticks(path)
        remote = backend.fetch_metadata(blob_name)
        if remote.state == RemoteState.ERROR:
            raise TransientRemoteError(
                f"Could not read attributes of {blob_name}: {remote.error}"
            )

        outcome = FileOutcome(
            path=path,
            blob_name=blob_name,
            local_ticks=local_ticks,
            remote_ticks=parse_ticks(remote.metadata.get(LAST_MODIFIED_KEY)),
            action=FileAction.SKIPPED,
        )

        if not is_remote_stale(local_ticks, remote.metadata, blob_name, self.log):
            return outcome

        if remote.content_encoding and remote.content_encoding != self.request.content_encoding:
            self.log.info(
                "Content-Encoding of %s changes from %s to %s",
                blob_name, remote.content_encoding,
                self.request.content_encoding or "none",
            )

        if dry_run:
            self.log.info("Would upload %s", blob_name)
            outcome.action = FileAction.WOULD_UPLOAD
            return outcome

        metadata = dict(remote.metadata)
        metadata[LAST_MODIFIED_KEY] = str(local_ticks)
        try:
            backend.upload_file(blob_name, path)
            backend.set_metadata(blob_name, metadata)
            backend.set_properties(
                blob_name,
                self.request.content_type,
                self.request.content_encoding,
            )
        except Exception as exc:
            raise UnrecoverableUploadError(
                blob_name, f"Upload of {blob_name} failed: {exc}"
            ) from exc

        self.log.info("Uploaded %s", blob_name)
        outcome.action = FileAction.UPLOADED
        return outcome


def sync(
    request: SyncRequest,
    backend_factory: BackendFactory = create_backend,
    log: Optional[logging.Logger] = None,
) -> bool:
    """Run one sync pass and report success as a boolean.

    Args:
        request: What to sync and where.
        backend_factory: Builds the storage backend for the request.
        log: Logger that receives progress messages.

    Returns:
        True once every file was processed, False if the container
        could not be opened.
    """
    return SyncEngine(request, backend_factory, log).run().success
