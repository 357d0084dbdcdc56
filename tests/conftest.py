"""Shared test fixtures for blobsync."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import pytest

from blobsync.backends import BlobBackend
from blobsync.models import ContainerPermission, RemoteMetadata, SyncRequest

NS_PER_SECOND = 1_000_000_000

# 2024-01-01T00:00:00Z
BASE_SECONDS = 1_704_067_200


def _set_mtime(path: Path, seconds: int) -> None:
    """Pin a file's last-write time to a whole number of seconds."""
    ns = seconds * NS_PER_SECOND
    os.utime(path, ns=(ns, ns))


def _write_file(path: Path, content: str, seconds: int = BASE_SECONDS) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    _set_mtime(path, seconds)
    return path


@pytest.fixture
def set_mtime():
    """Pin a file's last-write time: ``set_mtime(path, seconds)``."""
    return _set_mtime


@pytest.fixture
def write_file():
    """Write a text file with a pinned mtime: ``write_file(path, content, seconds=...)``."""
    return _write_file


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    """Directory holding the local files to sync."""
    d = tmp_path / "work"
    d.mkdir()
    return d


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    """Root directory for the local blob backend."""
    return tmp_path / "storage"


@pytest.fixture
def make_request(storage_root: Path):
    """Build a SyncRequest aimed at the local backend."""

    def _make(files, **overrides) -> SyncRequest:
        data = {
            "container_name": "site",
            "connection_string": str(storage_root),
            "content_type": "text/plain",
            "backend": "local",
            "files": [str(f) for f in files],
        }
        data.update(overrides)
        return SyncRequest(**data)

    return _make


class RecordingBackend(BlobBackend):
    """In-memory backend that records every call.

    Args:
        remote: Initial blob name -> RemoteMetadata mapping.
        fail_upload_on: Blob names whose upload raises.
    """

    def __init__(
        self,
        remote: Optional[dict[str, RemoteMetadata]] = None,
        fail_upload_on: tuple[str, ...] = (),
    ):
        self.remote = dict(remote or {})
        self.fail_upload_on = set(fail_upload_on)
        self.calls: list[tuple] = []
        self.permission: Optional[ContainerPermission] = None
        self.properties: dict[str, tuple] = {}

    @property
    def name(self) -> str:
        return "recording"

    def ensure_container(self, permission: ContainerPermission) -> None:
        self.calls.append(("ensure_container", permission))
        self.permission = permission

    def fetch_metadata(self, blob_name: str) -> RemoteMetadata:
        self.calls.append(("fetch_metadata", blob_name))
        return self.remote.get(blob_name, RemoteMetadata.absent())

    def upload_file(self, blob_name: str, path: Path) -> None:
        self.calls.append(("upload_file", blob_name))
        if blob_name in self.fail_upload_on:
            raise ConnectionError("connection reset")
        self.remote[blob_name] = RemoteMetadata.present()

    def set_metadata(self, blob_name: str, metadata: dict[str, str]) -> None:
        self.calls.append(("set_metadata", blob_name, dict(metadata)))
        self.remote[blob_name] = RemoteMetadata.present(metadata)

    def set_properties(self, blob_name, content_type, content_encoding=None) -> None:
        self.calls.append(("set_properties", blob_name, content_type, content_encoding))
        self.properties[blob_name] = (content_type, content_encoding)

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def make_backend():
    """Build a RecordingBackend: ``make_backend(remote=..., fail_upload_on=...)``."""
    return RecordingBackend


@pytest.fixture
def recording_backend() -> RecordingBackend:
    return RecordingBackend()
