"""
Blob storage backends -- where the files land.

Each backend knows how to provision its container, read a blob's
attributes, and write content, metadata, and properties as separate
operations. The engine picks one based on the request.

Azure: Azure Blob Storage through azure-storage-blob.
Local: A directory tree standing in for a container. For staging
       directories, offline dry runs, and tests.
"""

from __future__ import annotations

import json
import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from azure.core.exceptions import AzureError, ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContentSettings, PublicAccess

from .errors import ConfigurationError
from .models import BackendType, ContainerPermission, RemoteMetadata, SyncRequest

logger = logging.getLogger("blobsync.backends")


class BlobBackend(ABC):
    """Abstract blob container handle."""

    @abstractmethod
    def ensure_container(self, permission: ContainerPermission) -> None:
        """Create the container if missing and apply its access policy.

        Args:
            permission: Public-access policy to set.
        """

    @abstractmethod
    def fetch_metadata(self, blob_name: str) -> RemoteMetadata:
        """Fetch a blob's current attributes.

        Never raises for a missing blob; returns RemoteMetadata.absent().
        """

    @abstractmethod
    def upload_file(self, blob_name: str, path: Path) -> None:
        """Upload *path* as *blob_name*, replacing any existing content."""

    @abstractmethod
    def set_metadata(self, blob_name: str, metadata: dict[str, str]) -> None:
        """Replace the blob's metadata mapping."""

    @abstractmethod
    def set_properties(
        self,
        blob_name: str,
        content_type: str,
        content_encoding: Optional[str] = None,
    ) -> None:
        """Set the blob's content-type and, if given, content-encoding."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name."""


_PUBLIC_ACCESS = {
    ContainerPermission.PRIVATE: None,
    ContainerPermission.BLOB: PublicAccess.BLOB,
    ContainerPermission.CONTAINER: PublicAccess.CONTAINER,
}


class AzureBlobBackend(BlobBackend):
    """Azure Blob Storage container.

    Args:
        container_name: Destination container.
        connection_string: Storage account connection string.

    Raises:
        ConfigurationError: If the connection string cannot be parsed.
    """

    def __init__(self, container_name: str, connection_string: str):
        try:
            service = BlobServiceClient.from_connection_string(connection_string)
        except ValueError as exc:
            raise ConfigurationError(
                f"Invalid storage connection string: {exc}"
            ) from exc

        self.container_name = container_name
        self._container = service.get_container_client(container_name)

    @property
    def name(self) -> str:
        return "azure"

    def ensure_container(self, permission: ContainerPermission) -> None:
        try:
            self._container.create_container()
            logger.info("Created container %s", self.container_name)
        except ResourceExistsError:
            logger.debug("Container %s already exists", self.container_name)

        self._container.set_container_access_policy(
            signed_identifiers={},
            public_access=_PUBLIC_ACCESS[permission],
        )
        logger.debug(
            "Container %s access policy set to %s",
            self.container_name, permission.value,
        )

    def fetch_metadata(self, blob_name: str) -> RemoteMetadata:
        blob = self._container.get_blob_client(blob_name)
        try:
            props = blob.get_blob_properties()
        except ResourceNotFoundError:
            return RemoteMetadata.absent()
        except AzureError as exc:
            return RemoteMetadata.failed(exc)

        encoding = None
        if props.content_settings is not None:
            encoding = props.content_settings.content_encoding
        return RemoteMetadata.present(props.metadata or {}, encoding)

    def upload_file(self, blob_name: str, path: Path) -> None:
        blob = self._container.get_blob_client(blob_name)
        with open(path, "rb") as fh:
            blob.upload_blob(fh, overwrite=True)

    def set_metadata(self, blob_name: str, metadata: dict[str, str]) -> None:
        blob = self._container.get_blob_client(blob_name)
        blob.set_blob_metadata(metadata=metadata)

    def set_properties(
        self,
        blob_name: str,
        content_type: str,
        content_encoding: Optional[str] = None,
    ) -> None:
        blob = self._container.get_blob_client(blob_name)
        settings = ContentSettings(content_type=content_type)
        if content_encoding:
            settings.content_encoding = content_encoding
        blob.set_http_headers(content_settings=settings)


class LocalBlobBackend(BlobBackend):
    """Directory-backed container.

    The connection string is a root directory; the container is a
    subdirectory of it. Blob attributes live in JSON sidecars under
    ``.blobmeta/`` and the access policy in ``.container.json``.
    """

    META_DIR = ".blobmeta"
    CONTAINER_FILE = ".container.json"

    def __init__(self, container_name: str, connection_string: str):
        root = Path(connection_string).expanduser()
        if root.exists() and not root.is_dir():
            raise ConfigurationError(f"Local storage root is not a directory: {root}")

        self.container_name = container_name
        self.root = root
        self.container_dir = root / container_name
        self.meta_dir = self.container_dir / self.META_DIR

    @property
    def name(self) -> str:
        return "local"

    def _check_name(self, blob_name: str) -> None:
        if blob_name in (self.META_DIR, self.CONTAINER_FILE):
            raise ConfigurationError(
                f"Blob name {blob_name} is reserved by the local backend"
            )

    def _blob_path(self, blob_name: str) -> Path:
        self._check_name(blob_name)
        return self.container_dir / blob_name

    def _sidecar(self, blob_name: str) -> Path:
        self._check_name(blob_name)
        return self.meta_dir / f"{blob_name}.json"

    def _read_sidecar(self, blob_name: str) -> dict:
        sidecar = self._sidecar(blob_name)
        if not sidecar.exists():
            return {}
        return json.loads(sidecar.read_text(encoding="utf-8"))

    def _write_sidecar(self, blob_name: str, data: dict) -> None:
        self.meta_dir.mkdir(parents=True, exist_ok=True)
        self._sidecar(blob_name).write_text(
            json.dumps(data, indent=2, sort_keys=True), encoding="utf-8"
        )

    def ensure_container(self, permission: ContainerPermission) -> None:
        created = not self.container_dir.exists()
        self.container_dir.mkdir(parents=True, exist_ok=True)
        (self.container_dir / self.CONTAINER_FILE).write_text(
            json.dumps({"public_access": permission.value}), encoding="utf-8"
        )
        if created:
            logger.info("Created container %s", self.container_dir)

    def public_access(self) -> Optional[ContainerPermission]:
        """Access policy recorded for the container, if provisioned."""
        marker = self.container_dir / self.CONTAINER_FILE
        if not marker.exists():
            return None
        data = json.loads(marker.read_text(encoding="utf-8"))
        return ContainerPermission(data["public_access"])

    def fetch_metadata(self, blob_name: str) -> RemoteMetadata:
        if not self._blob_path(blob_name).is_file():
            return RemoteMetadata.absent()
        try:
            data = self._read_sidecar(blob_name)
        except (OSError, json.JSONDecodeError) as exc:
            return RemoteMetadata.failed(exc)
        return RemoteMetadata.present(
            data.get("metadata", {}), data.get("content_encoding")
        )

    def read_attributes(self, blob_name: str) -> dict:
        """Raw sidecar contents for a blob (metadata and content settings)."""
        return self._read_sidecar(blob_name)

    def upload_file(self, blob_name: str, path: Path) -> None:
        self.container_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(path, self._blob_path(blob_name))
        # A fresh upload carries no metadata or properties.
        self._write_sidecar(blob_name, {})

    def set_metadata(self, blob_name: str, metadata: dict[str, str]) -> None:
        data = self._read_sidecar(blob_name)
        data["metadata"] = dict(metadata)
        self._write_sidecar(blob_name, data)

    def set_properties(
        self,
        blob_name: str,
        content_type: str,
        content_encoding: Optional[str] = None,
    ) -> None:
        data = self._read_sidecar(blob_name)
        data["content_type"] = content_type
        data["content_encoding"] = content_encoding or None
        self._write_sidecar(blob_name, data)


def create_backend(request: SyncRequest) -> BlobBackend:
    """Factory function to create the backend a request targets.

    Args:
        request: The sync request.

    Returns:
        Instantiated BlobBackend.

    Raises:
        ConfigurationError: If the backend type is unsupported or the
            connection string is unusable.
    """
    factories = {
        BackendType.AZURE: AzureBlobBackend,
        BackendType.LOCAL: LocalBlobBackend,
    }
    factory = factories.get(request.backend)
    if not factory:
        raise ConfigurationError(f"Unsupported backend: {request.backend}")
    return factory(request.container_name, request.connection_string)
