"""Tests for the Azure and local-directory blob backends.

All Azure SDK calls are mocked -- no storage account required.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from azure.core.exceptions import HttpResponseError, ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import ContentSettings, PublicAccess

from blobsync.backends import AzureBlobBackend, LocalBlobBackend, create_backend
from blobsync.errors import ConfigurationError
from blobsync.models import ContainerPermission, RemoteState, SyncRequest


# ---------------------------------------------------------------------------
# Azure
# ---------------------------------------------------------------------------


@pytest.fixture
def azure_container():
    """Patch BlobServiceClient and hand back the mocked container client."""
    with patch("blobsync.backends.BlobServiceClient") as service_cls:
        container = MagicMock()
        service_cls.from_connection_string.return_value.get_container_client.return_value = container
        yield container


class TestAzureBlobBackend:
    """AzureBlobBackend against a mocked SDK."""

    def test_bad_connection_string(self):
        with pytest.raises(ConfigurationError, match="connection string"):
            AzureBlobBackend("site", "this is not a connection string")

    def test_opens_named_container(self):
        with patch("blobsync.backends.BlobServiceClient") as service_cls:
            AzureBlobBackend("site", "UseDevelopmentStorage=true")
        service_cls.from_connection_string.assert_called_once_with("UseDevelopmentStorage=true")
        service_cls.from_connection_string.return_value.get_container_client.assert_called_once_with("site")

    def test_ensure_container_creates_and_sets_policy(self, azure_container):
        backend = AzureBlobBackend("site", "UseDevelopmentStorage=true")
        backend.ensure_container(ContainerPermission.BLOB)

        azure_container.create_container.assert_called_once_with()
        azure_container.set_container_access_policy.assert_called_once_with(
            signed_identifiers={}, public_access=PublicAccess.BLOB,
        )

    def test_ensure_container_is_idempotent(self, azure_container):
        azure_container.create_container.side_effect = ResourceExistsError("exists")
        backend = AzureBlobBackend("site", "UseDevelopmentStorage=true")
        backend.ensure_container(ContainerPermission.CONTAINER)

        azure_container.set_container_access_policy.assert_called_once_with(
            signed_identifiers={}, public_access=PublicAccess.CONTAINER,
        )

    def test_private_sends_no_public_access(self, azure_container):
        backend = AzureBlobBackend("site", "UseDevelopmentStorage=true")
        backend.ensure_container(ContainerPermission.PRIVATE)
        azure_container.set_container_access_policy.assert_called_once_with(
            signed_identifiers={}, public_access=None,
        )

    def test_fetch_metadata_present(self, azure_container):
        props = MagicMock()
        props.metadata = {"LastModified": "42", "owner": "ci"}
        props.content_settings = ContentSettings(content_type="text/css", content_encoding="gzip")
        azure_container.get_blob_client.return_value.get_blob_properties.return_value = props

        remote = AzureBlobBackend("site", "UseDevelopmentStorage=true").fetch_metadata("a.css")

        azure_container.get_blob_client.assert_called_with("a.css")
        assert remote.state == RemoteState.PRESENT
        assert remote.metadata == {"LastModified": "42", "owner": "ci"}
        assert remote.content_encoding == "gzip"

    def test_fetch_metadata_absent(self, azure_container):
        blob = azure_container.get_blob_client.return_value
        blob.get_blob_properties.side_effect = ResourceNotFoundError("BlobNotFound")

        remote = AzureBlobBackend("site", "UseDevelopmentStorage=true").fetch_metadata("new.css")
        assert remote.state == RemoteState.ABSENT

    def test_fetch_metadata_error(self, azure_container):
        blob = azure_container.get_blob_client.return_value
        blob.get_blob_properties.side_effect = HttpResponseError("server busy")

        remote = AzureBlobBackend("site", "UseDevelopmentStorage=true").fetch_metadata("a.css")
        assert remote.state == RemoteState.ERROR
        assert "server busy" in remote.error

    def test_upload_overwrites(self, azure_container, tmp_path: Path, write_file):
        path = write_file(tmp_path / "a.css", "body {}")
        AzureBlobBackend("site", "UseDevelopmentStorage=true").upload_file("a.css", path)

        blob = azure_container.get_blob_client.return_value
        args, kwargs = blob.upload_blob.call_args
        assert kwargs == {"overwrite": True}
        assert str(args[0].name) == str(path)

    def test_set_metadata(self, azure_container):
        AzureBlobBackend("site", "UseDevelopmentStorage=true").set_metadata(
            "a.css", {"LastModified": "7"}
        )
        blob = azure_container.get_blob_client.return_value
        blob.set_blob_metadata.assert_called_once_with(metadata={"LastModified": "7"})

    def test_set_properties_with_encoding(self, azure_container):
        AzureBlobBackend("site", "UseDevelopmentStorage=true").set_properties(
            "a.css", "text/css", "gzip"
        )
        settings = azure_container.get_blob_client.return_value.set_http_headers.call_args.kwargs["content_settings"]
        assert settings.content_type == "text/css"
        assert settings.content_encoding == "gzip"

    def test_set_properties_without_encoding(self, azure_container):
        AzureBlobBackend("site", "UseDevelopmentStorage=true").set_properties("a.css", "text/css")
        settings = azure_container.get_blob_client.return_value.set_http_headers.call_args.kwargs["content_settings"]
        assert settings.content_type == "text/css"
        assert not settings.content_encoding


# ---------------------------------------------------------------------------
# Local directory
# ---------------------------------------------------------------------------


class TestLocalBlobBackend:
    """LocalBlobBackend on a temp directory."""

    def test_root_must_be_directory(self, tmp_path: Path, write_file):
        not_dir = write_file(tmp_path / "file", "x")
        with pytest.raises(ConfigurationError, match="not a directory"):
            LocalBlobBackend("site", str(not_dir))

    def test_ensure_container(self, storage_root: Path):
        backend = LocalBlobBackend("site", str(storage_root))
        assert backend.public_access() is None

        backend.ensure_container(ContainerPermission.BLOB)
        assert (storage_root / "site").is_dir()
        assert backend.public_access() is ContainerPermission.BLOB

        backend.ensure_container(ContainerPermission.PRIVATE)
        assert backend.public_access() is ContainerPermission.PRIVATE

    def test_fetch_absent(self, storage_root: Path):
        backend = LocalBlobBackend("site", str(storage_root))
        assert backend.fetch_metadata("a.txt").state == RemoteState.ABSENT

    def test_upload_metadata_properties(self, storage_root: Path, tmp_path: Path, write_file):
        src = write_file(tmp_path / "a.txt", "hello")
        backend = LocalBlobBackend("site", str(storage_root))
        backend.ensure_container(ContainerPermission.PRIVATE)

        backend.upload_file("a.txt", src)
        backend.set_metadata("a.txt", {"LastModified": "99"})
        backend.set_properties("a.txt", "text/plain", "gzip")

        assert (storage_root / "site" / "a.txt").read_text() == "hello"
        remote = backend.fetch_metadata("a.txt")
        assert remote.state == RemoteState.PRESENT
        assert remote.metadata == {"LastModified": "99"}
        assert remote.content_encoding == "gzip"
        assert backend.read_attributes("a.txt")["content_type"] == "text/plain"

    def test_upload_clears_previous_attributes(self, storage_root: Path, tmp_path: Path, write_file):
        src = write_file(tmp_path / "a.txt", "v1")
        backend = LocalBlobBackend("site", str(storage_root))
        backend.upload_file("a.txt", src)
        backend.set_metadata("a.txt", {"LastModified": "1"})

        backend.upload_file("a.txt", src)
        assert backend.fetch_metadata("a.txt").metadata == {}

    def test_corrupt_sidecar_is_error(self, storage_root: Path, tmp_path: Path, write_file):
        src = write_file(tmp_path / "a.txt", "x")
        backend = LocalBlobBackend("site", str(storage_root))
        backend.upload_file("a.txt", src)
        (storage_root / "site" / ".blobmeta" / "a.txt.json").write_text("{broken")

        remote = backend.fetch_metadata("a.txt")
        assert remote.state == RemoteState.ERROR

    def test_sidecar_is_json(self, storage_root: Path, tmp_path: Path, write_file):
        src = write_file(tmp_path / "a.txt", "x")
        backend = LocalBlobBackend("site", str(storage_root))
        backend.upload_file("a.txt", src)
        backend.set_metadata("a.txt", {"k": "v"})
        data = json.loads((storage_root / "site" / ".blobmeta" / "a.txt.json").read_text())
        assert data == {"metadata": {"k": "v"}}

    @pytest.mark.parametrize("name", [".blobmeta", ".container.json"])
    def test_reserved_names_rejected(self, storage_root: Path, tmp_path: Path, write_file, name):
        src = write_file(tmp_path / "a.txt", "x")
        backend = LocalBlobBackend("site", str(storage_root))
        backend.ensure_container(ContainerPermission.BLOB)

        with pytest.raises(ConfigurationError, match="reserved"):
            backend.fetch_metadata(name)
        with pytest.raises(ConfigurationError, match="reserved"):
            backend.upload_file(name, src)
        assert backend.public_access() is ContainerPermission.BLOB


class TestCreateBackend:
    """Backend factory dispatch."""

    def test_local(self, storage_root: Path):
        req = SyncRequest(
            container_name="site", connection_string=str(storage_root),
            content_type="text/plain", backend="local",
        )
        assert isinstance(create_backend(req), LocalBlobBackend)

    def test_azure(self):
        req = SyncRequest(
            container_name="site", connection_string="UseDevelopmentStorage=true",
            content_type="text/plain",
        )
        with patch("blobsync.backends.BlobServiceClient"):
            assert isinstance(create_backend(req), AzureBlobBackend)
