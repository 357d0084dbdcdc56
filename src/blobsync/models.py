"""
Pydantic models for a sync run -- the request, remote state, and results.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

LAST_MODIFIED_KEY = "LastModified"


class ContainerPermission(str, Enum):
    """Public-access policy applied to the destination container."""

    PRIVATE = "private"
    BLOB = "blob"
    CONTAINER = "container"


# Names and numeric values of the storage service's access-type enumeration
# (Off=0, Container=1, Blob=2), accepted alongside our own values.
_PERMISSION_ALIASES = {
    "private": ContainerPermission.PRIVATE,
    "off": ContainerPermission.PRIVATE,
    "none": ContainerPermission.PRIVATE,
    "0": ContainerPermission.PRIVATE,
    "container": ContainerPermission.CONTAINER,
    "1": ContainerPermission.CONTAINER,
    "blob": ContainerPermission.BLOB,
    "2": ContainerPermission.BLOB,
}


def parse_permission(value: Optional[str]) -> ContainerPermission:
    """Map a textual access policy onto a ContainerPermission.

    Unrecognized, blank, or missing values fall back to PRIVATE.

    Args:
        value: Raw policy text from configuration.

    Returns:
        The parsed permission.
    """
    if value is None:
        return ContainerPermission.PRIVATE
    if isinstance(value, ContainerPermission):
        return value
    return _PERMISSION_ALIASES.get(str(value).strip().lower(), ContainerPermission.PRIVATE)


class BackendType(str, Enum):
    """Storage backends a request can target."""

    AZURE = "azure"
    LOCAL = "local"


class SyncRequest(BaseModel):
    """Everything one sync invocation needs. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    container_name: str
    connection_string: str = Field(repr=False)
    content_type: str
    files: tuple[str, ...] = ()
    container_permission: Optional[str] = None
    content_encoding: Optional[str] = None
    backend: BackendType = BackendType.AZURE
    base_dir: Optional[Path] = None

    @field_validator("container_name", "connection_string", "content_type")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value.strip()

    @field_validator("content_encoding")
    @classmethod
    def _blank_encoding_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    @property
    def permission(self) -> ContainerPermission:
        return parse_permission(self.container_permission)


class RemoteState(str, Enum):
    """Outcome of fetching a blob's attributes."""

    PRESENT = "present"
    ABSENT = "absent"
    ERROR = "error"


class RemoteMetadata(BaseModel):
    """Attributes of a remote blob, or why they could not be read."""

    state: RemoteState
    metadata: dict[str, str] = Field(default_factory=dict)
    content_encoding: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def present(
        cls,
        metadata: Optional[dict[str, str]] = None,
        content_encoding: Optional[str] = None,
    ) -> "RemoteMetadata":
        return cls(
            state=RemoteState.PRESENT,
            metadata=dict(metadata or {}),
            content_encoding=content_encoding,
        )

    @classmethod
    def absent(cls) -> "RemoteMetadata":
        return cls(state=RemoteState.ABSENT)

    @classmethod
    def failed(cls, exc: BaseException) -> "RemoteMetadata":
        return cls(state=RemoteState.ERROR, error=f"{type(exc).__name__}: {exc}")


class FileAction(str, Enum):
    """What the sync loop did with one file."""

    UPLOADED = "uploaded"
    SKIPPED = "skipped"
    WOULD_UPLOAD = "would_upload"


class FileOutcome(BaseModel):
    """Result for a single file in a sync run."""

    path: Path
    blob_name: str
    local_ticks: int
    remote_ticks: Optional[int] = None
    action: FileAction


class SyncReport(BaseModel):
    """Summary of a whole sync run.

    Attributes:
        container: Destination container name.
        outcomes: Per-file results, in processing order.
        success: False only when the container could not be provisioned.
        dry_run: True when uploads were only planned.
    """

    container: str
    outcomes: list[FileOutcome] = Field(default_factory=list)
    success: bool = True
    dry_run: bool = False

    @property
    def uploaded(self) -> int:
        return sum(
            1 for o in self.outcomes
            if o.action in (FileAction.UPLOADED, FileAction.WOULD_UPLOAD)
        )

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.action == FileAction.SKIPPED)
