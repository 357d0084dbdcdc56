"""Error taxonomy for blobsync."""


class BlobSyncError(Exception):
    """Base class for all blobsync failures."""


class ConfigurationError(BlobSyncError):
    """Raised when the sync request or its credentials cannot be used."""


class TransientRemoteError(BlobSyncError):
    """Raised when fetching attributes of an existing blob fails."""


class UnrecoverableUploadError(BlobSyncError):
    """Raised when uploading or persisting a blob fails mid-run.

    Attributes:
        blob_name: Name of the blob being written when the failure hit.
    """

    def __init__(self, blob_name: str, message: str):
        super().__init__(message)
        self.blob_name = blob_name
