"""
blobsync -- incremental file uploads to Azure Blob Storage.

A build step that pushes a list of local files into a blob container,
skipping every file whose recorded upload is already current.
"""

import os

__version__ = "0.1.0"

DEFAULT_CONFIG = os.environ.get("BLOBSYNC_CONFIG", "blobsync.yaml")
