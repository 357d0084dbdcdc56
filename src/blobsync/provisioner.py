"""Container provisioning -- make sure the destination exists."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .backends import BlobBackend, create_backend
from .errors import ConfigurationError
from .models import SyncRequest

logger = logging.getLogger("blobsync.provisioner")

BackendFactory = Callable[[SyncRequest], BlobBackend]


def open_container(
    request: SyncRequest,
    backend_factory: BackendFactory = create_backend,
    log: Optional[logging.Logger] = None,
) -> Optional[BlobBackend]:
    """Open the request's container without touching it remotely.

    Used by dry runs: the container is neither created nor has its
    access policy changed.

    Returns:
        A backend, or None if the credentials could not be used.
    """
    log = log or logger
    try:
        return backend_factory(request)
    except ConfigurationError as exc:
        log.error("Cannot open container %s: %s", request.container_name, exc)
        return None


def provision_container(
    request: SyncRequest,
    backend_factory: BackendFactory = create_backend,
    log: Optional[logging.Logger] = None,
) -> Optional[BlobBackend]:
    """Open the request's container, creating it and setting its policy.

    Safe to call on every run. An unusable connection string is reported
    and turned into a None result rather than raised.

    Args:
        request: The sync request.
        backend_factory: Builds a backend from the request.
        log: Logger for the failure report.

    Returns:
        A ready backend, or None if the credentials could not be used.
    """
    log = log or logger
    backend = open_container(request, backend_factory, log)
    if backend is None:
        return None

    permission = request.permission
    backend.ensure_container(permission)
    log.debug(
        "Container %s ready on %s (access: %s)",
        request.container_name, backend.name, permission.value,
    )
    return backend
