"""
Staleness evaluation -- does the remote blob need a fresh upload?

Only the ``LastModified`` metadata entry written by blobsync counts.
The blob's server-side modification time is ignored.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from .models import LAST_MODIFIED_KEY
from .ticks import MIN_TICKS

logger = logging.getLogger("blobsync.staleness")


def parse_ticks(raw: Optional[str]) -> Optional[int]:
    """Parse a stored tick value. None for missing, blank, or malformed input."""
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value if value >= MIN_TICKS else None


def remote_reference_ticks(
    metadata: Optional[Mapping[str, str]],
    log: Optional[logging.Logger] = None,
) -> int:
    """Read the recorded upload timestamp from blob metadata.

    Missing, blank, or malformed values all read as MIN_TICKS so that the
    file is uploaded again.

    Args:
        metadata: Remote blob metadata (may be None).
        log: Logger for the malformed-value warning.

    Returns:
        Recorded timestamp in ticks.
    """
    log = log or logger
    raw = (metadata or {}).get(LAST_MODIFIED_KEY)
    if raw is None or not raw.strip():
        return MIN_TICKS

    value = parse_ticks(raw)
    if value is None:
        log.warning("Ignoring malformed %s metadata value: %r", LAST_MODIFIED_KEY, raw)
        return MIN_TICKS
    return value


def is_remote_stale(
    local_ticks: int,
    metadata: Optional[Mapping[str, str]],
    name: str = "",
    log: Optional[logging.Logger] = None,
) -> bool:
    """Decide whether the remote copy of a file must be refreshed.

    The remote copy is current when its recorded timestamp is greater than
    or equal to the local last-write time; equal timestamps skip the upload.

    Args:
        local_ticks: Local file last-write time, in ticks.
        metadata: Remote blob metadata (None or empty when the blob is new).
        name: Blob name, used in the skip log line.
        log: Logger to report skips on.

    Returns:
        True if an upload is required.
    """
    log = log or logger
    remote_ticks = remote_reference_ticks(metadata, log)
    if remote_ticks >= local_ticks:
        log.info("Skipping %s: local file is not newer than remote", name)
        return False
    return True
