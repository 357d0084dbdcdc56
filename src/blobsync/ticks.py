"""
Tick timestamps -- how last-write times are stored in blob metadata.

A tick is 100 nanoseconds. Tick 0 is 0001-01-01T00:00:00 UTC, so the
values line up with the metadata written by the .NET build tasks that
populated existing containers.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Union

TICKS_PER_SECOND = 10_000_000
TICKS_PER_MICROSECOND = 10
NANOSECONDS_PER_TICK = 100

MIN_TICKS = 0

_EPOCH_0001 = datetime(1, 1, 1, tzinfo=timezone.utc)

# Ticks between 0001-01-01 and the Unix epoch.
UNIX_EPOCH_TICKS = 621_355_968_000_000_000


def from_mtime_ns(mtime_ns: int) -> int:
    """Convert an ``os.stat`` nanosecond mtime to ticks."""
    return UNIX_EPOCH_TICKS + mtime_ns // NANOSECONDS_PER_TICK


def from_datetime(value: datetime) -> int:
    """Convert a datetime to ticks. Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value.astimezone(timezone.utc) - _EPOCH_0001
    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    return micros * TICKS_PER_MICROSECOND


def to_datetime(ticks: int) -> datetime:
    """Convert ticks to an aware UTC datetime (microsecond precision)."""
    if ticks < MIN_TICKS:
        raise ValueError(f"Negative tick count: {ticks}")
    return _EPOCH_0001 + timedelta(microseconds=ticks // TICKS_PER_MICROSECOND)


def file_ticks(path: Union[str, os.PathLike]) -> int:
    """Last-write time of *path* in ticks.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    return from_mtime_ns(Path(path).stat().st_mtime_ns)
