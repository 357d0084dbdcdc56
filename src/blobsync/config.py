"""
Configuration loading -- YAML file, environment, and CLI overrides.

Explicit overrides beat the YAML file. AZURE_STORAGE_CONNECTION_STRING
only fills in a connection string that neither of them sets. Keys may use
either the snake_case field names or the original build-task parameter
names (ContainerName, ConnectionString, ...).
"""

from __future__ import annotations

import glob
import logging
import os
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from . import DEFAULT_CONFIG
from .errors import ConfigurationError
from .models import SyncRequest

logger = logging.getLogger("blobsync.config")

CONNECTION_STRING_ENV = "AZURE_STORAGE_CONNECTION_STRING"

_KEY_ALIASES = {
    "ContainerName": "container_name",
    "ConnectionString": "connection_string",
    "ContentType": "content_type",
    "Files": "files",
    "ContainerPermission": "container_permission",
    "ContentEncoding": "content_encoding",
    "Backend": "backend",
}

_SECRET_KEYS = {"accountkey", "sharedaccesssignature"}

_GLOB_CHARS = set("*?[")


def resolve_config_path(path: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Pick the config file to load.

    An explicit path is returned as-is. Otherwise the default
    (``$BLOBSYNC_CONFIG`` or ``blobsync.yaml``) is used if it exists.
    """
    if path:
        return Path(path).expanduser()
    default = Path(DEFAULT_CONFIG).expanduser()
    return default if default.exists() else None


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def _normalize(data: Mapping[str, Any]) -> dict[str, Any]:
    normalized = {}
    for key, value in data.items():
        normalized[_KEY_ALIASES.get(key, key)] = value
    files = normalized.get("files")
    if isinstance(files, str):
        normalized["files"] = [files]
    return normalized


def _describe(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "request"
        problems.append(f"{loc}: {err['msg']}")
    return "Invalid sync configuration: " + "; ".join(problems)


def load_request(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> SyncRequest:
    """Build a SyncRequest from config file, environment, and overrides.

    Args:
        path: YAML config file, or None for no file.
        overrides: Explicit values (e.g. CLI options). None values are ignored.
        environ: Environment mapping. Defaults to os.environ.

    Returns:
        The validated, immutable request.

    Raises:
        ConfigurationError: If the file is unreadable or the request invalid.
    """
    env = os.environ if environ is None else environ
    data: dict[str, Any] = {}

    if path is not None:
        config_path = Path(path).expanduser()
        data = _normalize(_read_yaml(config_path))
        if data.get("files") and "base_dir" not in data:
            data["base_dir"] = config_path.resolve().parent
        logger.debug("Loaded config from %s", config_path)

    for key, value in _normalize(overrides or {}).items():
        if value is None or value == () or value == []:
            continue
        data[key] = value
        if key == "files":
            data.pop("base_dir", None)

    if not data.get("connection_string") and env.get(CONNECTION_STRING_ENV):
        data["connection_string"] = env[CONNECTION_STRING_ENV]

    try:
        return SyncRequest(**data)
    except ValidationError as exc:
        raise ConfigurationError(_describe(exc)) from exc


def expand_file_specs(
    specs: Iterable[str],
    base_dir: Optional[Union[str, Path]] = None,
) -> list[Path]:
    """Turn file specs into an ordered, de-duplicated list of paths.

    Plain specs are returned whether or not they exist. Specs containing
    glob characters expand to their sorted file matches; ``**`` recurses.

    Args:
        specs: Paths or glob patterns, in processing order.
        base_dir: Directory relative specs resolve against.

    Returns:
        Paths in first-seen order.
    """
    base = Path(base_dir).expanduser() if base_dir else None
    seen: set[Path] = set()
    paths: list[Path] = []

    for spec in specs:
        candidate = Path(spec).expanduser()
        if base is not None and not candidate.is_absolute():
            candidate = base / candidate

        if _GLOB_CHARS & set(spec):
            matches = [
                Path(m) for m in sorted(glob.glob(str(candidate), recursive=True))
                if Path(m).is_file()
            ]
            if not matches:
                logger.warning("Pattern matched no files: %s", spec)
        else:
            matches = [candidate]

        for match in matches:
            if match in seen:
                continue
            seen.add(match)
            paths.append(match)
    return paths


def redact_connection_string(value: str) -> str:
    """Mask account keys and SAS tokens in a connection string."""
    if ";" not in value and "=" not in value:
        return value
    parts = []
    for part in value.split(";"):
        key, sep, _ = part.partition("=")
        if sep and key.strip().lower() in _SECRET_KEYS:
            parts.append(f"{key}=***")
        else:
            parts.append(part)
    return ";".join(parts)
