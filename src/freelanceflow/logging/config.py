"""Persisted logging preferences for the ``freelanceflow`` CLI and API.

The settings live in a small JSON document (``~/.freelanceflow/logging.json``
unless ``FREELANCEFLOW_LOG_CONFIG`` points elsewhere) so that ``freelanceflow
logging set-level`` survives process restarts and applies to the API server.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional


def _default_config_path() -> Path:
    raw = os.environ.get("FREELANCEFLOW_LOG_CONFIG")
    if raw and raw.strip():
        return Path(raw).expanduser()
    config_dir = os.environ.get("FREELANCEFLOW_CONFIG_DIR")
    if config_dir and config_dir.strip():
        return Path(config_dir).expanduser() / "logging.json"
    return Path.home() / ".freelanceflow" / "logging.json"


def _resolve_config_path(config_file: Optional[os.PathLike[str] | str] = None) -> Path:
    if config_file is not None:
        return Path(config_file)
    return _default_config_path()


def load_config(config_file: Optional[os.PathLike[str] | str] = None) -> Dict[str, Any]:
    """Load the logging configuration document.

    Missing or unreadable files are treated as an empty configuration so a
    broken preferences file never prevents the service from starting.
    """

    path = _resolve_config_path(config_file)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, json.JSONDecodeError):
        return {}

    return data if isinstance(data, dict) else {}


def save_config(
    config: Dict[str, Any],
    config_file: Optional[os.PathLike[str] | str] = None,
) -> Path:
    path = _resolve_config_path(config_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(config, handle, indent=2, sort_keys=True)
        handle.write("\n")
    return path


def level_number(level: str | int) -> int:
    """Resolve ``level`` (name or number) to a numeric logging level.

    Raises
    ------
    ValueError
        If ``level`` is not a known logging level name.
    """

    if isinstance(level, int):
        return level
    candidate = logging.getLevelName(str(level).strip().upper())
    if isinstance(candidate, int):
        return candidate
    raise ValueError(f"Unknown logging level: {level!r}")


def load_log_level(
    config_file: Optional[os.PathLike[str] | str] = None,
) -> Optional[int]:
    """Return the persisted numeric log level, or ``None`` when unset/invalid."""

    value = load_config(config_file).get("log_level")
    if value is None:
        return None
    try:
        return level_number(value)
    except ValueError:
        return None


def save_log_level(
    level: str | int,
    config_file: Optional[os.PathLike[str] | str] = None,
) -> Path:
    numeric = level_number(level)
    config = load_config(config_file)
    config["log_level"] = logging.getLevelName(numeric)
    return save_config(config, config_file)


__all__ = [
    "load_config",
    "save_config",
    "level_number",
    "load_log_level",
    "save_log_level",
]
