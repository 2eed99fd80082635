from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import yaml


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env(val) for key, val in value.items()}
    return value


def load_yaml_file(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return expand_env(data)


def parse_packed_int(value: Any) -> int:
    """Parse a hex-packed integer as served by the feed (e.g. ``"0x258"``).

    Bare strings are read as base 16 as well; plain ints pass through.

    Raises:
        ValueError: If the value cannot be read as an integer
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a packed integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty packed integer")
        return int(text, 16)
    raise ValueError(f"Not a packed integer: {value!r}")


def trim(value: str, limit: int) -> str:
    """Trim a string to a maximum length, appending '...' if truncated."""
    stripped = value.strip()
    if len(stripped) <= limit:
        return stripped
    if limit <= 3:
        return stripped[:limit]
    return stripped[: limit - 3] + "..."


def env_str(name: str) -> Optional[str]:
    """Get a stripped, non-empty string from an environment variable."""
    raw = os.getenv(name)
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def validate_url(url: Optional[str]) -> bool:
    """Validate that URL is a valid http/https URL."""
    if not url:
        return False
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.netloc)
    except Exception:  # noqa: BLE001
        return False
