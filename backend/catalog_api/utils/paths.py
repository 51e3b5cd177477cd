"""Filesystem helpers for catalog cache paths."""
from __future__ import annotations

import re
from pathlib import Path

from platformdirs import user_data_dir


APP_NAME = "StreamingCatalog"
APP_AUTHOR = "StreamingCatalog"


def default_poster_directory() -> str:
    """Return the platform-appropriate default poster cache directory."""

    base_dir = Path(user_data_dir(APP_NAME, APP_AUTHOR))
    return str(base_dir / "posters")


def ensure_directory(path: str) -> Path:
    """Expand and create the directory if it does not exist."""

    resolved = Path(path).expanduser()
    resolved.mkdir(parents=True, exist_ok=True)
    return resolved.resolve()


def safe_file_stem(value: str) -> str:
    """Replace characters that are unsafe in file names."""

    return re.sub(r"[^a-zA-Z0-9_-]", "_", value)
