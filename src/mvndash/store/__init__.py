"""Persistence for history, favorites, preferences and starters.

Everything is plain JSON under the data directory, validated with pydantic
on the way in. Stores are only written from the render thread.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def project_key(root: str | os.PathLike[str]) -> str:
    """Stable file-name-safe key for a project root."""
    resolved = str(Path(root).resolve())
    return hashlib.sha256(resolved.encode("utf-8")).hexdigest()[:16]


def read_json(path: Path, adapter: TypeAdapter[T], default: T) -> T:
    """Load and validate ``path``; a missing or unreadable file yields ``default``."""
    if not path.exists():
        return default
    try:
        with open(path, encoding="utf-8") as f:
            return adapter.validate_python(json.load(f))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.warning("Ignoring unreadable %s: %s", path, e)
        return default


def write_json(path: Path, data: Any) -> bool:
    """Write ``data`` as pretty JSON, creating parent directories."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp, path)
    except OSError as e:
        logger.error("Failed to save %s: %s", path, e)
        return False
    return True
