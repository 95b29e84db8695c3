# src/storage/json_io.py — v1
"""JSON document helpers shared by the pipeline result and quality history.

Writes go through a temp file in the target directory followed by
``os.replace`` so readers only ever see a complete previous or complete new
document.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def read_json_if_exists(path: str | Path) -> Any | None:
    """Return parsed JSON, or None when the file is missing or unreadable."""
    p = Path(path)
    if not p.exists():
        return None
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Failed to read JSON document %s: %s", p, e)
        return None


def write_json_atomic(path: str | Path, data: Any) -> Path:
    """Serialize ``data`` as indented JSON and atomically replace ``path``.

    Returns:
        The written path.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(data, indent=2, ensure_ascii=False, default=str)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=p.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, p)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return p
