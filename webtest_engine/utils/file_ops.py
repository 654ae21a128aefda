"""Small helpers for interacting with the filesystem."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def write_text(path: Path, content: str) -> None:
    """Write text to disk, creating parent directories when needed."""

    ensure_parent(path)
    path.write_text(content, encoding="utf-8")


def append_jsonl(path: Path, payload: Dict[str, Any]) -> None:
    """Append a JSONL entry to the target file."""

    ensure_parent(path)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")


def safe_filename(name: str, *, default_suffix: str = ".png") -> str:
    """Flatten ``name`` to a single safe path component."""

    stem = _UNSAFE_CHARS.sub("_", Path(name).name).strip("._") or "screenshot"
    if not Path(stem).suffix:
        stem = f"{stem}{default_suffix}"
    return stem
