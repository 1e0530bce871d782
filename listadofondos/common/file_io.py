"""
Lightweight JSON file I/O helpers.

- All files are read/written as UTF-8.
- `write_json` pretty-prints with 2-space indentation and does not escape non-ASCII.
- Parent directories are created as needed.
- Writes go to a sibling temp file first and are moved into place with
  `os.replace`, so readers never observe a half-written document.
- Functions surface underlying I/O and JSON errors (no silent swallowing).
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, TypeAlias, cast

# anything `json` round-trips: scalars, lists, and dicts with str keys
JSONScalar: TypeAlias = str | int | float | bool | None
JSONLike: TypeAlias = JSONScalar | list["JSONLike"] | dict[str, "JSONLike"]

__all__ = ["JSONScalar", "JSONLike", "write_json", "read_json"]


def write_json(path: Path, data: JSONLike | Any) -> Path:
    """Atomically write JSON to disk, creating parent dirs as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    # serialize before touching the filesystem so a TypeError leaves no debris
    text = json.dumps(data, ensure_ascii=False, indent=2)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    tmp = Path(tmp_name)
    try:
        # newline ensures consistent line endings across platforms
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    return path


def read_json(path: Path) -> JSONLike:
    """Read JSON from disk."""
    return cast(JSONLike, json.loads(path.read_text(encoding="utf-8")))
