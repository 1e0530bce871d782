"""
Snapshot stores: one named slot holding the current Payload.

`SnapshotStore` is the seam the cache talks to. Two implementations:

- `JsonFileSnapshotStore`: a single human-indented JSON document on disk,
  replaced atomically on every `put`. A missing, unreadable or ill-shaped
  document reads as ``None`` (a cache miss) instead of raising.
- `MemorySnapshotStore`: process-local slot for tests and ephemeral runs.

File I/O runs in a worker thread so the event loop keeps serving requests.
"""

from __future__ import annotations

import asyncio
import copy
import json
from pathlib import Path
from typing import Any, Optional, Protocol, cast

from loguru import logger

from listadofondos.common.file_io import read_json, write_json
from listadofondos.sources.morningstar.common.models import Payload


class SnapshotStore(Protocol):
    async def get(self) -> Optional[Payload]: ...

    async def put(self, payload: Payload) -> None: ...


def looks_like_payload(data: Any) -> bool:
    """Shallow shape check for documents read back from storage."""
    return (
        isinstance(data, dict)
        and isinstance(data.get("lastUpdated"), str)
        and isinstance(data.get("funds"), list)
        and isinstance(data.get("plans"), list)
    )


class JsonFileSnapshotStore:
    """Single-file JSON store (``<cache_dir>/data.json`` by default)."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Optional[Payload]:
        try:
            data = read_json(self._path)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable snapshot at {}: {}", self._path, exc)
            return None
        if not looks_like_payload(data):
            logger.warning("Ignoring malformed snapshot at {}", self._path)
            return None
        return cast(Payload, data)

    async def get(self) -> Optional[Payload]:
        return await asyncio.to_thread(self._read)

    async def put(self, payload: Payload) -> None:
        await asyncio.to_thread(write_json, self._path, payload)


class MemorySnapshotStore:
    """In-memory slot; `get` returns a copy so callers cannot mutate the slot."""

    def __init__(self, payload: Optional[Payload] = None) -> None:
        self._payload: Optional[Payload] = copy.deepcopy(payload)
        self.puts = 0

    async def get(self) -> Optional[Payload]:
        return copy.deepcopy(self._payload)

    async def put(self, payload: Payload) -> None:
        self._payload = copy.deepcopy(payload)
        self.puts += 1


__all__ = [
    "SnapshotStore",
    "looks_like_payload",
    "JsonFileSnapshotStore",
    "MemorySnapshotStore",
]
