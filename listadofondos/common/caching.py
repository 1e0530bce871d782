"""
Daily snapshot cache.

The served payload is valid for the UTC calendar day stamped in its
``lastUpdated`` field. Freshness is a date comparison, not a TTL: a payload
built at 23:59 UTC is stale one minute later, one built at 00:01 UTC lasts
the whole day.

States
------
``empty`` → no stored payload (or an unreadable one)
``fresh`` → stored payload from the current UTC date
``stale`` → stored payload from an earlier date

`SnapshotCache.get` serves fresh payloads and rebuilds otherwise;
`SnapshotCache.refresh` always rebuilds. Only one rebuild runs at a time: a
caller arriving while one is in flight awaits it and receives the same
payload.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

from loguru import logger

from listadofondos.common.snapshot_store import SnapshotStore
from listadofondos.sources.morningstar.common.models import Payload

Clock = Callable[[], datetime]
Rebuild = Callable[[], Awaitable[Payload]]


class CacheState(str, Enum):
    EMPTY = "empty"
    FRESH = "fresh"
    STALE = "stale"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso_utc(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a 'Z' suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (
        moment.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def parse_iso_utc(value: str | None) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime (naive → UTC)."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_same_utc_day(last_updated: str | None, now: datetime) -> bool:
    """True when `last_updated` falls on the same UTC date as `now`."""
    stamp = parse_iso_utc(last_updated)
    if stamp is None:
        return False
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return stamp.date() == now.astimezone(timezone.utc).date()


class SnapshotCache:
    """
    Serve the stored payload for the current UTC day, rebuilding on demand.

    Args:
        store: Slot holding the current payload.
        rebuild: Coroutine factory producing a brand new payload.
        clock: Source of "now" (UTC), injectable for tests.
    """

    def __init__(
        self, store: SnapshotStore, rebuild: Rebuild, *, clock: Clock = utc_now
    ) -> None:
        self._store = store
        self._rebuild = rebuild
        self._clock = clock
        self._inflight: Optional[asyncio.Task[Payload]] = None
        self.rebuilds = 0

    @property
    def store(self) -> SnapshotStore:
        return self._store

    async def state(self) -> CacheState:
        cached = await self._store.get()
        if cached is None:
            return CacheState.EMPTY
        if is_same_utc_day(cached["lastUpdated"], self._clock()):
            return CacheState.FRESH
        return CacheState.STALE

    async def get(self) -> Payload:
        """Current payload; stale or missing payloads are rebuilt first."""
        cached = await self._store.get()
        if cached is not None and is_same_utc_day(cached["lastUpdated"], self._clock()):
            return cached
        logger.info(
            "Snapshot {}; rebuilding",
            "missing" if cached is None else f"stale ({cached['lastUpdated']})",
        )
        return await self._join_rebuild()

    async def refresh(self) -> Payload:
        """Rebuild regardless of freshness."""
        logger.info("Forced snapshot refresh requested")
        return await self._join_rebuild()

    async def _join_rebuild(self) -> Payload:
        if self._inflight is None:
            self._inflight = asyncio.create_task(self._run_rebuild())
        # shield: a caller that goes away must not cancel the shared rebuild
        return await asyncio.shield(self._inflight)

    async def _run_rebuild(self) -> Payload:
        try:
            payload = await self._rebuild()
            await self._store.put(payload)
            self.rebuilds += 1
            logger.info(
                "Snapshot rebuilt: {} funds, {} plans (lastUpdated={})",
                len(payload["funds"]),
                len(payload["plans"]),
                payload["lastUpdated"],
            )
            return payload
        finally:
            self._inflight = None


__all__ = [
    "Clock",
    "Rebuild",
    "CacheState",
    "utc_now",
    "to_iso_utc",
    "parse_iso_utc",
    "is_same_utc_day",
    "SnapshotCache",
]
