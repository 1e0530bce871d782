"""
Core helpers for Morningstar batch orchestration.

This module keeps the orchestration (`run.py`) thin by factoring out:
- result typing (`BatchStats`, `EntryStatus`)
- a single-entry processing unit (`process_one_entry`)

`process_one_entry` never raises (except on task cancellation): whatever goes
wrong for one entry is logged and turned into a degraded snapshot so the
batch keeps its one-snapshot-per-entry shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Literal, Optional, Tuple

from loguru import logger

from listadofondos.sources.morningstar.common.models import (
    VIEW_ROLES,
    FundEntry,
    FundSnapshot,
)
from listadofondos.sources.morningstar.snapshot.downloader import (
    SnapshotSettings,
    SnapshotUrls,
    SnapshotViews,
    TextFetcher,
    build_snapshot_urls,
    fetch_snapshot_views,
)
from listadofondos.sources.morningstar.snapshot.parser import (
    degraded_snapshot,
    describe_error,
    parse_fund_snapshot,
)

EntryStatus = Literal["ok", "partial", "err"]

FetchViews = Callable[
    [TextFetcher, SnapshotUrls, Optional[float]], Awaitable[SnapshotViews]
]

# ---------- Result typing ----------


@dataclass(frozen=True)
class BatchStats:
    ok: int
    partial: int
    err: int

    @property
    def total(self) -> int:
        return self.ok + self.partial + self.err


# ---------- Single-entry processing unit ----------


def _label(entry: FundEntry) -> str:
    return f"{entry.get('name', '?')} ({entry.get('morningstarId', '?')})"


async def process_one_entry(
    entry: FundEntry,
    *,
    adapter: TextFetcher,
    settings: SnapshotSettings,
    fetch_views: FetchViews = fetch_snapshot_views,
) -> Tuple[EntryStatus, FundSnapshot]:
    """
    Process a single configured entry:
      - build the three view URLs
      - fetch them concurrently
      - parse into a FundSnapshot
    Returns:
      (status, snapshot) where status is "ok" (all views fetched), "partial"
      (some views failed) or "err" (nothing could be fetched or parsing blew up).
    """
    url = ""
    try:
        urls = build_snapshot_urls(entry["morningstarId"], settings)
        url = urls.performance
        views = await fetch_views(adapter, urls, settings.timeout_seconds)
        snapshot = parse_fund_snapshot(
            entry, urls, views, debug_performance=settings.debug_performance
        )
    except Exception as exc:
        logger.opt(exception=exc).error("Failed to fetch {}", _label(entry))
        return "err", degraded_snapshot(entry, url, describe_error(exc))

    failed = snapshot["debug"]["failedViews"]
    for role, message in failed.items():
        logger.warning("Failed to fetch {} view for {}: {}", role, _label(entry), message)

    if not failed:
        return "ok", snapshot
    if len(failed) == len(VIEW_ROLES):
        return "err", snapshot
    return "partial", snapshot


__all__ = ["EntryStatus", "FetchViews", "BatchStats", "process_one_entry"]
