from __future__ import annotations

from typing import Sequence

from loguru import logger

from listadofondos.common.caching import Clock, to_iso_utc, utc_now
from listadofondos.sources.morningstar.batch.core import (
    BatchStats,
    FetchViews,
    process_one_entry,
)
from listadofondos.sources.morningstar.common.models import (
    FundEntry,
    FundsConfig,
    FundSnapshot,
    Payload,
)
from listadofondos.sources.morningstar.snapshot.downloader import (
    SnapshotSettings,
    TextFetcher,
    fetch_snapshot_views,
)


async def _run_section(
    section: str,
    entries: Sequence[FundEntry],
    *,
    adapter: TextFetcher,
    settings: SnapshotSettings,
    fetch_views: FetchViews,
    counts: dict[str, int],
) -> list[FundSnapshot]:
    snapshots: list[FundSnapshot] = []
    for idx, entry in enumerate(entries, start=1):
        logger.debug(
            "[{}] {}/{} {}", section, idx, len(entries), entry.get("morningstarId")
        )
        status, snapshot = await process_one_entry(
            entry, adapter=adapter, settings=settings, fetch_views=fetch_views
        )
        counts[status] += 1
        snapshots.append(snapshot)
    return snapshots


async def build_payload(
    funds_config: FundsConfig,
    *,
    adapter: TextFetcher,
    settings: SnapshotSettings | None = None,
    clock: Clock = utc_now,
    fetch_views: FetchViews = fetch_snapshot_views,
) -> Payload:
    """
    Thin orchestrator:
      1) walk funds, then plans, one entry at a time (bounded provider load)
      2) per entry: three concurrent view fetches → parse → snapshot
      3) stamp lastUpdated (UTC) and return the assembled payload

    Output order matches the configured order; every entry yields exactly one
    snapshot, degraded when its views could not be fetched.
    """
    settings = settings or SnapshotSettings()
    counts = {"ok": 0, "partial": 0, "err": 0}

    funds = await _run_section(
        "funds",
        funds_config.get("funds", []),
        adapter=adapter,
        settings=settings,
        fetch_views=fetch_views,
        counts=counts,
    )
    plans = await _run_section(
        "plans",
        funds_config.get("plans", []),
        adapter=adapter,
        settings=settings,
        fetch_views=fetch_views,
        counts=counts,
    )

    stats = BatchStats(**counts)
    logger.info(
        "Batch finished: {} entries ({} ok, {} partial, {} failed)",
        stats.total,
        stats.ok,
        stats.partial,
        stats.err,
    )

    return {"lastUpdated": to_iso_utc(clock()), "funds": funds, "plans": plans}


__all__ = ["build_payload"]
