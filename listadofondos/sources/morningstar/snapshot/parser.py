"""
Assemble a `FundSnapshot` from the three fetched snapshot views.

Each view feeds exactly one metric group:

- performance → `parse_performance`
- statistics  → `parse_sharpe` / `parse_volatility`
- fees        → `parse_ter`

A view that failed to download degrades only its own group (empty record or
``"-"``) and is reported in ``debug.failedViews``. `degraded_snapshot` is the
shape used when the whole entry could not be processed.
"""

from __future__ import annotations

from listadofondos.common.html_text import parse_html
from listadofondos.sources.morningstar.common.models import (
    PLACEHOLDER,
    FundDebug,
    FundEntry,
    FundSnapshot,
    MetricRecord,
    PerformanceDebug,
)
from listadofondos.sources.morningstar.snapshot.downloader import (
    SnapshotUrls,
    SnapshotViews,
)
from listadofondos.sources.morningstar.snapshot.performance import parse_performance
from listadofondos.sources.morningstar.snapshot.ratios import (
    parse_sharpe,
    parse_ter,
    parse_volatility,
)


def describe_error(exc: BaseException) -> str:
    """Short, log-friendly description of an exception."""
    message = str(exc).strip()
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


def _identity(entry: FundEntry, url: str) -> dict[str, str]:
    ms_id = entry.get("morningstarId") or PLACEHOLDER
    return {
        "name": entry.get("name") or ms_id,
        "isin": entry.get("isin") or PLACEHOLDER,
        "category": entry.get("category") or PLACEHOLDER,
        "morningstarId": ms_id,
        "comment": entry.get("comment") or PLACEHOLDER,
        "url": url,
    }


def _snapshot(
    entry: FundEntry,
    url: str,
    *,
    performance: MetricRecord,
    sharpe: MetricRecord,
    volatility: MetricRecord,
    ter: str,
    debug: FundDebug,
) -> FundSnapshot:
    ident = _identity(entry, url)
    return {
        "name": ident["name"],
        "isin": ident["isin"],
        "category": ident["category"],
        "morningstarId": ident["morningstarId"],
        "comment": ident["comment"],
        "url": ident["url"],
        "performance": performance,
        "sharpe": sharpe,
        "volatility": volatility,
        "ter": ter,
        "debug": debug,
    }


def degraded_snapshot(entry: FundEntry, url: str, error: str) -> FundSnapshot:
    """Snapshot with no metrics, used when the entry could not be processed."""
    return _snapshot(
        entry,
        url,
        performance={},
        sharpe={},
        volatility={},
        ter=PLACEHOLDER,
        debug={"performance": None, "error": error, "failedViews": {}},
    )


def parse_fund_snapshot(
    entry: FundEntry,
    urls: SnapshotUrls,
    views: SnapshotViews,
    *,
    debug_performance: bool = False,
) -> FundSnapshot:
    """
    Run the extractors over the fetched views.

    Args:
        entry: Configured fund/plan.
        urls: URLs the views were fetched from (performance URL is exposed).
        views: Fetched HTML (or exception) per role.
        debug_performance: Forwarded to `parse_performance`.

    Returns:
        A fully populated `FundSnapshot`; failed views leave their group empty.
    """
    failed = {role: describe_error(err) for role, err in views.failed.items()}

    performance: MetricRecord = {}
    performance_debug: PerformanceDebug | None = None
    perf_html = views.html("performance")
    if perf_html is not None:
        result = parse_performance(perf_html, debug_logging=debug_performance)
        performance = result.values
        performance_debug = result.debug

    sharpe: MetricRecord = {}
    volatility: MetricRecord = {}
    stats_html = views.html("statistics")
    if stats_html is not None:
        stats_soup = parse_html(stats_html)
        sharpe = parse_sharpe(stats_soup)
        volatility = parse_volatility(stats_soup)

    ter = PLACEHOLDER
    fees_html = views.html("fees")
    if fees_html is not None:
        ter = parse_ter(fees_html)

    error = next(iter(failed.values()), None)
    return _snapshot(
        entry,
        urls.performance,
        performance=performance,
        sharpe=sharpe,
        volatility=volatility,
        ter=ter,
        debug={
            "performance": performance_debug,
            "error": error,
            "failedViews": dict(failed),
        },
    )


__all__ = ["describe_error", "degraded_snapshot", "parse_fund_snapshot"]
