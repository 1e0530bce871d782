from __future__ import annotations

import httpx

from listadofondos.sources.morningstar.common.models import FundEntry
from listadofondos.sources.morningstar.snapshot.downloader import (
    SnapshotViews,
    build_snapshot_urls,
)
from listadofondos.sources.morningstar.snapshot.parser import (
    degraded_snapshot,
    describe_error,
    parse_fund_snapshot,
)


def test_all_views_parsed(
    fund_entry: FundEntry, performance_html: str, statistics_html: str, fees_html: str
) -> None:
    urls = build_snapshot_urls(fund_entry["morningstarId"])
    views = SnapshotViews(
        performance=performance_html, statistics=statistics_html, fees=fees_html
    )

    snap = parse_fund_snapshot(fund_entry, urls, views)

    assert snap["name"] == fund_entry["name"]
    assert snap["isin"] == "IE00B03HD191"
    assert snap["morningstarId"] == "F0GBR04SKW"
    assert snap["url"] == urls.performance
    assert snap["performance"]["1Y"] == 22.10
    assert snap["sharpe"] == {"1Y": "1,25", "3Y": "0,88"}
    assert snap["volatility"]["5Y"] == "15,01"
    assert snap["ter"] == "0,18%"
    assert snap["debug"]["error"] is None
    assert snap["debug"]["failedViews"] == {}
    perf_debug = snap["debug"]["performance"]
    assert perf_debug is not None and perf_debug["date"] == "31/05/2024"


def test_failed_statistics_view_degrades_only_ratios(
    fund_entry: FundEntry, performance_html: str, fees_html: str
) -> None:
    urls = build_snapshot_urls(fund_entry["morningstarId"])
    views = SnapshotViews(
        performance=performance_html,
        statistics=httpx.ConnectError("connection refused"),
        fees=fees_html,
    )

    snap = parse_fund_snapshot(fund_entry, urls, views)

    assert len(snap["performance"]) == 10
    assert snap["sharpe"] == {}
    assert snap["volatility"] == {}
    assert snap["ter"] == "0,18%"
    assert snap["debug"]["failedViews"] == {
        "statistics": "ConnectError: connection refused"
    }
    assert snap["debug"]["error"] == "ConnectError: connection refused"


def test_failed_performance_and_fees(fund_entry: FundEntry, statistics_html: str) -> None:
    urls = build_snapshot_urls(fund_entry["morningstarId"])
    views = SnapshotViews(
        performance=httpx.ReadTimeout("timed out"),
        statistics=statistics_html,
        fees=httpx.ReadTimeout("timed out"),
    )

    snap = parse_fund_snapshot(fund_entry, urls, views)

    assert snap["performance"] == {}
    assert snap["debug"]["performance"] is None
    assert snap["sharpe"] == {"1Y": "1,25", "3Y": "0,88"}
    assert snap["ter"] == "-"
    assert list(snap["debug"]["failedViews"]) == ["performance", "fees"]
    assert snap["debug"]["error"] == "ReadTimeout: timed out"


def test_identity_defaults() -> None:
    entry: FundEntry = {"morningstarId": "F000", "name": ""}
    snap = degraded_snapshot(entry, "", "boom")
    assert snap["name"] == "F000"
    assert (snap["isin"], snap["category"], snap["comment"]) == ("-", "-", "-")


def test_degraded_snapshot_shape(fund_entry: FundEntry) -> None:
    snap = degraded_snapshot(fund_entry, "https://example.test", "RuntimeError: x")
    assert snap["performance"] == {}
    assert snap["sharpe"] == {}
    assert snap["volatility"] == {}
    assert snap["ter"] == "-"
    assert snap["debug"] == {
        "performance": None,
        "error": "RuntimeError: x",
        "failedViews": {},
    }


def test_describe_error() -> None:
    assert describe_error(ValueError("bad id")) == "ValueError: bad id"
    assert describe_error(TimeoutError()) == "TimeoutError"
