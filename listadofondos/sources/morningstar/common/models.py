"""
Morningstar snapshot models (JSON-shaped, served as-is to the front-end).

These records mirror what the listadofondos front-end consumes, so wire keys
keep the camelCase spelling of the original payload (`lastUpdated`,
`morningstarId`, `blockFound`, ...).

Design choices
--------------
- TypedDicts keep persistence ergonomic (plain `json.dumps`) while remaining
  static-type-checker friendly.
- Metric values are either a finite float, a sanitized display string
  (e.g. ``"1,25"``) or the ``"-"`` placeholder. A missing key is also valid.
- Snapshots are built fresh on every rebuild and never mutated afterwards.
"""

from __future__ import annotations

from typing import Literal, NotRequired, Required, TypeAlias, TypedDict

PLACEHOLDER = "-"

MetricValue: TypeAlias = float | str
MetricRecord: TypeAlias = dict[str, MetricValue]

ViewRole = Literal["performance", "statistics", "fees"]
VIEW_ROLES: tuple[ViewRole, ...] = ("performance", "statistics", "fees")

PerformanceReason = Literal[
    "empty_html", "empty_text", "block_not_found", "values_not_found"
]

# which extraction phase produced the performance values
PerformanceSource = Literal["text", "table", "text+table"]


class FundEntry(TypedDict, total=False):
    """One configured fund or pension plan (as read from the funds YAML)."""

    morningstarId: Required[str]  # provider identifier; identity of the entry
    name: Required[str]
    isin: NotRequired[str]
    category: NotRequired[str]
    comment: NotRequired[str]


class FundsConfig(TypedDict):
    funds: list[FundEntry]
    plans: list[FundEntry]


class VariantMatch(TypedDict):
    key: str
    variant: str
    raw: str
    number: float | None


class VariantMiss(TypedDict):
    key: str
    variants: list[str]


class PerformanceDebug(TypedDict):
    blockFound: bool
    blockIndex: int | None
    date: str | None  # as-of date printed next to the section title (dd/mm/yyyy)
    matches: list[VariantMatch]
    missing: list[VariantMiss]
    rawBlock: str | None
    normalizedBlock: str | None
    sampleText: str | None
    htmlSample: str | None
    reason: PerformanceReason | None
    source: PerformanceSource | None


class FundDebug(TypedDict):
    performance: PerformanceDebug | None
    error: str | None
    failedViews: dict[str, str]


class FundSnapshot(TypedDict):
    name: str
    isin: str
    category: str
    morningstarId: str
    comment: str
    url: str  # performance view, linked from the UI
    performance: MetricRecord
    sharpe: MetricRecord
    volatility: MetricRecord
    ter: str
    debug: FundDebug


class Payload(TypedDict):
    lastUpdated: str  # ISO-8601 UTC
    funds: list[FundSnapshot]
    plans: list[FundSnapshot]


__all__ = [
    "PLACEHOLDER",
    "MetricValue",
    "MetricRecord",
    "ViewRole",
    "VIEW_ROLES",
    "PerformanceReason",
    "FundEntry",
    "FundsConfig",
    "VariantMatch",
    "VariantMiss",
    "PerformanceDebug",
    "PerformanceSource",
    "FundDebug",
    "FundSnapshot",
    "Payload",
]
