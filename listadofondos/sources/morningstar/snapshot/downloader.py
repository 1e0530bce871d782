"""
Downloader for Morningstar snapshot views (httpx-backed).

Every configured entry is described by three pages of the same snapshot
endpoint, selected with the ``tab`` query parameter:

- performance (``tab=1``): cumulative returns
- statistics  (``tab=2``): Sharpe ratio and volatility tables
- fees        (``tab=5``): TER / ongoing charges (EUR, es-ES)

Public API
----------
- build_snapshot_urls(morningstar_id, settings) -> SnapshotUrls
- fetch_snapshot_views(adapter, urls, timeout=None) -> SnapshotViews

The three requests of one entry run concurrently. Results are merged by role,
never by completion order, and a failing view carries its exception instead
of cancelling its siblings.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Mapping, Protocol
from urllib.parse import urlencode

from listadofondos.sources.morningstar.common.models import VIEW_ROLES, ViewRole

DEFAULT_SNAPSHOT_URL = "https://lt.morningstar.com/xgnfa0k0aw/snapshot/snapshot.aspx"


class TextFetcher(Protocol):
    async def fetch_text(self, url: str, *, timeout: float | int | None = None) -> str: ...


@dataclass(frozen=True)
class ViewSpec:
    """Query shape of one snapshot view."""

    tab: int
    params: Mapping[str, str] = field(default_factory=dict)


DEFAULT_VIEWS: Mapping[ViewRole, ViewSpec] = {
    "performance": ViewSpec(tab=1),
    "statistics": ViewSpec(tab=2),
    "fees": ViewSpec(
        tab=5,
        params={
            "ClientFund": "0",
            "BaseCurrencyId": "EUR",
            "CurrencyId": "EUR",
            "LanguageId": "es-ES",
        },
    ),
}


@dataclass(frozen=True)
class SnapshotSettings:
    """Source-level settings resolved from config (see `load_morningstar_settings`)."""

    snapshot_url: str = DEFAULT_SNAPSHOT_URL
    views: Mapping[ViewRole, ViewSpec] = field(default_factory=lambda: DEFAULT_VIEWS)
    timeout_seconds: float = 20.0
    debug_performance: bool = False


@dataclass(frozen=True)
class SnapshotUrls:
    performance: str
    statistics: str
    fees: str

    def for_role(self, role: ViewRole) -> str:
        return getattr(self, role)


@dataclass(frozen=True)
class SnapshotViews:
    """HTML per role, or the exception raised while fetching that role."""

    performance: str | BaseException
    statistics: str | BaseException
    fees: str | BaseException

    def html(self, role: ViewRole) -> str | None:
        value = getattr(self, role)
        return value if isinstance(value, str) else None

    def error(self, role: ViewRole) -> BaseException | None:
        value = getattr(self, role)
        return value if isinstance(value, BaseException) else None

    @property
    def failed(self) -> dict[ViewRole, BaseException]:
        return {
            role: err for role in VIEW_ROLES if (err := self.error(role)) is not None
        }


def build_snapshot_urls(
    morningstar_id: str, settings: SnapshotSettings | None = None
) -> SnapshotUrls:
    """Build the three view URLs for a Morningstar id (URL-encoded)."""
    if not morningstar_id:
        raise ValueError("morningstar_id must be a non-empty string")
    settings = settings or SnapshotSettings()

    def _url(role: ViewRole) -> str:
        spec = settings.views[role]
        query = {"tab": str(spec.tab), "Id": morningstar_id, **dict(spec.params)}
        return f"{settings.snapshot_url}?{urlencode(query)}"

    return SnapshotUrls(
        performance=_url("performance"),
        statistics=_url("statistics"),
        fees=_url("fees"),
    )


async def fetch_snapshot_views(
    adapter: TextFetcher,
    urls: SnapshotUrls,
    timeout: float | int | None = None,
) -> SnapshotViews:
    """
    Fetch the three views concurrently.

    Parameters
    ----------
    adapter
        Anything exposing ``fetch_text(url, timeout=...)`` (see `HttpxAdapter`).
    urls
        Output of `build_snapshot_urls`.
    timeout
        Per-request timeout in seconds; ``None`` uses the adapter default.

    Returns
    -------
    SnapshotViews
        One slot per role holding either the HTML or the raised exception.
        ``asyncio.CancelledError`` is not captured and propagates.
    """
    results = await asyncio.gather(
        *(adapter.fetch_text(urls.for_role(role), timeout=timeout) for role in VIEW_ROLES),
        return_exceptions=True,
    )
    by_role = dict(zip(VIEW_ROLES, results))
    for value in by_role.values():
        if isinstance(value, asyncio.CancelledError):
            raise value
    return SnapshotViews(
        performance=by_role["performance"],
        statistics=by_role["statistics"],
        fees=by_role["fees"],
    )


__all__ = [
    "DEFAULT_SNAPSHOT_URL",
    "DEFAULT_VIEWS",
    "TextFetcher",
    "ViewSpec",
    "SnapshotSettings",
    "SnapshotUrls",
    "SnapshotViews",
    "build_snapshot_urls",
    "fetch_snapshot_views",
]
