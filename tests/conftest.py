from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import pytest

from listadofondos.sources.morningstar.common.models import FundEntry, Payload

DATA_DIR = Path(__file__).parent / "data"


def _fixture_text(rel_path: str) -> str:
    return (DATA_DIR / rel_path).read_text(encoding="utf-8")


@pytest.fixture
def performance_html() -> str:
    return _fixture_text("morningstar/performance.html")


@pytest.fixture
def statistics_html() -> str:
    return _fixture_text("morningstar/statistics.html")


@pytest.fixture
def fees_html() -> str:
    return _fixture_text("morningstar/fees.html")


@pytest.fixture
def fund_entry() -> FundEntry:
    return {
        "name": "Vanguard Global Stock Index Fund EUR Acc",
        "isin": "IE00B03HD191",
        "category": "RV Global",
        "morningstarId": "F0GBR04SKW",
        "comment": "Indexado MSCI World",
    }


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Clock pinned to 2024-05-31T10:00:00Z."""
    moment = datetime(2024, 5, 31, 10, 0, 0, tzinfo=timezone.utc)
    return lambda: moment


def _make_payload(last_updated: str, *, funds: int = 0, plans: int = 0) -> Payload:
    def _snap(prefix: str, idx: int) -> dict[str, object]:
        ms_id = f"{prefix}{idx:04d}"
        return {
            "name": ms_id,
            "isin": "-",
            "category": "-",
            "morningstarId": ms_id,
            "comment": "-",
            "url": "",
            "performance": {},
            "sharpe": {},
            "volatility": {},
            "ter": "-",
            "debug": {"performance": None, "error": None, "failedViews": {}},
        }

    return {
        "lastUpdated": last_updated,
        "funds": [_snap("F", i) for i in range(funds)],  # type: ignore[misc]
        "plans": [_snap("P", i) for i in range(plans)],  # type: ignore[misc]
    }


@pytest.fixture
def make_payload() -> Callable[..., Payload]:
    """Factory for minimal payloads (only the shape matters)."""
    return _make_payload
