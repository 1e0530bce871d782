"""
Ratio (Sharpe, volatility) and TER extraction from Morningstar tables.

Statistics (tab 2) and fees (tab 5) are rendered as plain HTML tables. The
first row of a ratio table names the periods ("1 año", "3 años", "5 años")
and each following row starts with a label cell ("Ratio de Sharpe",
"Desviación estándar", ...).

Two phases, mirroring how the site layout evolved:

1. Header-aware: resolve header cells to ratio periods and align the cells of
   every keyword row by column index. Later matches replace earlier ones,
   because pages repeat a metric under more specific sections further down.
2. Positional (legacy): only when phase 1 found nothing. The first row whose
   text contains a keyword is read as ``label, 1Y, 3Y, 5Y``.

Cell text is passed through `sanitize_value`; placeholders collapse to ``"-"``.
Nothing here raises on malformed or table-less HTML.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Iterable, Sequence

from bs4 import BeautifulSoup, Tag

from listadofondos.common.html_text import parse_html, tag_text
from listadofondos.sources.morningstar.common.models import PLACEHOLDER, MetricRecord

RATIO_PERIODS: tuple[str, ...] = ("1Y", "3Y", "5Y")

SHARPE_KEYWORDS: tuple[str, ...] = ("sharpe",)
VOLATILITY_KEYWORDS: tuple[str, ...] = ("volat", "desv")
TER_KEYWORDS: tuple[str, ...] = (
    "ter",
    "gastos corrientes",
    "ratio de gastos",
    "total expense",
)

_WHITESPACE = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9]")
_NOT_AVAILABLE = re.compile(r"n/a", re.IGNORECASE)


@dataclass(frozen=True)
class PeriodRule:
    """Period key plus the folded header fragments that denote it.

    When `requires` is set, the folded header must also contain one of its
    fragments (e.g. "anual" to tell "3 años anualizado" from "3 meses").
    """

    period: str
    fragments: tuple[str, ...]
    requires: tuple[str, ...] = ()


RATIO_PERIOD_RULES: tuple[PeriodRule, ...] = (
    PeriodRule("1Y", ("1a", "1y")),
    PeriodRule("3Y", ("3a", "3y")),
    PeriodRule("5Y", ("5a", "5y")),
)


# ----------------------------------------------------------------------
# Cell helpers
# ----------------------------------------------------------------------


def sanitize_value(value: str | None) -> str:
    """
    Collapse whitespace and map placeholders to ``"-"``.

    ``""``, ``"NaN"`` and anything containing ``n/a`` (any case) are
    placeholders; everything else is returned trimmed, e.g. ``"  1,25 %  "``
    becomes ``"1,25 %"``.
    """
    if not value:
        return PLACEHOLDER
    cleaned = _WHITESPACE.sub(" ", value).strip()
    if not cleaned or cleaned == "NaN" or _NOT_AVAILABLE.search(cleaned):
        return PLACEHOLDER
    return cleaned


def fold_label(label: str) -> str:
    """Lowercase, strip accents and keep only ``[a-z0-9]``."""
    decomposed = unicodedata.normalize("NFD", label.lower())
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALNUM.sub("", without_marks)


def resolve_period(label: str | None, rules: Sequence[PeriodRule]) -> str | None:
    """First rule whose fragments occur in the folded `label`, in table order."""
    if not label:
        return None
    folded = fold_label(label)
    for rule in rules:
        if not any(fragment in folded for fragment in rule.fragments):
            continue
        if rule.requires and not any(extra in folded for extra in rule.requires):
            continue
        return rule.period
    return None


def resolve_ratio_period(label: str | None) -> str | None:
    """Map a header cell ("1 año", "3-Yr", ...) to ``1Y``/``3Y``/``5Y``."""
    return resolve_period(label, RATIO_PERIOD_RULES)


def _has_keyword(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def as_soup(html: str | BeautifulSoup | None) -> BeautifulSoup:
    if isinstance(html, BeautifulSoup):
        return html
    return parse_html(html)


def find_tables(soup: BeautifulSoup) -> list[Tag]:
    return soup.find_all("table")


def table_rows(table: Tag) -> list[Tag]:
    return table.find_all("tr")


def row_cells(row: Tag) -> list[Tag]:
    return row.find_all(["td", "th"], recursive=False)


def cell_value(cells: Sequence[Tag], idx: int) -> str:
    if idx >= len(cells):
        return PLACEHOLDER
    return sanitize_value(tag_text(cells[idx]))


def _ordered(values: MetricRecord) -> MetricRecord:
    return {period: values[period] for period in RATIO_PERIODS if period in values}


# ----------------------------------------------------------------------
# Ratios
# ----------------------------------------------------------------------


def parse_ratio_from_tables(
    html: str | BeautifulSoup | None, keywords: Sequence[str]
) -> MetricRecord:
    """Header-aware phase: align keyword rows to header-resolved periods."""
    found: MetricRecord = {}

    for table in find_tables(as_soup(html)):
        rows = table_rows(table)
        if not rows:
            continue

        periods = [
            resolve_ratio_period(sanitize_value(tag_text(cell)))
            for cell in row_cells(rows[0])
        ]
        if not any(periods):
            continue

        for row in rows[1:]:
            cells = row_cells(row)
            if not cells:
                continue
            label = sanitize_value(tag_text(cells[0])).lower()
            if not _has_keyword(label, keywords):
                continue

            values: MetricRecord = {}
            for idx in range(1, min(len(cells), len(periods))):
                period = periods[idx]
                if period is None:
                    continue
                value = cell_value(cells, idx)
                if value != PLACEHOLDER:
                    values[period] = value
            if values:
                found = _ordered(values)

    return found


def parse_ratio_legacy(
    html: str | BeautifulSoup | None, keywords: Sequence[str]
) -> MetricRecord:
    """Positional phase: first keyword row read as ``label, 1Y, 3Y, 5Y``."""
    for table in find_tables(as_soup(html)):
        for row in table_rows(table):
            if not _has_keyword(tag_text(row).lower(), keywords):
                continue
            cells = row_cells(row)
            return {
                period: cell_value(cells, idx + 1)
                for idx, period in enumerate(RATIO_PERIODS)
            }
    return {}


def parse_ratio(
    html: str | BeautifulSoup | None, keywords: Sequence[str]
) -> MetricRecord:
    """Extract a ``{1Y, 3Y, 5Y}`` map for the first keyword set that matches."""
    soup = as_soup(html)
    parsed = parse_ratio_from_tables(soup, keywords)
    if parsed:
        return parsed
    return parse_ratio_legacy(soup, keywords)


def parse_sharpe(html: str | BeautifulSoup | None) -> MetricRecord:
    return parse_ratio(html, SHARPE_KEYWORDS)


def parse_volatility(html: str | BeautifulSoup | None) -> MetricRecord:
    return parse_ratio(html, VOLATILITY_KEYWORDS)


# ----------------------------------------------------------------------
# TER
# ----------------------------------------------------------------------


def parse_ter_from_tables(html: str | BeautifulSoup | None) -> str:
    """Last row labelled with a TER keyword wins; its last cell is the value."""
    found = PLACEHOLDER
    for table in find_tables(as_soup(html)):
        for row in table_rows(table):
            cells = row_cells(row)
            if len(cells) < 2:
                continue
            label = sanitize_value(tag_text(cells[0])).lower()
            if not _has_keyword(label, TER_KEYWORDS):
                continue
            value = cell_value(cells, len(cells) - 1)
            if value != PLACEHOLDER:
                found = value
    return found


def parse_ter_legacy(html: str | BeautifulSoup | None) -> str:
    """First row whose flattened text mentions a TER keyword."""
    for table in find_tables(as_soup(html)):
        for row in table_rows(table):
            if not _has_keyword(tag_text(row).lower(), TER_KEYWORDS):
                continue
            cells = row_cells(row)
            if len(cells) < 2:
                continue
            value = cell_value(cells, len(cells) - 1)
            if value != PLACEHOLDER:
                return value
    return PLACEHOLDER


def parse_ter(html: str | BeautifulSoup | None) -> str:
    """Total expense ratio as displayed (e.g. ``"0,20 %"``) or ``"-"``."""
    soup = as_soup(html)
    parsed = parse_ter_from_tables(soup)
    if parsed != PLACEHOLDER:
        return parsed
    return parse_ter_legacy(soup)


__all__ = [
    "RATIO_PERIODS",
    "RATIO_PERIOD_RULES",
    "SHARPE_KEYWORDS",
    "VOLATILITY_KEYWORDS",
    "TER_KEYWORDS",
    "PeriodRule",
    "sanitize_value",
    "fold_label",
    "as_soup",
    "find_tables",
    "table_rows",
    "row_cells",
    "cell_value",
    "resolve_period",
    "resolve_ratio_period",
    "parse_ratio_from_tables",
    "parse_ratio_legacy",
    "parse_ratio",
    "parse_sharpe",
    "parse_volatility",
    "parse_ter_from_tables",
    "parse_ter_legacy",
    "parse_ter",
]
