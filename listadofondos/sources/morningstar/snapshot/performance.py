"""
Cumulative-performance extraction from a Morningstar snapshot page (tab 1).

The performance tab prints a "Rentabilidades acumuladas %" section where each
return period is a textual row: a Spanish label, the fund's value and, in the
same row, one or two values for the category/index columns, e.g.::

    Rentabilidades acumuladas % 31/05/2024
    1 día 0,12 0,10 0,09
    3 años (anualizado) -1,23 0,45 1,02

Extraction is driven by `PERFORMANCE_TARGETS`, a declarative table mapping each
canonical period key to the label variants seen on the site (accented and
unaccented spellings, alternate phrasings). `match_label_value` is the single
generic matcher applied to every rule.

Some layouts print the periods as column headers instead, with the fund
return in a "Rentabilidad" row below them::

    |                    | 1 día | 1 mes | YTD  |
    | Rentabilidad total | 0,12  | 2,10  | 5,00 |

`parse_performance_from_tables` resolves those headers through
`PERFORMANCE_HEADER_RULES`. Table values fill periods the text section lacks.
Without a section marker the tables are preferred over a scan of the whole
page text, which can misread an adjacent header as a value.

`parse_performance` never raises. An empty result is a normal outcome; the
accompanying `PerformanceDebug` says why (`reason`) and what matched.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from functools import lru_cache

from loguru import logger

from listadofondos.common.html_text import html_to_plain_text, tag_text
from listadofondos.sources.morningstar.common.models import (
    MetricRecord,
    PerformanceDebug,
    PerformanceSource,
    VariantMatch,
    VariantMiss,
)
from listadofondos.sources.morningstar.snapshot.ratios import (
    PeriodRule,
    as_soup,
    find_tables,
    resolve_period,
    row_cells,
    sanitize_value,
    table_rows,
)

RAW_BLOCK_LIMIT = 2000
SAMPLE_TEXT_LIMIT = 600
HTML_SAMPLE_LIMIT = 500


@dataclass(frozen=True)
class LabelRule:
    """Canonical key plus the label spellings that may introduce its value."""

    key: str
    variants: tuple[str, ...]


def _annualized(years: int) -> tuple[str, ...]:
    return (
        f"{years} años (anualizado)",
        f"{years} anos (anualizado)",
        f"{years} años anualizado",
        f"{years} anos anualizado",
    )


PERFORMANCE_TARGETS: tuple[LabelRule, ...] = (
    LabelRule("1D", ("1 día", "1 dia")),
    LabelRule("1W", ("1 semana",)),
    LabelRule("1M", ("1 mes",)),
    LabelRule("3M", ("3 meses",)),
    LabelRule("6M", ("6 meses",)),
    LabelRule(
        "YTD", ("YTD", "Año actual", "Ano actual", "Año en curso", "Ano en curso")
    ),
    LabelRule("1Y", ("1 año", "1 ano")),
    LabelRule("3Y Anual", _annualized(3)),
    LabelRule("5Y Anual", _annualized(5)),
    LabelRule("10Y Anual", _annualized(10)),
)

PERFORMANCE_KEYS: tuple[str, ...] = tuple(rule.key for rule in PERFORMANCE_TARGETS)

# Column headers, folded by `fold_label` ("1 año" -> "1ano"); first match wins.
PERFORMANCE_HEADER_RULES: tuple[PeriodRule, ...] = (
    PeriodRule("1D", ("1d",)),
    PeriodRule("1W", ("1w", "1s")),
    PeriodRule("1M", ("1m",)),
    PeriodRule("3M", ("3m",)),
    PeriodRule("6M", ("6m",)),
    PeriodRule("YTD", ("ytd", "anoactual", "anioactual", "aactual", "anoencurso")),
    PeriodRule("1Y", ("1a", "1y"), requires=("ano", "anual", "yr", "year")),
    PeriodRule("3Y Anual", ("3a", "3y"), requires=("anual",)),
    PeriodRule("5Y Anual", ("5a", "5y"), requires=("anual",)),
    PeriodRule("10Y Anual", ("10a", "10y"), requires=("anual",)),
)

RETURN_ROW_KEYWORDS: tuple[str, ...] = ("rentabilidad", "rendimiento", "total return")

_MARKER = r"Rentabilidades\s+acumuladas\s*(?:%|\(%\))"
PERFORMANCE_DATE_REGEX = re.compile(_MARKER + r"\s*(\d{2}/\d{2}/\d{4})", re.IGNORECASE)
PERFORMANCE_BLOCK_REGEX = re.compile(
    _MARKER
    + r".*?(?:Rentabilidad trimestral %?|Rentabilidades anuales %|Cartera|Operaciones"
    + r"|Comparar|©|$)",
    re.IGNORECASE | re.DOTALL,
)

_SIGNS = "+\\-−–—"
_NUMBER = rf"[{_SIGNS}]?\d+(?:[.,]\d+)*"
# category/index columns printed after the fund value on the same row
_COLUMN_TOKEN = rf"(?:[ \t]+[{_SIGNS}0-9.,%]+)"
_MINUS_GLYPHS = re.compile("[−–—]")
_WHITESPACE = re.compile(r"\s+")
_INLINE_RUNS = re.compile(r"[ \t]+")
_BLANK_RUNS = re.compile(r"\n{2,}")


@dataclass(frozen=True)
class PerformanceResult:
    values: MetricRecord
    debug: PerformanceDebug


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def normalize_performance_text(text: str) -> str:
    """Unify line breaks and collapse whitespace runs."""
    text = text.replace("\r", "").replace("\u00a0", " ")
    text = _INLINE_RUNS.sub(" ", text)
    text = _BLANK_RUNS.sub("\n", text)
    return text.strip()


def parse_spanish_float(raw: str | None) -> float | None:
    """
    Convert a Spanish-formatted number to float.

    Dots are thousands separators, the comma is the decimal separator and any
    of the typographic minus glyphs count as a sign. ``"-"``, empty strings,
    non-numeric text and non-finite results yield ``None``.

    >>> parse_spanish_float("-1,23")
    -1.23
    >>> parse_spanish_float("1.234,5 %")
    1234.5
    """
    if not isinstance(raw, str):
        return None
    sanitized = _MINUS_GLYPHS.sub("-", raw).replace("%", " ").replace("\u00a0", " ")
    sanitized = sanitized.strip()
    if not sanitized or sanitized == "-":
        return None
    compact = _WHITESPACE.sub("", sanitized)
    normalized = compact.replace(".", "").replace(",", ".")
    try:
        number = float(normalized)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


@lru_cache(maxsize=None)
def _variant_regex(variant: str) -> re.Pattern[str]:
    label = r"\s+".join(re.escape(part) for part in variant.split())
    return re.compile(
        rf"(?<!\d){label}\s+({_NUMBER}){_COLUMN_TOKEN}?{_COLUMN_TOKEN}?",
        re.IGNORECASE,
    )


def match_label_value(rule: LabelRule, text: str) -> tuple[str, str] | None:
    """Return ``(variant, raw_value)`` for the first variant found in `text`."""
    for variant in rule.variants:
        match = _variant_regex(variant).search(text)
        if match:
            return variant, match.group(1)
    return None


def _empty_debug() -> PerformanceDebug:
    return {
        "blockFound": False,
        "blockIndex": None,
        "date": None,
        "matches": [],
        "missing": [],
        "rawBlock": None,
        "normalizedBlock": None,
        "sampleText": None,
        "htmlSample": None,
        "reason": None,
        "source": None,
    }


def _ordered(values: MetricRecord) -> MetricRecord:
    return {key: values[key] for key in PERFORMANCE_KEYS if key in values}


def _source(
    text_values: MetricRecord, table_values: MetricRecord
) -> PerformanceSource | None:
    if text_values and table_values:
        return "text+table"
    if text_values:
        return "text"
    if table_values:
        return "table"
    return None


def parse_performance_from_tables(html: str | None) -> MetricRecord:
    """
    Read returns from tables whose first row names the periods.

    Only rows labelled as a return ("Rentabilidad", "Rendimiento", "Total
    return") are read; their cells are aligned with the header by column
    index. A later row or table replaces earlier values for the same period.
    """
    found: MetricRecord = {}
    for table in find_tables(as_soup(html)):
        rows = table_rows(table)
        if not rows:
            continue

        keys = [
            resolve_period(sanitize_value(tag_text(cell)), PERFORMANCE_HEADER_RULES)
            for cell in row_cells(rows[0])
        ]
        if not any(keys):
            continue

        for row in rows[1:]:
            cells = row_cells(row)
            if not cells:
                continue
            label = sanitize_value(tag_text(cells[0])).lower()
            if not any(keyword in label for keyword in RETURN_ROW_KEYWORDS):
                continue
            for idx in range(1, min(len(cells), len(keys))):
                key = keys[idx]
                if key is None:
                    continue
                number = parse_spanish_float(sanitize_value(tag_text(cells[idx])))
                if number is not None:
                    found[key] = number

    return _ordered(found)


def _match_text(block: str, debug: PerformanceDebug) -> MetricRecord:
    values: MetricRecord = {}
    for rule in PERFORMANCE_TARGETS:
        found = match_label_value(rule, block)
        if found is None:
            miss: VariantMiss = {"key": rule.key, "variants": list(rule.variants)}
            debug["missing"].append(miss)
            continue

        variant, raw = found
        number = parse_spanish_float(raw)
        hit: VariantMatch = {
            "key": rule.key,
            "variant": variant,
            "raw": raw,
            "number": number,
        }
        debug["matches"].append(hit)
        if number is not None:
            values[rule.key] = number
    return values


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------


def parse_performance(
    html: str | None, *, debug_logging: bool = False
) -> PerformanceResult:
    """
    Extract cumulative returns from the performance tab.

    Args:
        html: Raw HTML of the performance view.
        debug_logging: Emit the extraction trace at DEBUG level.

    Returns:
        A `PerformanceResult` whose `values` are keyed by `PERFORMANCE_KEYS`
        (only those found) and whose `debug` trace is always populated.
    """
    debug = _empty_debug()
    values: MetricRecord = {}

    if not html:
        debug["reason"] = "empty_html"
        if debug_logging:
            logger.debug("[performance] Empty HTML received")
        return PerformanceResult(values, debug)

    debug["htmlSample"] = html[:HTML_SAMPLE_LIMIT]

    text = html_to_plain_text(html)
    if not text:
        debug["reason"] = "empty_text"
        if debug_logging:
            logger.debug("[performance] Unable to convert HTML to plain text")
        return PerformanceResult(values, debug)

    normalized = normalize_performance_text(text)
    debug["sampleText"] = normalized[:SAMPLE_TEXT_LIMIT]

    date_match = PERFORMANCE_DATE_REGEX.search(normalized)
    if date_match:
        debug["date"] = date_match.group(1)

    table_values = parse_performance_from_tables(html)
    text_values: MetricRecord = {}

    block_match = PERFORMANCE_BLOCK_REGEX.search(normalized)
    if block_match:
        block: str | None = block_match.group(0)
        debug["blockFound"] = True
        debug["blockIndex"] = block_match.start()
    elif table_values:
        block = None
        debug["reason"] = "block_not_found"
    else:
        # degraded precision: labels may now match outside the section
        block = normalized
        debug["reason"] = "block_not_found"

    if block is not None:
        debug["rawBlock"] = block[:RAW_BLOCK_LIMIT]
        debug["normalizedBlock"] = _INLINE_RUNS.sub(" ", block).strip()[
            :RAW_BLOCK_LIMIT
        ]
        text_values = _match_text(block, debug)

    values = _ordered({**table_values, **text_values})
    debug["source"] = _source(text_values, table_values)

    if not values:
        debug["reason"] = debug["reason"] or "values_not_found"
        if debug_logging:
            logger.debug(
                "[performance] No performance values extracted (reason={})",
                debug["reason"],
            )
        return PerformanceResult(values, debug)

    debug["reason"] = None
    if debug_logging:
        logger.debug(
            "[performance] Parsed performance metrics values={} source={} missing={} date={}",
            values,
            debug["source"],
            [m["key"] for m in debug["missing"]],
            debug["date"],
        )
    return PerformanceResult(values, debug)


__all__ = [
    "LabelRule",
    "PERFORMANCE_TARGETS",
    "PERFORMANCE_KEYS",
    "PERFORMANCE_HEADER_RULES",
    "RETURN_ROW_KEYWORDS",
    "PERFORMANCE_DATE_REGEX",
    "PERFORMANCE_BLOCK_REGEX",
    "PerformanceResult",
    "normalize_performance_text",
    "parse_spanish_float",
    "match_label_value",
    "parse_performance_from_tables",
    "parse_performance",
]
