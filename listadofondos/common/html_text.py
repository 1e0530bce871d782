"""
HTML → plain text flattening.

`html_to_plain_text` keeps the visual line structure of a page: every closing
block element (`p`, `div`, `li`, `tr`, `h1`–`h6`) and every `<br>` becomes a
line break, while inline markup collapses into single spaces. Entities are
decoded by the parser. The output has no blank lines and no leading/trailing
space on any line, which makes it safe to run twice.

`strip_html` flattens a fragment onto one line and is used for table cells.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, ParserRejectedMarkup, Tag

BLOCK_TAGS: tuple[str, ...] = (
    "p",
    "div",
    "li",
    "tr",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
)
NON_TEXT_TAGS: tuple[str, ...] = ("script", "style", "noscript", "template")

# any whitespace run that does not contain a line break
_INLINE_SPACE = re.compile(r"[^\S\n]+")
_ANY_SPACE = re.compile(r"\s+")

__all__ = [
    "parse_html",
    "html_to_plain_text",
    "strip_html",
    "tag_text",
    "collapse_lines",
]


def parse_html(html: str | None) -> BeautifulSoup:
    """Parse markup, dropping non-text elements; rejected markup parses as empty."""
    try:
        soup = BeautifulSoup(html or "", "html.parser")
    except ParserRejectedMarkup:
        soup = BeautifulSoup("", "html.parser")
    for el in soup.find_all(NON_TEXT_TAGS):
        el.decompose()
    return soup


def collapse_lines(text: str) -> str:
    """Trim every line, squeeze inline whitespace and drop empty lines."""
    text = text.replace("\r", "").replace("\u00a0", " ")
    lines = (_INLINE_SPACE.sub(" ", line).strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def html_to_plain_text(html: str | None) -> str:
    """
    Flatten an HTML document into newline-separated plain text.

    Args:
        html: Raw HTML (or already plain text). ``None`` and ``""`` are accepted.

    Returns:
        Normalized text; ``""`` when there is nothing to show.
    """
    if not html:
        return ""

    soup = parse_html(str(html))

    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(BLOCK_TAGS):
        block.append("\n")

    return collapse_lines(soup.get_text(" "))


def tag_text(tag: Tag) -> str:
    """Single-line text of an already parsed element."""
    return _ANY_SPACE.sub(" ", tag.get_text(" ")).strip()


def strip_html(fragment: str | None) -> str:
    """Drop all markup from a fragment and return its text on one line."""
    if not fragment:
        return ""
    return _ANY_SPACE.sub(" ", parse_html(str(fragment)).get_text(" ")).strip()
