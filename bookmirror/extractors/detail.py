"""Product-page extraction for the detail enricher."""

from __future__ import annotations

import re

from bs4 import Tag

import bookmirror.selectors as selectors
from bookmirror.extractors.listing import parse_html
from bookmirror.extractors.schemas import DetailRecord, PageSnapshot
from bookmirror.normalizers import collapse_whitespace, truncate

_LABEL_FIELDS = {"isbn": "isbn", "author": "author", "publisher": "publisher"}


def _description(soup: Tag, max_length: int) -> str | None:
    for selector in selectors.DESCRIPTION:
        node = soup.select_one(selector)
        if node is None:
            continue
        text = collapse_whitespace(node.get_text(" "))
        if text:
            return truncate(text, max_length)

    meta = soup.select_one(selectors.META_DESCRIPTION)
    if meta is not None:
        content = collapse_whitespace(meta.get("content") or "")
        if content:
            return truncate(content, max_length)
    return None


def _row_lines(soup: Tag):
    # Labels and values are often split across child elements, so each row
    # is read as a single line.
    for row in soup.find_all(selectors.DETAIL_ROWS):
        line = collapse_whitespace(row.get_text(" "))
        if line:
            yield line
    for term in soup.find_all("dt"):
        value = term.find_next_sibling("dd")
        if value is not None:
            yield collapse_whitespace(f"{term.get_text(' ')} {value.get_text(' ')}")


def _field_for(label: str) -> str | None:
    key = re.sub(r"[^a-z]", "", label.lower())
    return _LABEL_FIELDS.get(key)


def extract_detail(snapshot: PageSnapshot, *, max_length: int = 1000) -> DetailRecord:
    """Pull description plus ISBN/author/publisher labels from a product page."""

    if not snapshot.html:
        return DetailRecord()

    soup = parse_html(snapshot.html)
    found: dict[str, str] = {}
    for line in _row_lines(soup):
        match = selectors.DETAIL_LABEL.match(line)
        if not match:
            continue
        field = _field_for(match.group("label"))
        value = match.group("value").strip()
        if field and value and field not in found:
            found[field] = value

    return DetailRecord(description=_description(soup, max_length), **found)
