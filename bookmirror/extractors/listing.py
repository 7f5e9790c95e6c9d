"""Listing-page extraction: rendered DOM snapshot to candidate records.

Everything here is a pure function of the HTML so the heuristics can be
exercised against fixture markup without a browser.
"""

from __future__ import annotations

from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

import bookmirror.selectors as selectors
from bookmirror.extractors.schemas import CandidateRecord, PageSnapshot
from bookmirror.normalizers import collapse_whitespace, derive_source_id, normalize_image_url

__all__ = ["extract_records", "parse_html", "find_card", "find_price", "find_title"]


def parse_html(html: str) -> BeautifulSoup:
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup.find_all(selectors.INVISIBLE_TAGS):
        tag.decompose()
    return soup


def _is_item_div(tag: Tag) -> bool:
    if tag.name != "div":
        return False
    classes = tag.get("class") or []
    return any(selectors.CARD_CLASS_HINT.search(name) for name in classes)


def find_card(anchor: Tag) -> Tag | None:
    """Return the product card enclosing *anchor*, or None if none is locatable."""

    card = anchor.find_parent(selectors.CARD_TAG)
    if card is None:
        card = anchor.find_parent(_is_item_div)
    if card is None:
        parent = anchor.parent
        card = parent.parent if isinstance(parent, Tag) else None
    if not isinstance(card, Tag) or isinstance(card, BeautifulSoup):
        return None
    return card


def find_price(text: str) -> str | None:
    match = selectors.PRICE_PATTERN.search(text or "")
    return match.group(0) if match else None


def find_title(card: Tag, anchor: Tag) -> str | None:
    title = ""
    heading = card.find(selectors.TITLE_HEADINGS)
    if heading is not None:
        title = collapse_whitespace(heading.get_text(" "))
    if not title:
        titled = card.select_one(selectors.TITLE_CLASS)
        if titled is not None:
            title = collapse_whitespace(titled.get_text(" "))
    if not title:
        title = collapse_whitespace(anchor.get_text(" "))
    if len(title) < selectors.MIN_TITLE_LENGTH:
        return None
    return title


def _find_image(card: Tag, base_url: str) -> str | None:
    image = card.find(selectors.IMG)
    if image is None:
        return None
    for attr in selectors.IMG_ATTRS:
        value = image.get(attr)
        if isinstance(value, list):
            value = " ".join(value)
        normalized = normalize_image_url(value, base_url)
        if normalized:
            return normalized
    return None


def _anchor_href(anchor: Tag, base_url: str) -> str | None:
    href = (anchor.get("href") or "").strip()
    if not href or href.startswith(("javascript:", "mailto:", "tel:")):
        return None
    if href.startswith("#"):
        return None
    return urljoin(base_url, href)


def _anchor_to_record(anchor: Tag, base_url: str) -> CandidateRecord | None:
    card = find_card(anchor)
    if card is None:
        return None

    price = find_price(card.get_text())
    if price is None:
        return None

    title = find_title(card, anchor)
    if title is None:
        return None

    return CandidateRecord(
        title=title,
        price=price,
        image_url=_find_image(card, base_url),
        source_id=derive_source_id(title),
        product_url=_anchor_href(anchor, base_url),
    )


def extract_records(snapshot: PageSnapshot) -> list[CandidateRecord]:
    """Return candidate records for every priced product anchor, in DOM order."""

    if not snapshot.html:
        return []

    soup = parse_html(snapshot.html)
    records: list[CandidateRecord] = []
    for anchor in soup.find_all("a"):
        record = _anchor_to_record(anchor, snapshot.url)
        if record is not None:
            records.append(record)
    return records
