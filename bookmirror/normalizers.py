"""Utility helpers for normalising scraped text values."""

from __future__ import annotations

import re
from urllib.parse import urljoin

SOURCE_ID_MAX_LENGTH = 50
BOOKS_SUFFIX = "-books"

_WHITESPACE = re.compile(r"\s+")


def collapse_whitespace(value: str | None) -> str:
    """Trim *value* and collapse newlines and runs of whitespace to one space."""

    if not value:
        return ""
    return _WHITESPACE.sub(" ", value).strip()


def derive_source_id(title: str) -> str:
    """Build the natural key for a listing from its title.

    Lowercased, whitespace runs replaced by a single hyphen, cut at
    ``SOURCE_ID_MAX_LENGTH`` characters. Distinct books sharing a title map to
    the same key.
    """

    return _WHITESPACE.sub("-", title.strip()).lower()[:SOURCE_ID_MAX_LENGTH]


def first_srcset_url(value: str | None) -> str | None:
    """Return the first URL of a ``srcset`` attribute (or a plain URL)."""

    if not value:
        return None
    first = value.split(",")[0].strip()
    if not first:
        return None
    return first.split()[0]


def normalize_image_url(value: str | None, base_url: str) -> str | None:
    candidate = first_srcset_url(value)
    if not candidate:
        return None
    if candidate.startswith("data:"):
        return None
    if candidate.startswith("//"):
        return f"https:{candidate}"
    return urljoin(base_url, candidate)


def strip_books_suffix(slug: str) -> str:
    if slug.endswith(BOOKS_SUFFIX) and len(slug) > len(BOOKS_SUFFIX):
        return slug[: -len(BOOKS_SUFFIX)]
    return slug


def ensure_books_suffix(slug: str) -> str:
    return slug if BOOKS_SUFFIX in slug else f"{slug}{BOOKS_SUFFIX}"


def truncate(value: str, limit: int) -> str:
    if limit <= 0:
        return ""
    return value[:limit]


__all__ = [
    "BOOKS_SUFFIX",
    "SOURCE_ID_MAX_LENGTH",
    "collapse_whitespace",
    "derive_source_id",
    "ensure_books_suffix",
    "first_srcset_url",
    "normalize_image_url",
    "strip_books_suffix",
    "truncate",
]
