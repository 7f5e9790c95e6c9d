"""World of Books site conventions and bootstrap navigation data."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from bookmirror.logging_config import get_logger
from bookmirror.normalizers import ensure_books_suffix

LOGGER = get_logger(__name__)
BASE_URL = "https://www.worldofbooks.com"
LOCALE_PREFIX = "/en-gb"
COLLECTION_PATH = f"{LOCALE_PREFIX}/collections/"
PRODUCT_PATH = "/product/"


@dataclass(frozen=True)
class NavigationSeed:
    title: str
    url: str
    slug: str


FALLBACK_NAVIGATION: tuple[NavigationSeed, ...] = (
    NavigationSeed("Fiction", f"{BASE_URL}{COLLECTION_PATH}fiction-books", "fiction-books"),
    NavigationSeed(
        "Non-Fiction", f"{BASE_URL}{COLLECTION_PATH}non-fiction-books", "non-fiction-books"
    ),
    NavigationSeed("Children's", f"{BASE_URL}{COLLECTION_PATH}childrens-books", "childrens-books"),
    NavigationSeed("Rare Books", f"{BASE_URL}{LOCALE_PREFIX}/rare-books", "rare-books"),
    NavigationSeed("History", f"{BASE_URL}{COLLECTION_PATH}history-books", "history-books"),
    NavigationSeed("Adventure", f"{BASE_URL}{COLLECTION_PATH}adventure-books", "adventure-books"),
)


def collection_url(key: str) -> str:
    """Build the collection URL the site uses for a category key."""

    return f"{BASE_URL}{COLLECTION_PATH}{ensure_books_suffix(key)}"


def fallback_product_url(source_id: str) -> str:
    return f"{BASE_URL}{PRODUCT_PATH}{source_id}"


def load_navigation_seeds(path: Path | None) -> tuple[NavigationSeed, ...]:
    """Return navigation seeds from *path* or the built-in fallback list."""

    if path is None:
        return FALLBACK_NAVIGATION
    if not path.exists():
        LOGGER.warning("Navigation file %s not found; using built-in list", path)
        return FALLBACK_NAVIGATION
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    seeds: list[NavigationSeed] = []
    for entry in data.get("navigation") or []:
        title = str((entry or {}).get("title", "")).strip()
        url = str((entry or {}).get("url", "")).strip()
        slug = str((entry or {}).get("slug", "")).strip()
        if title and url and slug:
            seeds.append(NavigationSeed(title=title, url=url, slug=slug))
    if not seeds:
        LOGGER.warning("No navigation entries defined in %s; using built-in list", path)
        return FALLBACK_NAVIGATION
    return tuple(seeds)
