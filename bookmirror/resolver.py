"""Resolve a requested category key to a crawlable navigation target."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bookmirror.logging_config import get_logger
from bookmirror.normalizers import BOOKS_SUFFIX, strip_books_suffix
from bookmirror.retailers import worldofbooks
from bookmirror.storage import repo
from bookmirror.storage.models_sql import Category, Navigation

LOGGER = get_logger(__name__)

# Id carried by synthesized targets; never a valid autoincrement key.
TRANSIENT_NAVIGATION_ID = -1


@dataclass(frozen=True)
class NavigationTarget:
    id: int
    slug: str
    title: str
    url: str

    @property
    def transient(self) -> bool:
        return self.id == TRANSIENT_NAVIGATION_ID

    @classmethod
    def from_entry(cls, entry: Navigation) -> "NavigationTarget":
        return cls(id=entry.id, slug=entry.slug, title=entry.title, url=entry.url)


def alternate_slug(key: str) -> str:
    """Return the ``-books`` variant of *key*: stripped if present, else appended."""

    stripped = strip_books_suffix(key)
    if stripped != key:
        return stripped
    return f"{key}{BOOKS_SUFFIX}"


def find_navigation(session: Session, key: str) -> Navigation | None:
    """Exact lookup by slug, then by the ``-books`` variant of the key."""

    entry = repo.get_navigation_by_slug(session, key)
    if entry is None:
        entry = repo.get_navigation_by_slug(session, alternate_slug(key))
    return entry


def synthesize_target(key: str) -> NavigationTarget:
    return NavigationTarget(
        id=TRANSIENT_NAVIGATION_ID,
        slug=key,
        title=key,
        url=worldofbooks.collection_url(key),
    )


def resolve_target(session: Session, key: str) -> NavigationTarget:
    """Map *key* to a navigation target; never returns None."""

    key = key.strip()
    entry = find_navigation(session, key)
    if entry is not None:
        return NavigationTarget.from_entry(entry)

    target = synthesize_target(key)
    LOGGER.warning("Using fallback URL: %s", target.url, extra={"category": key})
    return target


def resolve_category(
    session: Session,
    target: NavigationTarget,
    *,
    now: datetime,
) -> Category | None:
    """Find the Category for *target*, creating it only for persisted targets."""

    category = repo.get_category_by_slug(session, target.slug)
    if category is not None or target.transient:
        return category

    try:
        category = repo.create_category(
            session,
            slug=target.slug,
            title=target.title,
            navigation_id=target.id,
            scraped_at=now,
        )
    except IntegrityError:
        # Another writer created the slug between the lookup and the insert.
        session.rollback()
        LOGGER.info(
            "Category slug=%s created concurrently; reusing it",
            target.slug,
            extra={"category": target.slug},
        )
        return repo.get_category_by_slug(session, target.slug)
    LOGGER.info("Created category slug=%s", target.slug, extra={"category": target.slug})
    return category
