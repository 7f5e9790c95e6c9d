from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import func, select

from bookmirror.resolver import (
    TRANSIENT_NAVIGATION_ID,
    alternate_slug,
    resolve_category,
    resolve_target,
)
from bookmirror.storage import repo
from bookmirror.storage.models_sql import Category, Navigation

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)
HISTORY_URL = "https://www.worldofbooks.com/en-gb/collections/history-books"


def _seed_history(session_factory) -> None:
    with session_factory() as session:
        repo.upsert_navigation(session, "history-books", "History", HISTORY_URL, scraped_at=NOW)
        session.commit()


def test_alternate_slug() -> None:
    assert alternate_slug("history-books") == "history"
    assert alternate_slug("history") == "history-books"


def test_exact_lookup(session_factory) -> None:
    _seed_history(session_factory)
    with session_factory() as session:
        target = resolve_target(session, "history-books")

    assert target.slug == "history-books"
    assert target.url == HISTORY_URL
    assert not target.transient


def test_with_and_without_suffix_resolve_to_same_target(session_factory) -> None:
    _seed_history(session_factory)
    with session_factory() as session:
        plain = resolve_target(session, "history")
        suffixed = resolve_target(session, "history-books")

    assert plain == suffixed


def test_suffix_is_stripped_when_entry_lacks_it(session_factory) -> None:
    with session_factory() as session:
        repo.upsert_navigation(session, "poetry", "Poetry", "https://x/poetry", scraped_at=NOW)
        session.commit()
        target = resolve_target(session, "poetry-books")

    assert target.slug == "poetry"
    assert not target.transient


def test_unknown_key_synthesizes_transient_target(session_factory) -> None:
    with session_factory() as session:
        target = resolve_target(session, "fantasy")
        count = session.scalar(select(func.count(Navigation.id)))

    assert target.transient
    assert target.id == TRANSIENT_NAVIGATION_ID
    assert target.slug == "fantasy"
    assert target.url == "https://www.worldofbooks.com/en-gb/collections/fantasy-books"
    assert count == 0


def test_suffixed_unknown_key_is_not_double_suffixed(session_factory) -> None:
    with session_factory() as session:
        target = resolve_target(session, "fantasy-books")

    assert target.url == "https://www.worldofbooks.com/en-gb/collections/fantasy-books"


def test_category_created_lazily_for_persisted_target(session_factory) -> None:
    _seed_history(session_factory)
    with session_factory() as session:
        target = resolve_target(session, "history")
        category = resolve_category(session, target, now=NOW)
        again = resolve_category(session, target, now=NOW)
        session.commit()
        count = session.scalar(select(func.count(Category.id)))

    assert category is not None
    assert category.navigation_id == target.id
    assert category.slug == "history-books"
    assert again.id == category.id
    assert count == 1


def test_no_category_created_for_transient_target(session_factory) -> None:
    with session_factory() as session:
        target = resolve_target(session, "fantasy")
        category = resolve_category(session, target, now=NOW)
        count = session.scalar(select(func.count(Category.id)))

    assert category is None
    assert count == 0


def test_category_created_concurrently_is_reused(session_factory, monkeypatch) -> None:
    _seed_history(session_factory)
    with session_factory() as other:
        target = resolve_target(other, "history-books")
        existing = resolve_category(other, target, now=NOW)
        other.commit()

    real_lookup = repo.get_category_by_slug
    lookups = []

    def stale_first_lookup(session, slug):
        lookups.append(slug)
        if len(lookups) == 1:
            return None
        return real_lookup(session, slug)

    monkeypatch.setattr(repo, "get_category_by_slug", stale_first_lookup)
    with session_factory() as session:
        category = resolve_category(session, target, now=NOW)
        session.commit()
        count = session.scalar(select(func.count(Category.id)))

    assert category is not None
    assert category.id == existing.id
    assert count == 1
