from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from bookmirror.storage import repo
from bookmirror.storage.db import init_db
from bookmirror.storage.models_sql import Navigation, Product


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite:///:memory:", future=True)
    init_db(engine)
    Session = sessionmaker(engine, future=True)
    try:
        with Session() as session:
            yield session
    finally:
        engine.dispose()


def _category(db_session, slug: str = "history-books"):
    nav = repo.upsert_navigation(
        db_session,
        slug,
        "History",
        f"https://www.worldofbooks.com/en-gb/collections/{slug}",
        scraped_at=datetime.now(timezone.utc),
    )
    return repo.create_category(
        db_session,
        slug=slug,
        title="History",
        navigation_id=nav.id,
        scraped_at=datetime.now(timezone.utc),
    )


def test_upsert_navigation_inserts_without_timestamp_then_refreshes(db_session) -> None:
    now = datetime.now(timezone.utc)
    first = repo.upsert_navigation(db_session, "fiction-books", "Fiction", "https://a", scraped_at=now)
    assert first.last_scraped_at is None

    second = repo.upsert_navigation(
        db_session, "fiction-books", "Fiction & Poetry", "https://b", scraped_at=now
    )
    assert second.id == first.id
    assert second.title == "Fiction & Poetry"
    assert second.url == "https://b"
    assert second.last_scraped_at is not None
    assert db_session.scalar(select(func.count(Navigation.id))) == 1


def test_list_navigation_orders_by_title(db_session) -> None:
    now = datetime.now(timezone.utc)
    for slug, title in [("rare-books", "Rare Books"), ("adventure-books", "Adventure")]:
        repo.upsert_navigation(db_session, slug, title, f"https://x/{slug}", scraped_at=now)

    assert [entry.title for entry in repo.list_navigation(db_session)] == ["Adventure", "Rare Books"]


def test_upsert_product_updates_in_place(db_session) -> None:
    category = _category(db_session)
    now = datetime.now(timezone.utc)
    created = repo.upsert_product(
        db_session,
        "the-great-escape",
        "The Great Escape",
        "£4.49",
        "https://example.com/p/1",
        category.id,
        scraped_at=now,
    )
    updated = repo.upsert_product(
        db_session,
        "the-great-escape",
        "The Great Escape",
        "£3.50",
        "https://example.com/p/2",
        category.id,
        image_url="https://img/1.jpg",
        scraped_at=now + timedelta(minutes=5),
    )

    assert updated.id == created.id
    assert updated.price == "£3.50"
    assert updated.image_url == "https://img/1.jpg"
    assert db_session.scalar(select(func.count(Product.id))) == 1


def test_find_products_by_category_paginates(db_session) -> None:
    category = _category(db_session)
    other = _category(db_session, "fiction-books")
    now = datetime.now(timezone.utc)
    for index in range(5):
        repo.upsert_product(
            db_session, f"book-{index}", f"Book {index}", "£1.00", "https://x", category.id, scraped_at=now
        )
    repo.upsert_product(db_session, "elsewhere", "Elsewhere", "£1.00", "https://x", other.id, scraped_at=now)

    items, total = repo.find_products_by_category(db_session, category.id, offset=2, limit=2)

    assert total == 5
    assert [item.source_id for item in items] == ["book-2", "book-3"]


def test_search_products_is_case_insensitive_and_limited(db_session) -> None:
    category = _category(db_session)
    now = datetime.now(timezone.utc)
    for source_id, title in [
        ("harry-1", "Harry Potter and the Philosopher's Stone"),
        ("harry-2", "HARRY Potter and the Chamber of Secrets"),
        ("other", "Wolf Hall"),
    ]:
        repo.upsert_product(db_session, source_id, title, "£2.00", "https://x", category.id, scraped_at=now)

    assert {p.source_id for p in repo.search_products(db_session, "harry", limit=20)} == {
        "harry-1",
        "harry-2",
    }
    assert len(repo.search_products(db_session, "harry", limit=1)) == 1
    assert repo.search_products(db_session, "   ", limit=20) == []
    assert repo.search_products(db_session, "100%", limit=20) == []


def test_product_detail_roundtrip(db_session) -> None:
    category = _category(db_session)
    product = repo.upsert_product(
        db_session, "wolf-hall", "Wolf Hall", "£2.00", "https://x", category.id,
        scraped_at=datetime.now(timezone.utc),
    )
    assert repo.get_product_detail(db_session, product.id) is None

    repo.insert_product_detail(db_session, product.id, "Tudor novel", author="Hilary Mantel")

    detail = repo.get_product_detail(db_session, product.id)
    assert detail is not None
    assert detail.author == "Hilary Mantel"
    assert detail.isbn is None


def test_upsert_product_converges_when_another_writer_inserted_first(session_factory) -> None:
    now = datetime.now(timezone.utc)
    with session_factory() as setup:
        category_id = _category(setup).id
        setup.commit()

    with session_factory() as late, session_factory() as early:
        assert repo.get_product_by_source_id(late, "the-great-escape") is None

        repo.upsert_product(
            early, "the-great-escape", "The Great Escape", "£4.49", "https://x/1", category_id,
            scraped_at=now,
        )
        early.commit()

        product = repo.upsert_product(
            late, "the-great-escape", "The Great Escape", "£3.50", "https://x/2", category_id,
            scraped_at=now + timedelta(minutes=1),
        )
        late.commit()

    assert product.price == "£3.50"
    with session_factory() as check:
        rows = list(check.execute(select(Product)).scalars())
    assert [(row.source_id, row.price) for row in rows] == [("the-great-escape", "£3.50")]
