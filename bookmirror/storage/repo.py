"""Repository helpers for interacting with persistent storage.

Every write here is an insert or an in-place update keyed by a natural key
(``slug`` or ``source_id``). Nothing in this module deletes rows.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from .models_sql import Category, Navigation, Product, ProductDetail


def get_navigation_by_slug(session: Session, slug: str) -> Navigation | None:
    stmt = select(Navigation).where(Navigation.slug == slug).limit(1)
    return session.execute(stmt).scalar_one_or_none()


def list_navigation(session: Session) -> list[Navigation]:
    stmt = select(Navigation).order_by(Navigation.title.asc(), Navigation.id.asc())
    return list(session.execute(stmt).scalars())


def upsert_navigation(
    session: Session,
    slug: str,
    title: str,
    url: str,
    *,
    scraped_at: datetime,
) -> Navigation:
    """Insert a navigation entry or refresh the existing one in place.

    ``last_scraped_at`` is only stamped on refresh; new rows start with it unset.
    """

    entry = get_navigation_by_slug(session, slug)
    if entry is None:
        entry = Navigation(slug=slug, title=title, url=url, last_scraped_at=None)
        session.add(entry)
    else:
        entry.title = title
        entry.url = url
        entry.last_scraped_at = scraped_at
    session.flush()
    return entry


def get_category_by_slug(session: Session, slug: str) -> Category | None:
    stmt = select(Category).where(Category.slug == slug).limit(1)
    return session.execute(stmt).scalar_one_or_none()


def get_category_by_navigation_id(session: Session, navigation_id: int) -> Category | None:
    stmt = (
        select(Category)
        .where(Category.navigation_id == navigation_id)
        .order_by(Category.id.asc())
        .limit(1)
    )
    return session.execute(stmt).scalar_one_or_none()


def create_category(
    session: Session,
    *,
    slug: str,
    title: str,
    navigation_id: int,
    scraped_at: datetime,
) -> Category:
    category = Category(
        slug=slug,
        title=title,
        navigation_id=navigation_id,
        last_scraped_at=scraped_at,
    )
    session.add(category)
    session.flush()
    return category


def get_product_by_source_id(session: Session, source_id: str) -> Product | None:
    stmt = select(Product).where(Product.source_id == source_id).limit(1)
    return session.execute(stmt).scalar_one_or_none()


def upsert_product(
    session: Session,
    source_id: str,
    title: str,
    price: str,
    source_url: str,
    category_id: int,
    *,
    image_url: str | None = None,
    scraped_at: datetime,
) -> Product:
    """Insert or overwrite the product keyed by *source_id* in one statement.

    Concurrent writers of the same key converge on the last write instead of
    failing on the unique constraint.
    """

    values = {
        "source_id": source_id,
        "title": title,
        "price": price,
        "image_url": image_url,
        "source_url": source_url,
        "category_id": category_id,
        "last_scraped_at": scraped_at,
    }
    stmt = sqlite_insert(Product).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[Product.source_id],
        set_={key: stmt.excluded[key] for key in values if key != "source_id"},
    )
    session.execute(stmt)
    refreshed = (
        select(Product)
        .where(Product.source_id == source_id)
        .execution_options(populate_existing=True)
    )
    return session.execute(refreshed).scalar_one()


def find_products_by_category(
    session: Session,
    category_id: int,
    *,
    offset: int,
    limit: int,
) -> tuple[list[Product], int]:
    """Return one page of a category's products plus the category total."""

    total = session.execute(
        select(func.count(Product.id)).where(Product.category_id == category_id)
    ).scalar_one()
    stmt = (
        select(Product)
        .where(Product.category_id == category_id)
        .order_by(Product.id.asc())
        .offset(max(offset, 0))
        .limit(limit)
    )
    return list(session.execute(stmt).scalars()), int(total)


def search_products(session: Session, query: str, *, limit: int) -> list[Product]:
    needle = query.strip().lower()
    if not needle:
        return []
    escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    stmt = (
        select(Product)
        .where(func.lower(Product.title).like(f"%{escaped}%", escape="\\"))
        .order_by(Product.id.asc())
        .limit(limit)
    )
    return list(session.execute(stmt).scalars())


def get_product_detail(session: Session, product_id: int) -> ProductDetail | None:
    stmt = select(ProductDetail).where(ProductDetail.product_id == product_id).limit(1)
    return session.execute(stmt).scalar_one_or_none()


def insert_product_detail(
    session: Session,
    product_id: int,
    description: str,
    *,
    isbn: str | None = None,
    publisher: str | None = None,
    author: str | None = None,
) -> ProductDetail:
    detail = ProductDetail(
        product_id=product_id,
        description=description,
        isbn=isbn,
        publisher=publisher,
        author=author,
    )
    session.add(detail)
    session.flush()
    return detail
