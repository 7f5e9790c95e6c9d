"""Persist deduplicated candidates as upserts keyed by ``source_id``."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from sqlalchemy.orm import Session

from bookmirror.extractors.schemas import CandidateRecord
from bookmirror.logging_config import get_logger
from bookmirror.retailers import worldofbooks
from bookmirror.storage import repo
from bookmirror.storage.models_sql import Category, Product

LOGGER = get_logger(__name__)


def reconcile(
    session: Session,
    category: Category,
    candidates: Sequence[CandidateRecord],
    *,
    now: datetime,
) -> list[Product]:
    """Upsert *candidates* into *category* and stamp freshness.

    An empty candidate list is a no-op: previously stored products stay as
    they are.
    """

    if not candidates:
        return []

    products: list[Product] = []
    for candidate in candidates:
        source_url = candidate.product_url or worldofbooks.fallback_product_url(
            candidate.source_id
        )
        products.append(
            repo.upsert_product(
                session,
                candidate.source_id,
                candidate.title,
                candidate.price,
                source_url,
                category.id,
                image_url=candidate.image_url,
                scraped_at=now,
            )
        )

    category.last_scraped_at = now
    session.flush()
    LOGGER.info(
        "Persisted %d products for category=%s",
        len(products),
        category.slug,
        extra={"category": category.slug},
    )
    return products
