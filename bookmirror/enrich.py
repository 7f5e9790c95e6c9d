"""One-time, cached enrichment of a product's long-form fields."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bookmirror.diagnostics import ScrapeReport
from bookmirror.errors import NotFoundError
from bookmirror.extractors.detail import extract_detail
from bookmirror.extractors.schemas import DetailRecord
from bookmirror.logging_config import get_logger
from bookmirror.storage import repo
from bookmirror.storage.models_sql import Product, ProductDetail

LOGGER = get_logger(__name__)

DETAILS_NOT_AVAILABLE = "Details not available"
NO_DESCRIPTION = "No description available."


@dataclass
class ProductView:
    product: Product
    detail: ProductDetail | None = None


def _load_view(session: Session, source_id: str) -> ProductView:
    product = repo.get_product_by_source_id(session, source_id)
    if product is None:
        raise NotFoundError("Product not found in database.", source_id=source_id)
    return ProductView(product=product, detail=repo.get_product_detail(session, product.id))


class DetailEnricher:
    """Fills in a product's detail row on first request, then serves it from storage."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        driver: Any,
        *,
        page_timeout_ms: int = 15000,
        description_max_length: int = 1000,
    ) -> None:
        self.session_factory = session_factory
        self.driver = driver
        self.page_timeout_ms = page_timeout_ms
        self.description_max_length = description_max_length

    def _cached_view(self, source_id: str) -> ProductView:
        with self.session_factory() as session:
            return _load_view(session, source_id)

    async def _scrape(self, url: str, report: ScrapeReport) -> tuple[DetailRecord, bool]:
        snapshots = await self.driver.fetch(
            [url],
            report=report,
            page_timeout_ms=self.page_timeout_ms,
        )
        loaded = any(snapshot.loaded for snapshot in snapshots)
        for snapshot in snapshots:
            record = extract_detail(snapshot, max_length=self.description_max_length)
            if not record.empty:
                return record, loaded
        return DetailRecord(), loaded

    def _persist(self, source_id: str, record: DetailRecord, loaded: bool) -> ProductView:
        description = record.description or (NO_DESCRIPTION if loaded else DETAILS_NOT_AVAILABLE)
        with self.session_factory() as session:
            view = _load_view(session, source_id)
            if view.detail is not None:
                return view
            try:
                view.detail = repo.insert_product_detail(
                    session,
                    view.product.id,
                    description,
                    isbn=record.isbn,
                    publisher=record.publisher,
                    author=record.author,
                )
                session.commit()
            except IntegrityError:
                session.rollback()
                LOGGER.info("Detail for %s written concurrently; reusing it", source_id)
                view = _load_view(session, source_id)
            return view

    async def enrich(
        self,
        source_id: str,
        *,
        report: ScrapeReport | None = None,
    ) -> ProductView:
        """Return the product with its detail, scraping the page at most once."""

        report = report or ScrapeReport(label=f"detail:{source_id}")
        view = await asyncio.to_thread(self._cached_view, source_id)
        if view.detail is not None:
            LOGGER.debug("Detail cache hit for %s", source_id)
            return view
        url = view.product.source_url

        LOGGER.info("Enriching %s from %s", source_id, url, extra={"source_id": source_id})
        record, loaded = await self._scrape(url, report)
        if record.empty:
            report.record_extraction_empty(url=url)
        return await asyncio.to_thread(self._persist, source_id, record, loaded)
