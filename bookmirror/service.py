"""Catalog operations exposed to the HTTP adapter and CLI."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from math import ceil
from typing import Any, Callable, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookmirror.browser import BrowserSession
from bookmirror.config import ScrapeSettings
from bookmirror.dedupe import dedupe_by_title
from bookmirror.diagnostics import DiagnosticKind, ScrapeReport
from bookmirror.enrich import DetailEnricher, ProductView
from bookmirror.extractors.listing import extract_records
from bookmirror.extractors.schemas import CandidateRecord
from bookmirror.inflight import InflightRegistry
from bookmirror.logging_config import get_logger
from bookmirror.reconcile import reconcile
from bookmirror.resolver import (
    NavigationTarget,
    find_navigation,
    resolve_category,
    resolve_target,
)
from bookmirror.retailers.worldofbooks import FALLBACK_NAVIGATION, NavigationSeed
from bookmirror.storage import repo
from bookmirror.storage.models_sql import Category, Navigation, Product

LOGGER = get_logger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BooksPage:
    items: list[Product] = field(default_factory=list)
    total: int = 0
    page: int = 1
    total_pages: int = 0


class CatalogService:
    """Category scrape, product detail and catalog read operations."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        settings: ScrapeSettings | None = None,
        driver: Any | None = None,
        navigation_seeds: Sequence[NavigationSeed] = FALLBACK_NAVIGATION,
        coalesce: bool = True,
        clock: Callable[[], datetime] = _now_utc,
    ) -> None:
        self.session_factory = session_factory
        self.settings = settings or ScrapeSettings()
        self.driver = driver or BrowserSession(
            max_pages=self.settings.max_pages_per_session,
            page_timeout_ms=self.settings.page_timeout_ms,
            page_handler_timeout_s=self.settings.page_handler_timeout_s,
            block_scripts=self.settings.block_scripts,
        )
        self.navigation_seeds = tuple(navigation_seeds)
        self.inflight = InflightRegistry() if coalesce else None
        self.clock = clock
        self.enricher = DetailEnricher(
            session_factory,
            self.driver,
            page_timeout_ms=self.settings.detail_timeout_ms,
            description_max_length=self.settings.description_max_length,
        )

    # ---- category pipeline -------------------------------------------------

    async def scrape_category(self, category_key: str) -> list[CandidateRecord]:
        products, _ = await self.scrape_category_with_report(category_key)
        return products

    async def scrape_category_with_report(
        self, category_key: str
    ) -> tuple[list[CandidateRecord], ScrapeReport]:
        if self.inflight is None:
            return await self._scrape_category(category_key)
        return await self.inflight.run(
            ("category", category_key.strip()),
            lambda: self._scrape_category(category_key),
        )

    def _prepare_target(self, category_key: str) -> tuple[NavigationTarget, int | None]:
        with self.session_factory() as session:
            target = resolve_target(session, category_key)
            category = resolve_category(session, target, now=self.clock())
            session.commit()
            return target, (category.id if category is not None else None)

    def _persist_products(
        self,
        target: NavigationTarget,
        category_id: int,
        products: list[CandidateRecord],
        report: ScrapeReport,
    ) -> None:
        with self.session_factory() as session:
            try:
                category = session.get(Category, category_id)
                if category is None:
                    report.record_persistence_skipped(slug=target.slug)
                    return
                reconcile(session, category, products, now=self.clock())
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                LOGGER.exception(
                    "Failed to persist products for category=%s",
                    target.slug,
                    extra={"category": target.slug},
                )
                report.record(
                    DiagnosticKind.PERSISTENCE_SKIPPED,
                    f"Persistence failed and was rolled back: {exc}",
                    slug=target.slug,
                )

    async def _scrape_category(
        self, category_key: str
    ) -> tuple[list[CandidateRecord], ScrapeReport]:
        report = ScrapeReport(label=f"category:{category_key}")
        LOGGER.info("Looking up category: %s", category_key, extra={"category": category_key})

        # Blocking SQLite work runs in a worker thread so the event loop stays free.
        target, category_id = await asyncio.to_thread(self._prepare_target, category_key)
        if target.transient:
            report.record(
                DiagnosticKind.FALLBACK_TARGET,
                f"No navigation entry for {category_key}; using {target.url}",
                url=target.url,
            )

        LOGGER.info("Targeting URL: %s", target.url, extra={"category": target.slug})
        snapshots = await self.driver.fetch([target.url], report=report)

        candidates: list[CandidateRecord] = []
        for snapshot in snapshots:
            candidates.extend(extract_records(snapshot))
        products = dedupe_by_title(candidates)
        LOGGER.info("Found %d books.", len(products), extra={"category": target.slug})

        if not products:
            report.record_extraction_empty(url=target.url)
            return [], report

        if category_id is None:
            report.record_persistence_skipped(slug=target.slug)
            return products, report

        await asyncio.to_thread(self._persist_products, target, category_id, products, report)
        return products, report

        with self.session_factory() as session:
            try:
                category = session.get(Category, category_id)
                if category is None:
                    report.record_persistence_skipped(slug=target.slug)
                    return products, report
                reconcile(session, category, products, now=self.clock())
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                LOGGER.exception(
                    "Failed to persist products for category=%s",
                    target.slug,
                    extra={"category": target.slug},
                )
                report.record(
                    DiagnosticKind.PERSISTENCE_SKIPPED,
                    f"Persistence failed and was rolled back: {exc}",
                    slug=target.slug,
                )
        return products, report

    # ---- detail pipeline ---------------------------------------------------

    async def get_product_detail(self, source_id: str) -> ProductView:
        if self.inflight is None:
            return await self.enricher.enrich(source_id)
        return await self.inflight.run(
            ("product", source_id),
            lambda: self.enricher.enrich(source_id),
        )

    # ---- catalog reads -----------------------------------------------------

    def get_books_by_category(self, category_key: str, page: int = 1) -> BooksPage:
        page = max(int(page or 1), 1)
        page_size = self.settings.page_size
        with self.session_factory() as session:
            entry = find_navigation(session, category_key.strip())
            if entry is None:
                return BooksPage(page=page)
            category = repo.get_category_by_navigation_id(session, entry.id)
            if category is None:
                return BooksPage(page=page)
            items, total = repo.find_products_by_category(
                session,
                category.id,
                offset=(page - 1) * page_size,
                limit=page_size,
            )
        return BooksPage(
            items=items,
            total=total,
            page=page,
            total_pages=ceil(total / page_size) if total else 0,
        )

    def bootstrap_navigation(self) -> list[Navigation]:
        """Upsert the configured navigation list; never deletes entries."""

        LOGGER.info("Updating navigation with %d entries", len(self.navigation_seeds))
        now = self.clock()
        with self.session_factory() as session:
            for seed in self.navigation_seeds:
                repo.upsert_navigation(session, seed.slug, seed.title, seed.url, scraped_at=now)
            session.commit()
            entries = repo.list_navigation(session)
        LOGGER.info("Navigation updated; %d entries stored", len(entries))
        return entries

    def list_navigation(self) -> list[Navigation]:
        with self.session_factory() as session:
            return repo.list_navigation(session)

    def search_books(self, query: str, limit: int | None = None) -> list[Product]:
        with self.session_factory() as session:
            return repo.search_products(
                session,
                query or "",
                limit=limit or self.settings.search_limit,
            )
