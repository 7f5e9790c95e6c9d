"""FastAPI adapter exposing the catalog operations."""

from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from pathlib import Path

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, ConfigDict

from bookmirror.config import ScrapeSettings, load_config
from bookmirror.errors import NotFoundError
from bookmirror.logging_config import get_logger
from bookmirror.retailers.worldofbooks import load_navigation_seeds
from bookmirror.service import CatalogService
from bookmirror.storage.db import get_engine, init_db, make_session

LOGGER = get_logger(__name__)


class NavigationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    url: str
    last_scraped_at: datetime | None = None


class ScrapedProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: str
    price: str
    image_url: str | None = None
    source_id: str
    product_url: str | None = None


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    source_id: str
    title: str
    price: str
    image_url: str | None = None
    source_url: str
    category_id: int | None = None
    last_scraped_at: datetime


class ProductDetailOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    description: str
    isbn: str | None = None
    publisher: str | None = None
    author: str | None = None


class ProductWithDetailOut(ProductOut):
    details: ProductDetailOut | None = None


class BooksPageOut(BaseModel):
    books: list[ProductOut]
    total: int
    page: int
    totalPages: int


def build_service(config_path: Path | None = None) -> CatalogService:
    """Build a service wired to the configured SQLite database."""

    config = load_config(config_path)
    engine = get_engine(
        config["output"]["sqlite_path"],
        busy_timeout=(config.get("db") or {}).get("busy_timeout"),
    )
    init_db(engine)
    navigation_path = config.get("navigation_path")
    return CatalogService(
        make_session(engine),
        settings=ScrapeSettings.from_config(config),
        navigation_seeds=load_navigation_seeds(Path(navigation_path) if navigation_path else None),
        coalesce=bool(config.get("coalesce_inflight", True)),
    )


@lru_cache(maxsize=1)
def _default_service() -> CatalogService:
    return build_service()


def create_app(service: CatalogService | None = None) -> FastAPI:
    app = FastAPI(title="bookmirror catalog")

    def get_service() -> CatalogService:
        return service if service is not None else _default_service()

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/navigation", response_model=list[NavigationOut])
    def list_navigation(svc: CatalogService = Depends(get_service)):
        return svc.list_navigation()

    @app.get("/scraping/navigation", response_model=list[NavigationOut])
    def bootstrap_navigation(svc: CatalogService = Depends(get_service)):
        return svc.bootstrap_navigation()

    @app.get("/scraping/category/{slug}", response_model=list[ScrapedProductOut])
    async def scrape_category(slug: str, svc: CatalogService = Depends(get_service)):
        return await svc.scrape_category(slug)

    @app.get("/scraping/product/{source_id}", response_model=ProductWithDetailOut)
    async def product_detail(source_id: str, svc: CatalogService = Depends(get_service)):
        try:
            view = await svc.get_product_detail(source_id)
        except NotFoundError as exc:
            raise HTTPException(status_code=404, detail=exc.message) from exc
        payload = ProductOut.model_validate(view.product).model_dump()
        details = (
            ProductDetailOut.model_validate(view.detail) if view.detail is not None else None
        )
        return ProductWithDetailOut(**payload, details=details)

    @app.get("/scraping/search", response_model=list[ProductOut])
    def search(
        q: str = Query("", description="Case-insensitive title substring."),
        svc: CatalogService = Depends(get_service),
    ):
        return svc.search_books(q)

    @app.get("/books/{slug}", response_model=BooksPageOut)
    def books_by_category(
        slug: str,
        page: int = Query(1, ge=1, description="1-based page number."),
        svc: CatalogService = Depends(get_service),
    ):
        result = svc.get_books_by_category(slug, page)
        return BooksPageOut(
            books=[ProductOut.model_validate(item) for item in result.items],
            total=result.total,
            page=result.page,
            totalPages=result.total_pages,
        )

    return app


app = create_app()
