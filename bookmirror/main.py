"""Command-line interface entry point for bookmirror."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any, Iterable

import uvicorn
from dotenv import load_dotenv

from bookmirror.api import (
    ProductDetailOut,
    ProductOut,
    ProductWithDetailOut,
    build_service,
    create_app,
)
from bookmirror.errors import NotFoundError
from bookmirror.logging_config import get_logger
from bookmirror.service import CatalogService

LOGGER = get_logger(__name__)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the application."""

    parser = argparse.ArgumentParser(
        description="Mirror World of Books listings into a local catalog."
    )
    parser.add_argument("--config", type=str, help="Path to a YAML configuration file.")
    parser.add_argument(
        "--bootstrap-navigation",
        action="store_true",
        help="Upsert the navigation list and print it.",
    )
    parser.add_argument("--category", type=str, help="Scrape one category by slug.")
    parser.add_argument("--product", type=str, help="Fetch (and enrich) one product by source id.")
    parser.add_argument("--books", type=str, help="List stored books for a category slug.")
    parser.add_argument("--page", type=int, default=1, help="Page number for --books (default: 1).")
    parser.add_argument("--search", type=str, help="Search stored books by title.")
    parser.add_argument("--serve", action="store_true", help="Start the HTTP API with uvicorn.")
    parser.add_argument("--host", type=str, default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.page is None or args.page <= 0:
        parser.error("--page must be a positive integer")

    actions = [
        args.bootstrap_navigation,
        bool(args.category),
        bool(args.product),
        bool(args.books),
        args.search is not None,
        args.serve,
    ]
    if sum(1 for flag in actions if flag) != 1:
        parser.error(
            "choose exactly one of --bootstrap-navigation, --category, --product, "
            "--books, --search or --serve"
        )
    return args


def _dump(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str, ensure_ascii=False))


async def _run(args: argparse.Namespace, service: CatalogService) -> int:
    if args.bootstrap_navigation:
        entries = service.bootstrap_navigation()
        _dump([{"title": e.title, "slug": e.slug, "url": e.url} for e in entries])
        return 0

    if args.category:
        products, report = await service.scrape_category_with_report(args.category)
        _dump(
            {
                "products": [product.model_dump() for product in products],
                "diagnostics": [
                    {"kind": entry.kind.value, "message": entry.message}
                    for entry in report.diagnostics
                ],
            }
        )
        return 0

    if args.product:
        try:
            view = await service.get_product_detail(args.product)
        except NotFoundError as exc:
            LOGGER.error("%s", exc)
            return 1
        payload = ProductWithDetailOut(
            **ProductOut.model_validate(view.product).model_dump(),
            details=ProductDetailOut.model_validate(view.detail) if view.detail else None,
        )
        _dump(payload.model_dump())
        return 0

    if args.books:
        result = service.get_books_by_category(args.books, args.page)
        _dump(
            {
                "books": [ProductOut.model_validate(item).model_dump() for item in result.items],
                "total": result.total,
                "page": result.page,
                "totalPages": result.total_pages,
            }
        )
        return 0

    results = service.search_books(args.search)
    _dump([ProductOut.model_validate(item).model_dump() for item in results])
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    load_dotenv()
    args = parse_args(argv)

    if args.serve:
        service = build_service(Path(args.config) if args.config else None)
        uvicorn.run(create_app(service), host=args.host, port=args.port, log_level="info")
        return 0

    service = build_service(Path(args.config) if args.config else None)
    return asyncio.run(_run(args, service))


if __name__ == "__main__":
    raise SystemExit(main())
