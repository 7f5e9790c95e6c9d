"""Configuration loading for the catalog service and CLI."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
import os
from pathlib import Path
from typing import Any

import yaml

from bookmirror.logging_config import get_logger

LOGGER = get_logger(__name__)

DEFAULT_CONFIG_PATH = "config.yml"

DEFAULT_CONFIG: dict[str, Any] = {
    "output": {
        "sqlite_path": "bookmirror.sqlite",
    },
    "db": {"busy_timeout": 30},
    "scrape": {
        "max_pages_per_session": 10,
        "page_timeout_ms": 45000,
        "page_handler_timeout_s": 60,
        "block_scripts": True,
    },
    "detail": {
        "page_timeout_ms": 15000,
        "description_max_length": 1000,
    },
    "catalog": {
        "page_size": 12,
        "search_limit": 20,
    },
    "navigation_path": None,
    "coalesce_inflight": True,
}


def _deep_merge(default: Any, override: Any) -> Any:
    if not isinstance(default, dict) or not isinstance(override, dict):
        return deepcopy(override)

    merged: dict[str, Any] = deepcopy(default)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def resolve_config_path(path_value: str | Path | None = None) -> Path:
    raw = path_value or os.getenv("BOOKMIRROR_CONFIG") or DEFAULT_CONFIG_PATH
    path = Path(raw)
    if not path.is_absolute():
        path = Path.cwd() / path
    return path


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load YAML configuration from *path* merged over the defaults."""

    path = path or resolve_config_path()
    if path.exists():
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    else:
        LOGGER.info("Configuration file %s not found; using defaults", path)
        data = {}

    if not isinstance(data, dict):
        LOGGER.warning("Configuration file %s is not a mapping; using defaults", path)
        data = {}

    merged = _deep_merge(DEFAULT_CONFIG, data) if data else deepcopy(DEFAULT_CONFIG)
    env_db = os.getenv("BOOKMIRROR_DB")
    if env_db:
        merged["output"]["sqlite_path"] = env_db
    return merged


def _positive_int(value: Any, default: int, name: str) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        LOGGER.warning("%s must be an integer; using %s", name, default)
        return default
    if parsed <= 0:
        LOGGER.warning("%s must be positive; using %s", name, default)
        return default
    return parsed


@dataclass(frozen=True)
class ScrapeSettings:
    """Resolved knobs for browser sessions and catalog queries."""

    max_pages_per_session: int = 10
    page_timeout_ms: int = 45000
    page_handler_timeout_s: int = 60
    block_scripts: bool = True
    detail_timeout_ms: int = 15000
    description_max_length: int = 1000
    page_size: int = 12
    search_limit: int = 20

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "ScrapeSettings":
        scrape = config.get("scrape") or {}
        detail = config.get("detail") or {}
        catalog = config.get("catalog") or {}
        return cls(
            max_pages_per_session=_positive_int(
                scrape.get("max_pages_per_session"), 10, "scrape.max_pages_per_session"
            ),
            page_timeout_ms=_positive_int(
                scrape.get("page_timeout_ms"), 45000, "scrape.page_timeout_ms"
            ),
            page_handler_timeout_s=_positive_int(
                scrape.get("page_handler_timeout_s"), 60, "scrape.page_handler_timeout_s"
            ),
            block_scripts=bool(scrape.get("block_scripts", True)),
            detail_timeout_ms=_positive_int(
                detail.get("page_timeout_ms"), 15000, "detail.page_timeout_ms"
            ),
            description_max_length=_positive_int(
                detail.get("description_max_length"), 1000, "detail.description_max_length"
            ),
            page_size=_positive_int(catalog.get("page_size"), 12, "catalog.page_size"),
            search_limit=_positive_int(catalog.get("search_limit"), 20, "catalog.search_limit"),
        )
