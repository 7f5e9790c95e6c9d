from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from bookmirror.extractors.schemas import PageSnapshot
from bookmirror.storage.db import get_engine, init_db, make_session

FIXTURES = Path(__file__).resolve().parent / "fixtures"


def read_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


class FakeDriver:
    """Stands in for BrowserSession, serving fixture HTML per URL."""

    def __init__(self, pages: dict[str, str] | None = None) -> None:
        self.pages = dict(pages or {})
        self.calls: list[list[str]] = []

    async def fetch(self, urls, *, report, page_timeout_ms=None):
        self.calls.append(list(urls))
        snapshots = []
        for url in urls:
            html = self.pages.get(url)
            if html is None:
                report.record_upstream_unavailable(url=url, reason="no fixture for url")
                snapshots.append(PageSnapshot(url=url, html="", loaded=False))
            else:
                snapshots.append(PageSnapshot(url=url, html=html))
        return snapshots


class TickingClock:
    def __init__(self) -> None:
        self.current = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture()
def session_factory(tmp_path):
    engine = get_engine(str(tmp_path / "catalog.sqlite"))
    init_db(engine)
    try:
        yield make_session(engine)
    finally:
        engine.dispose()


@pytest.fixture()
def clock() -> TickingClock:
    return TickingClock()
