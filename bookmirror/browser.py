"""Bounded headless browser sessions that always hand back a DOM snapshot.

A session visits at most ``max_pages`` URLs. Navigation failures, timeouts and
consent banners never abort it: each URL yields a :class:`PageSnapshot` holding
whatever DOM existed when the time ran out, and every degradation is recorded on
the caller's :class:`ScrapeReport`.
"""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

from playwright.async_api import async_playwright
from tenacity import retry, stop_after_attempt, wait_random_exponential

import bookmirror.selectors as selectors
from bookmirror.diagnostics import DiagnosticKind, ScrapeReport
from bookmirror.errors import PageLoadError
from bookmirror.extractors.schemas import PageSnapshot
from bookmirror.logging_config import get_logger
from bookmirror.playwright_env import close_browser, launch_browser

LOGGER = get_logger(__name__)
CONTENT_TIMEOUT_S = 10.0
BANNER_CLICK_TIMEOUT_MS = 3000


def should_block_request(resource_type: str, url: str, *, block_scripts: bool) -> bool:
    """Return True when a sub-resource is not needed for the structural DOM."""

    if resource_type == "document":
        return False
    if resource_type in selectors.BLOCKED_RESOURCE_TYPES:
        return True
    if selectors.BLOCKED_URL_PATTERN.search(url):
        return True
    if block_scripts:
        if resource_type in selectors.OPTIONAL_BLOCKED_RESOURCE_TYPES:
            return True
        if selectors.OPTIONAL_BLOCKED_URL_PATTERN.search(url):
            return True
    return False


async def install_request_filter(page: Any, *, block_scripts: bool) -> None:
    async def _handle_route(route: Any) -> None:
        request = route.request
        try:
            if should_block_request(request.resource_type, request.url, block_scripts=block_scripts):
                await route.abort()
            else:
                await route.continue_()
        except Exception as exc:
            LOGGER.debug("Route handling failed for %s: %s", request.url, exc)

    await page.route("**/*", _handle_route)


async def dismiss_consent_banner(page: Any, report: ScrapeReport | None = None) -> bool:
    """Click a visible accept/allow control if one is present.

    A banner that is present but cannot be clicked is recorded on *report*.
    """

    try:
        button = page.get_by_role("button", name=selectors.CONSENT_BUTTON_NAME).first
        if await button.is_visible():
            await button.click(timeout=BANNER_CLICK_TIMEOUT_MS)
            LOGGER.debug("Consent banner dismissed on %s", page.url)
            return True
    except Exception as exc:
        if report is not None:
            report.record(
                DiagnosticKind.BANNER_NOT_DISMISSED,
                f"Consent banner not dismissed: {exc}",
                url=page.url,
            )
        else:
            LOGGER.debug("Consent banner not dismissed: %s", exc)
    return False


async def _safe_content(page: Any) -> str:
    try:
        return await asyncio.wait_for(page.content(), timeout=CONTENT_TIMEOUT_S)
    except Exception as exc:
        LOGGER.warning("Unable to read page content: %s", exc)
        return ""


@retry(
    stop=stop_after_attempt(3),
    wait=wait_random_exponential(multiplier=0.5, max=5),
    reraise=True,
)
async def _launch(playwright: Any) -> tuple[Any, Any]:
    return await launch_browser(playwright)


class BrowserSession:
    """Session driver that turns target URLs into rendered DOM snapshots."""

    def __init__(
        self,
        *,
        max_pages: int = 10,
        page_timeout_ms: int = 45000,
        page_handler_timeout_s: float = 60,
        block_scripts: bool = True,
    ) -> None:
        self.max_pages = max(1, max_pages)
        self.page_timeout_ms = page_timeout_ms
        self.page_handler_timeout_s = page_handler_timeout_s
        self.block_scripts = block_scripts

    def _bounded_targets(self, urls: Sequence[str], report: ScrapeReport) -> list[str]:
        targets: list[str] = []
        for url in urls:
            if url and url not in targets:
                targets.append(url)
        if len(targets) > self.max_pages:
            report.record(
                DiagnosticKind.PAGE_LIMIT_REACHED,
                f"Dropping {len(targets) - self.max_pages} URLs beyond the session cap",
                limit=self.max_pages,
            )
            targets = targets[: self.max_pages]
        return targets

    async def _navigate(self, page: Any, url: str, timeout_ms: int) -> None:
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except Exception as exc:
            raise PageLoadError(str(exc) or "Navigation failed", url=url) from exc

    async def _visit(
        self,
        page: Any,
        url: str,
        report: ScrapeReport,
        timeout_ms: int,
    ) -> PageSnapshot:
        loaded = True

        async def _load_and_settle() -> None:
            nonlocal loaded
            try:
                await self._navigate(page, url, timeout_ms)
            except PageLoadError as exc:
                loaded = False
                report.record_upstream_unavailable(
                    url=url,
                    reason=f"Page load failed; scraping whatever loaded: {exc.message}",
                )
            await dismiss_consent_banner(page, report)

        try:
            await asyncio.wait_for(_load_and_settle(), timeout=self.page_handler_timeout_s)
        except asyncio.TimeoutError:
            loaded = False
            report.record_upstream_unavailable(
                url=url,
                reason=f"Page handler exceeded {self.page_handler_timeout_s}s",
            )

        html = await _safe_content(page)
        LOGGER.info(
            "Captured %d bytes from %s",
            len(html),
            url,
            extra={"url": url, "loaded": loaded},
        )
        return PageSnapshot(url=url, html=html, loaded=loaded and bool(html))

    async def fetch(
        self,
        urls: Sequence[str],
        *,
        report: ScrapeReport,
        page_timeout_ms: int | None = None,
    ) -> list[PageSnapshot]:
        """Visit *urls* in one browser session and return a snapshot per URL."""

        targets = self._bounded_targets(urls, report)
        if not targets:
            return []

        timeout_ms = page_timeout_ms or self.page_timeout_ms
        snapshots: list[PageSnapshot] = []
        try:
            async with async_playwright() as playwright:
                browser, context = await _launch(playwright)
                try:
                    page = await context.new_page()
                    await install_request_filter(page, block_scripts=self.block_scripts)
                    for url in targets:
                        LOGGER.info("Scraping products from %s", url, extra={"url": url})
                        snapshots.append(await self._visit(page, url, report, timeout_ms))
                finally:
                    await close_browser(browser, context)
        except Exception as exc:
            LOGGER.error("Browser session failed: %s", exc)
            report.record_upstream_unavailable(
                url=targets[0],
                reason=f"Browser session failed: {exc}",
            )

        visited = {snapshot.url for snapshot in snapshots}
        for url in targets:
            if url not in visited:
                snapshots.append(PageSnapshot(url=url, html="", loaded=False))
        return snapshots
