"""Playwright-backed renderer with CDP stylesheet coverage.

Stylesheet usage is recorded through a Chrome DevTools Protocol session
attached to the page, so only Chromium is supported. Coverage is not reset
on navigation: everything observed between ``start_coverage`` and
``stop_coverage`` is reported.

Example usage:

    from cssscan.config import ScanOptions
    from cssscan.renderer import open_browser

    async with open_browser(ScanOptions()) as page:
        await page.start_coverage()
        await page.goto("https://example.com", wait_until="networkidle", timeout_ms=30000)
        entries = await page.stop_coverage()
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .config import ScanOptions
from .errors import FatalScanError, NavigationError
from .models import CoverageEntry
from .ranges import ByteRange, merge_ranges

LOGGER = logging.getLogger(__name__)


class RendererPage(Protocol):
    """Page operations the scanner relies on."""

    async def start_coverage(self) -> None: ...

    async def stop_coverage(self) -> List[CoverageEntry]: ...

    async def goto(self, url: str, *, wait_until: str, timeout_ms: int) -> None: ...

    async def set_viewport(self, width: int, height: int) -> None: ...

    async def evaluate(self, script: str) -> Any: ...

    async def close(self) -> None: ...


class PlaywrightPage:
    """RendererPage over a Playwright page and its CDP session."""

    def __init__(self, page: Any, cdp: Any) -> None:
        self._page = page
        self._cdp = cdp
        self._stylesheet_urls: Dict[str, str] = {}
        self._stylesheet_texts: Dict[str, "asyncio.Future[str]"] = {}
        self._enabled = False
        cdp.on("CSS.styleSheetAdded", self._on_stylesheet_added)

    def _on_stylesheet_added(self, event: Dict[str, Any]) -> None:
        if not self._enabled:
            return
        header = event.get("header") or {}
        sheet_id = header.get("styleSheetId")
        if not sheet_id or sheet_id in self._stylesheet_urls:
            return
        self._stylesheet_urls[sheet_id] = header.get("sourceURL") or ""
        # Sheets vanish with their document, so read the text right away.
        self._stylesheet_texts[sheet_id] = asyncio.ensure_future(
            self._read_stylesheet_text(sheet_id)
        )

    async def _read_stylesheet_text(self, sheet_id: str) -> str:
        try:
            response = await self._cdp.send(
                "CSS.getStyleSheetText", {"styleSheetId": sheet_id}
            )
        except PlaywrightError as exc:
            LOGGER.debug("Could not read stylesheet %s: %s", sheet_id, exc)
            return ""
        return response.get("text") or ""

    async def start_coverage(self) -> None:
        self._forget_stylesheets()
        self._enabled = True
        await self._cdp.send("DOM.enable")
        await self._cdp.send("CSS.enable")
        await self._cdp.send("CSS.startRuleUsageTracking")

    async def stop_coverage(self) -> List[CoverageEntry]:
        response = await self._cdp.send("CSS.stopRuleUsageTracking")
        self._enabled = False

        used: Dict[str, List[ByteRange]] = defaultdict(list)
        for rule in response.get("ruleUsage", []):
            if not rule.get("used"):
                continue
            used[rule["styleSheetId"]].append(
                ByteRange(int(rule["startOffset"]), int(rule["endOffset"]))
            )

        entries: List[CoverageEntry] = []
        for sheet_id, url in self._stylesheet_urls.items():
            text = await self._stylesheet_texts[sheet_id]
            ranges = [
                ByteRange(r.start, min(r.end, len(text)))
                for r in merge_ranges(used.get(sheet_id, []))
                if r.start < len(text)
            ]
            entries.append(CoverageEntry(key=url, text=text, ranges=ranges))

        await self._cdp.send("CSS.disable")
        await self._cdp.send("DOM.disable")
        LOGGER.debug("Collected coverage for %d stylesheet(s)", len(entries))
        return entries

    def _forget_stylesheets(self) -> None:
        for pending in self._stylesheet_texts.values():
            pending.cancel()
        self._stylesheet_urls = {}
        self._stylesheet_texts = {}

    async def goto(self, url: str, *, wait_until: str, timeout_ms: int) -> None:
        # CSS.enable replays the sheets of the document still loaded.
        self._forget_stylesheets()
        try:
            await self._page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except PlaywrightError as exc:
            raise NavigationError(url, str(exc)) from exc

    async def set_viewport(self, width: int, height: int) -> None:
        await self._page.set_viewport_size({"width": width, "height": height})

    async def evaluate(self, script: str) -> Any:
        return await self._page.evaluate(script)

    async def close(self) -> None:
        await self._cdp.detach()
        await self._page.close()


@asynccontextmanager
async def open_browser(options: ScanOptions) -> AsyncIterator[PlaywrightPage]:
    """Launch Chromium and yield a coverage-capable page.

    The browser is closed on every exit path.

    Raises:
        FatalScanError: If Chromium cannot be launched.
    """
    async with async_playwright() as playwright:
        try:
            browser = await playwright.chromium.launch(headless=options.headless)
        except PlaywrightError as exc:
            raise FatalScanError(f"Failed to launch Chromium: {exc}") from exc

        try:
            context = await browser.new_context()
            page = await context.new_page()
            cdp = await context.new_cdp_session(page)
            yield PlaywrightPage(page, cdp)
        finally:
            await browser.close()
