"""Crawl loop tying the frontier, collector and aggregator together."""

from __future__ import annotations

import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any, AsyncContextManager, AsyncIterator, Callable, List, Optional

from .aggregator import CoverageAggregator
from .collector import collect_page_coverage
from .config import ScanOptions
from .emitter import finalize
from .frontier import LINKS_SCRIPT, UrlFrontier
from .models import PageVisited, ScanResult
from .renderer import RendererPage, open_browser

LOGGER = logging.getLogger(__name__)

BrowserFactory = Callable[[ScanOptions], AsyncContextManager[RendererPage]]


@dataclass
class ScanSession:
    """Mutable state owned by one scan: frontier and coverage map."""

    seed_url: str
    options: ScanOptions
    frontier: UrlFrontier
    aggregator: CoverageAggregator = field(default_factory=CoverageAggregator)

    @classmethod
    def start(cls, seed_url: str, options: ScanOptions) -> "ScanSession":
        frontier = UrlFrontier(
            seed_url, max_depth=options.depth, max_pages=options.max_pages
        )
        return cls(seed_url=seed_url, options=options, frontier=frontier)

    @property
    def pages(self) -> List[str]:
        return self.frontier.scanned


async def crawl(session: ScanSession, page: RendererPage) -> AsyncIterator[PageVisited]:
    """Visit pages breadth-first, yielding one event per visited page."""
    frontier = session.frontier
    while True:
        task = frontier.next_task()
        if task is None:
            break

        count = frontier.mark_visited(task.url)
        yield PageVisited(url=task.url, count=count)

        entries = await collect_page_coverage(page, task.url, session.options)
        session.aggregator.absorb(entries, count)

        if not frontier.should_expand(task):
            continue
        hrefs: Any = await page.evaluate(LINKS_SCRIPT)
        added = frontier.enqueue_links(hrefs or [], task.depth)
        LOGGER.debug(
            "Queued %d link(s) from %s (depth %d, %d pending)",
            added,
            task.url,
            task.depth,
            frontier.pending,
        )

    if frontier.budget_exhausted:
        LOGGER.info("Reached page limit of %d", frontier.max_pages)


class CoverageScanner:
    """Runs one scan and exposes its progress as an event stream.

    Example usage:

        scanner = CoverageScanner("https://example.com", ScanOptions(depth=1, max_pages=5))
        async with aclosing(scanner.run()) as events:
            async for event in events:
                print(event.count, event.url)
        print(scanner.result.unused_percentage)

    Wrap the stream in ``contextlib.aclosing`` so the browser is released
    even when the loop body raises or breaks early.
    """

    def __init__(
        self,
        url: str,
        options: Optional[ScanOptions] = None,
        *,
        browser_factory: Optional[BrowserFactory] = None,
    ) -> None:
        self.session = ScanSession.start(url, options or ScanOptions())
        self.result: Optional[ScanResult] = None
        self._browser_factory = browser_factory or open_browser

    async def run(self) -> AsyncIterator[PageVisited]:
        session = self.session
        LOGGER.info(
            "Starting CSS scan: %s (depth=%d, max_pages=%d)",
            session.seed_url,
            session.options.depth,
            session.options.max_pages,
        )
        async with self._browser_factory(session.options) as page:
            async with aclosing(crawl(session, page)) as events:
                async for event in events:
                    yield event

        self.result = finalize(
            session.aggregator,
            seed_url=session.seed_url,
            pages=session.pages,
            options=session.options,
        )
        LOGGER.info(
            "Scan complete: %d page(s), %s%% unused",
            self.result.total_pages_scanned,
            self.result.unused_percentage,
        )
