"""Breadth-first crawl frontier restricted to the seed's origin."""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Iterable, List, Optional, Set, Tuple
from urllib.parse import urldefrag, urlsplit

from .errors import OriginParseError
from .models import CrawlTask

LOGGER = logging.getLogger(__name__)

Origin = Tuple[str, str, int]

_DEFAULT_PORTS = {"http": 80, "https": 443}

# Absolute http(s) hrefs of every anchor, resolved by the browser.
LINKS_SCRIPT = """
() => Array.from(document.querySelectorAll('a'))
    .map(a => a.href)
    .filter(href => href.startsWith('http'))
"""


def normalize_url(url: str) -> str:
    """Strip the fragment so ``/a#x`` and ``/a`` count as one page."""
    return urldefrag(url.strip())[0]


def url_origin(url: str) -> Origin:
    """Return ``(scheme, host, port)`` with the default port filled in.

    Raises:
        OriginParseError: If the URL is not an absolute http(s) URL.
    """
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as exc:
        raise OriginParseError(f"Cannot parse origin of {url!r}: {exc}") from exc

    scheme = parts.scheme.lower()
    if scheme not in _DEFAULT_PORTS:
        raise OriginParseError(f"Unsupported scheme in {url!r}")
    if not parts.hostname:
        raise OriginParseError(f"Missing host in {url!r}")
    return scheme, parts.hostname.lower(), port or _DEFAULT_PORTS[scheme]


class UrlFrontier:
    """FIFO of crawl tasks with dedup, origin, depth and page-budget limits."""

    def __init__(self, seed_url: str, *, max_depth: int, max_pages: int) -> None:
        self.seed_url = normalize_url(seed_url)
        self.origin = url_origin(self.seed_url)
        self.max_depth = max_depth
        self.max_pages = max_pages
        self.visited: Set[str] = set()
        self.scanned: List[str] = []
        self._queue: Deque[CrawlTask] = deque([CrawlTask(self.seed_url, 0)])

    @property
    def visited_count(self) -> int:
        return len(self.visited)

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def budget_exhausted(self) -> bool:
        return len(self.visited) >= self.max_pages

    def next_task(self) -> Optional[CrawlTask]:
        """Pop the next unvisited task, or None when done."""
        while self._queue and not self.budget_exhausted:
            task = self._queue.popleft()
            # A URL may be queued twice before its first visit.
            if task.url in self.visited:
                continue
            return task
        return None

    def mark_visited(self, url: str) -> int:
        """Record a visit and return the running visited count."""
        if url not in self.visited:
            self.visited.add(url)
            self.scanned.append(url)
        return len(self.visited)

    def should_expand(self, task: CrawlTask) -> bool:
        return task.depth < self.max_depth

    def enqueue(self, url: str, depth: int) -> bool:
        """Queue ``url`` at ``depth`` if it passes every crawl filter."""
        if depth > self.max_depth:
            return False
        clean = normalize_url(url)
        if clean in self.visited:
            return False
        try:
            origin = url_origin(clean)
        except OriginParseError as exc:
            LOGGER.debug("Discarding link: %s", exc)
            return False
        if origin != self.origin:
            return False
        self._queue.append(CrawlTask(clean, depth))
        return True

    def enqueue_links(self, hrefs: Iterable[str], parent_depth: int) -> int:
        """Queue links discovered on a page at ``parent_depth``."""
        accepted = 0
        for href in hrefs:
            if not isinstance(href, str):
                continue
            if self.enqueue(href, parent_depth + 1):
                accepted += 1
        return accepted
