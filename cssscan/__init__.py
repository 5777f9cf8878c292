"""Multi-page, multi-viewport CSS coverage crawler.

This module measures how much of a site's CSS is applied while rendering.
Pages are visited breadth-first within the seed's origin; each page is
rendered at desktop, tablet and mobile sizes, and the stylesheet ranges
Chromium reports as used are merged across pages. Two files are written:
``used.css`` and ``unused.css``.

Example usage:

    from cssscan import scan_css_coverage, scan_css_coverage_async

    # Single page
    result = scan_css_coverage("https://example.com")
    print(result.unused_percentage)

    # Crawl up to 10 pages, two links deep
    result = await scan_css_coverage_async(
        "https://example.com",
        depth=2,
        max_pages=10,
        on_progress=lambda url, count: print(count, url),
    )
"""

from __future__ import annotations

import asyncio
import dataclasses
from contextlib import aclosing
from typing import Callable, Optional

from .aggregator import CoverageAggregator
from .config import VIEWPORTS, ScanOptions, options_from_env
from .errors import (
    CssScanError,
    FatalScanError,
    FormatError,
    NavigationError,
    OriginParseError,
)
from .frontier import UrlFrontier
from .models import (
    CoverageEntry,
    CrawlTask,
    GlobalCoverageEntry,
    PageVisited,
    ScanResult,
    Viewport,
)
from .ranges import ByteRange, merge_ranges
from .scanner import CoverageScanner, ScanSession

__all__ = [
    # Data types
    "ByteRange",
    "CoverageEntry",
    "GlobalCoverageEntry",
    "CrawlTask",
    "PageVisited",
    "ScanResult",
    "Viewport",
    # Errors
    "CssScanError",
    "NavigationError",
    "OriginParseError",
    "FormatError",
    "FatalScanError",
    # Engine
    "merge_ranges",
    "CoverageAggregator",
    "UrlFrontier",
    "ScanSession",
    "CoverageScanner",
    # Config
    "ScanOptions",
    "VIEWPORTS",
    "options_from_env",
    # Scan
    "scan_css_coverage",
    "scan_css_coverage_async",
]

ProgressCallback = Callable[[str, int], None]


def _resolve_options(
    options: Optional[ScanOptions], depth: Optional[int], max_pages: Optional[int]
) -> ScanOptions:
    resolved = options or ScanOptions()
    changes = {}
    if depth is not None:
        changes["depth"] = depth
    if max_pages is not None:
        changes["max_pages"] = max_pages
    return dataclasses.replace(resolved, **changes) if changes else resolved


async def scan_css_coverage_async(
    url: str,
    *,
    depth: Optional[int] = None,
    max_pages: Optional[int] = None,
    options: Optional[ScanOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> ScanResult:
    """
    Scan a site's CSS coverage and write used.css / unused.css.

    Args:
        url: The seed URL (http or https).
        depth: Link distance to crawl (0 = seed page only). Overrides options.
        max_pages: Maximum number of pages to visit. Overrides options.
        options: Full ScanOptions; defaults to a single-page scan.
        on_progress: Called with (url, visited_count) as each page starts.

    Returns:
        ScanResult with byte counts, percentages and output file names.

    Raises:
        OriginParseError: If the seed URL is not an absolute http(s) URL.
        FatalScanError: If the browser cannot be launched.
    """
    scanner = CoverageScanner(url, _resolve_options(options, depth, max_pages))
    async with aclosing(scanner.run()) as events:
        async for event in events:
            if on_progress is not None:
                on_progress(event.url, event.count)

    if scanner.result is None:
        raise FatalScanError(f"Scan of {url} ended without a result")
    return scanner.result


def scan_css_coverage(
    url: str,
    *,
    depth: Optional[int] = None,
    max_pages: Optional[int] = None,
    options: Optional[ScanOptions] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> ScanResult:
    """Synchronous wrapper for scan_css_coverage_async."""
    return asyncio.run(
        scan_css_coverage_async(
            url,
            depth=depth,
            max_pages=max_pages,
            options=options,
            on_progress=on_progress,
        )
    )
